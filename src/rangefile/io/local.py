"""Local sparse file backend with a JSON range index."""

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import List, Union

from ..core.model import Range, BackendFailure
from ..core.rangeset import RangeFile
from ..core.util import ALIGNMENT

logger = logging.getLogger(__name__)

INDEX_SUFFIX = ".ranges.json"


class LocalRangeBackend:
    """Synchronous backend storing data in a local file.

    The occupied ranges live in a side index next to the data file and are
    coalesced with the same rules the file service applies.
    """

    def __init__(self, path: Union[Path, str], alignment: int = ALIGNMENT):
        self.path = Path(path)
        self.index_path = self.path.with_name(self.path.name + INDEX_SUFFIX)
        self.alignment = alignment
        self.requests_made = 0

    def _load_index(self) -> RangeFile:
        try:
            raw = json.loads(self.index_path.read_text(encoding="utf-8"))
        except FileNotFoundError as e:
            raise BackendFailure(f"File not found: {self.path}", status_code=404) from e
        except (OSError, ValueError) as e:
            raise BackendFailure(f"Cannot read range index {self.index_path}: {e}") from e

        try:
            index = RangeFile(raw["capacity"], raw.get("alignment", self.alignment))
            index.reconcile([Range(s, e) for s, e in raw["ranges"]])
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise BackendFailure(f"Cannot read range index {self.index_path}: {e!r}") from e
        return index

    def _save_index(self, index: RangeFile) -> None:
        payload = {
            "capacity": index.capacity,
            "alignment": index.alignment,
            "ranges": [list(r.as_tuple()) for r in index.list_ranges()],
        }
        tmp = self.index_path.with_name(self.index_path.name + ".tmp")
        try:
            tmp.write_text(json.dumps(payload), encoding="utf-8")
            os.replace(tmp, self.index_path)
        except OSError as e:
            raise BackendFailure(f"Cannot write range index {self.index_path}: {e}") from e

    def create(self, capacity: int) -> None:
        self.requests_made += 1
        logger.debug("create %s capacity=%d", self.path, capacity)
        index = RangeFile(capacity, self.alignment)
        try:
            with open(self.path, "wb") as f:
                f.truncate(capacity)
        except OSError as e:
            raise BackendFailure(f"Cannot create {self.path}: {e}") from e
        self._save_index(index)

    def exists(self) -> bool:
        self.requests_made += 1
        return self.path.exists() and self.index_path.exists()

    def size(self) -> int:
        self.requests_made += 1
        return self._load_index().capacity

    def upload_range(self, offset: int, data: bytes) -> None:
        self.requests_made += 1
        index = self._load_index()
        index.check_write(offset, len(data))
        logger.debug("upload_range %s offset=%d length=%d", self.path, offset, len(data))
        try:
            with open(self.path, "r+b") as f:
                f.seek(offset)
                f.write(data)
        except OSError as e:
            raise BackendFailure(f"Cannot write to {self.path}: {e}") from e
        index.write_range(offset, data)
        self._save_index(index)

    def get_range_list(self) -> List[Range]:
        self.requests_made += 1
        return self._load_index().list_ranges()

    def download(self) -> bytes:
        self.requests_made += 1
        try:
            return self.path.read_bytes()
        except FileNotFoundError as e:
            raise BackendFailure(f"File not found: {self.path}", status_code=404) from e
        except OSError as e:
            raise BackendFailure(f"Cannot read {self.path}: {e}") from e

    def delete(self) -> None:
        self.requests_made += 1
        logger.debug("delete %s", self.path)
        if not self.path.exists():
            raise BackendFailure(f"File not found: {self.path}", status_code=404)
        try:
            self.path.unlink()
            self.index_path.unlink(missing_ok=True)
        except OSError as e:
            raise BackendFailure(f"Cannot delete {self.path}: {e}") from e

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        pass


class LocalAsyncRangeBackend:
    """Asynchronous local backend - thin wrapper around the sync backend."""

    def __init__(self, path: Union[Path, str], alignment: int = ALIGNMENT):
        self._sync_backend = LocalRangeBackend(path, alignment)

    @property
    def path(self) -> Path:
        return self._sync_backend.path

    @property
    def requests_made(self) -> int:
        return self._sync_backend.requests_made

    async def create(self, capacity: int) -> None:
        await asyncio.to_thread(self._sync_backend.create, capacity)

    async def exists(self) -> bool:
        return await asyncio.to_thread(self._sync_backend.exists)

    async def size(self) -> int:
        return await asyncio.to_thread(self._sync_backend.size)

    async def upload_range(self, offset: int, data: bytes) -> None:
        await asyncio.to_thread(self._sync_backend.upload_range, offset, data)

    async def get_range_list(self) -> List[Range]:
        return await asyncio.to_thread(self._sync_backend.get_range_list)

    async def download(self) -> bytes:
        return await asyncio.to_thread(self._sync_backend.download)

    async def delete(self) -> None:
        await asyncio.to_thread(self._sync_backend.delete)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        pass


def open_local_backend(path: Union[Path, str], alignment: int = ALIGNMENT) -> LocalRangeBackend:
    """Create a synchronous local backend."""
    return LocalRangeBackend(path, alignment)


async def open_local_backend_async(path: Union[Path, str], alignment: int = ALIGNMENT) -> LocalAsyncRangeBackend:
    """Create an asynchronous local backend."""
    return LocalAsyncRangeBackend(path, alignment)
