"""Sparse remote file: a backend plus a locally cached range index."""

from __future__ import annotations
import logging
from typing import List

from .core.model import Range, BackendFailure
from .core.rangeset import RangeFile
from .core.util import ALIGNMENT
from .io import open_backend, open_backend_async

logger = logging.getLogger(__name__)


class SparseFile:
    """Write byte ranges into a fixed-capacity remote file.

    The range index is a cache of what the service reports. A write is only
    merged into it after the backend acknowledged the upload, and
    `list_ranges(refresh=True)` re-fetches the authoritative list.
    """

    def __init__(self, backend, capacity: int, alignment: int = ALIGNMENT):
        self.backend = backend
        self.ranges = RangeFile(capacity, alignment)

    @property
    def capacity(self) -> int:
        return self.ranges.capacity

    @classmethod
    def create(cls, backend, capacity: int, alignment: int = ALIGNMENT) -> "SparseFile":
        """Create the remote file with a fixed capacity and an empty index."""
        sparse = cls(backend, capacity, alignment)
        _call(backend.create, capacity)
        return sparse

    @classmethod
    def open(cls, backend, alignment: int = ALIGNMENT) -> "SparseFile":
        """Attach to an existing remote file and load its range list."""
        sparse = cls(backend, _call(backend.size), alignment)
        sparse.refresh()
        return sparse

    def write_bytes(self, offset: int, data: bytes) -> None:
        self.ranges.check_write(offset, len(data))
        try:
            _call(self.backend.upload_range, offset, data)
        except BackendFailure:
            logger.warning("Write of %d bytes at offset %d failed, range index unchanged", len(data), offset)
            raise
        self.ranges.write_range(offset, data)
        logger.debug("Acknowledged write offset=%d length=%d", offset, len(data))

    def refresh(self) -> List[Range]:
        reported = _call(self.backend.get_range_list)
        self.ranges.reconcile(reported)
        logger.debug("Reconciled %d ranges from backend", len(reported))
        return self.ranges.list_ranges()

    def list_ranges(self, refresh: bool = False) -> List[Range]:
        if refresh:
            return self.refresh()
        return self.ranges.list_ranges()

    def download(self) -> bytes:
        return _call(self.backend.download)

    def delete(self) -> None:
        _call(self.backend.delete)
        self.ranges.reset()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        pass


class AsyncSparseFile:
    """Asynchronous counterpart of SparseFile."""

    def __init__(self, backend, capacity: int, alignment: int = ALIGNMENT):
        self.backend = backend
        self.ranges = RangeFile(capacity, alignment)

    @property
    def capacity(self) -> int:
        return self.ranges.capacity

    @classmethod
    async def create(cls, backend, capacity: int, alignment: int = ALIGNMENT) -> "AsyncSparseFile":
        sparse = cls(backend, capacity, alignment)
        await _acall(backend.create, capacity)
        return sparse

    @classmethod
    async def open(cls, backend, alignment: int = ALIGNMENT) -> "AsyncSparseFile":
        sparse = cls(backend, await _acall(backend.size), alignment)
        await sparse.refresh()
        return sparse

    async def write_bytes(self, offset: int, data: bytes) -> None:
        self.ranges.check_write(offset, len(data))
        try:
            await _acall(self.backend.upload_range, offset, data)
        except BackendFailure:
            logger.warning("Write of %d bytes at offset %d failed, range index unchanged", len(data), offset)
            raise
        self.ranges.write_range(offset, data)
        logger.debug("Acknowledged write offset=%d length=%d", offset, len(data))

    async def refresh(self) -> List[Range]:
        reported = await _acall(self.backend.get_range_list)
        self.ranges.reconcile(reported)
        logger.debug("Reconciled %d ranges from backend", len(reported))
        return self.ranges.list_ranges()

    async def list_ranges(self, refresh: bool = False) -> List[Range]:
        if refresh:
            return await self.refresh()
        return self.ranges.list_ranges()

    async def download(self) -> bytes:
        return await _acall(self.backend.download)

    async def delete(self) -> None:
        await _acall(self.backend.delete)
        self.ranges.reset()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        pass


def _call(fn, *args):
    """Invoke a backend operation, surfacing any transport error as BackendFailure."""
    try:
        return fn(*args)
    except BackendFailure:
        raise
    except (IOError, OSError) as e:
        raise BackendFailure(str(e)) from e


async def _acall(fn, *args):
    try:
        return await fn(*args)
    except BackendFailure:
        raise
    except (IOError, OSError) as e:
        raise BackendFailure(str(e)) from e


def create_file(target, capacity: int, *, alignment: int = ALIGNMENT, **options) -> SparseFile:
    """Create a sparse file at a local path or signed URL."""
    return SparseFile.create(open_backend(target, **options), capacity, alignment)


def open_file(target, *, alignment: int = ALIGNMENT, **options) -> SparseFile:
    """Open an existing sparse file at a local path or signed URL."""
    return SparseFile.open(open_backend(target, **options), alignment)


async def create_file_async(target, capacity: int, *, alignment: int = ALIGNMENT, **options) -> AsyncSparseFile:
    return await AsyncSparseFile.create(await open_backend_async(target, **options), capacity, alignment)


async def open_file_async(target, *, alignment: int = ALIGNMENT, **options) -> AsyncSparseFile:
    return await AsyncSparseFile.open(await open_backend_async(target, **options), alignment)
