"""Base protocols and shared wire helpers for storage backends."""

import xml.etree.ElementTree as ET
from typing import List, Protocol, runtime_checkable

from ..core.model import Range, BackendFailure


API_VERSION = "2019-02-02"
DEFAULT_TIMEOUT = 30.0


@runtime_checkable
class RangeBackend(Protocol):
    """Protocol for synchronous file-service backends."""

    requests_made: int  # running total

    def create(self, capacity: int) -> None:
        """Create (or replace) a zero-filled file of `capacity` bytes."""
        ...

    def exists(self) -> bool:
        ...

    def size(self) -> int:
        """Return the declared capacity of the existing file."""
        ...

    def upload_range(self, offset: int, data: bytes) -> None:
        """Write `data` at absolute offset `offset`.
        On any transport or service error → raise BackendFailure.
        """
        ...

    def get_range_list(self) -> List[Range]:
        """Return the occupied ranges as reported by the storage service."""
        ...

    def download(self) -> bytes:
        ...

    def delete(self) -> None:
        ...


@runtime_checkable
class AsyncRangeBackend(Protocol):
    """Protocol for asynchronous file-service backends."""

    requests_made: int  # running total

    async def create(self, capacity: int) -> None:
        ...

    async def exists(self) -> bool:
        ...

    async def size(self) -> int:
        ...

    async def upload_range(self, offset: int, data: bytes) -> None:
        ...

    async def get_range_list(self) -> List[Range]:
        ...

    async def download(self) -> bytes:
        ...

    async def delete(self) -> None:
        ...


def format_range_header(offset: int, length: int) -> str:
    """x-ms-range value; the service expects an inclusive end offset."""
    return f"bytes={offset}-{offset + length - 1}"


def parse_range_list(body: bytes) -> List[Range]:
    """Convert a `comp=rangelist` response body into half-open ranges."""
    try:
        root = ET.fromstring(body)
    except ET.ParseError as e:
        raise BackendFailure(f"Malformed range list response: {e}") from e

    ranges = []
    for node in root.iter("Range"):
        start = node.findtext("Start")
        end = node.findtext("End")
        if start is None or end is None:
            raise BackendFailure("Range element without Start/End in range list response")
        ranges.append(Range(int(start), int(end) + 1))
    return ranges


def create_headers(capacity: int) -> dict:
    return {
        "x-ms-type": "file",
        "x-ms-content-length": str(capacity),
        "x-ms-file-attributes": "None",
        "x-ms-file-creation-time": "now",
        "x-ms-file-last-write-time": "now",
        "x-ms-file-permission": "inherit",
    }


def upload_headers(offset: int, length: int) -> dict:
    return {
        "x-ms-write": "update",
        "x-ms-range": format_range_header(offset, length),
    }
