"""rangefile - write byte ranges into sparse remote files and track what they occupy."""

from .core.model import Range, InvalidArgumentError, OutOfBoundsError, BackendFailure   # re-export
from .core.rangeset import RangeFile
from .core.util import ALIGNMENT
from .io import open_backend, open_backend_async
from .sparse import (
    SparseFile, AsyncSparseFile,
    create_file, open_file, create_file_async, open_file_async,
)


__all__ = [
    "RangeFile", "Range", "ALIGNMENT",
    "InvalidArgumentError", "OutOfBoundsError", "BackendFailure",
    "SparseFile", "AsyncSparseFile",
    "create_file", "open_file", "create_file_async", "open_file_async",
    "open_backend", "open_backend_async",
]
