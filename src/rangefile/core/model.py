from __future__ import annotations
from dataclasses import dataclass


@dataclass(frozen=True, order=True, slots=True)
class Range:
    start: int
    end: int                   # exclusive

    @property
    def length(self) -> int:
        return self.end - self.start

    def as_tuple(self) -> tuple[int, int]:
        return (self.start, self.end)


class InvalidArgumentError(ValueError):
    """Raised for a bad capacity, alignment or a non-positive write length."""
    pass


class OutOfBoundsError(ValueError):
    """Raised when an offset/length pair falls outside the file capacity."""
    pass


class BackendFailure(IOError):
    """Raised when the storage transport rejects or fails a request."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
