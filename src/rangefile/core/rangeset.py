"""Occupied-range index for a fixed-capacity sparse file."""

from __future__ import annotations
import bisect
import threading
from typing import Iterable, Iterator, List

from .model import Range, InvalidArgumentError, OutOfBoundsError
from .util import ALIGNMENT, align_down, align_up


class RangeFile:
    """Tracks which storage-aligned regions of a remote file hold data.

    Ranges are half-open, ascending, pairwise disjoint and never adjacent:
    touching or overlapping regions are always coalesced, the same way the
    file service reports them after neighbouring writes.
    """

    def __init__(self, capacity: int, alignment: int = ALIGNMENT):
        if capacity <= 0:
            raise InvalidArgumentError(f"Capacity must be positive, got {capacity}")
        if alignment <= 0:
            raise InvalidArgumentError(f"Alignment must be positive, got {alignment}")
        self.capacity = capacity
        self.alignment = alignment
        self._ranges: List[Range] = []
        self._lock = threading.Lock()

    @classmethod
    def create(cls, capacity: int, alignment: int = ALIGNMENT) -> "RangeFile":
        return cls(capacity, alignment)

    # --- validation ---
    def check_write(self, offset: int, length: int) -> Range:
        """Validate a write and return the aligned range it would occupy.

        Does not touch the index.
        """
        if length <= 0:
            raise InvalidArgumentError(f"Write length must be positive, got {length}")
        if offset < 0:
            raise OutOfBoundsError(f"Offset cannot be negative, got {offset}")
        if offset + length > self.capacity:
            raise OutOfBoundsError(
                f"Write of {length} bytes at offset {offset} exceeds capacity {self.capacity}"
            )
        start = align_down(offset, self.alignment)
        end = min(align_up(offset + length, self.alignment), self.capacity)
        return Range(start, end)

    # --- mutation ---
    def write_range(self, offset: int, data: bytes) -> None:
        """Record a write of `data` at `offset`.

        Only occupancy is tracked; rewriting bytes inside an allocated region
        leaves the range list as it was.
        """
        self.mark_written(offset, len(data))

    def mark_written(self, offset: int, length: int) -> None:
        aligned = self.check_write(offset, length)
        with self._lock:
            self._merge(aligned.start, aligned.end)

    def reconcile(self, ranges: Iterable[Range]) -> None:
        """Replace the index with a range list reported by the backend."""
        normalised = []
        for r in ranges:
            if r.start < 0 or r.end > self.capacity or r.start >= r.end:
                raise OutOfBoundsError(
                    f"Reported range [{r.start}, {r.end}) does not fit capacity {self.capacity}"
                )
            normalised.append(Range(align_down(r.start, self.alignment),
                                    min(align_up(r.end, self.alignment), self.capacity)))
        with self._lock:
            self._ranges = []
            for r in sorted(normalised):
                self._merge(r.start, r.end)

    def reset(self) -> None:
        with self._lock:
            self._ranges = []

    # caller holds self._lock
    def _merge(self, start: int, end: int) -> None:
        ranges = self._ranges
        i = bisect.bisect_left(ranges, Range(start, start))
        # the predecessor may overlap or touch the new range
        if i > 0 and ranges[i - 1].end >= start:
            i -= 1
        j = i
        while j < len(ranges) and ranges[j].start <= end:
            start = min(start, ranges[j].start)
            end = max(end, ranges[j].end)
            j += 1
        ranges[i:j] = [Range(start, end)]

    # --- queries ---
    def list_ranges(self) -> List[Range]:
        with self._lock:
            return list(self._ranges)

    @property
    def allocated_bytes(self) -> int:
        return sum(r.length for r in self.list_ranges())

    def __len__(self) -> int:
        return len(self.list_ranges())

    def __iter__(self) -> Iterator[Range]:
        return iter(self.list_ranges())

    def __repr__(self) -> str:
        spans = ", ".join(f"[{r.start}, {r.end})" for r in self.list_ranges())
        return f"RangeFile(capacity={self.capacity}, ranges=[{spans}])"
