from __future__ import annotations
from typing import Any, Dict, Iterable

from .model import Range

ALIGNMENT = 512  # storage unit reported by the file service


def align_down(value: int, alignment: int = ALIGNMENT) -> int:
    return value - (value % alignment)


def align_up(value: int, alignment: int = ALIGNMENT) -> int:
    return -(-value // alignment) * alignment


def ranges_asdict(ranges: Iterable[Range], *, capacity: int | None = None) -> Dict[str, Any]:
    """Return a JSON-serialisable dict describing a range list."""
    items = [{"start": r.start, "end": r.end} for r in ranges]
    payload: Dict[str, Any] = {}
    if capacity is not None:
        payload["capacity"] = capacity
    payload["allocated_bytes"] = sum(i["end"] - i["start"] for i in items)
    payload["ranges"] = items
    return payload
