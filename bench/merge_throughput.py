"""Throughput benchmark for the range index merge.

Scatters writes over a large file and reports writes/second and the final
number of coalesced ranges. Meant for manual runs, not CI.
"""

import random
import sys
import time
from pathlib import Path

# Add src to path for development
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from rangefile import RangeFile


def run(capacity: int = 1 << 32, writes: int = 200_000, max_len: int = 8192, seed: int = 0):
    rng = random.Random(seed)
    index = RangeFile(capacity)
    payloads = {n: b"x" * n for n in (1, 512, 4096, max_len)}

    started = time.perf_counter()
    for _ in range(writes):
        length = rng.choice(list(payloads))
        offset = rng.randrange(0, capacity - length)
        index.write_range(offset, payloads[length])
    elapsed = time.perf_counter() - started

    print(f"{writes} writes in {elapsed:.2f}s ({writes / elapsed:,.0f}/s)")
    print(f"{len(index)} ranges, {index.allocated_bytes:,} bytes allocated")


if __name__ == "__main__":
    print("rangefile merge benchmark")
    print("=" * 40)
    run()
