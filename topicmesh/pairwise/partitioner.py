"""
Row Partitioning for the Pairwise Export

Splits the N source rows of the upper-triangular pair matrix into
contiguous, non-overlapping chunks, one per worker. Chunks are equal in
row count, not in pair count: early rows carry more pairs than late ones.
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass
from typing import Optional

from topicmesh.core import constants as C


@dataclass(frozen=True, slots=True)
class RowPartition:
    """Half-open range [start, stop) of 0-based source rows."""
    index: int
    start: int
    stop: int

    def __len__(self) -> int:
        return self.stop - self.start

    def __iter__(self):
        return iter(range(self.start, self.stop))

    @property
    def label(self) -> str:
        """1-based inclusive row range for logs."""
        return f"rows {self.start + 1}-{self.stop}"


def default_worker_count(cpu_count: Optional[int] = None) -> int:
    """Available cores minus the reserved ones, at least 1."""
    cores = cpu_count if cpu_count is not None else (os.cpu_count() or 1)
    return max(1, cores - C.RESERVED_CORES)


def partition_rows(n: int, workers: int) -> list[RowPartition]:
    """
    Split ``n`` rows into at most ``workers`` partitions.

    Chunk size is ceil(n / workers); trailing chunks that would be empty
    are dropped, so fewer partitions than workers may come back.

    Raises:
        ValueError: if workers < 1 or n < 0
    """
    if workers < 1:
        raise ValueError(f"workers must be >= 1, got {workers}")
    if n < 0:
        raise ValueError(f"n must be >= 0, got {n}")
    if n == 0:
        return []

    chunk = math.ceil(n / workers)
    partitions: list[RowPartition] = []
    for index, start in enumerate(range(0, n, chunk)):
        partitions.append(RowPartition(index=index, start=start, stop=min(start + chunk, n)))
    return partitions
