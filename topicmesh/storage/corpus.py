"""
Immutable Corpus Handle

Snapshot of a store taken once per export run and shared read-only by
every worker. Rows are addressed by 0-based position; the export uses
position + 1 as the row index written to shards and the ID map.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator

import numpy as np

from topicmesh.core.types import Record
from topicmesh.storage.protocols import VectorStoreProtocol


@dataclass(frozen=True, eq=False)
class Corpus:
    """
    Read-only view of N records.

    Attributes:
        ids: Original IDs in row order
        texts: Display texts in row order
        matrix: float64 [N, D] weight matrix, not writeable
    """

    ids: tuple[str, ...]
    texts: tuple[str, ...]
    matrix: np.ndarray

    @classmethod
    def from_records(cls, records: Iterable[Record]) -> Corpus:
        rows = list(records)
        dimension = rows[0].dimension if rows else 0
        matrix = np.array(
            [r.vector for r in rows], dtype=np.float64,
        ).reshape(len(rows), dimension)
        matrix.setflags(write=False)
        return cls(
            ids=tuple(r.id for r in rows),
            texts=tuple(r.text for r in rows),
            matrix=matrix,
        )

    @classmethod
    def from_store(cls, store: VectorStoreProtocol) -> Corpus:
        """Snapshot a store in its iteration order."""
        return cls.from_records(store.iterate())

    def __len__(self) -> int:
        return len(self.ids)

    def __iter__(self) -> Iterator[Record]:
        for i in range(len(self.ids)):
            yield self.record(i)

    @property
    def dimension(self) -> int:
        return int(self.matrix.shape[1]) if self.matrix.ndim == 2 else 0

    @property
    def id_array(self) -> np.ndarray:
        """IDs as a numpy object array, for vectorized comparisons."""
        return np.asarray(self.ids, dtype=object)

    def record(self, row: int) -> Record:
        return Record.from_values(self.ids[row], self.texts[row], self.matrix[row])
