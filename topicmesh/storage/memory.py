"""
In-Memory Vector Store

Insertion-ordered record store that validates records at load time:
every vector must share the dimension of the first one, and IDs must be
unique. Reads are lock-free; inserts take a lock.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Iterable, Iterator, Optional, Sequence

from topicmesh.core.errors import CorpusError, IndexError
from topicmesh.core.types import Err, Ok, Record, Result

logger = logging.getLogger(__name__)


class InMemoryVectorStore:
    """
    Dict-backed VectorStore.

    Thread Safety:
        Concurrent reads are safe once loading is finished.
        Writers are serialized by an internal lock.
    """

    __slots__ = ("_records", "_dimension", "_lock")

    def __init__(self, dimension: Optional[int] = None) -> None:
        """
        Args:
            dimension: Expected vector length; inferred from the first
                insert when None
        """
        self._records: dict[str, Record] = {}
        self._dimension = dimension
        self._lock = threading.Lock()

    @classmethod
    def from_records(
        cls, records: Iterable[Record],
    ) -> Result[InMemoryVectorStore, CorpusError | IndexError]:
        """Build a store from records, failing on the first invalid one."""
        store = cls()
        result = store.insert_batch(list(records))
        if result.is_err():
            return result
        return Ok(store)

    # =========================================================================
    # PROPERTIES
    # =========================================================================
    @property
    def dimension(self) -> int:
        return self._dimension or 0

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, id: object) -> bool:
        return id in self._records

    # =========================================================================
    # WRITES
    # =========================================================================
    def insert(self, record: Record) -> Result[None, CorpusError | IndexError]:
        """
        Admit one record.

        Returns:
            Ok(None) on success
            Err[IndexError] if its dimension differs from the store's
            Err[CorpusError] if its ID is already present
        """
        with self._lock:
            return self._insert_locked(record)

    def insert_batch(
        self, records: Sequence[Record],
    ) -> Result[int, CorpusError | IndexError]:
        """Admit records in order. Returns the number inserted."""
        with self._lock:
            for inserted, record in enumerate(records):
                result = self._insert_locked(record)
                if result.is_err():
                    logger.warning(
                        "Batch insert stopped after %d records: %s",
                        inserted, result.error,
                    )
                    return result
        return Ok(len(records))

    def insert_values(
        self, id: str, text: str, values: Any,
    ) -> Result[None, CorpusError | IndexError]:
        return self.insert(Record.from_values(id, text, values))

    def _insert_locked(self, record: Record) -> Result[None, CorpusError | IndexError]:
        if self._dimension is None:
            self._dimension = record.dimension
        elif record.dimension != self._dimension:
            return Err(IndexError.dimension_mismatch(self._dimension, record.dimension))
        if record.id in self._records:
            return Err(CorpusError.duplicate_id(record.id))
        self._records[record.id] = record
        return Ok(None)

    # =========================================================================
    # READS
    # =========================================================================
    def iterate(self) -> Iterator[Record]:
        """Yield records in insertion order."""
        return iter(list(self._records.values()))

    def get(self, id: str) -> Result[Record, CorpusError]:
        record = self._records.get(id)
        if record is None:
            return Err(CorpusError.record_not_found(id))
        return Ok(record)
