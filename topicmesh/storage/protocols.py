"""
Protocol Definitions: Structural Subtyping for Pluggable Backends

Defines abstract interfaces for:
    - VectorStoreProtocol: read access to the records of a corpus
    - ShardSinkProtocol: destination of sealed export shards
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Iterator, Protocol, Sequence, runtime_checkable

if TYPE_CHECKING:
    from topicmesh.core.errors import CorpusError, StorageError
    from topicmesh.core.types import Record, Result
    from topicmesh.storage.shards import Shard


# =============================================================================
# VECTOR STORE PROTOCOL
# =============================================================================
@runtime_checkable
class VectorStoreProtocol(Protocol):
    """
    Protocol for record stores.

    Implementations:
        - InMemoryVectorStore: dict-backed, insertion-ordered

    iterate() must yield records in the same order on every call;
    top-k tie-breaks and shard contents depend on it.
    """

    @property
    def dimension(self) -> int:
        """Topic vector length, 0 while empty."""
        ...

    @abstractmethod
    def __len__(self) -> int:
        ...

    @abstractmethod
    def iterate(self) -> Iterator["Record"]:
        """Yield every record in stable order."""
        ...

    @abstractmethod
    def get(self, id: str) -> "Result[Record, CorpusError]":
        """Get record by ID."""
        ...


# =============================================================================
# SHARD SINK PROTOCOL
# =============================================================================
@runtime_checkable
class ShardSinkProtocol(Protocol):
    """
    Protocol for shard destinations.

    Implementations:
        - CsvShardSink: one CSV file per shard
        - MemoryShardSink: keeps shards in a list
    """

    @abstractmethod
    def clear(self) -> "Result[int, StorageError]":
        """Drop shards left by an earlier run. Returns how many went."""
        ...

    @abstractmethod
    def write(self, shard: "Shard") -> "Result[None, StorageError]":
        """Persist one sealed shard."""
        ...

    @abstractmethod
    def write_id_map(self, ids: Sequence[str]) -> "Result[None, StorageError]":
        """Persist the 1-based row index to original ID mapping."""
        ...
