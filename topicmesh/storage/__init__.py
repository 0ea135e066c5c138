"""
Storage Module: Record Stores, Corpus Snapshots, Shard Output
"""

from topicmesh.storage.protocols import ShardSinkProtocol, VectorStoreProtocol
from topicmesh.storage.memory import InMemoryVectorStore
from topicmesh.storage.corpus import Corpus
from topicmesh.storage.shards import (
    CsvShardSink,
    MemoryShardSink,
    Shard,
    ShardWriter,
)

__all__ = [
    "VectorStoreProtocol",
    "ShardSinkProtocol",
    "InMemoryVectorStore",
    "Corpus",
    "Shard",
    "ShardWriter",
    "CsvShardSink",
    "MemoryShardSink",
]
