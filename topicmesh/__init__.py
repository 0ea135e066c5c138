"""
topicmesh: Brute-Force Distance Search over Topic Distributions

Nearest-neighbor retrieval and thresholded all-pairs divergence for
per-document topic weight vectors, with a parallel sharded CSV export.

Quick start:
    from topicmesh import InMemoryVectorStore, Record, select_nearest

    store = InMemoryVectorStore()
    store.insert(Record.from_values("a", "first doc", [0.5, 0.5]))
    result = select_nearest([0.5, 0.5], store.iterate(), count=0)
"""

from topicmesh.core import (
    ConfigError,
    CorpusError,
    DistanceEdge,
    Err,
    ErrorCode,
    MetricType,
    Ok,
    QueryError,
    Record,
    Result,
    StorageError,
    TopicMeshConfig,
    TopicMeshError,
)
from topicmesh.index import select_nearest, select_top_dimension
from topicmesh.pairwise import ExportOrchestrator, ExportSummary, PairwiseEngine
from topicmesh.storage import Corpus, CsvShardSink, InMemoryVectorStore, MemoryShardSink

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "ConfigError",
    "CorpusError",
    "DistanceEdge",
    "Err",
    "ErrorCode",
    "MetricType",
    "Ok",
    "QueryError",
    "Record",
    "Result",
    "StorageError",
    "TopicMeshConfig",
    "TopicMeshError",
    "select_nearest",
    "select_top_dimension",
    "PairwiseEngine",
    "ExportOrchestrator",
    "ExportSummary",
    "Corpus",
    "CsvShardSink",
    "InMemoryVectorStore",
    "MemoryShardSink",
]
