"""
Core Module: Types, Errors, and Configuration

Self-contained module with no dependencies beyond the standard library.
Provides the foundational abstractions for the whole package.
"""

from topicmesh.core.types import (
    Result,
    Ok,
    Err,
    MetricType,
    Record,
    DistanceEdge,
    Neighbor,
    TopKResult,
    DimensionHit,
    TopDimensionResult,
)
from topicmesh.core.errors import (
    ErrorCode,
    TopicMeshError,
    CorpusError,
    QueryError,
    IndexError,
    StorageError,
    ConfigError,
    InternalError,
)
from topicmesh.core.config import TopicMeshConfig, resolve_metric

__all__ = [
    # Types
    "Result",
    "Ok",
    "Err",
    "MetricType",
    "Record",
    "DistanceEdge",
    "Neighbor",
    "TopKResult",
    "DimensionHit",
    "TopDimensionResult",
    # Errors
    "ErrorCode",
    "TopicMeshError",
    "CorpusError",
    "QueryError",
    "IndexError",
    "StorageError",
    "ConfigError",
    "InternalError",
    # Config
    "TopicMeshConfig",
    "resolve_metric",
]
