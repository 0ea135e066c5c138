"""
Error Hierarchy for Topic-Vector Distance Search

Design Principles:
- Expected failures travel as Err values, not raised exceptions
- Every error carries a unique code for programmatic handling
- Errors are exceptions too, so a worker may raise one and the
  orchestrator can report it unchanged

Usage:
    result = select_nearest(query, corpus, count=10)
    if result.is_err():
        error = result.error
        if error.code is ErrorCode.CORPUS_INSUFFICIENT_SIZE:
            ...
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import uuid4


# =============================================================================
# ERROR CODE ENUMERATION
# =============================================================================
class ErrorCode(Enum):
    """
    Unique error codes for programmatic error handling.

    Codes are grouped by subsystem:
    - 1xxx: Corpus errors
    - 2xxx: Query errors
    - 3xxx: Index errors
    - 4xxx: Storage errors
    - 5xxx: Configuration errors
    - 9xxx: Internal errors
    """

    # Corpus errors (1xxx)
    CORPUS_INSUFFICIENT_SIZE = 1001
    CORPUS_RECORD_NOT_FOUND = 1002
    CORPUS_DUPLICATE_ID = 1003

    # Query errors (2xxx)
    QUERY_INVALID_K = 2001
    QUERY_INVALID_DIMENSION = 2002

    # Index errors (3xxx)
    INDEX_DIMENSION_MISMATCH = 3001

    # Storage errors (4xxx)
    STORAGE_READ_ERROR = 4001
    STORAGE_WRITE_ERROR = 4002

    # Configuration errors (5xxx)
    CONFIG_UNKNOWN_METRIC = 5001
    CONFIG_INVALID = 5002

    # Internal errors (9xxx)
    INTERNAL_ERROR = 9001


# =============================================================================
# BASE ERROR CLASS
# =============================================================================
@dataclass(eq=False)
class TopicMeshError(Exception):
    """
    Base class for all topicmesh errors.

    Provides:
    - Unique error ID for log correlation
    - Error code for programmatic handling
    - Timestamp
    - Cause chain for root cause analysis
    """

    code: ErrorCode
    message: str
    error_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    cause: Optional[Exception] = None
    context: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize error for logging/API responses."""
        return {
            "error_id": self.error_id,
            "code": self.code.name,
            "code_value": self.code.value,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
            "context": self.context,
        }

    def __str__(self) -> str:
        return f"[{self.code.name}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"code={self.code.name}, "
            f"message={self.message!r}, "
            f"error_id={self.error_id!r})"
        )


# =============================================================================
# CORPUS ERRORS
# =============================================================================
@dataclass(eq=False)
class CorpusError(TopicMeshError):
    """Errors about the corpus contents a request runs against."""

    @classmethod
    def insufficient_size(cls, requested: int, available: int) -> CorpusError:
        """Requested result size exceeds the number of records."""
        return cls(
            code=ErrorCode.CORPUS_INSUFFICIENT_SIZE,
            message=(
                f"Corpus holds {available} records, "
                f"{requested} were requested"
            ),
            context={"requested": requested, "available": available},
        )

    @classmethod
    def record_not_found(cls, record_id: str) -> CorpusError:
        """Query ID absent from the store."""
        return cls(
            code=ErrorCode.CORPUS_RECORD_NOT_FOUND,
            message=f"Record '{record_id}' not found",
            context={"record_id": record_id},
        )

    @classmethod
    def duplicate_id(cls, record_id: str) -> CorpusError:
        """Record ID loaded twice."""
        return cls(
            code=ErrorCode.CORPUS_DUPLICATE_ID,
            message=f"Record '{record_id}' already exists",
            context={"record_id": record_id},
        )


# =============================================================================
# QUERY ERRORS
# =============================================================================
@dataclass(eq=False)
class QueryError(TopicMeshError):
    """Errors in query parameters."""

    @classmethod
    def invalid_k(cls, count: int | str) -> QueryError:
        """``count`` may be the raw request value when it is not a number."""
        return cls(
            code=ErrorCode.QUERY_INVALID_K,
            message=f"Invalid count={count!r}, must be an integer >= 0",
            context={"count": count},
        )

    @classmethod
    def invalid_dimension(cls, dimension: int, total: int) -> QueryError:
        return cls(
            code=ErrorCode.QUERY_INVALID_DIMENSION,
            message=f"Invalid topic {dimension}, must be in [0, {total})",
            context={"dimension": dimension, "total": total},
        )


# =============================================================================
# INDEX ERRORS
# =============================================================================
@dataclass(eq=False)
class IndexError(TopicMeshError):
    """Errors while admitting records into a store."""

    @classmethod
    def dimension_mismatch(cls, expected: int, actual: int) -> IndexError:
        return cls(
            code=ErrorCode.INDEX_DIMENSION_MISMATCH,
            message=f"Dimension mismatch: expected {expected}, got {actual}",
            context={"expected": expected, "actual": actual},
        )


# =============================================================================
# STORAGE ERRORS
# =============================================================================
@dataclass(eq=False)
class StorageError(TopicMeshError):
    """I/O failures at the storage boundary."""

    @classmethod
    def read_error(
        cls,
        path: str,
        reason: str,
        cause: Optional[Exception] = None,
    ) -> StorageError:
        return cls(
            code=ErrorCode.STORAGE_READ_ERROR,
            message=f"Failed to read '{path}': {reason}",
            cause=cause,
            context={"path": path, "reason": reason},
        )

    @classmethod
    def write_error(
        cls,
        path: str,
        reason: str,
        cause: Optional[Exception] = None,
    ) -> StorageError:
        return cls(
            code=ErrorCode.STORAGE_WRITE_ERROR,
            message=f"Failed to write '{path}': {reason}",
            cause=cause,
            context={"path": path, "reason": reason},
        )


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================
@dataclass(eq=False)
class ConfigError(TopicMeshError):
    """Errors in configuration values."""

    @classmethod
    def unknown_metric(cls, name: str) -> ConfigError:
        return cls(
            code=ErrorCode.CONFIG_UNKNOWN_METRIC,
            message=f"Unknown metric '{name}'",
            context={"metric": name},
        )

    @classmethod
    def invalid(cls, param: str, value: Any, reason: str) -> ConfigError:
        return cls(
            code=ErrorCode.CONFIG_INVALID,
            message=f"Invalid config '{param}': {reason}",
            context={"param": param, "value": value, "reason": reason},
        )


# =============================================================================
# INTERNAL ERRORS
# =============================================================================
@dataclass(eq=False)
class InternalError(TopicMeshError):
    """Unexpected failure, e.g. an exception escaping a worker."""

    @classmethod
    def from_exception(cls, exc: BaseException, where: str) -> InternalError:
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Unexpected error in {where}: {exc}",
            cause=exc if isinstance(exc, Exception) else None,
            context={"where": where, "type": type(exc).__name__},
        )
