"""
Core Type Definitions for Topic-Vector Distance Search

Implements the Result monad for zero-exception control flow and the
plain data carriers shared by every layer:

    - Record: document id, display text and topic weight vector
    - DistanceEdge: scored unordered pair of records
    - Neighbor / TopKResult: bounded nearest-neighbor answers
    - DimensionHit / TopDimensionResult: top documents on one topic

Thread Safety:
    All carriers are frozen dataclasses and safe to share across workers.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Generic,
    Iterator,
    Literal,
    Optional,
    TypeVar,
    Union,
)

from topicmesh.core.errors import ConfigError

if TYPE_CHECKING:
    import numpy as np

# =============================================================================
# TYPE VARIABLES FOR GENERIC CONTAINERS
# =============================================================================
T = TypeVar("T")  # Success type
E = TypeVar("E")  # Error type
U = TypeVar("U")  # Transform result type


# =============================================================================
# RESULT MONAD: ZERO-EXCEPTION CONTROL FLOW
# =============================================================================
@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """
    Success variant of Result monad.

    Immutable container for successful computation results.
    """

    value: T

    def is_ok(self) -> Literal[True]:
        return True

    def is_err(self) -> Literal[False]:
        return False

    def unwrap(self) -> T:
        """Extract value. Safe to call after is_ok() check."""
        return self.value

    def unwrap_or(self, default: T) -> T:
        """Return value, ignoring default."""
        return self.value

    def map(self, fn: Callable[[T], U]) -> Ok[U]:
        """Apply transformation to success value."""
        return Ok(fn(self.value))

    def flat_map(self, fn: Callable[[T], Result[U, E]]) -> Result[U, E]:
        """Monadic bind for chaining fallible operations."""
        return fn(self.value)

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """
    Failure variant of Result monad.

    Carries the error object for exhaustive handling by the caller.
    """

    error: E

    def is_ok(self) -> Literal[False]:
        return False

    def is_err(self) -> Literal[True]:
        return True

    def unwrap(self) -> Any:
        """
        Attempting to unwrap an error is a programming error.

        Raises:
            RuntimeError: Always, with error context
        """
        raise RuntimeError(f"Called unwrap() on Err: {self.error}")

    def unwrap_or(self, default: T) -> T:
        """Return default value on error."""
        return default

    def map(self, fn: Callable[[Any], U]) -> Err[E]:
        """No-op on error variant - propagates error unchanged."""
        return self

    def flat_map(self, fn: Callable[[Any], Result[U, E]]) -> Err[E]:
        """Propagate error through monadic chain."""
        return self

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


# Union type for pattern matching
Result = Union[Ok[T], Err[E]]


# =============================================================================
# METRIC TYPES
# =============================================================================
class MetricType(Enum):
    """
    Dissimilarity metrics between topic weight vectors.

    Both are distances: lower = more similar, zero for identical vectors.
    """
    MANHATTAN = "manhattan"     # L1 distance
    JSD = "jsd"                 # Symmetrized (Jensen-Shannon style) divergence

    @classmethod
    def parse(cls, name: Optional[str]) -> Result[MetricType, ConfigError]:
        """
        Parse a configured metric name.

        Returns:
            Ok[MetricType] for a known name (case-insensitive)
            Err[ConfigError] for an unset or unknown name
        """
        if name is None:
            return Err(ConfigError.unknown_metric(""))
        try:
            return Ok(cls(name.strip().lower()))
        except ValueError:
            return Err(ConfigError.unknown_metric(name))


# =============================================================================
# RECORD: ONE DOCUMENT OF THE CORPUS
# =============================================================================
@dataclass(frozen=True, slots=True)
class Record:
    """
    Document with its topic distribution.

    Attributes:
        id: External identifier (URN, accession number, ...)
        text: Display text
        vector: Topic weights, length D shared by the whole corpus
    """
    id: str
    text: str
    vector: tuple[float, ...]

    @classmethod
    def from_values(cls, id: str, text: str, values: Any) -> Record:
        """Create from any float sequence (list, tuple, numpy array)."""
        return cls(id=id, text=text, vector=tuple(float(v) for v in values))

    @property
    def dimension(self) -> int:
        return len(self.vector)

    def to_numpy(self) -> "np.ndarray":
        """Float64 copy of the weight vector."""
        import numpy as np
        return np.asarray(self.vector, dtype=np.float64)


# =============================================================================
# DISTANCE EDGE: SCORED PAIR
# =============================================================================
@dataclass(frozen=True, slots=True)
class DistanceEdge:
    """
    Scored unordered pair of records.

    source/target hold original IDs for the in-memory listing and 1-based
    row indices inside export shards.
    """
    source: str
    target: str
    score: float

    def to_dict(self) -> dict[str, Any]:
        """Serialize for the divergence JSON listing."""
        return {"source": self.source, "target": self.target, "jsd": self.score}


# =============================================================================
# NEAREST-NEIGHBOR RESULTS
# =============================================================================
@dataclass(frozen=True, slots=True)
class Neighbor:
    """Single entry of a nearest-neighbor answer."""
    record: Record
    distance: float
    rank: int = 0


@dataclass(frozen=True, slots=True)
class TopKResult:
    """
    Fixed-capacity answer of a nearest-neighbor query.

    Invariant: len(neighbors) <= capacity, sorted ascending by distance.
    """
    neighbors: tuple[Neighbor, ...] = ()
    capacity: int = 0
    metric: MetricType = MetricType.MANHATTAN
    scanned: int = 0

    def __len__(self) -> int:
        return len(self.neighbors)

    def __iter__(self) -> Iterator[Neighbor]:
        return iter(self.neighbors)

    def __getitem__(self, idx: int) -> Neighbor:
        return self.neighbors[idx]

    @property
    def ids(self) -> list[str]:
        return [n.record.id for n in self.neighbors]

    @property
    def distances(self) -> list[float]:
        return [n.distance for n in self.neighbors]


# =============================================================================
# TOP-DIMENSION RESULTS
# =============================================================================
@dataclass(frozen=True, slots=True)
class DimensionHit:
    """Record ranked by its raw weight on one topic."""
    record: Record
    value: float
    rank: int = 0


@dataclass(frozen=True, slots=True)
class TopDimensionResult:
    """Records with the largest weight on one topic, descending."""
    dimension: int
    hits: tuple[DimensionHit, ...] = ()
    scanned: int = 0

    def __len__(self) -> int:
        return len(self.hits)

    def __iter__(self) -> Iterator[DimensionHit]:
        return iter(self.hits)

    def __getitem__(self, idx: int) -> DimensionHit:
        return self.hits[idx]

    @property
    def ids(self) -> list[str]:
        return [h.record.id for h in self.hits]
