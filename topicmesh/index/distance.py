"""
Distance Kernels for Topic Distributions

Provides dissimilarity scores between topic weight vectors:
    - Manhattan (L1) distance, optionally weighted per dimension
    - Symmetrized divergence ("jsd") with the 0*ln(0) = 0 convention

Every kernel comes in two shapes:
    - Single pair: f(x, y) -> float
    - Batch: f_batch(query, matrix) -> scores for each matrix row

All arithmetic is float64. Inputs are assumed to have equal length;
divergence inputs are assumed non-negative (caller responsibility).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Optional, Sequence, Union

import numpy as np

from topicmesh.core.types import MetricType

if TYPE_CHECKING:
    import numpy.typing as npt

# Type alias for vector input
VectorLike = Union[np.ndarray, Sequence[float], "npt.NDArray[np.float64]"]

DistanceFn = Callable[[VectorLike, VectorLike], float]
BatchDistanceFn = Callable[[VectorLike, VectorLike], np.ndarray]


def as_vector(v: VectorLike) -> np.ndarray:
    """Float64 view/copy of a single vector."""
    return np.asarray(v, dtype=np.float64)


def as_matrix(m: VectorLike) -> np.ndarray:
    """Float64 2D array; a single vector becomes one row."""
    arr = np.asarray(m, dtype=np.float64)
    if arr.ndim == 1:
        arr = arr.reshape(1, -1)
    return arr


# =============================================================================
# MANHATTAN DISTANCE
# =============================================================================
def manhattan(a: VectorLike, b: VectorLike) -> float:
    """
    Compute Manhattan (L1) distance.

    Formula: Σ|aᵢ - bᵢ|

    Returns:
        Distance >= 0, zero iff vectors are componentwise equal

    Complexity: O(d)
    """
    a = as_vector(a)
    b = as_vector(b)
    return float(np.sum(np.abs(a - b)))


def weighted_manhattan(a: VectorLike, b: VectorLike, weights: VectorLike) -> float:
    """
    Manhattan distance with a per-dimension weight.

    Formula: Σ|aᵢ - bᵢ| * wᵢ
    """
    a = as_vector(a)
    b = as_vector(b)
    w = as_vector(weights)
    return float(np.sum(np.abs(a - b) * w))


def manhattan_batch(query: VectorLike, vectors: VectorLike) -> np.ndarray:
    """
    Manhattan distance between query and each row of a matrix.

    Args:
        query: Query vector (1D, shape [d])
        vectors: Candidate vectors (2D, shape [n, d])

    Returns:
        Distances (1D, shape [n])
    """
    query = as_vector(query)
    vectors = as_matrix(vectors)
    return np.sum(np.abs(vectors - query), axis=1)


def weighted_manhattan_batch(
    query: VectorLike,
    vectors: VectorLike,
    weights: VectorLike,
) -> np.ndarray:
    """Weighted Manhattan distance between query and each matrix row."""
    query = as_vector(query)
    vectors = as_matrix(vectors)
    w = as_vector(weights)
    return np.sum(np.abs(vectors - query) * w, axis=1)


# =============================================================================
# SYMMETRIZED DIVERGENCE
# =============================================================================
def _half_kl_terms(p: np.ndarray, log_m: np.ndarray) -> np.ndarray:
    """0.5 * p * (ln p - ln m), with zero where p == 0."""
    with np.errstate(divide="ignore", invalid="ignore"):
        terms = 0.5 * p * (np.log(p) - log_m)
    return np.where(p != 0, terms, 0.0)


def js_divergence(a: VectorLike, b: VectorLike) -> float:
    """
    Compute the symmetrized divergence between two distributions.

    Formula:
        mᵢ = (aᵢ + bᵢ) / 2
        D = Σ ½aᵢ(ln aᵢ - ln mᵢ) + ½bᵢ(ln bᵢ - ln mᵢ)

    Terms whose operand is exactly zero contribute nothing.

    Returns:
        Divergence >= 0, exactly 0 for identical vectors

    Complexity: O(d)
    """
    a = as_vector(a)
    b = as_vector(b)
    with np.errstate(divide="ignore"):
        log_m = np.log(0.5 * (a + b))
    total = float(np.sum(_half_kl_terms(a, log_m)) + np.sum(_half_kl_terms(b, log_m)))
    return max(total, 0.0)


def js_divergence_batch(query: VectorLike, vectors: VectorLike) -> np.ndarray:
    """
    Divergence between query and each row of a matrix.

    Args:
        query: Query distribution (1D, shape [d])
        vectors: Candidate distributions (2D, shape [n, d])

    Returns:
        Divergences (1D, shape [n])
    """
    query = as_vector(query)
    vectors = as_matrix(vectors)
    with np.errstate(divide="ignore"):
        log_m = np.log(0.5 * (vectors + query))
    query_terms = _half_kl_terms(np.broadcast_to(query, vectors.shape), log_m)
    row_terms = _half_kl_terms(vectors, log_m)
    total = np.sum(query_terms, axis=1) + np.sum(row_terms, axis=1)
    return np.maximum(total, 0.0)


# =============================================================================
# DISTANCE FUNCTION FACTORY
# =============================================================================
def get_distance_fn(
    metric: MetricType,
    weights: Optional[VectorLike] = None,
) -> DistanceFn:
    """
    Get single-pair distance function for metric type.

    Args:
        metric: MetricType.MANHATTAN or MetricType.JSD
        weights: Per-dimension weights; selects weighted Manhattan

    Returns:
        Distance function (lower = more similar)
    """
    if metric == MetricType.MANHATTAN:
        if weights is not None:
            w = as_vector(weights)
            return lambda a, b: weighted_manhattan(a, b, w)
        return manhattan
    elif metric == MetricType.JSD:
        return js_divergence
    else:
        raise ValueError(f"Unknown metric: {metric}")


def get_batch_distance_fn(
    metric: MetricType,
    weights: Optional[VectorLike] = None,
) -> BatchDistanceFn:
    """Get batch distance function for metric type."""
    if metric == MetricType.MANHATTAN:
        if weights is not None:
            w = as_vector(weights)
            return lambda q, m: weighted_manhattan_batch(q, m, w)
        return manhattan_batch
    elif metric == MetricType.JSD:
        return js_divergence_batch
    else:
        raise ValueError(f"Unknown metric: {metric}")
