"""
Bounded Brute-Force Selectors

Two single-pass scans over a corpus of Records:

    - select_nearest: the count+1 records closest to a query vector
      (the query itself normally occupies rank 0)
    - select_top_dimension: the count records with the largest weight on
      one topic

Both keep a fixed-size buffer and rescan it linearly for the slot to
evict. Ties are broken by slot order: the lowest slot holding the extreme
value is the one replaced, and the final ordering is a stable sort over
slots. Results are therefore fully determined by corpus order.

Complexity: O(N * (d + capacity)) time, O(capacity) extra space.
"""

from __future__ import annotations

from collections.abc import Sized
from typing import Iterable, Optional, Union

import numpy as np

from topicmesh.core.errors import CorpusError, QueryError
from topicmesh.core.types import (
    DimensionHit,
    Err,
    MetricType,
    Neighbor,
    Ok,
    Record,
    Result,
    TopDimensionResult,
    TopKResult,
)
from topicmesh.index.distance import VectorLike, as_vector, get_distance_fn

SelectError = Union[CorpusError, QueryError]


def _size_hint(corpus: Iterable[Record]) -> Optional[int]:
    return len(corpus) if isinstance(corpus, Sized) else None


# =============================================================================
# NEAREST NEIGHBORS
# =============================================================================
def select_nearest(
    query: VectorLike,
    corpus: Iterable[Record],
    count: int,
    metric: MetricType = MetricType.MANHATTAN,
    *,
    weights: Optional[VectorLike] = None,
    allow_partial: bool = False,
) -> Result[TopKResult, SelectError]:
    """
    Find the count+1 records nearest to ``query``.

    The buffer is seeded with the first count+1 records. Every later
    record replaces the current maximum when strictly closer.

    Args:
        query: Query topic vector
        corpus: Records to scan, in a stable order
        count: Number of neighbors wanted besides the query itself
        metric: Distance metric
        weights: Optional per-dimension weights (Manhattan only)
        allow_partial: Return min(count+1, N) entries instead of failing
            on a corpus smaller than count+1

    Returns:
        Ok[TopKResult] sorted ascending by distance
        Err[QueryError] if count < 0
        Err[CorpusError] if the corpus is too small and allow_partial is off
    """
    if count < 0:
        return Err(QueryError.invalid_k(count))

    capacity = count + 1
    size = _size_hint(corpus)
    if size is not None and size < capacity and not allow_partial:
        return Err(CorpusError.insufficient_size(capacity, size))

    distance_fn = get_distance_fn(metric, weights=weights)
    q = as_vector(query)

    slots: list[Record] = []
    dists = np.empty(capacity, dtype=np.float64)
    scanned = 0

    for record in corpus:
        scanned += 1
        d = distance_fn(q, record.vector)
        if len(slots) < capacity:
            dists[len(slots)] = d
            slots.append(record)
            continue
        worst = int(np.argmax(dists))
        if d < dists[worst]:
            slots[worst] = record
            dists[worst] = d

    if len(slots) < capacity and not allow_partial:
        return Err(CorpusError.insufficient_size(capacity, scanned))

    filled = dists[: len(slots)]
    order = np.argsort(filled, kind="stable")
    neighbors = tuple(
        Neighbor(record=slots[i], distance=float(filled[i]), rank=rank)
        for rank, i in enumerate(order)
    )
    return Ok(TopKResult(
        neighbors=neighbors,
        capacity=capacity,
        metric=metric,
        scanned=scanned,
    ))


# =============================================================================
# TOP RECORDS ON ONE TOPIC
# =============================================================================
def select_top_dimension(
    corpus: Iterable[Record],
    dimension: int,
    count: int,
    *,
    total_dimensions: Optional[int] = None,
    allow_partial: bool = False,
) -> Result[TopDimensionResult, SelectError]:
    """
    Find the ``count`` records with the largest weight on ``dimension``.

    Args:
        corpus: Records to scan
        dimension: 0-based topic index
        count: Number of records wanted
        total_dimensions: Vector length, when known before scanning
        allow_partial: Return min(count, N) entries on a small corpus

    Returns:
        Ok[TopDimensionResult] sorted descending by weight
        Err[QueryError] for a negative count or out-of-range dimension
        Err[CorpusError] if the corpus is too small and allow_partial is off
    """
    if count < 0:
        return Err(QueryError.invalid_k(count))
    if dimension < 0 or (total_dimensions is not None and dimension >= total_dimensions):
        return Err(QueryError.invalid_dimension(dimension, total_dimensions or 0))

    size = _size_hint(corpus)
    if size is not None and size < count and not allow_partial:
        return Err(CorpusError.insufficient_size(count, size))

    slots: list[Record] = []
    values = np.empty(count, dtype=np.float64)
    scanned = 0

    for record in corpus:
        scanned += 1
        if dimension >= record.dimension:
            return Err(QueryError.invalid_dimension(dimension, record.dimension))
        if count == 0:
            continue
        v = float(record.vector[dimension])
        if len(slots) < count:
            values[len(slots)] = v
            slots.append(record)
            continue
        weakest = int(np.argmin(values))
        if v > values[weakest]:
            slots[weakest] = record
            values[weakest] = v

    if len(slots) < count and not allow_partial:
        return Err(CorpusError.insufficient_size(count, scanned))

    filled = values[: len(slots)]
    # Stable descending: sort the negated values
    order = np.argsort(-filled, kind="stable")
    hits = tuple(
        DimensionHit(record=slots[i], value=float(filled[i]), rank=rank)
        for rank, i in enumerate(order)
    )
    return Ok(TopDimensionResult(dimension=dimension, hits=hits, scanned=scanned))
