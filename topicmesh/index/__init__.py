"""
Index Module: Distance Kernels and Bounded Selectors

Brute-force only; every query scans the full corpus.
"""

from topicmesh.index.distance import (
    VectorLike,
    manhattan,
    weighted_manhattan,
    js_divergence,
    manhattan_batch,
    weighted_manhattan_batch,
    js_divergence_batch,
    get_distance_fn,
    get_batch_distance_fn,
)
from topicmesh.index.topk import select_nearest, select_top_dimension

__all__ = [
    "VectorLike",
    "manhattan",
    "weighted_manhattan",
    "js_divergence",
    "manhattan_batch",
    "weighted_manhattan_batch",
    "js_divergence_batch",
    "get_distance_fn",
    "get_batch_distance_fn",
    "select_nearest",
    "select_top_dimension",
]
