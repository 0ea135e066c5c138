"""
Pairwise Module: Thresholded All-Pairs Divergence and Sharded Export
"""

from topicmesh.pairwise.partitioner import (
    RowPartition,
    default_worker_count,
    partition_rows,
)
from topicmesh.pairwise.engine import PairwiseEngine, WorkerReport
from topicmesh.pairwise.orchestrator import (
    ExportOrchestrator,
    ExportSummary,
    WorkerOutcome,
    export_corpus,
)

__all__ = [
    "RowPartition",
    "default_worker_count",
    "partition_rows",
    "PairwiseEngine",
    "WorkerReport",
    "ExportOrchestrator",
    "ExportSummary",
    "WorkerOutcome",
    "export_corpus",
]
