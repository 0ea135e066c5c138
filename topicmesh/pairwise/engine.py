"""
Pairwise Divergence Engine

Enumerates every unordered pair (i, j), i < j, of a Corpus exactly once,
scores it with the configured metric and keeps pairs whose score is
strictly below the threshold. Pairs whose two records share an ID are
skipped.

Two entry points:
    - compute_edges(): synchronous, whole matrix, edges keyed by original ID
    - run_partition(): one worker's rows streamed into its ShardWriter,
      edges keyed by 1-based row index

Each row is scored against all later rows in one vectorized call.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterator, Optional

import numpy as np

from topicmesh.core.errors import StorageError
from topicmesh.core.types import DistanceEdge, MetricType, Ok, Result
from topicmesh.index.distance import get_batch_distance_fn
from topicmesh.observability.logging import StructuredLogger
from topicmesh.observability.metrics import PipelineMetrics
from topicmesh.pairwise.partitioner import RowPartition
from topicmesh.storage.corpus import Corpus
from topicmesh.storage.shards import ShardWriter

_log = StructuredLogger(__name__)


@dataclass(frozen=True, slots=True)
class WorkerReport:
    """What one partition produced."""
    partition: RowPartition
    pairs_computed: int
    edges_emitted: int
    shards_written: int


class PairwiseEngine:
    """
    Thresholded upper-triangular scan over a read-only corpus.

    Stateless after construction; safe to share between threads.
    """

    __slots__ = ("_corpus", "_metric", "_threshold", "_batch_fn", "_ids", "_metrics")

    def __init__(
        self,
        corpus: Corpus,
        metric: MetricType = MetricType.JSD,
        threshold: float = math.inf,
        metrics: Optional[PipelineMetrics] = None,
    ) -> None:
        """
        Args:
            corpus: Records to compare
            metric: Pair metric
            threshold: Pairs scoring at or above this are dropped
            metrics: Instruments to record into (default: global collector)
        """
        self._corpus = corpus
        self._metric = metric
        self._threshold = float(threshold)
        self._batch_fn = get_batch_distance_fn(metric)
        self._ids = corpus.id_array
        self._metrics = metrics or PipelineMetrics.register()

    @property
    def corpus(self) -> Corpus:
        return self._corpus

    @property
    def metric(self) -> MetricType:
        return self._metric

    @property
    def threshold(self) -> float:
        return self._threshold

    def row_edges(self, i: int) -> tuple[np.ndarray, np.ndarray]:
        """
        Surviving pairs of row ``i`` against rows i+1..N-1.

        Returns:
            (cols, scores): 0-based target rows ascending, and their scores
        """
        matrix = self._corpus.matrix
        n = matrix.shape[0]
        if i + 1 >= n:
            return np.empty(0, dtype=np.intp), np.empty(0, dtype=np.float64)
        scores = self._batch_fn(matrix[i], matrix[i + 1:])
        keep = (scores < self._threshold) & (self._ids[i + 1:] != self._ids[i])
        cols = np.nonzero(keep)[0] + (i + 1)
        return cols, scores[keep]

    def iter_edges(self) -> Iterator[DistanceEdge]:
        """Yield surviving edges in row-major order, keyed by original ID."""
        ids = self._corpus.ids
        for i in range(len(ids)):
            cols, scores = self.row_edges(i)
            for j, score in zip(cols, scores):
                yield DistanceEdge(ids[i], ids[int(j)], float(score))

    def compute_edges(self) -> list[DistanceEdge]:
        """Synchronous variant: every surviving edge of the corpus."""
        return list(self.iter_edges())

    def run_partition(
        self,
        partition: RowPartition,
        writer: ShardWriter,
    ) -> Result[WorkerReport, StorageError]:
        """
        Score the rows of ``partition`` and stream them into ``writer``.

        Stops at the first sink failure; shards sealed before it stay
        written and remain visible through ``writer.shards_written``.
        """
        n = len(self._corpus)
        worker = str(partition.index)
        pairs = 0
        emitted = 0

        for i in partition:
            cols, scores = self.row_edges(i)
            row_pairs = max(0, n - i - 1)
            pairs += row_pairs
            self._metrics.pairs_computed.inc(row_pairs, worker=worker)

            shards_before = writer.shards_written
            result = writer.append_row(i, cols, scores)
            self._metrics.shards_sealed.inc(writer.shards_written - shards_before, worker=worker)
            if result.is_err():
                return result
            emitted += len(cols)
            self._metrics.edges_emitted.inc(len(cols), worker=worker)

        final = writer.finish(last_row=partition.stop)
        if final.is_err():
            return final
        self._metrics.shards_sealed.inc(worker=worker)

        _log.debug(
            "Partition scored",
            partition_rows=partition.label,
            pairs=pairs,
            edges=emitted,
        )
        return Ok(WorkerReport(
            partition=partition,
            pairs_computed=pairs,
            edges_emitted=emitted,
            shards_written=writer.shards_written,
        ))
