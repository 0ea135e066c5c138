"""
Export Orchestrator: Parallel Sharded Pairwise Export

Workflow:
    1. Snapshot the store into an immutable Corpus
    2. Remove stale shards, then write the ID map (row index -> original
       ID); abort on failure
    3. Partition rows and run one task per partition on a thread pool
    4. Join every task and report per-partition outcomes

A failing partition never cancels the others. The summary lists what
each partition wrote, so partial output is always accounted for.
"""

from __future__ import annotations

import asyncio
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Optional

from topicmesh.core.config import TopicMeshConfig
from topicmesh.core.errors import ConfigError, InternalError, StorageError, TopicMeshError
from topicmesh.core.types import Err, Ok, Result
from topicmesh.observability.logging import StructuredLogger
from topicmesh.observability.metrics import PipelineMetrics
from topicmesh.pairwise.engine import PairwiseEngine
from topicmesh.pairwise.partitioner import (
    RowPartition,
    default_worker_count,
    partition_rows,
)
from topicmesh.storage.corpus import Corpus
from topicmesh.storage.protocols import ShardSinkProtocol
from topicmesh.storage.shards import CsvShardSink, ShardWriter

_log = StructuredLogger(__name__)


# =============================================================================
# RESULTS
# =============================================================================
@dataclass(frozen=True, slots=True)
class WorkerOutcome:
    """Result of one partition task."""
    partition: RowPartition
    shards_written: int = 0
    edges_emitted: int = 0
    pairs_computed: int = 0
    error: Optional[TopicMeshError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "partition": self.partition.index,
            "rows": [self.partition.start + 1, self.partition.stop],
            "shards_written": self.shards_written,
            "edges_emitted": self.edges_emitted,
            "pairs_computed": self.pairs_computed,
            "error": self.error.to_dict() if self.error else None,
        }


@dataclass(frozen=True)
class ExportSummary:
    """Aggregate of every partition outcome."""
    records: int
    workers: int
    outcomes: tuple[WorkerOutcome, ...] = ()
    elapsed_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return all(o.ok for o in self.outcomes)

    @property
    def partial(self) -> bool:
        """Some, but not all, partitions failed."""
        failed = sum(1 for o in self.outcomes if not o.ok)
        return 0 < failed < len(self.outcomes)

    @property
    def failures(self) -> list[WorkerOutcome]:
        return [o for o in self.outcomes if not o.ok]

    @property
    def shards_written(self) -> int:
        return sum(o.shards_written for o in self.outcomes)

    @property
    def edges_emitted(self) -> int:
        return sum(o.edges_emitted for o in self.outcomes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "records": self.records,
            "workers": self.workers,
            "succeeded": self.succeeded,
            "shards_written": self.shards_written,
            "edges_emitted": self.edges_emitted,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
            "partitions": [o.to_dict() for o in self.outcomes],
        }


# =============================================================================
# ORCHESTRATOR
# =============================================================================
class ExportOrchestrator:
    """
    Runs the sharded pairwise export over a fixed worker pool.

    Usage:
        orchestrator = ExportOrchestrator(config)
        result = orchestrator.run(Corpus.from_store(store))
        if result.is_ok():
            summary = result.unwrap()
    """

    __slots__ = ("_config", "_sink", "_workers", "_metrics")

    def __init__(
        self,
        config: Optional[TopicMeshConfig] = None,
        sink: Optional[ShardSinkProtocol] = None,
        workers: Optional[int] = None,
        metrics: Optional[PipelineMetrics] = None,
    ) -> None:
        """
        Args:
            config: Metric, threshold, file limit and output directory
            sink: Shard destination (default: CSV files in output_dir)
            workers: Worker count; overrides config.workers and the
                core-derived default
            metrics: Instruments to record into (default: global collector)

        Raises:
            ConfigError: if the config is invalid or the worker count is
                below 1
        """
        self._config = config or TopicMeshConfig()
        validated = self._config.validate()
        if validated.is_err():
            raise validated.error
        if workers is None:
            workers = self._config.workers
        if workers is None:
            workers = default_worker_count()
        if workers < 1:
            raise ConfigError.invalid("workers", workers, "must be >= 1")

        self._sink = sink or CsvShardSink(self._config.output_dir)
        self._workers = workers
        self._metrics = metrics or PipelineMetrics.register()

    @property
    def workers(self) -> int:
        return self._workers

    @property
    def sink(self) -> ShardSinkProtocol:
        return self._sink

    def run(self, corpus: Corpus) -> Result[ExportSummary, StorageError]:
        """
        Export every pair of ``corpus`` below the threshold.

        Returns:
            Ok[ExportSummary] once every partition has finished, whether
                or not all of them succeeded
            Err[StorageError] if stale shards could not be removed or the
                ID map could not be written, in which case no worker was
                started
        """
        start = time.perf_counter()
        cleared = self._sink.clear()
        if cleared.is_err():
            _log.error("Stale shard removal failed, export aborted", error=str(cleared.error))
            return Err(cleared.error)

        id_map = self._sink.write_id_map(corpus.ids)
        if id_map.is_err():
            _log.error("ID map write failed, export aborted", error=str(id_map.error))
            return id_map

        engine = PairwiseEngine(
            corpus,
            metric=self._config.pairwise_metric,
            threshold=self._config.threshold,
            metrics=self._metrics,
        )
        capacity = self._config.shard_capacity(len(corpus))
        partitions = partition_rows(len(corpus), self._workers)

        _log.info(
            "Export started",
            records=len(corpus),
            workers=self._workers,
            partitions=len(partitions),
            shard_capacity=capacity,
            metric=engine.metric.value,
        )

        outcomes: list[WorkerOutcome] = []
        with ThreadPoolExecutor(
            max_workers=self._workers, thread_name_prefix="topicmesh-export",
        ) as executor:
            futures: list[tuple[RowPartition, Future[WorkerOutcome]]] = [
                (p, executor.submit(self._run_partition, engine, p, capacity))
                for p in partitions
            ]
            for partition, future in futures:
                outcomes.append(self._join(partition, future))

        summary = ExportSummary(
            records=len(corpus),
            workers=self._workers,
            outcomes=tuple(outcomes),
            elapsed_seconds=time.perf_counter() - start,
        )
        log = _log.info if summary.succeeded else _log.warning
        log(
            "Export finished",
            shards=summary.shards_written,
            edges=summary.edges_emitted,
            failed_partitions=len(summary.failures),
            elapsed_seconds=round(summary.elapsed_seconds, 3),
        )
        return Ok(summary)

    async def run_async(self, corpus: Corpus) -> Result[ExportSummary, StorageError]:
        """Run the export without blocking the event loop."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.run, corpus)

    def _run_partition(
        self,
        engine: PairwiseEngine,
        partition: RowPartition,
        capacity: int,
    ) -> WorkerOutcome:
        writer = ShardWriter(capacity, self._sink, start_row=partition.start)
        self._metrics.active_workers.inc()
        try:
            with StructuredLogger.context(worker=partition.index, partition_rows=partition.label):
                result = engine.run_partition(partition, writer)
                if result.is_err():
                    _log.error("Partition failed", error=str(result.error))
                    return WorkerOutcome(
                        partition=partition,
                        shards_written=writer.shards_written,
                        edges_emitted=writer.edges_written,
                        error=result.error,
                    )
                report = result.unwrap()
                _log.info("Partition finished", shards=report.shards_written, edges=report.edges_emitted)
                return WorkerOutcome(
                    partition=partition,
                    shards_written=report.shards_written,
                    edges_emitted=report.edges_emitted,
                    pairs_computed=report.pairs_computed,
                )
        finally:
            self._metrics.active_workers.dec()

    def _join(self, partition: RowPartition, future: Future[WorkerOutcome]) -> WorkerOutcome:
        try:
            outcome = future.result()
        except Exception as e:
            _log.error(
                "Partition raised",
                worker=partition.index,
                error=f"{type(e).__name__}: {e}",
            )
            outcome = WorkerOutcome(
                partition=partition,
                error=InternalError.from_exception(e, f"partition {partition.index}"),
            )
        if not outcome.ok:
            self._metrics.worker_failures.inc(code=outcome.error.code.name)
        return outcome


def export_corpus(
    corpus: Corpus,
    config: Optional[TopicMeshConfig] = None,
    sink: Optional[ShardSinkProtocol] = None,
    workers: Optional[int] = None,
) -> Result[ExportSummary, StorageError]:
    """Convenience wrapper: one-shot export with a fresh orchestrator."""
    return ExportOrchestrator(config, sink=sink, workers=workers).run(corpus)
