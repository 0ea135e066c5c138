"""
Shard Output for the Pairwise Export

A ShardWriter buffers the edges produced by one worker and seals them
into bounded shards. Each shard is named after the matrix coordinates it
spans (1-based):

    fromRow{r}Col{c}ToRow{r'}Col{c'}.csv   sealed because it was full
    fromRow{r}Col{c}ToRow{last}End.csv     final shard of a partition

The first shard of a partition starts at Row{start+1}Col1; every later
shard starts where its predecessor was sealed. The final shard is always
emitted, even when empty, so every partition leaves at least one file.

Sinks decide where sealed shards go: CSV files in a directory, or a list
in memory.
"""

from __future__ import annotations

import csv
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Sequence

import numpy as np

from topicmesh.core import constants as C
from topicmesh.core.errors import StorageError
from topicmesh.core.types import DistanceEdge, Err, Ok, Result
from topicmesh.storage.protocols import ShardSinkProtocol

logger = logging.getLogger(__name__)


# =============================================================================
# SHARD
# =============================================================================
@dataclass(frozen=True, slots=True)
class Shard:
    """Sealed, named batch of edges keyed by 1-based row indices."""
    name: str
    edges: tuple[DistanceEdge, ...] = ()

    def __len__(self) -> int:
        return len(self.edges)

    def rows(self) -> Iterator[tuple[str, str, str]]:
        """CSV body rows, score with fixed fractional digits."""
        for edge in self.edges:
            yield edge.source, edge.target, f"{edge.score:.{C.SHARD_SCORE_DIGITS}f}"


def _coords(row: int, col: int) -> str:
    return f"Row{row}Col{col}"


# =============================================================================
# SHARD WRITER
# =============================================================================
class ShardWriter:
    """
    Per-worker shard accumulator.

    Not thread-safe: each worker owns exactly one writer.

    Usage:
        writer = ShardWriter(capacity=N, sink=sink, start_row=partition.start)
        writer.append_row(i, cols, scores)
        writer.finish(last_row=partition.stop)
    """

    __slots__ = (
        "_capacity",
        "_sink",
        "_buffer",
        "_start_label",
        "_shards_written",
        "_edges_written",
        "_finished",
    )

    def __init__(self, capacity: int, sink: ShardSinkProtocol, start_row: int = 0) -> None:
        """
        Args:
            capacity: Edges per shard, must be positive
            sink: Destination of sealed shards
            start_row: 0-based first row of the owning partition
        """
        if capacity < 1:
            raise ValueError(f"Shard capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._sink = sink
        self._buffer: list[DistanceEdge] = []
        self._start_label = f"from{_coords(start_row + 1, 1)}To"
        self._shards_written = 0
        self._edges_written = 0
        self._finished = False

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def shards_written(self) -> int:
        return self._shards_written

    @property
    def edges_written(self) -> int:
        """Edges contained in shards already handed to the sink."""
        return self._edges_written

    @property
    def pending(self) -> int:
        return len(self._buffer)

    def append(self, row: int, col: int, score: float) -> Result[None, StorageError]:
        """
        Add one edge between 0-based ``row`` and ``col``.

        Seals the current shard once it holds ``capacity`` edges; the seal
        is named after this edge's coordinates.
        """
        if self._finished:
            raise RuntimeError("ShardWriter already finished")
        self._buffer.append(DistanceEdge(str(row + 1), str(col + 1), float(score)))
        if len(self._buffer) >= self._capacity:
            coords = _coords(row + 1, col + 1)
            sealed = self._seal(f"{self._start_label}{coords}.csv")
            if sealed.is_err():
                return sealed
            self._start_label = f"from{coords}To"
        return Ok(None)

    def append_row(
        self,
        row: int,
        cols: Sequence[int] | np.ndarray,
        scores: Sequence[float] | np.ndarray,
    ) -> Result[int, StorageError]:
        """Add the surviving edges of one row. Returns edges added."""
        for col, score in zip(cols, scores):
            result = self.append(row, int(col), float(score))
            if result.is_err():
                return result
        return Ok(len(cols))

    def finish(self, last_row: int) -> Result[Shard, StorageError]:
        """
        Emit the final shard, even when it is empty.

        Args:
            last_row: 1-based index of the last row the partition covered
        """
        if self._finished:
            raise RuntimeError("ShardWriter already finished")
        self._finished = True
        return self._seal(f"{self._start_label}Row{last_row}End.csv")

    def _seal(self, name: str) -> Result[Shard, StorageError]:
        shard = Shard(name=name, edges=tuple(self._buffer))
        result = self._sink.write(shard)
        if result.is_err():
            return result
        self._buffer = []
        self._shards_written += 1
        self._edges_written += len(shard)
        logger.debug("Sealed shard %s with %d edges", name, len(shard))
        return Ok(shard)


# =============================================================================
# SINKS
# =============================================================================
class CsvShardSink:
    """
    Writes each shard to ``directory/<shard name>``.

    Shard names depend on the worker count, so ``clear`` removes every
    ``from*.csv`` left in the directory before a run. Other files are
    left alone.
    """

    __slots__ = ("_directory",)

    def __init__(self, directory: Path | str) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def clear(self) -> Result[int, StorageError]:
        if not self._directory.is_dir():
            return Ok(0)
        removed = 0
        for path in sorted(self._directory.glob(C.SHARD_GLOB)):
            try:
                path.unlink()
            except OSError as e:
                logger.error("Failed to remove stale shard %s: %s", path, e)
                return Err(StorageError.write_error(str(path), str(e), cause=e))
            removed += 1
        if removed:
            logger.info("Removed %d stale shards from %s", removed, self._directory)
        return Ok(removed)

    def write(self, shard: Shard) -> Result[None, StorageError]:
        path = self._directory / shard.name
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            with path.open("w", newline="", encoding="utf-8") as fh:
                writer = csv.writer(fh, lineterminator=C.CSV_LINE_TERMINATOR)
                writer.writerow(C.SHARD_HEADER)
                writer.writerows(shard.rows())
        except OSError as e:
            logger.error("Failed to write shard %s: %s", path, e)
            return Err(StorageError.write_error(str(path), str(e), cause=e))
        return Ok(None)

    def write_id_map(self, ids: Sequence[str]) -> Result[None, StorageError]:
        """Write mapID.csv: 1-based row index, original ID."""
        path = self._directory / C.ID_MAP_FILENAME
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            with path.open("w", newline="", encoding="utf-8") as fh:
                writer = csv.writer(fh, lineterminator=C.CSV_LINE_TERMINATOR)
                writer.writerow(C.ID_MAP_HEADER)
                writer.writerows((str(i + 1), id) for i, id in enumerate(ids))
        except OSError as e:
            logger.error("Failed to write ID map %s: %s", path, e)
            return Err(StorageError.write_error(str(path), str(e), cause=e))
        return Ok(None)


class MemoryShardSink:
    """Keeps shards in memory. Safe to share between workers."""

    __slots__ = ("_shards", "_id_map", "_lock")

    def __init__(self) -> None:
        self._shards: list[Shard] = []
        self._id_map: list[tuple[str, str]] = []
        self._lock = threading.Lock()

    @property
    def shards(self) -> list[Shard]:
        with self._lock:
            return list(self._shards)

    @property
    def id_map(self) -> list[tuple[str, str]]:
        return list(self._id_map)

    def clear(self) -> Result[int, StorageError]:
        with self._lock:
            removed = len(self._shards)
            self._shards = []
        return Ok(removed)

    def edges(self) -> list[DistanceEdge]:
        """All edges across shards, in arrival order."""
        return [e for shard in self.shards for e in shard.edges]

    def write(self, shard: Shard) -> Result[None, StorageError]:
        with self._lock:
            self._shards.append(shard)
        return Ok(None)

    def write_id_map(self, ids: Sequence[str]) -> Result[None, StorageError]:
        self._id_map = [(str(i + 1), id) for i, id in enumerate(ids)]
        return Ok(None)
