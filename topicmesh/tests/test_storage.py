"""
Unit Tests: Storage

Tests:
    - In-memory store validation and reads
    - Corpus snapshot
    - ShardWriter sealing and naming
    - CSV and memory sinks
"""

import numpy as np
import pytest

from topicmesh.core.errors import ErrorCode, StorageError
from topicmesh.core.types import DistanceEdge, Err, Record
from topicmesh.storage.corpus import Corpus
from topicmesh.storage.memory import InMemoryVectorStore
from topicmesh.storage.protocols import ShardSinkProtocol, VectorStoreProtocol
from topicmesh.storage.shards import CsvShardSink, MemoryShardSink, Shard, ShardWriter


class TestInMemoryVectorStore:
    """Tests for InMemoryVectorStore."""

    def test_insert_and_get(self):
        store = InMemoryVectorStore()
        assert store.insert_values("a", "text", [0.5, 0.5]).is_ok()

        record = store.get("a").unwrap()
        assert record.vector == (0.5, 0.5)
        assert store.dimension == 2
        assert len(store) == 1

    def test_get_missing(self, scenario_store):
        result = scenario_store.get("zzz")
        assert result.is_err()
        assert result.error.code is ErrorCode.CORPUS_RECORD_NOT_FOUND

    def test_dimension_mismatch_rejected(self, scenario_store):
        result = scenario_store.insert(Record.from_values("e", "", [0.2, 0.3, 0.5]))
        assert result.is_err()
        assert result.error.code is ErrorCode.INDEX_DIMENSION_MISMATCH
        assert len(scenario_store) == 4

    def test_duplicate_rejected(self, scenario_store):
        result = scenario_store.insert(Record.from_values("a", "", [0.1, 0.9]))
        assert result.error.code is ErrorCode.CORPUS_DUPLICATE_ID

    def test_iteration_order_is_insertion_order(self, scenario_store):
        assert [r.id for r in scenario_store.iterate()] == ["a", "b", "c", "d"]
        assert [r.id for r in scenario_store.iterate()] == ["a", "b", "c", "d"]

    def test_from_records_propagates_error(self):
        records = [
            Record.from_values("a", "", [0.5, 0.5]),
            Record.from_values("a", "", [0.5, 0.5]),
        ]
        result = InMemoryVectorStore.from_records(records)
        assert result.error.code is ErrorCode.CORPUS_DUPLICATE_ID

    def test_satisfies_protocol(self, scenario_store):
        assert isinstance(scenario_store, VectorStoreProtocol)


class TestCorpus:
    """Tests for the corpus snapshot."""

    def test_from_store(self, scenario_store):
        corpus = Corpus.from_store(scenario_store)

        assert corpus.ids == ("a", "b", "c", "d")
        assert corpus.matrix.shape == (4, 2)
        assert corpus.matrix.dtype == np.float64
        assert corpus.dimension == 2

    def test_matrix_is_read_only(self, scenario_corpus):
        with pytest.raises(ValueError):
            scenario_corpus.matrix[0, 0] = 1.0

    def test_record_round_trip(self, scenario_corpus, scenario_records):
        assert list(scenario_corpus) == scenario_records

    def test_empty(self):
        corpus = Corpus.from_records([])
        assert len(corpus) == 0
        assert corpus.dimension == 0


class TestShardWriter:
    """Tests for shard sealing and naming."""

    def test_seals_at_capacity(self):
        sink = MemoryShardSink()
        writer = ShardWriter(capacity=2, sink=sink, start_row=0)

        writer.append(0, 1, 0.1)
        writer.append(0, 2, 0.2)
        writer.append(1, 2, 0.3)
        writer.finish(last_row=2)

        names = [s.name for s in sink.shards]
        assert names == [
            "fromRow1Col1ToRow1Col3.csv",
            "fromRow1Col3ToRow2End.csv",
        ]
        assert [len(s) for s in sink.shards] == [2, 1]
        assert writer.shards_written == 2
        assert writer.edges_written == 3

    def test_edges_use_one_based_indices(self):
        sink = MemoryShardSink()
        writer = ShardWriter(capacity=10, sink=sink, start_row=4)
        writer.append(4, 7, 0.25)
        writer.finish(last_row=5)

        edge = sink.edges()[0]
        assert (edge.source, edge.target) == ("5", "8")
        assert sink.shards[0].name == "fromRow5Col1ToRow5End.csv"

    def test_final_shard_always_emitted(self):
        sink = MemoryShardSink()
        writer = ShardWriter(capacity=3, sink=sink, start_row=2)
        shard = writer.finish(last_row=3).unwrap()

        assert shard.name == "fromRow3Col1ToRow3End.csv"
        assert len(shard) == 0
        assert len(sink.shards) == 1

    def test_no_shard_exceeds_capacity(self):
        sink = MemoryShardSink()
        writer = ShardWriter(capacity=3, sink=sink)
        writer.append_row(0, list(range(1, 11)), [0.1] * 10)
        writer.finish(last_row=1)

        assert all(len(s) <= 3 for s in sink.shards)
        assert sum(len(s) for s in sink.shards) == 10

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            ShardWriter(capacity=0, sink=MemoryShardSink())

    def test_finish_twice(self):
        writer = ShardWriter(capacity=1, sink=MemoryShardSink())
        writer.finish(last_row=1)
        with pytest.raises(RuntimeError):
            writer.finish(last_row=1)

    def test_sink_failure_surfaces(self):
        class FailingSink(MemoryShardSink):
            def write(self, shard):
                return Err(StorageError.write_error(shard.name, "disk full"))

        writer = ShardWriter(capacity=1, sink=FailingSink())
        result = writer.append(0, 1, 0.5)

        assert result.is_err()
        assert result.error.code is ErrorCode.STORAGE_WRITE_ERROR
        assert writer.shards_written == 0


class TestCsvShardSink:
    """Tests for CSV output."""

    def test_shard_file_format(self, tmp_path):
        sink = CsvShardSink(tmp_path / "out")
        shard = Shard(
            name="fromRow1Col1ToRow1End.csv",
            edges=(DistanceEdge("1", "2", 0.1234567),),
        )
        assert sink.write(shard).is_ok()

        content = (tmp_path / "out" / shard.name).read_text()
        assert content == "Source,Target,JSD\n1,2,0.123457\n"

    def test_id_map_format(self, tmp_path):
        sink = CsvShardSink(tmp_path)
        assert sink.write_id_map(["urn:x", "urn:y"]).is_ok()

        content = (tmp_path / "mapID.csv").read_text()
        assert content == "MetalloID,OriginalID\n1,urn:x\n2,urn:y\n"

    def test_write_error(self, tmp_path):
        blocker = tmp_path / "blocked"
        blocker.write_text("not a directory")
        sink = CsvShardSink(blocker)

        result = sink.write(Shard(name="x.csv"))
        assert result.is_err()
        assert result.error.code is ErrorCode.STORAGE_WRITE_ERROR

    def test_clear_removes_only_shards(self, tmp_path):
        sink = CsvShardSink(tmp_path)
        sink.write(Shard(name="fromRow1Col1ToRow3End.csv"))
        sink.write(Shard(name="fromRow4Col1ToRow6End.csv"))
        sink.write_id_map(["x"])
        (tmp_path / "readme.txt").write_text("unrelated")

        assert sink.clear().unwrap() == 2
        assert sorted(p.name for p in tmp_path.iterdir()) == ["mapID.csv", "readme.txt"]

    def test_clear_missing_directory(self, tmp_path):
        assert CsvShardSink(tmp_path / "absent").clear().unwrap() == 0

    def test_memory_sink_clear(self):
        sink = MemoryShardSink()
        sink.write(Shard(name="a.csv", edges=(DistanceEdge("1", "2", 0.1),)))

        assert sink.clear().unwrap() == 1
        assert sink.shards == []
        assert sink.edges() == []

    def test_satisfies_protocol(self, tmp_path):
        assert isinstance(CsvShardSink(tmp_path), ShardSinkProtocol)
        assert isinstance(MemoryShardSink(), ShardSinkProtocol)
