"""
Integration Tests: HTTP Handlers

Tests:
    - /view/{urn}/{count}/json payload and errors
    - /topic/{topic}/{count} text ranking
    - /divergenceJS listing
    - /divergenceCSV export summary and status codes
    - Routing fallbacks and middleware
"""

import asyncio

import pytest

from topicmesh.api.handlers import build_router
from topicmesh.api.router import Request
from topicmesh.core.config import TopicMeshConfig
from topicmesh.core.errors import ConfigError, StorageError
from topicmesh.core.types import Err, MetricType, Record
from topicmesh.pairwise.orchestrator import ExportOrchestrator
from topicmesh.storage.memory import InMemoryVectorStore
from topicmesh.storage.shards import MemoryShardSink


def _get(router, url):
    return asyncio.run(router.dispatch(Request.from_raw("GET", url)))


@pytest.fixture
def router(scenario_store, metrics):
    config = TopicMeshConfig()
    orchestrator = ExportOrchestrator(config, sink=MemoryShardSink(), workers=2, metrics=metrics)
    return build_router(scenario_store, config, orchestrator=orchestrator, metrics=metrics)


class TestViewJson:
    """Tests for the nearest-neighbor endpoint."""

    def test_scenario_payload(self, router):
        response = _get(router, "/view/a/2/json")

        assert response.status == 200
        assert response.headers["content-type"] == "application/json"
        assert response.headers["Access-Control-Allow-Origin"] == "*"
        assert response.json_body() == {
            "urn": "a",
            "text": "text a",
            "items": [
                {"id": "a", "rank": 0, "distance": "0", "text": "text a"},
                {"id": "b", "rank": 1, "distance": "0.40", "text": "text b"},
                {"id": "d", "rank": 2, "distance": "0.50", "text": "text d"},
            ],
        }

    def test_unknown_urn(self, router):
        response = _get(router, "/view/zzz/2/json")

        assert response.status == 404
        assert response.json_body()["code"] == "CORPUS_RECORD_NOT_FOUND"

    def test_count_too_large(self, router):
        response = _get(router, "/view/a/9/json")

        assert response.status == 400
        assert response.json_body()["code"] == "CORPUS_INSUFFICIENT_SIZE"

    def test_count_not_a_number(self, router):
        response = _get(router, "/view/a/many/json")

        assert response.status == 400
        body = response.json_body()
        assert body["code"] == "QUERY_INVALID_K"
        assert "'many'" in body["error"]

    def test_query_keeps_rank_zero_behind_duplicate(self, metrics):
        store = InMemoryVectorStore.from_records([
            Record.from_values("dup", "copy", [0.5, 0.5]),
            Record.from_values("q", "query", [0.5, 0.5]),
            Record.from_values("x", "far", [0.9, 0.1]),
        ]).unwrap()
        router = build_router(store, TopicMeshConfig(), metrics=metrics)

        items = _get(router, "/view/q/1/json").json_body()["items"]

        assert [(i["id"], i["rank"], i["distance"]) for i in items] == [
            ("q", 0, "0"),
            ("dup", 1, "0.00"),
        ]

    def test_query_present_when_duplicates_fill_the_buffer(self, metrics):
        store = InMemoryVectorStore.from_records([
            Record.from_values(f"dup{i}", "", [0.5, 0.5]) for i in range(3)
        ] + [Record.from_values("q", "", [0.5, 0.5])]).unwrap()
        router = build_router(store, TopicMeshConfig(), metrics=metrics)

        items = _get(router, "/view/q/2/json").json_body()["items"]

        assert [i["id"] for i in items] == ["q", "dup0", "dup1"]
        assert [i["rank"] for i in items] == [0, 1, 2]

    def test_encoded_urn(self, scenario_store, metrics):
        scenario_store.insert_values("urn:x/1", "slashed", [0.5, 0.5])
        router = build_router(scenario_store, TopicMeshConfig(), metrics=metrics)

        response = _get(router, "/view/urn:x%2F1/0/json")
        assert response.json_body()["urn"] == "urn:x/1"

    def test_latency_recorded(self, router, metrics):
        _get(router, "/view/a/1/json")
        assert metrics.query_latency.count(endpoint="view") == 1


class TestTopic:
    """Tests for the topic ranking endpoint."""

    def test_scenario_text(self, router):
        response = _get(router, "/topic/1/2")

        assert response.status == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert response.body.decode() == (
            "Rank 1:\nc\nTopic1: 90.000 percent\ntext c\n"
            "\n"
            "Rank 2:\na\nTopic1: 50.000 percent\ntext a"
        )

    def test_dim_weight(self, scenario_store, metrics):
        router = build_router(scenario_store, TopicMeshConfig(dim_weight=1.0), metrics=metrics)
        body = _get(router, "/topic/2/1").body.decode()
        assert body == "Rank 1:\nd\nTopic2: 0.750 percent\ntext d"

    @pytest.mark.parametrize("topic", ["0", "3", "x"])
    def test_invalid_topic(self, router, topic):
        response = _get(router, f"/topic/{topic}/1")

        assert response.status == 400
        assert response.json_body()["code"] == "QUERY_INVALID_DIMENSION"

    def test_count_not_a_number(self, router):
        response = _get(router, "/topic/1/1.5")

        assert response.status == 400
        body = response.json_body()
        assert body["code"] == "QUERY_INVALID_K"
        assert "'1.5'" in body["error"]


class TestDivergence:
    """Tests for the pairwise endpoints."""

    def test_listing(self, scenario_store, metrics):
        config = TopicMeshConfig(pairwise_metric=MetricType.MANHATTAN, threshold=0.41)
        router = build_router(scenario_store, config, metrics=metrics)

        body = _get(router, "/divergenceJS").json_body()

        assert [(e["source"], e["target"]) for e in body] == [("a", "b"), ("b", "d")]
        assert body[0]["jsd"] == pytest.approx(0.4)

    def test_listing_empty_is_not_an_error(self, scenario_store, metrics):
        config = TopicMeshConfig(threshold=1e-9)
        router = build_router(scenario_store, config, metrics=metrics)

        response = _get(router, "/divergenceJS")
        assert response.status == 200
        assert response.json_body() == []

    def test_export_success(self, router):
        response = _get(router, "/divergenceCSV")

        assert response.status == 200
        body = response.json_body()
        assert body["succeeded"] is True
        assert body["edges_emitted"] == 6

    def test_invalid_worker_count_rejected_at_build(self, scenario_store, metrics):
        with pytest.raises(ConfigError) as exc:
            build_router(scenario_store, TopicMeshConfig(workers=-1), metrics=metrics)
        assert exc.value.context["param"] == "workers"

    def test_export_partial(self, scenario_store, metrics):
        class SecondPartitionFails(MemoryShardSink):
            def write(self, shard):
                if shard.name.startswith("fromRow3"):
                    return Err(StorageError.write_error(shard.name, "disk full"))
                return super().write(shard)

        orchestrator = ExportOrchestrator(sink=SecondPartitionFails(), workers=2, metrics=metrics)
        router = build_router(scenario_store, orchestrator=orchestrator, metrics=metrics)

        response = _get(router, "/divergenceCSV")
        assert response.status == 207
        failed = [p for p in response.json_body()["partitions"] if p["error"]]
        assert len(failed) == 1
        assert failed[0]["error"]["code"] == "STORAGE_WRITE_ERROR"

    def test_export_id_map_failure(self, scenario_store, metrics):
        class NoIdMapSink(MemoryShardSink):
            def write_id_map(self, ids):
                return Err(StorageError.write_error("mapID.csv", "read-only"))

        orchestrator = ExportOrchestrator(sink=NoIdMapSink(), workers=2, metrics=metrics)
        router = build_router(scenario_store, orchestrator=orchestrator, metrics=metrics)

        response = _get(router, "/divergenceCSV")
        assert response.status == 500
        assert response.json_body()["code"] == "STORAGE_WRITE_ERROR"


class TestRouting:
    """Tests for routing fallbacks."""

    def test_unknown_path(self, router):
        assert _get(router, "/nothing/here").status == 404

    def test_wrong_method(self, router):
        response = asyncio.run(router.dispatch(Request.from_raw("POST", "/divergenceJS")))
        assert response.status == 405
