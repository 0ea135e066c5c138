"""
Unit Tests: Bounded Selectors

Tests:
    - Nearest-neighbor selection, ordering and tie-breaks
    - Corpus-size contract (strict and partial)
    - Top records on one topic
"""

import numpy as np
import pytest

from topicmesh.core.errors import ErrorCode
from topicmesh.core.types import MetricType, Record
from topicmesh.index.distance import manhattan
from topicmesh.index.topk import select_nearest, select_top_dimension


class TestSelectNearest:
    """Tests for select_nearest."""

    def test_scenario_query(self, scenario_records):
        result = select_nearest([0.5, 0.5], scenario_records, count=2)

        assert result.is_ok()
        top = result.unwrap()
        assert top.ids == ["a", "b", "d"]
        np.testing.assert_allclose(top.distances, [0.0, 0.4, 0.5])
        assert [n.rank for n in top] == [0, 1, 2]
        assert top.capacity == 3
        assert top.scanned == 4

    def test_matches_full_sort(self):
        rng = np.random.default_rng(11)
        records = [
            Record.from_values(f"r{i}", "", rng.dirichlet(np.ones(5)))
            for i in range(60)
        ]
        query = rng.dirichlet(np.ones(5))

        top = select_nearest(query, records, count=9).unwrap()

        expected = sorted(manhattan(query, r.vector) for r in records)[:10]
        np.testing.assert_allclose(top.distances, expected)

    def test_ascending(self, scenario_records):
        top = select_nearest([0.9, 0.1], scenario_records, count=3).unwrap()
        assert top.distances == sorted(top.distances)

    def test_tie_keeps_first_seen(self):
        records = [
            Record.from_values("x", "", [1.0, 0.0]),
            Record.from_values("y", "", [1.0, 0.0]),
            Record.from_values("z", "", [0.0, 1.0]),
        ]
        top = select_nearest([1.0, 0.0], records, count=0).unwrap()
        assert top.ids == ["x"]

    def test_tie_order_is_slot_order(self):
        records = [
            Record.from_values("far", "", [0.0, 1.0]),
            Record.from_values("x", "", [1.0, 0.0]),
            Record.from_values("y", "", [1.0, 0.0]),
        ]
        top = select_nearest([1.0, 0.0], records, count=1).unwrap()
        # y evicts "far" from slot 0, so it sorts ahead of x
        assert top.ids == ["y", "x"]

    def test_count_zero_returns_query_itself(self, scenario_records):
        top = select_nearest([0.3, 0.7], scenario_records, count=0).unwrap()
        assert top.ids == ["b"]

    def test_negative_count(self, scenario_records):
        result = select_nearest([0.5, 0.5], scenario_records, count=-1)
        assert result.is_err()
        assert result.error.code is ErrorCode.QUERY_INVALID_K

    def test_corpus_too_small(self, scenario_records):
        result = select_nearest([0.5, 0.5], scenario_records, count=4)
        assert result.is_err()
        assert result.error.code is ErrorCode.CORPUS_INSUFFICIENT_SIZE
        assert result.error.context == {"requested": 5, "available": 4}

    def test_corpus_too_small_unsized(self, scenario_records):
        result = select_nearest([0.5, 0.5], iter(scenario_records), count=4)
        assert result.is_err()
        assert result.error.code is ErrorCode.CORPUS_INSUFFICIENT_SIZE

    def test_allow_partial(self, scenario_records):
        top = select_nearest(
            [0.5, 0.5], scenario_records, count=10, allow_partial=True,
        ).unwrap()
        assert len(top) == 4
        assert top.ids == ["a", "b", "d", "c"]

    def test_jsd_metric(self, scenario_records):
        top = select_nearest(
            [0.5, 0.5], scenario_records, count=1, metric=MetricType.JSD,
        ).unwrap()
        assert top.metric is MetricType.JSD
        assert top.ids == ["a", "b"]


class TestSelectTopDimension:
    """Tests for select_top_dimension."""

    def test_scenario(self, scenario_records):
        result = select_top_dimension(scenario_records, dimension=0, count=2)

        hits = result.unwrap()
        assert hits.ids == ["c", "a"]
        np.testing.assert_allclose([h.value for h in hits], [0.9, 0.5])

    def test_second_topic(self, scenario_records):
        hits = select_top_dimension(scenario_records, dimension=1, count=3).unwrap()
        assert hits.ids == ["d", "b", "a"]

    def test_descending_with_ties_in_slot_order(self):
        records = [
            Record.from_values("p", "", [0.4, 0.6]),
            Record.from_values("q", "", [0.4, 0.6]),
            Record.from_values("r", "", [0.1, 0.9]),
        ]
        hits = select_top_dimension(records, dimension=0, count=2).unwrap()
        assert hits.ids == ["p", "q"]

    def test_invalid_dimension(self, scenario_records):
        result = select_top_dimension(scenario_records, dimension=2, count=1)
        assert result.is_err()
        assert result.error.code is ErrorCode.QUERY_INVALID_DIMENSION

    def test_invalid_dimension_known_up_front(self, scenario_records):
        result = select_top_dimension(
            scenario_records, dimension=5, count=1, total_dimensions=2,
        )
        assert result.error.code is ErrorCode.QUERY_INVALID_DIMENSION

    def test_corpus_too_small(self, scenario_records):
        result = select_top_dimension(scenario_records, dimension=0, count=5)
        assert result.error.code is ErrorCode.CORPUS_INSUFFICIENT_SIZE

    def test_allow_partial(self, scenario_records):
        hits = select_top_dimension(
            scenario_records, dimension=0, count=5, allow_partial=True,
        ).unwrap()
        assert hits.ids == ["c", "a", "b", "d"]

    @pytest.mark.parametrize("count", [-1, -5])
    def test_negative_count(self, scenario_records, count):
        result = select_top_dimension(scenario_records, dimension=0, count=count)
        assert result.error.code is ErrorCode.QUERY_INVALID_K
