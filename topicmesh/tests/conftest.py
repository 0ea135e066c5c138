"""
Shared fixtures.

The four-record corpus has hand-checkable Manhattan distances:
    ab=0.4  ac=0.8  ad=0.5  bc=1.2  bd=0.1  cd=1.3
"""

import pytest

from topicmesh.core.types import Record
from topicmesh.observability.metrics import MetricsCollector, PipelineMetrics
from topicmesh.storage.corpus import Corpus
from topicmesh.storage.memory import InMemoryVectorStore


@pytest.fixture
def scenario_records():
    return [
        Record.from_values("a", "text a", [0.5, 0.5]),
        Record.from_values("b", "text b", [0.3, 0.7]),
        Record.from_values("c", "text c", [0.9, 0.1]),
        Record.from_values("d", "text d", [0.25, 0.75]),
    ]


@pytest.fixture
def scenario_store(scenario_records):
    return InMemoryVectorStore.from_records(scenario_records).unwrap()


@pytest.fixture
def scenario_corpus(scenario_records):
    return Corpus.from_records(scenario_records)


@pytest.fixture
def metrics():
    """Instruments on a private collector, isolated from the global one."""
    return PipelineMetrics.register(MetricsCollector())
