"""
Observability module: Metrics and structured logging.
"""

from topicmesh.observability.metrics import (
    Counter,
    Gauge,
    Histogram,
    MetricsCollector,
    PipelineMetrics,
)
from topicmesh.observability.logging import (
    JsonFormatter,
    LogLevel,
    StructuredLogger,
    setup_logging,
)

__all__ = [
    "MetricsCollector",
    "PipelineMetrics",
    "Counter",
    "Gauge",
    "Histogram",
    "JsonFormatter",
    "StructuredLogger",
    "LogLevel",
    "setup_logging",
]
