"""
Configuration Management for Topic-Vector Distance Search

Provides validated configuration with sensible defaults.
Supports environment variable overrides and JSON config files.

Design:
- Immutable after construction
- Unknown metric names fall back to the default with a warning
- Type-safe with dataclasses
"""

from __future__ import annotations

import json
import logging
import math
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from topicmesh.core import constants as C
from topicmesh.core.errors import ConfigError, StorageError
from topicmesh.core.types import Err, MetricType, Ok, Result

logger = logging.getLogger(__name__)


def resolve_metric(name: Optional[str], default: str = C.DEFAULT_METRIC) -> MetricType:
    """
    Map a configured metric name to a MetricType.

    Unset or unrecognized names resolve to ``default``; a recognized-but-
    rejected name is logged so the fallback is never silent.
    """
    parsed = MetricType.parse(name)
    if parsed.is_ok():
        return parsed.unwrap()
    if name:
        logger.warning(
            "%s; falling back to '%s'", parsed.error.message, default,
        )
    return MetricType(default)


@dataclass(frozen=True)
class TopicMeshConfig:
    """
    Root configuration.

    Attributes:
        metric: Metric for nearest-neighbor retrieval
        pairwise_metric: Metric for the divergence listing and shard export
        threshold: Pairs scoring at or above this are dropped
        file_limit: Shard capacity multiplier (capacity = file_limit * N)
        dim_weight: Scale applied to raw topic weights for display
        workers: Fixed worker count; None derives it from available cores
        output_dir: Directory receiving the ID map and shard files
    """

    metric: MetricType = MetricType.MANHATTAN
    pairwise_metric: MetricType = MetricType.JSD
    threshold: float = C.DEFAULT_THRESHOLD
    file_limit: int = C.DEFAULT_FILE_LIMIT
    dim_weight: float = C.DEFAULT_DIM_WEIGHT
    workers: Optional[int] = None
    output_dir: Path = field(default_factory=lambda: Path(C.DEFAULT_OUTPUT_DIR))
    log_level: str = "INFO"
    log_json: bool = False

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> Result[TopicMeshConfig, ConfigError]:
        """
        Build configuration from a dict.

        Accepts the snake_case field names as well as the keys of the
        legacy config.json (``distance``, ``divMax``, ``fileLimit``,
        ``dimWeight``). The result is validated before it is returned.
        """
        def pick(*keys: str) -> Any:
            for key in keys:
                if key in data and data[key] is not None:
                    return data[key]
            return None

        try:
            threshold = pick("threshold", "divMax")
            file_limit = pick("file_limit", "fileLimit")
            dim_weight = pick("dim_weight", "dimWeight")
            workers = pick("workers")
            output_dir = pick("output_dir", "outputDir")
            config = cls(
                metric=resolve_metric(pick("metric", "distance")),
                pairwise_metric=resolve_metric(
                    pick("pairwise_metric"), default=C.DEFAULT_PAIRWISE_METRIC,
                ),
                threshold=float(threshold) if threshold is not None else C.DEFAULT_THRESHOLD,
                file_limit=int(file_limit) if file_limit is not None else C.DEFAULT_FILE_LIMIT,
                dim_weight=float(dim_weight) if dim_weight is not None else C.DEFAULT_DIM_WEIGHT,
                workers=int(workers) if workers is not None else None,
                output_dir=Path(output_dir) if output_dir is not None else Path(C.DEFAULT_OUTPUT_DIR),
                log_level=str(pick("log_level") or "INFO").upper(),
                log_json=bool(pick("log_json") or False),
            )
        except (ValueError, TypeError) as e:
            return Err(ConfigError.invalid("config", data, str(e)))

        validated = config.validate()
        if validated.is_err():
            return Err(validated.error)
        return Ok(config)

    @classmethod
    def from_env(cls) -> Result[TopicMeshConfig, ConfigError]:
        """
        Load configuration from environment variables.

        Environment variables are prefixed with TOPICMESH_.
        Example: TOPICMESH_METRIC, TOPICMESH_THRESHOLD, TOPICMESH_WORKERS
        """
        return cls.from_mapping({
            "metric": os.getenv("TOPICMESH_METRIC"),
            "pairwise_metric": os.getenv("TOPICMESH_PAIRWISE_METRIC"),
            "threshold": os.getenv("TOPICMESH_THRESHOLD"),
            "file_limit": os.getenv("TOPICMESH_FILE_LIMIT"),
            "dim_weight": os.getenv("TOPICMESH_DIM_WEIGHT"),
            "workers": os.getenv("TOPICMESH_WORKERS"),
            "output_dir": os.getenv("TOPICMESH_OUTPUT_DIR"),
            "log_level": os.getenv("TOPICMESH_LOG_LEVEL"),
            "log_json": os.getenv("TOPICMESH_LOG_JSON", "").lower() in ("1", "true", "yes"),
        })

    @classmethod
    def from_file(cls, path: Path | str) -> Result[TopicMeshConfig, StorageError | ConfigError]:
        """Load configuration from a JSON file."""
        path = Path(path)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except OSError as e:
            return Err(StorageError.read_error(str(path), str(e), cause=e))
        except json.JSONDecodeError as e:
            return Err(ConfigError.invalid("file", str(path), f"invalid JSON: {e}"))
        if not isinstance(data, dict):
            return Err(ConfigError.invalid("file", str(path), "top-level value must be an object"))
        return cls.from_mapping(data)

    def validate(self) -> Result[None, ConfigError]:
        """Validate configuration invariants."""
        if math.isnan(self.threshold) or self.threshold <= 0:
            return Err(ConfigError.invalid("threshold", self.threshold, "must be > 0"))
        if self.file_limit < 1:
            return Err(ConfigError.invalid("file_limit", self.file_limit, "must be >= 1"))
        if self.workers is not None and self.workers < 1:
            return Err(ConfigError.invalid("workers", self.workers, "must be >= 1"))
        return Ok(None)

    def shard_capacity(self, corpus_size: int) -> int:
        """Rows per shard for a corpus of ``corpus_size`` records."""
        return max(1, self.file_limit * corpus_size)
