"""
System-Wide Constants for Topic-Vector Distance Search

All defaults and output format details centralized here.
"""

from typing import Final

# =============================================================================
# METRICS
# =============================================================================
DEFAULT_METRIC: Final[str] = "manhattan"
DEFAULT_PAIRWISE_METRIC: Final[str] = "jsd"

# =============================================================================
# PAIRWISE EXPORT
# =============================================================================
DEFAULT_THRESHOLD: Final[float] = float("inf")
DEFAULT_FILE_LIMIT: Final[int] = 1          # shard capacity = file_limit * N rows
DEFAULT_OUTPUT_DIR: Final[str] = "./processed"
RESERVED_CORES: Final[int] = 1              # kept free for request handling

ID_MAP_FILENAME: Final[str] = "mapID.csv"
ID_MAP_HEADER: Final[tuple[str, str]] = ("MetalloID", "OriginalID")
SHARD_HEADER: Final[tuple[str, str, str]] = ("Source", "Target", "JSD")
SHARD_GLOB: Final[str] = "from*.csv"
SHARD_SCORE_DIGITS: Final[int] = 6
CSV_LINE_TERMINATOR: Final[str] = "\n"

# =============================================================================
# RETRIEVAL
# =============================================================================
DEFAULT_DIM_WEIGHT: Final[float] = 100.0    # topic weight -> percent
RESPONSE_DISTANCE_DIGITS: Final[int] = 2
TOPIC_VALUE_DIGITS: Final[int] = 3
SELF_DISTANCE_LABEL: Final[str] = "0"
