"""
Insight memory and contemplation loop configuration.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

# Default locations of the background loop (overridable via env)
DEFAULT_LOOP_SCRIPT = Path.home() / "contemplation-loop" / "src" / "contemplation_loop.py"
DEFAULT_SCRATCH_DIR = Path.home() / "contemplation-loop" / "tmp" / "contemplation"


@dataclass
class InsightMemoryConfig:
    """Configuration for the bounded insight store."""

    # Store size ceiling enforced on every ingest and prune
    capacity: int = 100

    # Consumed records older than this are pruned
    max_age_hours: float = 24.0

    # Consumed records at or above this significance survive age pruning
    retain_significance: int = 8

    # Token overlap ratio that must be exceeded to aggregate two insights
    similarity_threshold: float = 0.6

    # Returned aggregates with more members than this are dropped from the store
    evict_similar_count: int = 3

    # Retrieval defaults
    default_threshold: int = 5  # min significance when the caller passes none
    default_limit: int = 10

    # Evicted ids remembered for duplicate rejection, oldest forgotten first
    max_retired_ids: int = 1000

    @classmethod
    def from_env(cls) -> "InsightMemoryConfig":
        """Load configuration from environment variables."""
        return cls(
            capacity=int(os.getenv("INSIGHT_CAPACITY", "100")),
            max_age_hours=float(os.getenv("INSIGHT_MAX_AGE_HOURS", "24")),
            retain_significance=int(os.getenv("INSIGHT_RETAIN_SIGNIFICANCE", "8")),
            similarity_threshold=float(
                os.getenv("INSIGHT_SIMILARITY_THRESHOLD", "0.6")
            ),
            evict_similar_count=int(os.getenv("INSIGHT_EVICT_SIMILAR_COUNT", "3")),
            default_threshold=int(os.getenv("INSIGHT_DEFAULT_THRESHOLD", "5")),
            default_limit=int(os.getenv("INSIGHT_DEFAULT_LIMIT", "10")),
            max_retired_ids=int(os.getenv("INSIGHT_MAX_RETIRED_IDS", "1000")),
        )

    @property
    def max_age_seconds(self) -> float:
        return self.max_age_hours * 3600


@dataclass
class ContemplationConfig:
    """Configuration for spawning and talking to the contemplation loop."""

    loop_script: Path = field(default_factory=lambda: DEFAULT_LOOP_SCRIPT)
    python_executable: str = "python3"
    scratch_dir: Path = field(default_factory=lambda: DEFAULT_SCRATCH_DIR)

    # Grace period after spawning (not a readiness handshake)
    startup_delay: float = 1.0

    # How long stop() waits for the process before killing it
    stop_timeout: float = 5.0

    @classmethod
    def from_env(cls) -> "ContemplationConfig":
        """Load configuration from environment variables."""
        return cls(
            loop_script=Path(
                os.getenv("CONTEMPLATION_LOOP_SCRIPT", str(DEFAULT_LOOP_SCRIPT))
            ).expanduser(),
            python_executable=os.getenv("CONTEMPLATION_PYTHON", "python3"),
            scratch_dir=Path(
                os.getenv("CONTEMPLATION_SCRATCH_DIR", str(DEFAULT_SCRATCH_DIR))
            ).expanduser(),
            startup_delay=float(os.getenv("CONTEMPLATION_STARTUP_DELAY", "1.0")),
            stop_timeout=float(os.getenv("CONTEMPLATION_STOP_TIMEOUT", "5.0")),
        )
