"""
Insight record model shared by the store, aggregator and ranker.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

DEFAULT_SIGNIFICANCE = 5
MIN_SIGNIFICANCE = 1
MAX_SIGNIFICANCE = 10


class InsightKind(str, Enum):
    """Thought / insight categories understood by the contemplation loop."""

    PATTERN = "pattern"
    CONNECTION = "connection"
    QUESTION = "question"
    GENERAL = "general"

    @classmethod
    def values(cls) -> list[str]:
        return [kind.value for kind in cls]


def normalize_significance(value) -> int:
    """
    Coerce a producer-supplied significance into 1..10.

    Anything that is not an integral number in range (including bools and
    numeric strings) falls back to the default of 5.
    """
    if isinstance(value, bool):
        return DEFAULT_SIGNIFICANCE
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, int) and MIN_SIGNIFICANCE <= value <= MAX_SIGNIFICANCE:
        return value
    return DEFAULT_SIGNIFICANCE


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class InsightRecord:
    """A significance-scored insight produced from a submitted thought."""

    id: str
    kind: InsightKind
    content: str
    significance: int = DEFAULT_SIGNIFICANCE
    created_at: datetime = field(default_factory=_utcnow)
    consumed: bool = False

    # Only set on aggregated (representative) records
    similar_count: Optional[int] = None
    member_ids: Optional[list[str]] = None

    @property
    def is_aggregated(self) -> bool:
        return self.similar_count is not None

    def mark_consumed(self):
        """Consumption is one-way; there is no way back to unconsumed."""
        self.consumed = True

    def to_dict(self) -> dict:
        """JSON-friendly representation returned to tool callers."""
        data = {
            "id": self.id,
            "thought_type": self.kind.value,
            "content": self.content,
            "significance": self.significance,
            "timestamp": self.created_at.isoformat(),
            "used": self.consumed,
        }
        if self.similar_count is not None:
            data["similar_count"] = self.similar_count
        if self.member_ids is not None:
            data["member_ids"] = list(self.member_ids)
        return data
