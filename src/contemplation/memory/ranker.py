"""
Retrieval ordering and filtering.

Ordering is a three-level comparator, earlier levels dominating:

1. When both records are aggregated, the higher similar_count wins.
2. Higher significance wins.
3. The more recently observed record wins.

Aggregation priority only applies between two aggregated records; an
aggregate compared with a plain record falls through to significance.
"""

from functools import cmp_to_key
from typing import Optional

from .records import InsightKind, InsightRecord


def compare_insights(a: InsightRecord, b: InsightRecord) -> int:
    """Negative when `a` should be returned before `b`."""
    if a.is_aggregated and b.is_aggregated and a.similar_count != b.similar_count:
        return b.similar_count - a.similar_count
    if a.significance != b.significance:
        return b.significance - a.significance
    if a.created_at != b.created_at:
        return -1 if a.created_at > b.created_at else 1
    return 0


def rank_insights(records: list[InsightRecord]) -> list[InsightRecord]:
    """Return a new, stably sorted list."""
    return sorted(records, key=cmp_to_key(compare_insights))


def select_insights(
    records: list[InsightRecord],
    kind: Optional[InsightKind] = None,
    limit: int = 10,
    min_significance: int = 5,
) -> list[InsightRecord]:
    """
    Filter to retrievable records, rank them and take the first `limit`.

    Pure: nothing is marked consumed here.
    """
    if limit <= 0:
        return []

    candidates = [
        r for r in records
        if not r.consumed and r.significance >= min_significance
    ]
    if kind is not None:
        candidates = [r for r in candidates if r.kind == kind]

    return rank_insights(candidates)[:limit]
