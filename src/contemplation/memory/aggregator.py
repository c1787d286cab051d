"""
Near-duplicate aggregation for unconsumed insights.

Walks unconsumed records in store order and folds each one into the first
existing representative whose content is similar (first match, not best
match). Representatives are copies, so merging never mutates the records
handed in. Consumed records are never merged; they are appended unchanged
after the representatives.
"""

import dataclasses
import logging

from .records import InsightRecord
from .similarity import DEFAULT_SIMILARITY_THRESHOLD, is_similar

logger = logging.getLogger(__name__)


def _as_representative(record: InsightRecord) -> InsightRecord:
    member_ids = list(record.member_ids) if record.member_ids is not None else None
    return dataclasses.replace(record, member_ids=member_ids)


def _merge_into(representative: InsightRecord, candidate: InsightRecord):
    if representative.similar_count is None:
        representative.similar_count = 1
    if representative.member_ids is None:
        representative.member_ids = [representative.id]

    # An already aggregated candidate brings its whole membership along
    representative.similar_count += candidate.similar_count or 1
    representative.member_ids.extend(candidate.member_ids or [candidate.id])
    representative.significance = max(
        representative.significance, candidate.significance
    )


def aggregate_insights(
    records: list[InsightRecord],
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
) -> tuple[list[InsightRecord], dict[str, str]]:
    """
    Merge similar unconsumed records.

    Returns (working_set, absorbed) where working_set is the representatives
    followed by the untouched consumed records, and absorbed maps every id
    folded into a representative to that representative's id.
    """
    representatives: list[InsightRecord] = []
    consumed: list[InsightRecord] = []
    absorbed: dict[str, str] = {}

    for record in records:
        if record.consumed:
            consumed.append(record)
            continue

        for representative in representatives:
            if is_similar(record.content, representative.content, threshold):
                _merge_into(representative, record)
                for member_id in record.member_ids or [record.id]:
                    absorbed[member_id] = representative.id
                break
        else:
            representatives.append(_as_representative(record))

    if absorbed:
        logger.debug(
            "Aggregated %d insights into %d representatives",
            len(absorbed),
            len(representatives),
        )

    return representatives + consumed, absorbed
