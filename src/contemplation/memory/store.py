"""
Bounded in-memory insight store.

Holds insight records keyed by id. Aggregation rewrites the working set on
every retrieval: representatives first (in ingest order), then consumed
records. All mutation (ingest, prune, aggregate, retrieve) happens on a
single thread; the store does no locking of its own.

Lifecycle of a record:
  ingest → prune (kept or removed) → aggregate (merged into a representative
  or becomes one) → retrieve (marked consumed, evicted when over-repeated) →
  eventually pruned on age or capacity.
"""

import logging
from collections import OrderedDict
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterator, Optional, Union

from .aggregator import aggregate_insights
from .config import InsightMemoryConfig
from .ranker import select_insights
from .records import InsightKind, InsightRecord

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InsightStore:
    """
    Insight records with age/capacity pruning and at-most-once retrieval.

    Usage:
        store = InsightStore(InsightMemoryConfig())
        store.ingest(InsightRecord(id="t1", kind=InsightKind.PATTERN, content="..."))
        for insight in store.retrieve(min_significance=1):
            print(insight.content)
    """

    def __init__(
        self,
        config: Optional[InsightMemoryConfig] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.config = config or InsightMemoryConfig()
        self._clock = clock
        self._records: dict[str, InsightRecord] = {}
        # absorbed member id -> representative id
        self._aliases: dict[str, str] = {}
        # ids of records evicted as fully extracted, oldest first; bounded by
        # max_retired_ids so a long-running bridge does not grow it forever
        self._retired: OrderedDict[str, None] = OrderedDict()
        self._last_content: Optional[str] = None

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[InsightRecord]:
        return iter(list(self._records.values()))

    def __contains__(self, insight_id: str) -> bool:
        return self.get(insight_id) is not None

    @property
    def records(self) -> list[InsightRecord]:
        """Snapshot of the records in store order."""
        return list(self._records.values())

    def get(self, insight_id: str) -> Optional[InsightRecord]:
        """Look up a record by its own id or by any id it absorbed."""
        if insight_id in self._retired:
            return None
        record = self._records.get(insight_id)
        if record is not None:
            return record
        target = self._aliases.get(insight_id)
        if target is None:
            return None
        return self._records.get(target)

    def ingest(self, record: InsightRecord) -> bool:
        """
        Append a newly observed record.

        The record's created_at is reset to the observation time. Records whose
        id is already known (live, absorbed or retired) are dropped. If the
        store overflows, capacity is enforced at once; the return value says
        whether the record is still stored.
        """
        if (
            record.id in self._records
            or record.id in self._aliases
            or record.id in self._retired
        ):
            logger.debug("Dropping insight with duplicate id %s", record.id)
            return False

        record.created_at = self._clock()
        self._records[record.id] = record
        self._last_content = record.content
        logger.debug(
            "Ingested insight %s (%s, significance %d)",
            record.id,
            record.kind.value,
            record.significance,
        )

        if len(self._records) > self.config.capacity:
            self._enforce_capacity()
        # the new record itself may be the least significant one
        return record.id in self._records

    def prune(self, now: Optional[datetime] = None) -> int:
        """
        Remove aged-out consumed records, then enforce capacity.

        A record older than max_age survives if it is still unconsumed or its
        significance is at least retain_significance. If more than `capacity`
        records remain, the most significant ones are kept (ties resolved by
        store order) and the survivors keep their store order.

        Returns the number of records removed.
        """
        now = now or self._clock()
        cutoff = now - timedelta(seconds=self.config.max_age_seconds)
        before = len(self._records)

        survivors = [
            r for r in self._records.values()
            if r.created_at >= cutoff
            or not r.consumed
            or r.significance >= self.config.retain_significance
        ]
        if len(survivors) < before:
            self._replace_records(survivors)
        self._enforce_capacity()

        removed = before - len(self._records)
        if removed:
            logger.info(
                "Pruned %d insights (%d remaining, capacity %d)",
                removed,
                len(self._records),
                self.config.capacity,
            )
        return removed

    def _enforce_capacity(self) -> int:
        """
        Drop the least significant records until at most `capacity` remain.

        Ties are resolved by store order (earlier records win) and survivors
        keep their store order. Returns the number of records dropped.
        """
        records = list(self._records.values())
        excess = len(records) - self.config.capacity
        if excess <= 0:
            return 0

        by_significance = sorted(records, key=lambda r: r.significance, reverse=True)
        keep = {r.id for r in by_significance[: self.config.capacity]}
        self._replace_records([r for r in records if r.id in keep])
        logger.debug("Dropped %d insights over capacity %d", excess, self.config.capacity)
        return excess

    def _replace_records(self, survivors: list[InsightRecord]):
        self._records = {r.id: r for r in survivors}
        self._aliases = {
            member: target
            for member, target in self._aliases.items()
            if target in self._records
        }

    def aggregate(self):
        """Replace the working set with aggregated representatives."""
        working_set, absorbed = aggregate_insights(
            list(self._records.values()), self.config.similarity_threshold
        )
        self._records = {r.id: r for r in working_set}
        if absorbed:
            # Re-point older aliases whose representative was itself absorbed
            for member, target in list(self._aliases.items()):
                if target in absorbed:
                    self._aliases[member] = absorbed[target]
            self._aliases.update(absorbed)

    def retrieve(
        self,
        kind: Union[InsightKind, str, None] = None,
        limit: Optional[int] = None,
        min_significance: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> list[InsightRecord]:
        """
        Full retrieval pass: prune → aggregate → rank/slice → mark/evict.

        Every returned record is marked consumed. Returned aggregates with
        similar_count above evict_similar_count are removed from the store
        along with every id they absorbed.
        """
        if kind is not None and not isinstance(kind, InsightKind):
            kind = InsightKind(kind)
        if limit is None:
            limit = self.config.default_limit
        if min_significance is None:
            min_significance = self.config.default_threshold

        self.prune(now)
        self.aggregate()

        results = select_insights(
            list(self._records.values()),
            kind=kind,
            limit=limit,
            min_significance=min_significance,
        )

        for record in results:
            record.mark_consumed()
            if (
                record.similar_count is not None
                and record.similar_count > self.config.evict_similar_count
            ):
                self._evict(record)

        return results

    def _evict(self, record: InsightRecord):
        self._records.pop(record.id, None)
        retired = {record.id, *(record.member_ids or [])}
        for insight_id in retired:
            self._retired[insight_id] = None
            self._retired.move_to_end(insight_id)
        while len(self._retired) > self.config.max_retired_ids:
            self._retired.popitem(last=False)
        self._aliases = {
            member: target
            for member, target in self._aliases.items()
            if member not in retired and target not in retired
        }
        logger.info(
            "Evicted fully extracted insight %s (%d similar)",
            record.id,
            record.similar_count,
        )

    def retired_count(self) -> int:
        """Number of evicted ids still remembered for duplicate rejection."""
        return len(self._retired)

    def unused_count(self) -> int:
        return sum(1 for r in self._records.values() if not r.consumed)

    def last_content(self) -> Optional[str]:
        """Content of the most recently ingested record, if any."""
        return self._last_content

    def stats(self, threshold: Optional[int] = None) -> dict:
        """Memory usage summary."""
        records = list(self._records.values())
        total = len(records)
        capacity = self.config.capacity
        return {
            "total": total,
            "unused": sum(1 for r in records if not r.consumed),
            "high_significance": sum(
                1 for r in records
                if r.significance >= self.config.retain_significance
            ),
            "aggregated_count": sum(1 for r in records if r.is_aggregated),
            "limit": capacity,
            "threshold": (
                threshold if threshold is not None else self.config.default_threshold
            ),
            "usage_percent": round(total / capacity * 100) if capacity > 0 else 0,
        }

    def clear(self):
        self._records.clear()
        self._aliases.clear()
        self._retired.clear()
        self._last_content = None
