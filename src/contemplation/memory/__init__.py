"""
Insight memory for the contemplation loop.

Insights arrive asynchronously from the background process and are kept in
a bounded store:

- Similarity: coarse lower-case token overlap between two insight texts
- Aggregation: near duplicates collapse into one representative record
- Pruning: consumed records age out after 24h unless highly significant;
  capacity overflow evicts the least significant first
- Retrieval: filtered, deterministically ranked, at-most-once
"""

from .aggregator import aggregate_insights
from .config import ContemplationConfig, InsightMemoryConfig
from .ranker import compare_insights, rank_insights, select_insights
from .records import InsightKind, InsightRecord, normalize_significance
from .similarity import is_similar, overlap_ratio, tokenize
from .store import InsightStore

__all__ = [
    "ContemplationConfig",
    "InsightKind",
    "InsightMemoryConfig",
    "InsightRecord",
    "InsightStore",
    "aggregate_insights",
    "compare_insights",
    "is_similar",
    "normalize_significance",
    "overlap_ratio",
    "rank_insights",
    "select_insights",
    "tokenize",
]
