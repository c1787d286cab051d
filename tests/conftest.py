"""
Shared pytest setup.

1. 把 src 目录加入 sys.path，测试里可以直接 `import contemplation`，无需先安装。
2. 提供可控时钟，insight 的 created_at 与剪枝的 "now" 都由测试决定。
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# 添加 src 目录到 PYTHONPATH
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from contemplation.memory import InsightKind, InsightMemoryConfig, InsightRecord, InsightStore  # noqa: E402


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def store(clock):
    return InsightStore(InsightMemoryConfig(), clock=clock)


@pytest.fixture
def make_record():
    def _make(
        insight_id: str,
        content: str,
        significance: int = 5,
        kind: InsightKind = InsightKind.GENERAL,
        **kwargs,
    ) -> InsightRecord:
        return InsightRecord(
            id=insight_id,
            kind=kind,
            content=content,
            significance=significance,
            **kwargs,
        )

    return _make
