"""
规则引擎测试基础配置

提供 mock Redis、假查询服务、假通知器以及规则定义构造等通用 fixture。
所有测试不依赖外部查询服务 / Redis / Alertmanager。
"""
import asyncio
import os
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

import pytest

# 必须在导入 ruleengine 之前设置环境变量，避免读取本地 .env
os.environ["REDIS_HOST"] = "localhost"
os.environ["LOG_LEVEL"] = "DEBUG"

from ruleengine.models.labels import Labels
from ruleengine.models.series import Point, Series
from ruleengine.schemas.rule import PostableRule

T0 = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


# ── Mock Redis ────────────────────────────────────────────────────────
class FakeRedis:
    """内存级 Redis 模拟，支持基本 get/set/delete 操作。"""
    def __init__(self):
        self._store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def get(self, key: str) -> str | None:
        return self._store.get(key)

    async def set(self, key: str, value: str, ex: int | None = None, **kwargs) -> None:
        self._store[key] = value
        if ex is not None:
            self.ttls[key] = ex

    async def delete(self, *keys: str) -> None:
        for k in keys:
            self._store.pop(k, None)

    async def close(self) -> None:
        pass


# ── 假查询服务 / 通知器 ────────────────────────────────────────────────
class FakeQuerier:
    """返回预设结果的查询服务；results 可以是字典或 (start, end) -> 字典 的函数。"""
    def __init__(self, results=None):
        self.results: Dict[str, List[Series]] | Callable = results or {}
        self.error: Optional[Exception] = None
        self.delay: float = 0.0
        self.calls: list[tuple[datetime, datetime]] = []

    async def query_range(self, query, start, end, step):
        self.calls.append((start, end))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if callable(self.results):
            return self.results(start, end)
        return self.results


class FakeNotifier:
    def __init__(self):
        self.sent: list = []

    async def send(self, alerts) -> bool:
        self.sent.append(list(alerts))
        return True

    @property
    def all_alerts(self) -> list:
        return [a for batch in self.sent for a in batch]


# ── 构造工具 ──────────────────────────────────────────────────────────
def make_series(labels: dict, values: list[float], end: datetime = T0, step: timedelta = timedelta(minutes=1)) -> Series:
    """按 step 间隔生成以 end 结尾的采样点。"""
    n = len(values)
    points = [Point(timestamp=end - step * (n - 1 - i), value=v) for i, v in enumerate(values)]
    return Series(labels=Labels(labels), points=points)


def builder_query(*names: str) -> dict:
    return {
        "queryType": "builder",
        "panelType": "graph",
        "builderQueries": {
            name: {"queryName": name, "expression": name, "dataSource": "metrics"} for name in names
        },
    }


def make_rule(**overrides) -> PostableRule:
    """默认：构建器查询 A，LAST 值大于 10，for=0。"""
    condition = {
        "compositeQuery": builder_query("A"),
        "op": "1",
        "target": 10,
        "matchType": "5",
    }
    condition.update(overrides.pop("condition", {}))
    data = {
        "alert": "HighCPU",
        "ruleType": "threshold_rule",
        "evalWindow": "5m",
        "frequency": "1m",
        "for": "0s",
        "labels": {"severity": "critical"},
        "annotations": {"summary": "cpu is high"},
        "source": "http://localhost:3301/alerts/new",
        "preferredChannels": ["slack-ops"],
        "condition": condition,
    }
    data.update(overrides)
    return PostableRule.model_validate(data)


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def querier() -> FakeQuerier:
    return FakeQuerier()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()
