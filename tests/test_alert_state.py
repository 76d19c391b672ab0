"""
告警状态快照存储测试
"""
from datetime import timedelta
from unittest.mock import AsyncMock

from redis.exceptions import ConnectionError as RedisConnectionError

from ruleengine.models.alert import Alert
from ruleengine.models.enums import AlertState
from ruleengine.models.labels import Labels
from ruleengine.services.alert_state import AlertStateStore
from tests.conftest import T0


def _alerts():
    alert = Alert(
        state=AlertState.FIRING,
        labels=Labels({"alertname": "HighCPU", "host": "web-1"}),
        value=20.0,
        active_at=T0,
        fired_at=T0,
        last_sent_at=T0,
    )
    return {alert.labels.fingerprint(): alert}


class TestAlertStateStore:
    async def test_save_and_load(self, fake_redis):
        store = AlertStateStore(fake_redis)
        alerts = _alerts()
        await store.save("r1", alerts, timedelta(minutes=1))
        assert await store.load("r1") == alerts
        # 保留时长 15 分钟 + 4 个评估周期
        assert fake_redis.ttls["ruleengine:alerts:r1"] == 19 * 60

    async def test_load_missing(self, fake_redis):
        assert await AlertStateStore(fake_redis).load("nope") == {}

    async def test_load_bytes(self, fake_redis):
        store = AlertStateStore(fake_redis)
        await store.save("r1", _alerts(), timedelta(minutes=1))
        key = "ruleengine:alerts:r1"
        fake_redis._store[key] = fake_redis._store[key].encode()
        assert len(await store.load("r1")) == 1

    async def test_corrupt_snapshot_discarded(self, fake_redis):
        fake_redis._store["ruleengine:alerts:r1"] = "{not json"
        assert await AlertStateStore(fake_redis).load("r1") == {}

    async def test_redis_errors_are_logged(self):
        redis = AsyncMock()
        redis.get.side_effect = RedisConnectionError("down")
        redis.set.side_effect = RedisConnectionError("down")
        redis.delete.side_effect = RedisConnectionError("down")
        store = AlertStateStore(redis)

        await store.save("r1", _alerts(), timedelta(minutes=1))
        assert await store.load("r1") == {}
        await store.delete("r1")
