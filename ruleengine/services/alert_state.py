"""
告警状态快照存储服务 (Alert State Snapshot Store)

每个评估周期完成后，将规则的活动告警表以 JSON 写入 Redis；规则重新加载（如进程重启）时恢复，
使处于 pending 的告警保留原 active_at，不必重新累计持续时间，已发送的告警也不会被立即重发。
Redis 不可用只记录日志，不影响评估周期。

After every completed cycle a rule's active alert table is written to Redis as
JSON and restored when the rule is loaded again. Redis failures are logged and
never fail the cycle.
"""
import json
import logging
from datetime import timedelta
from typing import Dict

from redis.exceptions import RedisError

from ruleengine.models.alert import Alert, RESOLVED_RETENTION

logger = logging.getLogger(__name__)

KEY_PREFIX = "ruleengine:alerts"


def _key(rule_id: str) -> str:
    return f"{KEY_PREFIX}:{rule_id}"


class AlertStateStore:
    def __init__(self, redis):
        self.redis = redis

    async def save(self, rule_id: str, alerts: Dict[int, Alert], frequency: timedelta) -> None:
        ttl = int((RESOLVED_RETENTION + 4 * frequency).total_seconds())
        data = json.dumps({str(fp): a.to_dict() for fp, a in alerts.items()})
        try:
            await self.redis.set(_key(rule_id), data, ex=ttl)
        except RedisError as e:
            logger.warning(f"Failed to save alert state for rule {rule_id}: {e}")

    async def load(self, rule_id: str) -> Dict[int, Alert]:
        try:
            raw = await self.redis.get(_key(rule_id))
        except RedisError as e:
            logger.warning(f"Failed to load alert state for rule {rule_id}: {e}")
            return {}
        if not raw:
            return {}
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        try:
            data = json.loads(raw)
            return {int(fp): Alert.from_dict(item) for fp, item in data.items()}
        except (json.JSONDecodeError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Discarding corrupt alert state for rule {rule_id}: {e}")
            return {}

    async def delete(self, rule_id: str) -> None:
        try:
            await self.redis.delete(_key(rule_id))
        except RedisError as e:
            logger.warning(f"Failed to delete alert state for rule {rule_id}: {e}")
