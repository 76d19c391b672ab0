"""
告警实体模块 (Alert Entity Module)

Alert 表示某条规则下一个唯一标签集合的评估结果，记录告警生命周期的状态与时间戳；
needs_sending() 实现通知去抖与重发节奏的判定。

An Alert is one evaluation outcome for a unique label set within a rule. It
carries the lifecycle state and timestamps; needs_sending() decides whether a
notification is due (debounce + resend cadence).
"""
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from ruleengine.models.enums import AlertState
from ruleengine.models.labels import Labels

# 已恢复告警的保留时长，超过后从活动表中移除 (How long a resolved alert is kept)
RESOLVED_RETENTION = timedelta(minutes=15)

# 测试通知的告警名后缀，生产规则产生的告警不得带有该后缀
TEST_ALERT_POSTFIX = "_TEST_ALERT"

# 未设置的时间戳按零时刻参与比较
ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)


@dataclass
class Alert:
    state: AlertState = AlertState.PENDING

    labels: Labels = field(default_factory=Labels)
    annotations: Labels = field(default_factory=Labels)
    query_result_labels: Labels = field(default_factory=Labels)

    generator_url: str = ""
    # 首选接收方列表，例如 slack 渠道名
    receivers: List[str] = field(default_factory=list)

    value: float = 0.0
    active_at: Optional[datetime] = None
    fired_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    last_sent_at: Optional[datetime] = None
    valid_until: Optional[datetime] = None

    missing: bool = False

    def needs_sending(self, now: datetime, resend_delay: timedelta) -> bool:
        if self.state == AlertState.PENDING:
            return False

        last_sent = self.last_sent_at or ZERO_TIME
        # 上次发送后又恢复了，立即发送恢复通知
        if (self.resolved_at or ZERO_TIME) > last_sent:
            return True

        return last_sent + resend_delay < now

    def mark_sent(self, now: datetime, valid_for: timedelta) -> None:
        """记录一次发送；last_sent_at 只前进不后退。"""
        if self.last_sent_at is None or now > self.last_sent_at:
            self.last_sent_at = now
        self.valid_until = now + valid_for

    def copy(self) -> "Alert":
        return replace(self, receivers=list(self.receivers))

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "labels": self.labels.to_dict(),
            "annotations": self.annotations.to_dict(),
            "query_result_labels": self.query_result_labels.to_dict(),
            "generator_url": self.generator_url,
            "receivers": list(self.receivers),
            "value": self.value,
            "active_at": _iso(self.active_at),
            "fired_at": _iso(self.fired_at),
            "resolved_at": _iso(self.resolved_at),
            "last_sent_at": _iso(self.last_sent_at),
            "valid_until": _iso(self.valid_until),
            "missing": self.missing,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Alert":
        return cls(
            state=AlertState(data.get("state", AlertState.PENDING.value)),
            labels=Labels(data.get("labels")),
            annotations=Labels(data.get("annotations")),
            query_result_labels=Labels(data.get("query_result_labels")),
            generator_url=data.get("generator_url", ""),
            receivers=list(data.get("receivers") or []),
            value=float(data.get("value", 0.0)),
            active_at=_parse_iso(data.get("active_at")),
            fired_at=_parse_iso(data.get("fired_at")),
            resolved_at=_parse_iso(data.get("resolved_at")),
            last_sent_at=_parse_iso(data.get("last_sent_at")),
            valid_until=_parse_iso(data.get("valid_until")),
            missing=bool(data.get("missing", False)),
        )


@dataclass
class NamedAlert:
    """带规则名的告警，仅用于通知路由与分组。"""
    name: str
    alert: Alert


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_iso(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None
