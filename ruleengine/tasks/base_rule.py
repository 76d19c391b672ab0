"""
规则评估基类模块。

BaseRule 负责一条规则的完整评估周期：查询 → 归约/比较 → 更新活动告警表 → 筛选需要发送的通知。
活动告警表以告警标签指纹为键，只由本规则自己的评估周期修改（单写者）；
每个周期先在副本上计算新状态，全部成功后才替换，查询失败或周期被取消时保留上一周期的状态。

告警生命周期：
1. 标签集合满足条件：已有未恢复告警则刷新取值，否则新建 pending 告警（active_at = now）
2. pending 持续时间达到 hold_duration → firing（fired_at = now）
3. 标签集合未出现：pending 直接移除；firing → resolved（resolved_at = now）；
   resolved 超过保留时长后移除
4. resolved 告警再次满足条件时重新从 pending 开始
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from ruleengine.core.config import settings
from ruleengine.core.exceptions import QueryExecutionError
from ruleengine.models.alert import Alert, NamedAlert, RESOLVED_RETENTION
from ruleengine.models.enums import AlertState, RuleHealth
from ruleengine.models.labels import ALERT_NAME_LABEL, RULE_ID_LABEL, RULE_SOURCE_LABEL, Labels
from ruleengine.models.series import Series
from ruleengine.schemas.rule import PostableRule
from ruleengine.services.generator_url import prepare_rule_generator_url
from ruleengine.services.querier import Querier
from ruleengine.services.threshold import has_enough_points, should_alert

logger = logging.getLogger(__name__)

# 查询步长下限
MIN_STEP = timedelta(seconds=60)


@dataclass
class Observation:
    """本周期满足条件的一个标签集合。"""
    labels: Labels
    value: float
    missing: bool = False


@dataclass
class CycleOutcome:
    observations: List[Observation] = field(default_factory=list)
    # 本周期被跳过（无数据 / 点数不足 / 无历史）的序列标签，其告警保持不变
    held: List[Labels] = field(default_factory=list)
    saw_data: bool = False


class BaseRule:
    def __init__(
        self,
        rule_id: str,
        rule: PostableRule,
        querier: Querier,
        query_timeout: Optional[float] = None,
        now: Optional[datetime] = None,
    ):
        self.id = rule_id
        self.rule = rule
        self.name = rule.alert
        self.condition = rule.condition
        self.querier = querier
        self.query_timeout = query_timeout if query_timeout is not None else settings.query_timeout_seconds

        self.labels = Labels(rule.labels)
        self.annotations = Labels(rule.annotations)
        self.receivers = list(rule.preferred_channels)
        self.generator_url = prepare_rule_generator_url(rule_id, rule.source)

        self.health = RuleHealth.UNKNOWN
        self.last_error: Optional[str] = None
        self.last_evaluation: Optional[datetime] = None
        self.evaluation_duration = timedelta(0)

        self.active: Dict[int, Alert] = {}
        # 数据缺失检测从规则创建时刻开始计时
        self.last_seen_data = now or datetime.now(timezone.utc)

    # ── 配置 ──

    @property
    def eval_window(self) -> timedelta:
        return self.rule.eval_window

    @property
    def frequency(self) -> timedelta:
        return self.rule.frequency

    @property
    def hold_duration(self) -> timedelta:
        return self.rule.hold_duration

    def step(self) -> timedelta:
        return max(MIN_STEP, self.eval_window / 300)

    def state(self) -> AlertState:
        """规则整体状态：任一告警 firing 即 firing，其次 pending。"""
        states = {a.state for a in self.active.values()}
        for s in (AlertState.FIRING, AlertState.PENDING):
            if s in states:
                return s
        return AlertState.INACTIVE

    # ── 查询 ──

    async def query(self, start: datetime, end: datetime) -> Dict[str, List[Series]]:
        try:
            return await asyncio.wait_for(
                self.querier.query_range(self.condition.composite_query, start, end, self.step()),
                timeout=self.query_timeout,
            )
        except asyncio.TimeoutError:
            raise QueryExecutionError(f"query timed out after {self.query_timeout}s") from None

    async def collect(self, now: datetime) -> CycleOutcome:
        raise NotImplementedError

    def evaluate_series(self, series: Series, outcome: CycleOutcome) -> None:
        """按阈值条件评估单个序列；自由查询未配置阈值时，返回数据即视为满足条件。"""
        samples = series.samples()
        if samples:
            outcome.saw_data = True
        if not has_enough_points(samples, self.condition):
            outcome.held.append(series.labels)
            return

        if self.condition.has_threshold():
            ok, value = should_alert(
                samples, self.condition.compare_op, self.condition.match_type, self.condition.target
            )
        else:
            ok, value = True, samples[-1].value
        if ok:
            outcome.observations.append(Observation(labels=series.labels, value=value))

    # ── 评估周期 ──

    def alert_labels(self, series_labels: Labels) -> Labels:
        reserved = {ALERT_NAME_LABEL: self.name, RULE_ID_LABEL: self.id}
        if self.generator_url:
            reserved[RULE_SOURCE_LABEL] = self.generator_url
        return series_labels.with_labels(self.labels.to_dict()).with_labels(reserved)

    @staticmethod
    def fingerprint(labels: Labels) -> int:
        """告警身份指纹；ruleSource 链接随规则来源地址变化，不参与计算。"""
        return labels.without(RULE_SOURCE_LABEL).fingerprint()

    async def eval(self, now: datetime) -> int:
        """执行一个评估周期，返回活动告警数。查询失败时标记规则健康为 BAD 并抛出 QueryExecutionError。"""
        started = datetime.now(timezone.utc)
        try:
            outcome = await self.collect(now)
        except Exception as e:
            # 查询适配器可替换，任何查询异常都按查询失败处理；取消不在此列
            error = e if isinstance(e, QueryExecutionError) else QueryExecutionError(f"query failed: {e!r}")
            self.health = RuleHealth.BAD
            self.last_error = error.message
            logger.error(f"Rule {self.id} ({self.name}) evaluation failed: {error.message}")
            if error is e:
                raise
            raise error from e

        last_seen = self.last_seen_data
        if outcome.saw_data:
            last_seen = now
        elif self.condition.alert_on_absent:
            absent_for = timedelta(minutes=self.condition.absent_for)
            if now - last_seen >= absent_for:
                outcome.observations.append(Observation(labels=Labels(), value=0.0, missing=True))

        active = self._apply(outcome, now)

        # 以下赋值之间没有 await，周期结果整体生效
        self.active = active
        self.last_seen_data = last_seen
        self.health = RuleHealth.GOOD
        self.last_error = None
        self.last_evaluation = now
        self.evaluation_duration = datetime.now(timezone.utc) - started
        return len(active)

    def _apply(self, outcome: CycleOutcome, now: datetime) -> Dict[int, Alert]:
        active = {fp: a.copy() for fp, a in self.active.items()}

        observed = set()
        for obs in outcome.observations:
            labels = self.alert_labels(obs.labels)
            fp = self.fingerprint(labels)
            observed.add(fp)

            existing = active.get(fp)
            if existing is not None and existing.state != AlertState.RESOLVED:
                existing.labels = labels
                existing.generator_url = self.generator_url
                existing.value = obs.value
                existing.annotations = self.annotations
                existing.receivers = list(self.receivers)
                existing.query_result_labels = obs.labels
                existing.missing = obs.missing
                continue

            active[fp] = Alert(
                state=AlertState.PENDING,
                labels=labels,
                annotations=self.annotations,
                query_result_labels=obs.labels,
                generator_url=self.generator_url,
                receivers=list(self.receivers),
                value=obs.value,
                active_at=now,
                missing=obs.missing,
            )

        held = {self.fingerprint(self.alert_labels(lbs)) for lbs in outcome.held}

        for fp, alert in list(active.items()):
            if fp in observed:
                if alert.state == AlertState.PENDING and now - alert.active_at >= self.hold_duration:
                    alert.state = AlertState.FIRING
                    alert.fired_at = now
                    logger.info(f"Alert fired: {self.name} {alert.labels}")
                continue

            if fp in held:
                continue

            if alert.state == AlertState.PENDING:
                del active[fp]
            elif alert.state == AlertState.RESOLVED:
                if now - alert.resolved_at > RESOLVED_RETENTION:
                    del active[fp]
            elif alert.state == AlertState.FIRING:
                alert.state = AlertState.RESOLVED
                alert.resolved_at = now
                logger.info(f"Alert resolved: {self.name} {alert.labels}")

        return active

    # ── 通知 ──

    def _valid_for(self, resend_delay: timedelta) -> timedelta:
        return 4 * max(resend_delay, self.frequency)

    def alerts_to_send(self, now: datetime, resend_delay: timedelta) -> List[NamedAlert]:
        """筛选需要发送的告警，返回带本次有效期的快照副本；活动告警表不变，投递成功后再调用 mark_sent()。"""
        valid_until = now + self._valid_for(resend_delay)
        to_send = []
        for alert in self.active.values():
            if alert.needs_sending(now, resend_delay):
                snapshot = alert.copy()
                snapshot.valid_until = valid_until
                to_send.append(NamedAlert(name=self.name, alert=snapshot))
        return to_send

    def mark_sent(self, sent: List[NamedAlert], now: datetime, resend_delay: timedelta) -> None:
        """记录已投递的告警。"""
        valid_for = self._valid_for(resend_delay)
        for named in sent:
            alert = self.active.get(self.fingerprint(named.alert.labels))
            if alert is not None:
                alert.mark_sent(now, valid_for)
