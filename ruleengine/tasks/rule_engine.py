"""
规则引擎任务模块。

为每条已启用的规则启动独立的后台评估循环：评估 → 发送通知 → 保存状态快照 → 按规则频率休眠。
不同规则之间没有共享的可变状态；同一规则的周期串行执行，活动告警表只由该规则自己的周期修改。
规则被更新或删除时取消正在进行的周期，被取消的周期不会改动上一周期的告警状态。

也支持由外部调度器驱动（schedule=False），此时通过 run_cycle() 逐周期调用。
"""
import asyncio
import contextlib
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from ruleengine.core.config import settings
from ruleengine.core.exceptions import (
    QueryExecutionError,
    RuleNotFoundError,
    RuleScheduledError,
    RuleValidationError,
)
from ruleengine.models.alert import NamedAlert, TEST_ALERT_POSTFIX
from ruleengine.schemas.duration import encode_duration
from ruleengine.schemas.rule import PostableRule
from ruleengine.services.alert_state import AlertStateStore
from ruleengine.services.notifier import AlertmanagerNotifier, Notifier
from ruleengine.services.querier import HTTPQuerier, PrometheusQuerier, Querier
from ruleengine.tasks.base_rule import BaseRule
from ruleengine.tasks.factory import build_rule

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(now: Optional[datetime]) -> datetime:
    """调用方传入的时间统一为 UTC；不带时区的时间按 UTC 解释。"""
    if now is None:
        return _utcnow()
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


class RuleEngine:
    def __init__(
        self,
        querier: Optional[Querier] = None,
        prom_querier: Optional[Querier] = None,
        notifier: Optional[Notifier] = None,
        state_store: Optional[AlertStateStore] = None,
        resend_delay: Optional[timedelta] = None,
        query_timeout: Optional[float] = None,
        schedule: bool = True,
    ):
        self.querier = querier or HTTPQuerier()
        self.prom_querier = prom_querier or PrometheusQuerier()
        self.notifier = notifier or AlertmanagerNotifier()
        self.state_store = state_store
        self.resend_delay = resend_delay if resend_delay is not None else settings.resend_delay
        self.query_timeout = query_timeout
        self.schedule = schedule

        self.rules: Dict[str, BaseRule] = {}
        self._tasks: Dict[str, asyncio.Task] = {}

    def _build(self, rule_id: str, rule: PostableRule, now: Optional[datetime] = None) -> BaseRule:
        return build_rule(
            rule_id, rule, self.querier, self.prom_querier,
            query_timeout=self.query_timeout, now=now,
        )

    def get_rule(self, rule_id: str) -> BaseRule:
        rule = self.rules.get(rule_id)
        if rule is None:
            raise RuleNotFoundError(f"rule {rule_id} not found")
        return rule

    # ── 规则增删改 ──

    async def add_rule(self, rule_id: str, rule: PostableRule, now: Optional[datetime] = None) -> BaseRule:
        """校验并加载规则；已存在同 ID 规则时按更新处理。"""
        if rule_id in self.rules:
            return await self.update_rule(rule_id, rule)
        if rule.alert.endswith(TEST_ALERT_POSTFIX):
            raise RuleValidationError(f"rule name must not end with {TEST_ALERT_POSTFIX}")

        new_rule = self._build(rule_id, rule, _as_utc(now) if now is not None else None)
        if self.state_store is not None:
            new_rule.active = await self.state_store.load(rule_id)
            if new_rule.active:
                logger.info(f"Restored {len(new_rule.active)} alert(s) for rule {rule_id}")

        self.rules[rule_id] = new_rule
        self._start(new_rule)
        logger.info(f"Rule loaded: {rule_id} ({new_rule.name}, {rule.resolved_rule_type().value})")
        return new_rule

    async def update_rule(self, rule_id: str, rule: PostableRule) -> BaseRule:
        old_rule = self.get_rule(rule_id)
        if rule.alert.endswith(TEST_ALERT_POSTFIX):
            raise RuleValidationError(f"rule name must not end with {TEST_ALERT_POSTFIX}")
        # 先校验新定义，失败时旧规则继续运行
        new_rule = self._build(rule_id, rule)

        await self._cancel(rule_id)
        new_rule.active = {fp: a.copy() for fp, a in old_rule.active.items()}
        new_rule.last_seen_data = old_rule.last_seen_data

        self.rules[rule_id] = new_rule
        self._start(new_rule)
        logger.info(f"Rule updated: {rule_id} ({new_rule.name})")
        return new_rule

    async def delete_rule(self, rule_id: str) -> None:
        self.get_rule(rule_id)
        await self._cancel(rule_id)
        del self.rules[rule_id]
        if self.state_store is not None:
            await self.state_store.delete(rule_id)
        logger.info(f"Rule deleted: {rule_id}")

    # ── 评估周期 ──

    async def run_cycle(self, rule_id: str, now: Optional[datetime] = None) -> List[NamedAlert]:
        """执行一次评估周期并返回本周期成功发送的告警，供外部调度器使用。

        只适用于未被后台循环调度的规则（schedule=False 或已禁用）；同一规则的周期必须串行，
        已调度的规则抛出 RuleScheduledError。
        """
        rule = self.get_rule(rule_id)
        if rule_id in self._tasks:
            raise RuleScheduledError(f"rule {rule_id} is evaluated by its scheduled task")
        return await self._cycle(rule, _as_utc(now))

    async def _cycle(self, rule: BaseRule, now: datetime) -> List[NamedAlert]:
        try:
            await rule.eval(now)
        except QueryExecutionError:
            # 已记录为规则健康异常；保留上一周期的告警，等待下一周期自然重试
            pass

        alerts = await self._notify(rule, now)
        if self.state_store is not None:
            await self.state_store.save(rule.id, rule.active, rule.frequency)
        return alerts

    async def _notify(self, rule: BaseRule, now: datetime) -> List[NamedAlert]:
        """发送需要投递的告警；只有投递成功才记录发送时间，失败或被取消时下一周期重发。"""
        alerts = rule.alerts_to_send(now, self.resend_delay)
        if not alerts:
            return []
        if not await self.notifier.send(alerts):
            logger.warning(f"Notification for rule {rule.id} not delivered, will retry next cycle")
            return []
        rule.mark_sent(alerts, now, self.resend_delay)
        return alerts

    async def _run(self, rule: BaseRule) -> None:
        """单条规则的后台评估循环。"""
        logger.info(f"Rule {rule.id} evaluation started (frequency={encode_duration(rule.frequency)})")
        loop = asyncio.get_running_loop()
        while True:
            started = loop.time()
            try:
                await self._cycle(rule, _utcnow())
            except Exception:
                logger.exception(f"Error evaluating rule {rule.id}")
            elapsed = loop.time() - started
            await asyncio.sleep(max(0.0, rule.frequency.total_seconds() - elapsed))

    def _start(self, rule: BaseRule) -> None:
        if self.schedule and not rule.rule.disabled:
            self._tasks[rule.id] = asyncio.create_task(self._run(rule), name=f"rule-{rule.id}")

    async def _cancel(self, rule_id: str) -> None:
        task = self._tasks.pop(rule_id, None)
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def stop(self) -> None:
        for rule_id in list(self._tasks):
            await self._cancel(rule_id)
        logger.info("Rule engine stopped")

    # ── 测试通知与查询 ──

    async def test_rule(
        self,
        rule: PostableRule,
        rule_id: str = "test",
        now: Optional[datetime] = None,
    ) -> List[NamedAlert]:
        """对规则做一次临时评估并立即发送触发的告警，告警名带测试后缀，结果不保存。"""
        rule.validate()
        test_def = rule.model_copy(update={
            "alert": rule.alert + TEST_ALERT_POSTFIX,
            "hold_duration": timedelta(0),
            "disabled": False,
        })
        now = _as_utc(now)
        test = self._build(rule_id, test_def, now)
        await test.eval(now)

        alerts = await self._notify(test, now)
        logger.info(f"Test notification for {rule.alert}: {len(alerts)} alert(s)")
        return alerts

    def alerts(self) -> List[NamedAlert]:
        """所有规则当前活动告警的快照。"""
        return [
            NamedAlert(name=rule.name, alert=a.copy())
            for rule in self.rules.values()
            for a in rule.active.values()
        ]
