"""阈值规则：构建器查询或 ClickHouse SQL 查询，按选中子查询的结果逐序列比较阈值。"""
import logging
from datetime import datetime

from ruleengine.tasks.base_rule import BaseRule, CycleOutcome

logger = logging.getLogger(__name__)


class ThresholdRule(BaseRule):
    async def collect(self, now: datetime) -> CycleOutcome:
        results = await self.query(now - self.eval_window, now)

        query_name = self.condition.get_selected_query_name()
        series_list = results.get(query_name, [])
        logger.debug(f"Rule {self.id}: query {query_name} returned {len(series_list)} series")

        outcome = CycleOutcome()
        for series in series_list:
            self.evaluate_series(series, outcome)
        return outcome
