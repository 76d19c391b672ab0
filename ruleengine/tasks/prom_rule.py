"""PromQL 规则：表达式自带过滤逻辑，未配置阈值时返回的每个序列都视为满足条件。"""
import logging
from datetime import datetime
from typing import Dict, List

from ruleengine.models.series import Series
from ruleengine.tasks.base_rule import BaseRule, CycleOutcome

logger = logging.getLogger(__name__)


class PromRule(BaseRule):
    def select_query(self, results: Dict[str, List[Series]]) -> str:
        """显式选择的子查询优先，否则取名称字典序最大的结果。"""
        selected = self.condition.selected_query
        if selected and selected in results:
            return selected
        if not results:
            return ""
        return sorted(results)[-1]

    async def collect(self, now: datetime) -> CycleOutcome:
        results = await self.query(now - self.eval_window, now)

        query_name = self.select_query(results)
        series_list = results.get(query_name, [])
        logger.debug(f"Rule {self.id}: promql {query_name} returned {len(series_list)} series")

        outcome = CycleOutcome()
        for series in series_list:
            self.evaluate_series(series, outcome)
        return outcome
