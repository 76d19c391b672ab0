"""
异常检测规则。

对选中子查询的每个序列，用前几个季节同一时间窗的数据建立期望区间，
把当前采样点换算为异常分数后，再以规则阈值（允许的标准差倍数）按 CompareOp / MatchType 比较。
没有历史数据的序列本周期跳过。
"""
import asyncio
import logging
from datetime import datetime
from typing import Dict, List

from ruleengine.models.enums import Seasonality
from ruleengine.models.labels import Labels
from ruleengine.models.series import Point
from ruleengine.services.anomaly import expected_band, history_windows, score_points
from ruleengine.services.threshold import has_enough_points, should_alert
from ruleengine.tasks.base_rule import BaseRule, CycleOutcome, Observation

logger = logging.getLogger(__name__)


class AnomalyRule(BaseRule):
    @property
    def seasonality(self) -> Seasonality:
        return Seasonality(self.condition.seasonality)

    async def collect(self, now: datetime) -> CycleOutcome:
        start = now - self.eval_window
        query_name = self.condition.get_selected_query_name()

        windows = history_windows(start, now, self.seasonality)
        current, *past = await asyncio.gather(
            self.query(start, now),
            *(self.query(ws, we) for ws, we in windows),
        )

        history: Dict[Labels, List[Point]] = {}
        for results in past:
            for series in results.get(query_name, []):
                history.setdefault(series.labels, []).extend(series.samples())

        outcome = CycleOutcome()
        for series in current.get(query_name, []):
            samples = series.samples()
            if samples:
                outcome.saw_data = True
            if not has_enough_points(samples, self.condition):
                outcome.held.append(series.labels)
                continue

            band = expected_band(history.get(series.labels, []))
            if band is None:
                logger.debug(f"Rule {self.id}: no seasonal history for {series.labels}, skipping")
                outcome.held.append(series.labels)
                continue

            scores = score_points(samples, band)
            ok, score = should_alert(
                scores, self.condition.compare_op, self.condition.match_type, self.condition.target
            )
            if ok:
                outcome.observations.append(Observation(labels=series.labels, value=score))
        return outcome
