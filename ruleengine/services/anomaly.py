"""
异常评分服务 (Anomaly Scoring Service)

为异常检测规则计算期望区间：取同一查询在前若干个季节周期（小时/天/周）同一时间窗的数据，
以均值和总体标准差构成期望区间；当前采样点的异常分数为偏离均值的标准差倍数。
随后分数与规则阈值（即允许的标准差倍数）按 CompareOp / MatchType 比较。

Computes the expected band of an anomaly rule from the same query over the
previous seasons, and scores current samples as standard deviations away from
the seasonal mean. Scores are then compared against the rule target.
"""
import math
import statistics
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Tuple

from ruleengine.models.enums import Seasonality
from ruleengine.models.series import Point

SEASON_LENGTHS = {
    Seasonality.HOURLY: timedelta(hours=1),
    Seasonality.DAILY: timedelta(days=1),
    Seasonality.WEEKLY: timedelta(days=7),
}

# 参与建模的历史季节数
HISTORY_SEASONS = 3


@dataclass(frozen=True)
class ExpectedBand:
    mean: float
    std: float

    def score(self, value: float) -> float:
        if self.std == 0:
            if value == self.mean:
                return 0.0
            return math.copysign(math.inf, value - self.mean)
        return (value - self.mean) / self.std


def history_windows(
    start: datetime,
    end: datetime,
    seasonality: Seasonality,
    seasons: int = HISTORY_SEASONS,
) -> List[Tuple[datetime, datetime]]:
    """返回前 seasons 个季节中与 [start, end] 对应的时间窗，由近及远。"""
    season = SEASON_LENGTHS[seasonality]
    return [(start - season * k, end - season * k) for k in range(1, seasons + 1)]


def expected_band(history: Sequence[Point]) -> Optional[ExpectedBand]:
    values = [p.value for p in history if not math.isnan(p.value)]
    if not values:
        return None
    return ExpectedBand(mean=statistics.fmean(values), std=statistics.pstdev(values))


def score_points(points: Sequence[Point], band: ExpectedBand) -> List[Point]:
    return [Point(timestamp=p.timestamp, value=band.score(p.value)) for p in points]
