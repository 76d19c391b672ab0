"""查询结果数据结构：带标签的时间序列及其采样点。"""
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import List

from ruleengine.models.labels import Labels


@dataclass(frozen=True)
class Point:
    timestamp: datetime
    value: float


@dataclass
class Series:
    labels: Labels = field(default_factory=Labels)
    points: List[Point] = field(default_factory=list)

    def samples(self) -> List[Point]:
        """按时间升序返回有效采样点，NaN 值被丢弃。"""
        valid = [p for p in self.points if not math.isnan(p.value)]
        return sorted(valid, key=lambda p: p.timestamp)

