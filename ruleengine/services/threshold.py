"""
阈值比较服务 (Threshold Comparison Service)

将一个标签集合在评估窗口内的采样点按 MatchType 归约，再按 CompareOp 与目标阈值比较。
窗口即查询返回的 [now - evalWindow, now] 区间内的采样点，按时间升序排列，NaN 已剔除。

Reduces a label set's samples over the evaluation window per MatchType and
compares the result against the target per CompareOp.
"""
import operator as op
from typing import List, Sequence, Tuple

from ruleengine.models.enums import CompareOp, MatchType
from ruleengine.models.series import Point
from ruleengine.schemas.rule import RuleCondition

# 比较运算符到关系函数的映射
OPERATORS = {
    CompareOp.ABOVE: op.gt,
    CompareOp.BELOW: op.lt,
    CompareOp.EQUAL: op.eq,
    CompareOp.NOT_EQUAL: op.ne,
    CompareOp.ABOVE_OR_EQUAL: op.ge,
    CompareOp.BELOW_OR_EQUAL: op.le,
    # 超出以 0 为中心、以阈值为半径的区间
    CompareOp.OUTSIDE_BOUNDS: lambda v, t: abs(v) >= t,
}

_ABOVE_OPS = (CompareOp.ABOVE, CompareOp.ABOVE_OR_EQUAL, CompareOp.OUTSIDE_BOUNDS)
_BELOW_OPS = (CompareOp.BELOW, CompareOp.BELOW_OR_EQUAL)


def compare(compare_op: CompareOp, value: float, target: float) -> bool:
    fn = OPERATORS.get(compare_op)
    if fn is None:
        return False
    return fn(value, target)


def has_enough_points(samples: Sequence[Point], condition: RuleCondition) -> bool:
    """最少采样点门限：点数不足时本周期跳过该标签集合（不改变状态，也不视为数据缺失）。"""
    if not samples:
        return False
    if condition.require_min_points and len(samples) < condition.required_num_points:
        return False
    return True


def should_alert(
    samples: List[Point],
    compare_op: CompareOp,
    match_type: MatchType,
    target: float,
) -> Tuple[bool, float]:
    """返回 (是否满足条件, 上报值)。samples 必须非空且按时间升序。"""
    values = [p.value for p in samples]

    if match_type == MatchType.AT_LEAST_ONCE:
        for v in values:
            if compare(compare_op, v, target):
                return True, v
        return False, values[-1]

    if match_type == MatchType.ALL_THE_TIMES:
        ok = all(compare(compare_op, v, target) for v in values)
        if compare_op in _ABOVE_OPS:
            return ok, min(values, key=abs) if compare_op == CompareOp.OUTSIDE_BOUNDS else min(values)
        if compare_op in _BELOW_OPS:
            return ok, max(values)
        return ok, values[-1]

    if match_type == MatchType.ON_AVERAGE:
        avg = sum(values) / len(values)
        return compare(compare_op, avg, target), avg

    if match_type == MatchType.IN_TOTAL:
        total = sum(values)
        return compare(compare_op, total, target), total

    if match_type == MatchType.LAST:
        return compare(compare_op, values[-1], target), values[-1]

    return False, values[-1]
