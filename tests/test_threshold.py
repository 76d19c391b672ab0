"""
阈值归约与比较测试
"""
import math
from datetime import timedelta

import pytest

from ruleengine.models.enums import CompareOp, MatchType
from ruleengine.models.labels import Labels
from ruleengine.models.series import Point, Series
from ruleengine.schemas.rule import RuleCondition
from ruleengine.services.threshold import compare, has_enough_points, should_alert
from tests.conftest import T0


def pts(*values):
    return [Point(timestamp=T0 + timedelta(minutes=i), value=v) for i, v in enumerate(values)]


class TestCompare:
    @pytest.mark.parametrize("op,value,expected", [
        (CompareOp.ABOVE, 11, True),
        (CompareOp.ABOVE, 10, False),
        (CompareOp.BELOW, 9, True),
        (CompareOp.EQUAL, 10, True),
        (CompareOp.NOT_EQUAL, 10, False),
        (CompareOp.ABOVE_OR_EQUAL, 10, True),
        (CompareOp.BELOW_OR_EQUAL, 10.5, False),
        (CompareOp.OUTSIDE_BOUNDS, -15, True),
        (CompareOp.OUTSIDE_BOUNDS, 5, False),
        (CompareOp.NONE, 100, False),
    ])
    def test_operators(self, op, value, expected):
        assert compare(op, value, 10) is expected


class TestShouldAlert:
    def test_at_least_once(self):
        assert should_alert(pts(1, 12, 3), CompareOp.ABOVE, MatchType.AT_LEAST_ONCE, 10) == (True, 12)
        ok, _ = should_alert(pts(1, 2, 3), CompareOp.ABOVE, MatchType.AT_LEAST_ONCE, 10)
        assert ok is False

    def test_all_the_times_above_reports_minimum(self):
        assert should_alert(pts(15, 11, 12), CompareOp.ABOVE, MatchType.ALL_THE_TIMES, 10) == (True, 11)

    def test_all_the_times_below_reports_maximum(self):
        assert should_alert(pts(1, 5, 3), CompareOp.BELOW, MatchType.ALL_THE_TIMES, 10) == (True, 5)

    def test_all_the_times_breaks_on_one_point(self):
        ok, _ = should_alert(pts(11, 9, 12), CompareOp.ABOVE, MatchType.ALL_THE_TIMES, 10)
        assert ok is False

    def test_on_average(self):
        assert should_alert(pts(5, 20), CompareOp.ABOVE, MatchType.ON_AVERAGE, 10) == (True, 12.5)

    def test_in_total(self):
        assert should_alert(pts(4, 4, 4), CompareOp.ABOVE, MatchType.IN_TOTAL, 10) == (True, 12)

    def test_last(self):
        assert should_alert(pts(20, 5), CompareOp.BELOW, MatchType.LAST, 10) == (True, 5)
        assert should_alert(pts(5, 20), CompareOp.BELOW, MatchType.LAST, 10) == (False, 20)

    def test_outside_bounds_last(self):
        assert should_alert(pts(0, -15), CompareOp.OUTSIDE_BOUNDS, MatchType.LAST, 10) == (True, -15)


class TestMinPoints:
    def _condition(self, require, n):
        return RuleCondition(require_min_points=require, required_num_points=n)

    def test_empty_never_enough(self):
        assert has_enough_points([], self._condition(False, 0)) is False

    def test_threshold(self):
        assert has_enough_points(pts(1, 2), self._condition(True, 3)) is False
        assert has_enough_points(pts(1, 2, 3), self._condition(True, 3)) is True
        assert has_enough_points(pts(1), self._condition(False, 3)) is True


class TestSeriesSamples:
    def test_sorted_without_nan(self):
        points = [
            Point(T0 + timedelta(minutes=2), 3.0),
            Point(T0, 1.0),
            Point(T0 + timedelta(minutes=1), math.nan),
        ]
        series = Series(labels=Labels({"host": "a"}), points=points)
        assert [p.value for p in series.samples()] == [1.0, 3.0]
