"""
时长编解码测试
"""
from datetime import timedelta

import pytest
from pydantic import ValidationError

from ruleengine.core.exceptions import InvalidDurationError
from ruleengine.schemas.duration import decode_duration, encode_duration, parse_duration
from ruleengine.schemas.rule import PostableRule


class TestEncode:
    @pytest.mark.parametrize("value,expected", [
        (timedelta(seconds=90), "1m30s"),
        (timedelta(minutes=5), "5m0s"),
        (timedelta(hours=1), "1h0m0s"),
        (timedelta(hours=26, minutes=3), "26h3m0s"),
        (timedelta(seconds=1, milliseconds=500), "1.5s"),
        (timedelta(milliseconds=500), "500ms"),
        (timedelta(microseconds=1500), "1.5ms"),
        (timedelta(microseconds=7), "7µs"),
        (timedelta(0), "0s"),
        (timedelta(seconds=-90), "-1m30s"),
    ])
    def test_human_form(self, value, expected):
        assert encode_duration(value) == expected


class TestDecode:
    def test_string_round_trip(self):
        assert decode_duration(encode_duration(timedelta(seconds=90))) == timedelta(seconds=90)

    def test_number_is_nanoseconds(self):
        assert decode_duration(90_000_000_000) == timedelta(seconds=90)
        assert decode_duration(1.5e9) == timedelta(seconds=1, milliseconds=500)

    @pytest.mark.parametrize("text,expected", [
        ("1h30m", timedelta(minutes=90)),
        ("1.5h", timedelta(minutes=90)),
        ("300ms", timedelta(milliseconds=300)),
        ("2us", timedelta(microseconds=2)),
        ("-5m", timedelta(minutes=-5)),
        ("0", timedelta(0)),
    ])
    def test_parse(self, text, expected):
        assert parse_duration(text) == expected

    @pytest.mark.parametrize("value", ["notaduration", "", "5", "1d", "m", "1h-30m"])
    def test_bad_strings_fail(self, value):
        with pytest.raises(InvalidDurationError):
            decode_duration(value)

    @pytest.mark.parametrize("value", [True, None, [1], {"s": 1}, float("nan"), float("inf")])
    def test_other_shapes_fail(self, value):
        with pytest.raises(InvalidDurationError):
            decode_duration(value)

    def test_timedelta_passthrough(self):
        assert decode_duration(timedelta(minutes=2)) == timedelta(minutes=2)


class TestRuleDurationFields:
    def test_fields_accept_both_forms(self):
        rule = PostableRule.model_validate({"evalWindow": "10m", "frequency": 30_000_000_000, "for": "2m"})
        assert rule.eval_window == timedelta(minutes=10)
        assert rule.frequency == timedelta(seconds=30)
        assert rule.hold_duration == timedelta(minutes=2)

    def test_fields_serialize_as_strings(self):
        rule = PostableRule.model_validate({"evalWindow": 600_000_000_000})
        data = rule.model_dump(by_alias=True, mode="json")
        assert data["evalWindow"] == "10m0s"
        assert data["frequency"] == "1m0s"
        assert data["for"] == "0s"

    def test_invalid_duration_rejected(self):
        with pytest.raises(ValidationError) as exc:
            PostableRule.model_validate({"evalWindow": "soon"})
        assert "invalid duration" in str(exc.value)
