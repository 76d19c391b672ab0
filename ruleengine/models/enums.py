"""
枚举定义模块 (Enumerations Module)

规则引擎使用的封闭取值集合。CompareOp / MatchType 的取值为单个数字字符串，
这是已持久化规则的序列化格式，必须保持逐字节稳定；描述文本同样是对外稳定的展示形式。

Closed value sets used by the rule engine. CompareOp / MatchType values are the
single-digit codes stored with existing rules and must stay byte-stable, and so
must their description strings.
"""
from enum import Enum

from ruleengine.core.exceptions import InvalidCompareOpError, InvalidMatchTypeError


class CompareOp(str, Enum):
    NONE = "0"
    ABOVE = "1"
    BELOW = "2"
    EQUAL = "3"
    NOT_EQUAL = "4"
    ABOVE_OR_EQUAL = "5"
    BELOW_OR_EQUAL = "6"
    OUTSIDE_BOUNDS = "7"

    def __str__(self) -> str:
        return _COMPARE_OP_DESCRIPTIONS[self]

    @classmethod
    def supported(cls) -> list["CompareOp"]:
        """规则可用的比较运算符（不含 NONE）"""
        return [op for op in cls if op is not cls.NONE]

    @classmethod
    def describe_supported(cls) -> str:
        return ", ".join(str(op) for op in cls.supported())

    @classmethod
    def parse(cls, code) -> "CompareOp":
        """将持久化编码转换为枚举成员，未知编码抛出 InvalidCompareOpError。"""
        if isinstance(code, cls):
            return code
        try:
            return cls(code)
        except ValueError:
            raise _invalid_compare_op(code) from None

    def validate(self) -> None:
        if self is CompareOp.NONE:
            raise _invalid_compare_op(self.value)


class MatchType(str, Enum):
    NONE = "0"
    AT_LEAST_ONCE = "1"
    ALL_THE_TIMES = "2"
    ON_AVERAGE = "3"
    IN_TOTAL = "4"
    LAST = "5"

    def __str__(self) -> str:
        return _MATCH_TYPE_DESCRIPTIONS[self]

    @classmethod
    def supported(cls) -> list["MatchType"]:
        return [mt for mt in cls if mt is not cls.NONE]

    @classmethod
    def describe_supported(cls) -> str:
        return ", ".join(str(mt) for mt in cls.supported())

    @classmethod
    def parse(cls, code) -> "MatchType":
        if isinstance(code, cls):
            return code
        try:
            return cls(code)
        except ValueError:
            raise _invalid_match_type(code) from None

    def validate(self) -> None:
        if self is MatchType.NONE:
            raise _invalid_match_type(self.value)


_COMPARE_OP_DESCRIPTIONS = {
    CompareOp.NONE: "None: Enum value 0",
    CompareOp.ABOVE: "ValueIsAbove: Enum value 1",
    CompareOp.BELOW: "ValueIsBelow: Enum value 2",
    CompareOp.EQUAL: "ValueIsEq: Enum value 3",
    CompareOp.NOT_EQUAL: "ValueIsNotEq: Enum value 4",
    CompareOp.ABOVE_OR_EQUAL: "ValueAboveOrEq: Enum value 5",
    CompareOp.BELOW_OR_EQUAL: "ValueBelowOrEq: Enum value 6",
    CompareOp.OUTSIDE_BOUNDS: "ValueOutsideBounds: Enum value 7",
}

_MATCH_TYPE_DESCRIPTIONS = {
    MatchType.NONE: "None: Enum value 0",
    MatchType.AT_LEAST_ONCE: "AtleastOnce: Enum value 1",
    MatchType.ALL_THE_TIMES: "AllTheTimes: Enum value 2",
    MatchType.ON_AVERAGE: "OnAverage: Enum value 3",
    MatchType.IN_TOTAL: "InTotal: Enum value 4",
    MatchType.LAST: "Last: Enum value 5",
}


def _invalid_compare_op(code) -> InvalidCompareOpError:
    return InvalidCompareOpError(
        f"invalid compare op: {code} supported ops are {CompareOp.describe_supported()}"
    )


def _invalid_match_type(code) -> InvalidMatchTypeError:
    return InvalidMatchTypeError(
        f"invalid match type: {code} supported ops are {MatchType.describe_supported()}"
    )


class RuleType(str, Enum):
    THRESHOLD = "threshold_rule"
    PROM = "promql_rule"
    ANOMALY = "anomaly_rule"


class RuleHealth(str, Enum):
    UNKNOWN = "unknown"
    GOOD = "ok"
    BAD = "err"


class AlertState(str, Enum):
    INACTIVE = "inactive"
    PENDING = "pending"
    FIRING = "firing"
    RESOLVED = "resolved"


class QueryType(str, Enum):
    BUILDER = "builder"
    CLICKHOUSE_SQL = "clickhouse_sql"
    PROMQL = "promql"
    UNKNOWN = "unknown"


class Seasonality(str, Enum):
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
