"""
告警规则模型 (Alert Rule Schemas)

RuleCondition 描述规则的评估条件：组合查询、阈值、比较运算符、匹配方式、
数据缺失告警参数、异常检测参数以及选中的子查询；PostableRule 是外部 CRUD 层交给引擎的完整规则定义。
JSON 字段名与已持久化的规则保持一致，op / matchType 以单个数字编码序列化。

RuleCondition declares how a rule is evaluated; PostableRule is the
full rule definition handed to the engine by the external CRUD layer. Wire keys
match previously stored rules; op / matchType serialize as digit codes.
"""
from datetime import timedelta
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_serializer

from ruleengine.core.exceptions import (
    CompareOpRequiredError,
    CompositeQueryRequiredError,
    MatchTypeRequiredError,
    RuleValidationError,
    TargetRequiredError,
    UnsupportedRuleError,
)
from ruleengine.models.enums import CompareOp, MatchType, QueryType, RuleType, Seasonality
from ruleengine.schemas.duration import Duration
from ruleengine.schemas.query import CompositeQuery

# 未显式选择子查询时优先使用的公式名
DEFAULT_FORMULA_NAME = "F1"

SUPPORTED_ANOMALY_ALGORITHMS = ("standard",)

_ALWAYS_SERIALIZED = ("compositeQuery", "composite_query")


class RuleCondition(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    composite_query: Optional[CompositeQuery] = Field(None, alias="compositeQuery")
    compare_op: Optional[CompareOp] = Field(None, alias="op")
    target: Optional[float] = None
    alert_on_absent: bool = Field(False, alias="alertOnAbsent")
    # 数据缺失多少分钟后告警 (minutes without data before an absence alert)
    absent_for: int = Field(0, ge=0, alias="absentFor")
    match_type: Optional[MatchType] = Field(None, alias="matchType")
    target_unit: str = Field("", alias="targetUnit")
    algorithm: str = ""
    seasonality: str = ""
    selected_query: str = Field("", alias="selectedQueryName")
    require_min_points: bool = Field(False, alias="requireMinPoints")
    required_num_points: int = Field(0, ge=0, alias="requiredNumPoints")

    @field_validator("compare_op", mode="before")
    @classmethod
    def _parse_compare_op(cls, value):
        if value is None or value == "":
            return None
        return CompareOp.parse(value)

    @field_validator("match_type", mode="before")
    @classmethod
    def _parse_match_type(cls, value):
        if value is None or value == "":
            return None
        return MatchType.parse(value)

    @model_serializer(mode="wrap")
    def _omit_empty(self, handler):
        data = handler(self)
        result = {}
        for key, value in data.items():
            if key in _ALWAYS_SERIALIZED:
                result[key] = value
            elif key == "target":
                # 阈值为 0 也是有效阈值，只有未设置时省略
                if value is not None:
                    result[key] = value
            elif value not in (None, "", 0, False):
                result[key] = value
        return result

    def query_type(self) -> QueryType:
        """返回组合查询的类型标签，未附带查询时返回 UNKNOWN。"""
        if self.composite_query is not None:
            return self.composite_query.query_type
        return QueryType.UNKNOWN

    def get_selected_query_name(self) -> str:
        if self.selected_query:
            return self.selected_query

        query_names = set()
        if self.query_type() in (QueryType.BUILDER, QueryType.CLICKHOUSE_SQL):
            query_names.update(self.composite_query.query_names())

        # 兼容旧规则：未显式选择时，存在 F1 则用 F1，否则取字典序最大的名称。
        # 该逻辑并未考虑子查询是否启用，只为兼容历史规则而保留。
        if DEFAULT_FORMULA_NAME in query_names:
            return DEFAULT_FORMULA_NAME
        if not query_names:
            return ""
        return sorted(query_names)[-1]

    def validate(self) -> None:
        if self.composite_query is None:
            raise CompositeQueryRequiredError()

        # 自由查询（PromQL / SQL）自带阈值逻辑，只有构建器查询要求以下三项
        if self.query_type() == QueryType.BUILDER:
            if self.target is None:
                raise TargetRequiredError()
            if self.compare_op is None:
                raise CompareOpRequiredError()
            self.compare_op.validate()
            if self.match_type is None:
                raise MatchTypeRequiredError()
            self.match_type.validate()

        self.composite_query.validate()

    def has_threshold(self) -> bool:
        return (
            self.target is not None
            and self.compare_op not in (None, CompareOp.NONE)
            and self.match_type not in (None, MatchType.NONE)
        )

    def __str__(self) -> str:
        return self.model_dump_json(by_alias=True)


class PostableRule(BaseModel):
    """外部规则管理层提交给引擎的规则定义。"""
    model_config = ConfigDict(populate_by_name=True)

    alert: str = ""
    alert_type: str = Field("", alias="alertType")
    description: str = ""
    rule_type: Optional[RuleType] = Field(None, alias="ruleType")
    eval_window: Duration = Field(timedelta(minutes=5), alias="evalWindow")
    frequency: Duration = timedelta(minutes=1)
    hold_duration: Duration = Field(timedelta(0), alias="for")
    condition: Optional[RuleCondition] = None
    labels: Dict[str, str] = Field(default_factory=dict)
    annotations: Dict[str, str] = Field(default_factory=dict)
    disabled: bool = False
    source: str = ""
    preferred_channels: List[str] = Field(default_factory=list, alias="preferredChannels")
    version: str = "v4"

    def resolved_rule_type(self) -> RuleType:
        """未指定 ruleType 时按查询类型推断。"""
        if self.rule_type is not None:
            return self.rule_type
        if self.condition is not None and self.condition.query_type() == QueryType.PROMQL:
            return RuleType.PROM
        return RuleType.THRESHOLD

    def validate(self) -> None:
        if not self.alert:
            raise RuleValidationError("rule name is required")
        if self.condition is None:
            raise RuleValidationError("rule condition is required")
        if self.eval_window <= timedelta(0):
            raise RuleValidationError("evalWindow must be positive")
        if self.frequency <= timedelta(0):
            raise RuleValidationError("frequency must be positive")

        self.condition.validate()

        rule_type = self.resolved_rule_type()
        query_type = self.condition.query_type()
        if rule_type == RuleType.PROM and query_type != QueryType.PROMQL:
            raise UnsupportedRuleError(f"{rule_type.value} requires a promql query, got {query_type.value}")
        if rule_type == RuleType.THRESHOLD and query_type == QueryType.PROMQL:
            raise UnsupportedRuleError("promql queries must use promql_rule")
        if rule_type == RuleType.ANOMALY:
            if query_type != QueryType.BUILDER:
                raise UnsupportedRuleError("anomaly_rule requires a builder query")
            algorithm = self.condition.algorithm or SUPPORTED_ANOMALY_ALGORITHMS[0]
            if algorithm not in SUPPORTED_ANOMALY_ALGORITHMS:
                raise UnsupportedRuleError(f"unsupported anomaly algorithm: {algorithm}")
            if self.condition.seasonality not in {s.value for s in Seasonality}:
                raise UnsupportedRuleError(
                    f"unsupported seasonality: {self.condition.seasonality!r}",
                    detail="supported: " + ", ".join(s.value for s in Seasonality),
                )
