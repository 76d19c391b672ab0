"""
数据模型包 (Data Models Package)

集中导出规则引擎的领域模型：枚举、标签集合、查询结果序列与告警实体。

Centrally exports the rule engine's domain models: enumerations, label sets,
query result series and the alert entity.
"""
from ruleengine.models.enums import (
    AlertState,
    CompareOp,
    MatchType,
    QueryType,
    RuleHealth,
    RuleType,
    Seasonality,
)
from ruleengine.models.labels import Labels
from ruleengine.models.series import Point, Series
from ruleengine.models.alert import Alert, NamedAlert, RESOLVED_RETENTION, TEST_ALERT_POSTFIX

__all__ = [
    "Alert",
    "AlertState",
    "CompareOp",
    "Labels",
    "MatchType",
    "NamedAlert",
    "Point",
    "QueryType",
    "RESOLVED_RETENTION",
    "RuleHealth",
    "RuleType",
    "Seasonality",
    "Series",
    "TEST_ALERT_POSTFIX",
]
