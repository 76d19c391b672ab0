"""按规则类型选择评估策略。"""
from datetime import datetime
from typing import Optional

from ruleengine.core.exceptions import UnsupportedRuleError
from ruleengine.models.enums import RuleType
from ruleengine.schemas.rule import PostableRule
from ruleengine.services.querier import Querier
from ruleengine.tasks.anomaly_rule import AnomalyRule
from ruleengine.tasks.base_rule import BaseRule
from ruleengine.tasks.prom_rule import PromRule
from ruleengine.tasks.threshold_rule import ThresholdRule

RULE_CLASSES = {
    RuleType.THRESHOLD: ThresholdRule,
    RuleType.PROM: PromRule,
    RuleType.ANOMALY: AnomalyRule,
}


def build_rule(
    rule_id: str,
    rule: PostableRule,
    querier: Querier,
    prom_querier: Querier,
    query_timeout: Optional[float] = None,
    now: Optional[datetime] = None,
) -> BaseRule:
    """校验规则定义并构造对应的规则对象；PromQL 规则使用 Prometheus 查询适配器。"""
    rule.validate()
    rule_type = rule.resolved_rule_type()
    cls = RULE_CLASSES.get(rule_type)
    if cls is None:
        raise UnsupportedRuleError(f"unsupported rule type: {rule_type}")
    source = prom_querier if rule_type == RuleType.PROM else querier
    return cls(rule_id, rule, source, query_timeout=query_timeout, now=now)
