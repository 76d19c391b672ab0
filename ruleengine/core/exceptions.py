"""
规则引擎异常模块 (Rule Engine Exception Module)

定义规则校验、时长解码、查询执行等场景的业务异常类。
校验类异常同时继承 ValueError，便于在 Pydantic 校验器中直接抛出并被转换为 ValidationError。

Defines business exception classes for rule validation, duration decoding and
query execution. Validation exceptions also subclass ValueError so they can be
raised from Pydantic validators and surface as ValidationError.
"""
from typing import Optional


# ============================================================
# 业务异常基类 (Base Exception Classes)
# ============================================================

class RuleEngineError(Exception):
    """规则引擎异常基类 (Base Rule Engine Exception)"""
    error: str = "rule_engine_error"

    def __init__(self, message: str, detail: Optional[str] = None):
        self.message = message
        self.detail = detail
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": self.error, "message": self.message, "detail": self.detail}


class RuleValidationError(RuleEngineError, ValueError):
    """规则定义校验失败，阻止保存 (Rule definition rejected at create/update time)"""
    error = "validation_error"


# ============================================================
# 规则条件校验异常 (Rule Condition Validation Errors)
# ============================================================

class CompositeQueryRequiredError(RuleValidationError):
    error = "composite_query_required"

    def __init__(self, detail: Optional[str] = None):
        super().__init__("composite query is required", detail)


class TargetRequiredError(RuleValidationError):
    error = "target_required"

    def __init__(self, detail: Optional[str] = None):
        super().__init__("target is required for query builder rules", detail)


class CompareOpRequiredError(RuleValidationError):
    error = "compare_op_required"

    def __init__(self, detail: Optional[str] = None):
        super().__init__("compare op is required for query builder rules", detail)


class MatchTypeRequiredError(RuleValidationError):
    error = "match_type_required"

    def __init__(self, detail: Optional[str] = None):
        super().__init__("match type is required for query builder rules", detail)


class InvalidCompareOpError(RuleValidationError):
    error = "invalid_compare_op"


class InvalidMatchTypeError(RuleValidationError):
    error = "invalid_match_type"


class InvalidCompositeQueryError(RuleValidationError):
    error = "invalid_composite_query"


class InvalidDurationError(RuleValidationError):
    error = "invalid_duration"

    def __init__(self, detail: Optional[str] = None):
        super().__init__("invalid duration", detail)


class UnsupportedRuleError(RuleValidationError):
    """规则类型、算法或季节性参数不受支持 (Unsupported rule type / algorithm / seasonality)"""
    error = "unsupported_rule"


# ============================================================
# 运行期异常 (Runtime Errors)
# ============================================================

class QueryExecutionError(RuleEngineError):
    """遥测查询执行失败：网络错误、非 2xx 响应或返回体格式错误"""
    error = "query_execution_error"


class RuleNotFoundError(RuleEngineError):
    error = "rule_not_found"


class RuleScheduledError(RuleEngineError):
    """规则已由后台循环调度，不能再手动驱动评估周期"""
    error = "rule_scheduled"
