"""
组合查询模型 (Composite Query Schemas)

组合查询由多个具名子查询（及其公式）构成。规则引擎只关心查询类型标签与子查询名称，
其余字段原样保留并透传给查询服务。

A composite query holds several named sub-queries (and formulae over them).
The engine only needs the query type tag and the sub-query names; every other
field is kept as-is and passed through to the query service.
"""
from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field

from ruleengine.core.exceptions import InvalidCompositeQueryError
from ruleengine.models.enums import QueryType


class BuilderQuery(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    query_name: str = Field("", alias="queryName")
    data_source: str = Field("", alias="dataSource")
    aggregate_operator: str = Field("", alias="aggregateOperator")
    expression: str = ""
    disabled: bool = False
    step_interval: int = Field(0, alias="stepInterval")


class ClickHouseQuery(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    query: str = ""
    disabled: bool = False
    legend: str = ""


class PromQuery(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    query: str = ""
    disabled: bool = False
    legend: str = ""
    stats: str = ""


class CompositeQuery(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    query_type: QueryType = Field(QueryType.UNKNOWN, alias="queryType")
    panel_type: str = Field("graph", alias="panelType")
    unit: str = ""
    builder_queries: Dict[str, BuilderQuery] = Field(default_factory=dict, alias="builderQueries")
    ch_queries: Dict[str, ClickHouseQuery] = Field(default_factory=dict, alias="chQueries")
    prom_queries: Dict[str, PromQuery] = Field(default_factory=dict, alias="promQueries")

    def query_names(self, query_type: QueryType | None = None) -> List[str]:
        """返回指定类型（默认为本查询类型）下的子查询名称。"""
        qt = query_type or self.query_type
        if qt == QueryType.BUILDER:
            return list(self.builder_queries)
        if qt == QueryType.CLICKHOUSE_SQL:
            return list(self.ch_queries)
        if qt == QueryType.PROMQL:
            return list(self.prom_queries)
        return []

    def validate(self) -> None:
        if self.query_type == QueryType.BUILDER:
            if not self.builder_queries:
                raise InvalidCompositeQueryError("composite query has no builder queries")
            for name, query in self.builder_queries.items():
                if not query.expression:
                    raise InvalidCompositeQueryError(f"builder query {name} has no expression")
        elif self.query_type == QueryType.CLICKHOUSE_SQL:
            if not self.ch_queries:
                raise InvalidCompositeQueryError("composite query has no clickhouse queries")
            for name, query in self.ch_queries.items():
                if not query.query:
                    raise InvalidCompositeQueryError(f"clickhouse query {name} is empty")
        elif self.query_type == QueryType.PROMQL:
            if not self.prom_queries:
                raise InvalidCompositeQueryError("composite query has no promql queries")
            for name, query in self.prom_queries.items():
                if not query.query:
                    raise InvalidCompositeQueryError(f"promql query {name} is empty")
        else:
            raise InvalidCompositeQueryError(f"unknown query type: {self.query_type.value}")
