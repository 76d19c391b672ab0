"""
遥测查询适配模块 (Telemetry Query Adapters)

规则引擎不直接执行查询，而是通过查询服务获取带标签的时间序列：
- HTTPQuerier：调用查询服务的 /api/v3/query_range，支持构建器查询和 ClickHouse SQL 查询
- PrometheusQuerier：调用 Prometheus 兼容的 /api/v1/query_range，执行 PromQL 查询

网络错误、非 2xx 响应或返回体格式错误统一抛出 QueryExecutionError，由评估周期记录为规则健康异常。

The engine never runs queries itself; these adapters fetch labeled series from
the query collaborator. Every failure surfaces as QueryExecutionError.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Protocol

import httpx

from ruleengine.core.config import settings
from ruleengine.core.exceptions import QueryExecutionError
from ruleengine.models.labels import Labels
from ruleengine.models.series import Point, Series
from ruleengine.schemas.query import CompositeQuery

logger = logging.getLogger(__name__)


class Querier(Protocol):
    async def query_range(
        self,
        query: CompositeQuery,
        start: datetime,
        end: datetime,
        step: timedelta,
    ) -> Dict[str, List[Series]]:
        """返回 子查询名 → 序列列表。"""
        ...


def _to_millis(ts: datetime) -> int:
    return int(ts.timestamp() * 1000)


def _from_millis(ms) -> datetime:
    return datetime.fromtimestamp(float(ms) / 1000, tz=timezone.utc)


class _HTTPAdapter:
    """查询适配器公共部分：构造 httpx 客户端并统一错误转换。"""

    def __init__(
        self,
        base_url: str,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout if timeout is not None else settings.query_timeout_seconds
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self._transport)

    async def _request(self, method: str, path: str, **kwargs) -> dict:
        try:
            async with self._client() as client:
                resp = await client.request(method, path, **kwargs)
                resp.raise_for_status()
                return resp.json()
        except httpx.HTTPStatusError as e:
            raise QueryExecutionError(
                f"query failed with status {e.response.status_code}",
                detail=e.response.text[:500],
            ) from e
        except httpx.HTTPError as e:
            raise QueryExecutionError(f"query request failed: {e}") from e
        except ValueError as e:
            raise QueryExecutionError("query response is not valid JSON") from e


class HTTPQuerier(_HTTPAdapter):
    """查询服务适配器（构建器 / ClickHouse SQL 查询）"""

    def __init__(self, base_url: Optional[str] = None, **kwargs):
        super().__init__(base_url or settings.query_service_url, **kwargs)

    async def query_range(
        self,
        query: CompositeQuery,
        start: datetime,
        end: datetime,
        step: timedelta,
    ) -> Dict[str, List[Series]]:
        payload = {
            "start": _to_millis(start),
            "end": _to_millis(end),
            "step": int(step.total_seconds()),
            "compositeQuery": query.model_dump(by_alias=True, mode="json"),
        }
        body = await self._request("POST", "/api/v3/query_range", json=payload)
        try:
            return self._parse(body)
        except (KeyError, TypeError, ValueError) as e:
            raise QueryExecutionError("malformed query_range response", detail=str(e)) from e

    @staticmethod
    def _parse(body: dict) -> Dict[str, List[Series]]:
        results: Dict[str, List[Series]] = {}
        for item in body["data"]["result"] or []:
            series_list = []
            for raw in item.get("series") or []:
                points = [
                    Point(timestamp=_from_millis(v["timestamp"]), value=float(v["value"]))
                    for v in raw.get("values") or []
                ]
                series_list.append(Series(labels=Labels(raw.get("labels")), points=points))
            results[item["queryName"]] = series_list
        return results


class PrometheusQuerier(_HTTPAdapter):
    """Prometheus 兼容查询适配器，逐个执行组合查询中启用的 PromQL 子查询。"""

    def __init__(self, base_url: Optional[str] = None, **kwargs):
        super().__init__(base_url or settings.prometheus_url, **kwargs)

    async def query_range(
        self,
        query: CompositeQuery,
        start: datetime,
        end: datetime,
        step: timedelta,
    ) -> Dict[str, List[Series]]:
        results: Dict[str, List[Series]] = {}
        for name, prom_query in query.prom_queries.items():
            if prom_query.disabled:
                continue
            params = {
                "query": prom_query.query,
                "start": start.timestamp(),
                "end": end.timestamp(),
                "step": max(step.total_seconds(), 1),
            }
            body = await self._request("GET", "/api/v1/query_range", params=params)
            if body.get("status") != "success":
                raise QueryExecutionError(
                    f"promql query {name} failed",
                    detail=body.get("error") or body.get("errorType"),
                )
            try:
                results[name] = self._parse(body)
            except (KeyError, TypeError, ValueError) as e:
                raise QueryExecutionError("malformed prometheus response", detail=str(e)) from e
        return results

    @staticmethod
    def _parse(body: dict) -> List[Series]:
        data = body["data"]
        if data.get("resultType") != "matrix":
            raise ValueError(f"unexpected result type {data.get('resultType')}")
        series_list = []
        for raw in data["result"] or []:
            points = [
                Point(timestamp=datetime.fromtimestamp(float(ts), tz=timezone.utc), value=float(v))
                for ts, v in raw.get("values") or []
            ]
            series_list.append(Series(labels=Labels(raw.get("metric")), points=points))
        return series_list
