"""
通知分发服务模块。

将需要发送的告警（NamedAlert）转换为通知载荷并投递给外部告警接收方（Alertmanager 兼容接口）。
本引擎只保证"至少一次"尝试发送：投递失败记录日志后返回 False，重试与退避由接收方负责；
下一个评估周期会按重发节奏再次发送仍在触发中的告警。
"""
import logging
from typing import List, Optional, Protocol

import httpx

from ruleengine.core.config import settings
from ruleengine.models.alert import NamedAlert
from ruleengine.schemas.alert import AlertPayload

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    async def send(self, alerts: List[NamedAlert]) -> bool:
        ...


def build_payload(alerts: List[NamedAlert]) -> list[dict]:
    """将告警列表序列化为接收方所需的 JSON 结构。"""
    return [
        AlertPayload.from_named_alert(a).model_dump(by_alias=True, mode="json")
        for a in alerts
    ]


class AlertmanagerNotifier:
    """通过 HTTP 将告警推送到 Alertmanager 兼容的 /api/v1/alerts 接口。"""

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = (url or settings.alertmanager_url).rstrip("/") + "/api/v1/alerts"
        self.timeout = timeout if timeout is not None else settings.notify_timeout_seconds
        self._transport = transport

    async def send(self, alerts: List[NamedAlert]) -> bool:
        if not alerts:
            return True
        payload = build_payload(alerts)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(url=self.url, json=payload, headers={"Content-Type": "application/json"})
            if resp.status_code >= 400:
                logger.warning(f"Alert notification rejected: status={resp.status_code} body={resp.text[:200]}")
                return False
        except httpx.HTTPError as e:
            logger.warning(f"Alert notification failed: {e}")
            return False
        logger.info(f"Sent {len(alerts)} alert(s) to {self.url}")
        return True


class LogNotifier:
    """仅记录日志的通知器，用于未配置接收方或本地调试。"""

    async def send(self, alerts: List[NamedAlert]) -> bool:
        for a in alerts:
            logger.info(
                "Alert %s [%s] value=%s labels=%s",
                a.name, a.alert.state.value, a.alert.value, a.alert.labels,
            )
        return True
