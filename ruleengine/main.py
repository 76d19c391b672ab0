"""
规则引擎入口模块 (Rule Engine Entry Module)

按全局配置组装规则引擎：初始化日志、查询适配器、通知器以及可选的 Redis 告警状态存储，
并负责关闭时取消所有评估任务、释放 Redis 连接。

Assembles the rule engine from the global settings (logging, query adapters,
notifier and the optional Redis alert state store) and tears it down again.
"""
import logging

from ruleengine.core.config import settings
from ruleengine.core.logging import setup_logging
from ruleengine.core.redis import close_redis, get_redis
from ruleengine.services.alert_state import AlertStateStore
from ruleengine.services.notifier import AlertmanagerNotifier
from ruleengine.services.querier import HTTPQuerier, PrometheusQuerier
from ruleengine.tasks.rule_engine import RuleEngine

logger = logging.getLogger(__name__)


async def create_rule_engine(schedule: bool = True) -> RuleEngine:
    """根据 settings 创建规则引擎实例。"""
    setup_logging(settings.log_level)

    state_store = None
    if settings.state_store_enabled:
        state_store = AlertStateStore(await get_redis())

    engine = RuleEngine(
        querier=HTTPQuerier(settings.query_service_url),
        prom_querier=PrometheusQuerier(settings.prometheus_url),
        notifier=AlertmanagerNotifier(settings.alertmanager_url),
        state_store=state_store,
        resend_delay=settings.resend_delay,
        query_timeout=settings.query_timeout_seconds,
        schedule=schedule,
    )
    logger.info(
        "Rule engine created (query_service=%s, alertmanager=%s, state_store=%s)",
        settings.query_service_url, settings.alertmanager_url, settings.state_store_enabled,
    )
    return engine


async def shutdown_rule_engine(engine: RuleEngine) -> None:
    """取消所有评估任务并关闭 Redis 连接。"""
    await engine.stop()
    await close_redis()
