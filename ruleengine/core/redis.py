"""
Redis 连接模块

告警状态快照存储使用的 Redis 客户端。进程内共享一个连接池，首次使用时按配置创建，
引擎关闭时释放。连接与读写超时由 redis_timeout_seconds 控制，避免 Redis 故障拖住评估周期。
"""
import logging

import redis.asyncio as redis

from ruleengine.core.config import settings

logger = logging.getLogger(__name__)

# 进程内共享的 Redis 客户端
_client: redis.Redis | None = None


async def get_redis() -> redis.Redis:
    """返回共享客户端，首次调用时创建。"""
    global _client
    if _client is None:
        _client = redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_connect_timeout=settings.redis_timeout_seconds,
            socket_timeout=settings.redis_timeout_seconds,
        )
        logger.info(f"Redis client created for {settings.redis_host}:{settings.redis_port}")
    return _client


async def close_redis() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
