"""
规则引擎配置模块 (Rule Engine Configuration Module)

使用 Pydantic Settings 管理规则引擎的所有配置项，支持从 .env 文件和环境变量读取。
提供查询服务、Prometheus、Alertmanager、Redis 连接以及评估周期等配置。

Uses Pydantic Settings to manage all configuration items for the rule engine,
supporting reading from .env files and environment variables. Covers the query
service, Prometheus, Alertmanager and Redis endpoints and evaluation cadence.
"""
from datetime import timedelta

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    规则引擎全局配置类 (Rule Engine Global Configuration Class)

    字段名自动映射同名环境变量（不区分大小写），支持 .env 文件加载。

    Field names automatically map to same-named environment variables
    (case insensitive), supporting .env file loading.
    """

    # 查询服务配置 (Query Collaborator Configuration)
    query_service_url: str = "http://localhost:8080"  # 查询服务地址 (Query Service URL)
    prometheus_url: str = "http://localhost:9090"  # PromQL 查询地址 (Prometheus URL)
    query_timeout_seconds: float = 30.0  # 单次查询超时（秒） (Per-query timeout in seconds)

    # 通知配置 (Notification Configuration)
    alertmanager_url: str = "http://localhost:9093"  # 告警接收方地址 (Alertmanager URL)
    notify_timeout_seconds: float = 10.0  # 通知发送超时（秒） (Notification send timeout)
    resend_delay_seconds: int = 60  # 持续告警的重发间隔（秒） (Resend delay for firing alerts)

    # Redis 配置 (Redis Configuration)
    redis_host: str = "localhost"  # Redis 主机地址 (Redis Host)
    redis_port: int = 6379  # Redis 端口号 (Redis Port)
    redis_timeout_seconds: float = 2.0  # 连接与读写超时（秒） (Connect / socket timeout)
    state_store_enabled: bool = True  # 是否持久化告警状态快照 (Persist alert state snapshots)

    # 日志配置 (Logging Configuration)
    log_level: str = "INFO"  # 日志级别 (Log Level)

    @property
    def redis_url(self) -> str:
        """构造 Redis 连接 URL，默认连接数据库 0 (Build Redis connection URL, database 0)"""
        return f"redis://{self.redis_host}:{self.redis_port}/0"

    @property
    def resend_delay(self) -> timedelta:
        return timedelta(seconds=self.resend_delay_seconds)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}  # Pydantic 配置：自动加载 .env 文件 (Auto-load .env file)


# 全局配置实例 (Global Configuration Instance)
settings = Settings()
