"""
核心模块包 (Core Module Package)

规则引擎的基础组件：配置管理、日志、异常定义与 Redis 连接。

Foundational components of the rule engine: configuration, logging,
exception definitions and the Redis connection.
"""
