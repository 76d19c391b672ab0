"""告警规则评估与通知分发引擎。"""

__version__ = "0.1.0"
