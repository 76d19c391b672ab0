"""
日志配置模块。

统一配置规则引擎进程的日志格式与级别，各模块通过 logging.getLogger(__name__) 获取记录器。
"""
import logging

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level: str = "INFO") -> None:
    """按给定级别初始化根日志记录器，未知级别回退到 INFO。"""
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=numeric_level, format=LOG_FORMAT)
    # httpx 在 INFO 级别会记录每个请求，评估周期内过于嘈杂
    logging.getLogger("httpx").setLevel(max(numeric_level, logging.WARNING))
