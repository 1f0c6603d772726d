"""
结构化日志配置：structlog
- 开发环境：彩色文本输出
- 生产环境：JSON 输出（便于 Loki/ELK 解析）

核心模块只通过 structlog.get_logger() 打点，是否调用 setup_logging 由宿主进程决定。
"""

import logging
import sys

import structlog

from pdmt.config import get_settings


def setup_logging(env: str | None = None, level: str | None = None) -> None:
    """初始化结构化日志"""
    settings = get_settings()
    env = env or settings.ENV
    log_level = logging.getLevelName((level or settings.LOG_LEVEL).upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    # 共享处理器链
    shared_processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if env == "production":
        shared_processors.append(structlog.processors.JSONRenderer())
    else:
        shared_processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=shared_processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )
