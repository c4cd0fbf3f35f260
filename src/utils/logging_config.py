"""
Structured Logging Configuration

结构化日志：structlog 负责事件字典，stdlib logging 负责输出。
- 开发环境：彩色控制台输出（stderr，避免和 CLI 的文章列表混在一起）
- 生产环境（ENV=production）：JSON 行写入滚动日志文件

Usage:
    configure_logging()
    logger = get_logger(__name__)
    logger.info("Refresh complete", total=12, new=2)
"""

import logging
import logging.handlers
import os
import sys
from typing import Optional

import structlog
from structlog.types import Processor

from src.config.settings import resolve_logging_settings

# LLM SDK、HTTP 客户端与 sqlite 驱动在 INFO 级别过于啰嗦
QUIET_LOGGERS = ("httpx", "httpcore", "openai", "anthropic", "aiosqlite", "uvicorn.access")

_MAX_LOG_BYTES = 10 * 1024 * 1024
_LOG_BACKUPS = 5


def _shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        structlog.processors.format_exc_info,
    ]


def _file_handler(log_file: str) -> logging.Handler:
    os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
    return logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=_MAX_LOG_BYTES,
        backupCount=_LOG_BACKUPS,
        encoding="utf-8",
    )


def _renderer(json_format: bool) -> Processor:
    if json_format:
        # 中文标题/摘要直接写入，不转义
        return structlog.processors.JSONRenderer(ensure_ascii=False)
    return structlog.dev.ConsoleRenderer(
        colors=sys.stderr.isatty(),
        exception_formatter=structlog.dev.plain_traceback,
    )


def configure_logging(
    json_format: Optional[bool] = None,
    log_level: Optional[int] = None,
    log_file: Optional[str] = None,
) -> None:
    """
    配置 structlog，并让标准库 logging（工具模块、第三方库）走同一个格式化器。

    未显式传入的参数从环境变量解析（ENV / LOG_LEVEL / LOG_FILE）。
    """
    defaults = resolve_logging_settings()
    json_format = defaults.json_format if json_format is None else json_format
    log_level = defaults.level if log_level is None else log_level
    log_file = log_file or defaults.log_file

    shared = _shared_processors()
    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = _file_handler(log_file) if json_format else logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=_renderer(json_format),
            foreign_pre_chain=shared,
        )
    )
    logging.basicConfig(format="%(message)s", handlers=[handler], level=log_level, force=True)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_context(**kwargs) -> None:
    """绑定上下文变量（如 request_id），之后的每条日志都会携带。"""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
