"""日志工具：structlog 配置与请求上下文绑定。"""

from src.utils.logging_config import QUIET_LOGGERS, bind_context, clear_context, configure_logging, get_logger

__all__ = ["QUIET_LOGGERS", "bind_context", "clear_context", "configure_logging", "get_logger"]
