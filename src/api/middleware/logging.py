"""
Request Logging Middleware

给每个请求分配 request_id（优先沿用客户端传入的 X-Request-ID），绑定到
structlog 上下文：一次 refresh 期间流水线打出的日志都会带上它。
"""

import time
import uuid
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from src.utils.logging_config import bind_context, clear_context, get_logger

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# 健康检查频繁且无信息量，只在 debug 级别记录
QUIET_PATHS = frozenset({"/api/health"})


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]
        path = request.url.path
        bind_context(request_id=request_id, method=request.method, path=path)

        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception("Request failed", duration_ms=_elapsed_ms(start), error=str(e))
            clear_context()
            raise

        if path in QUIET_PATHS:
            log = logger.debug
        elif response.status_code >= 500:
            log = logger.error
        elif response.status_code >= 400:
            log = logger.warning
        else:
            log = logger.info
        log("Request completed", status_code=response.status_code, duration_ms=_elapsed_ms(start))
        clear_context()

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
