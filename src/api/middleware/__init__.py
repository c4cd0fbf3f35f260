"""API middleware."""

from src.api.middleware.logging import LoggingMiddleware

__all__ = ["LoggingMiddleware"]
