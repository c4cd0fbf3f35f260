"""API Routes."""

from src.api.routes.articles import router as articles_router

__all__ = ["articles_router"]
