"""API Schemas - Pydantic models for request/response validation."""

from src.api.schemas.articles import ArticleListResponse, ClearResponse, RefreshResponse

__all__ = [
    "ArticleListResponse",
    "ClearResponse",
    "RefreshResponse",
]
