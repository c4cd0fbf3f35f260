"""Pydantic models for article API responses."""

from datetime import datetime

from pydantic import BaseModel

from src.scout.state import Article


class ArticleListResponse(BaseModel):
    """Cached articles, newest first."""

    items: list[Article]
    total: int
    new_count: int  # is_new=True 的数量
    enriched_count: int  # 已有中文摘要的数量


class RefreshResponse(ArticleListResponse):
    """Result of one refresh cycle."""

    stages: list[str]  # 进度标签，按触发顺序
    refreshed_at: datetime


class ClearResponse(BaseModel):
    cleared: bool
