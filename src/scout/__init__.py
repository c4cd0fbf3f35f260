"""
Scout Module

Keeps a local cache of recent JCTC articles with Chinese translations.

主要组件：
- RefreshPipeline: 加载缓存 → 爬取 → 去重合并 → 仅对新文章做翻译摘要 → 持久化
- ArticleStore: 单一 key 下的文章缓存，读写失败不向上抛出
- Article / RawArticle: 缓存记录与爬取候选
"""

from .pipeline import CrawlError, Crawler, Enricher, ProgressCallback, RefreshPipeline
from .state import (
    UNKNOWN_ARTICLE_ID,
    Article,
    EnrichmentState,
    RawArticle,
    RefreshStage,
    derive_article_id,
    now_ms,
)
from .store import (
    STORAGE_KEY,
    ArticleStore,
    JsonFileBackend,
    KeyValueBackend,
    MemoryBackend,
    SqliteBackend,
)

__all__ = [
    # 流程
    "RefreshPipeline",
    "CrawlError",
    "Crawler",
    "Enricher",
    "ProgressCallback",
    # 数据
    "Article",
    "RawArticle",
    "EnrichmentState",
    "RefreshStage",
    "UNKNOWN_ARTICLE_ID",
    "derive_article_id",
    "now_ms",
    # 存储
    "ArticleStore",
    "KeyValueBackend",
    "MemoryBackend",
    "JsonFileBackend",
    "SqliteBackend",
    "STORAGE_KEY",
]
