"""Scout service: wires the refresh pipeline from settings and exposes it.

A single process-wide instance is shared by the API routes and the CLI.
"""

from typing import Optional

from src.config.settings import (
    AppSettings,
    CrawlerType,
    EnricherType,
    StoreBackend,
    get_app_settings,
)
from src.scout import (
    Article,
    ArticleStore,
    CrawlError,
    JsonFileBackend,
    MemoryBackend,
    ProgressCallback,
    RefreshPipeline,
    SqliteBackend,
)
from src.tools.enrichment import HttpEnricher, LLMEnricher
from src.tools.jctc_feed import JctcFeedCrawler
from src.tools.llm_search import LLMSearchCrawler
from src.utils.logging_config import get_logger

logger = get_logger(__name__)


def build_store(settings: AppSettings) -> ArticleStore:
    store_settings = settings.store
    if store_settings.backend == StoreBackend.SQLITE:
        backend = SqliteBackend(store_settings.path)
    elif store_settings.backend == StoreBackend.MEMORY:
        backend = MemoryBackend()
    else:
        backend = JsonFileBackend(store_settings.path)
    return ArticleStore(backend)


def build_crawler(settings: AppSettings):
    crawl = settings.crawl
    if crawl.crawler == CrawlerType.LLM:
        return LLMSearchCrawler(
            limit=crawl.limit,
            model_provider=settings.llm.provider,
            model_name=settings.llm.model_name,
        )
    return JctcFeedCrawler(feed_url=crawl.feed_url, limit=crawl.limit)


def build_enricher(settings: AppSettings):
    enrich = settings.enrich
    if enrich.enricher == EnricherType.HTTP:
        return HttpEnricher(
            enrich.endpoint,
            api_key=enrich.api_key,
            timeout=float(enrich.timeout_seconds),
        )
    return LLMEnricher(model_provider=settings.llm.provider, model_name=settings.llm.model_name)


class ScoutService:
    """Facade over the refresh pipeline used by routes and the CLI."""

    def __init__(self, pipeline: RefreshPipeline) -> None:
        self.pipeline = pipeline

    @classmethod
    def from_settings(cls, settings: Optional[AppSettings] = None) -> "ScoutService":
        settings = settings or get_app_settings()
        pipeline = RefreshPipeline(
            build_store(settings),
            build_crawler(settings),
            build_enricher(settings),
            crawl_timeout=float(settings.crawl.timeout_seconds),
            enrich_timeout=float(settings.enrich.timeout_seconds),
            max_concurrent_enrichments=settings.enrich.max_concurrent,
        )
        logger.info(
            "Scout service configured",
            store=settings.store.backend.value,
            crawler=settings.crawl.crawler.value,
            enricher=settings.enrich.enricher.value,
        )
        return cls(pipeline)

    async def refresh(self, on_progress: Optional[ProgressCallback] = None) -> list[Article]:
        """Run a refresh cycle. Raises CrawlError only when nothing is cached."""
        return await self.pipeline.refresh(on_progress)

    async def list_articles(self) -> list[Article]:
        return await self.pipeline.stored_articles()

    async def retry_enrichment(self, article_id: str) -> Optional[Article]:
        return await self.pipeline.retry_enrichment(article_id)

    async def clear(self) -> None:
        await self.pipeline.store.clear()

    async def close(self) -> None:
        await self.pipeline.store.close()


_scout_service: Optional[ScoutService] = None


def get_scout_service() -> ScoutService:
    """Get the scout service singleton."""
    global _scout_service
    if _scout_service is None:
        _scout_service = ScoutService.from_settings()
    return _scout_service


def reset_scout_service() -> None:
    """Drop the singleton (for tests)."""
    global _scout_service
    _scout_service = None


__all__ = [
    "CrawlError",
    "ScoutService",
    "build_crawler",
    "build_enricher",
    "build_store",
    "get_scout_service",
    "reset_scout_service",
]
