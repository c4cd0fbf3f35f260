"""
Refresh Pipeline

One refresh cycle:

1. load the cached collection and index it by id
2. crawl for fresh candidates (fall back to the cache if that fails)
3. keep cached records for known ids, create records for new ids
4. enrich only the new records, concurrently and independently
5. merge back cached records the crawl did not return
6. sort by ``first_seen`` descending, persist, return

Only a crawl failure with nothing cached escapes as an exception; every other
failure degrades to an older or less enriched result.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional, Protocol, TypeVar

from pydantic import ValidationError

from src.scout.state import (
    Article,
    EnrichmentState,
    RawArticle,
    RefreshStage,
    derive_article_id,
    now_ms,
)
from src.scout.store import ArticleStore
from src.utils.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

ProgressCallback = Callable[[str], None]


class CrawlError(RuntimeError):
    """Raised when fresh articles cannot be obtained."""


class Crawler(Protocol):
    async def crawl(self) -> list[RawArticle]: ...


class Enricher(Protocol):
    async def enrich(self, article: Article) -> Article: ...


def _sort_newest_first(articles: list[Article]) -> list[Article]:
    return sorted(articles, key=lambda a: a.first_seen, reverse=True)


def _coerce_candidates(result: Any) -> list[RawArticle]:
    """Crawl output as a list of candidates; None means none, unusable items are skipped."""
    if result is None:
        return []
    candidates: list[RawArticle] = []
    for item in result:
        if isinstance(item, RawArticle):
            candidates.append(item)
            continue
        try:
            candidates.append(RawArticle.model_validate(item))
        except ValidationError:
            logger.debug("Skipping unusable crawl item", item_type=type(item).__name__)
    return candidates


async def _with_timeout(awaitable: Awaitable[T], timeout: Optional[float]) -> T:
    if timeout is None:
        return await awaitable
    return await asyncio.wait_for(awaitable, timeout=timeout)


class RefreshPipeline:
    """Merges crawled articles into the cache and enriches the new ones."""

    def __init__(
        self,
        store: ArticleStore,
        crawler: Crawler,
        enricher: Enricher,
        *,
        clock: Callable[[], int] = now_ms,
        crawl_timeout: Optional[float] = None,
        enrich_timeout: Optional[float] = None,
        max_concurrent_enrichments: int = 5,
    ) -> None:
        self.store = store
        self.crawler = crawler
        self.enricher = enricher
        self._clock = clock
        self._crawl_timeout = crawl_timeout
        self._enrich_timeout = enrich_timeout
        self._max_concurrent = max(1, max_concurrent_enrichments)
        # Created lazily so it binds to the running loop
        self._lock: Optional[asyncio.Lock] = None

    def _get_lock(self) -> asyncio.Lock:
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    @staticmethod
    def _notify(on_progress: Optional[ProgressCallback], label: str) -> None:
        if on_progress is None:
            return
        try:
            on_progress(label)
        except Exception:
            logger.warning("Progress callback raised", label=label, exc_info=True)

    async def refresh(self, on_progress: Optional[ProgressCallback] = None) -> list[Article]:
        """
        Run one refresh cycle and return the merged collection, newest first.

        Raises:
            CrawlError: The crawl failed and there is no cache to fall back to.
        """
        async with self._get_lock():
            return await self._refresh(on_progress)

    async def _refresh(self, on_progress: Optional[ProgressCallback]) -> list[Article]:
        self._notify(on_progress, RefreshStage.LOADING_CACHE.label())
        cached = await self.store.load()
        cached_by_id = {a.id: a for a in cached}

        self._notify(on_progress, RefreshStage.CRAWLING.label())
        try:
            raw_articles = _coerce_candidates(
                await _with_timeout(self.crawler.crawl(), self._crawl_timeout)
            )
        except Exception as e:
            if not cached:
                logger.error("Crawl failed and no cache to fall back to", error=str(e))
                raise CrawlError(f"Crawl failed: {e}") from e
            logger.warning("Crawl failed, using cache only", error=str(e), cached=len(cached))
            return cached

        if not raw_articles:
            logger.info("Crawl returned no candidates", cached=len(cached))

        now = self._clock()
        fresh: dict[str, Article] = {}
        to_enrich: list[str] = []
        discarded = 0

        for raw in raw_articles:
            if not raw.title or not raw.url:
                discarded += 1
                continue

            article_id = derive_article_id(raw)
            if article_id in fresh:
                continue

            existing = cached_by_id.get(article_id)
            if existing is not None:
                fresh[article_id] = existing.model_copy(update={"is_new": False})
            else:
                fresh[article_id] = Article.from_raw(raw, article_id=article_id, now=now)
                to_enrich.append(article_id)

        if discarded:
            logger.debug("Discarded candidates without title or url", count=discarded)

        if to_enrich:
            self._notify(on_progress, RefreshStage.ENRICHING.label(len(to_enrich)))
            semaphore = asyncio.Semaphore(self._max_concurrent)
            results = await asyncio.gather(
                *(self._enrich_one(fresh[article_id], semaphore) for article_id in to_enrich)
            )
            for article_id, enriched in zip(to_enrich, results):
                fresh[article_id] = enriched

        merged = list(fresh.values())
        for old in cached:
            if old.id not in fresh:
                merged.append(old.model_copy(update={"is_new": False}))

        merged = _sort_newest_first(merged)
        await self.store.save(merged)

        logger.info(
            "Refresh complete",
            total=len(merged),
            crawled=len(fresh),
            new=len(to_enrich),
            enriched=sum(1 for a in merged if a.is_new and a.enrichment == EnrichmentState.ENRICHED),
        )
        return merged

    async def _enrich_one(self, article: Article, semaphore: asyncio.Semaphore) -> Article:
        async with semaphore:
            try:
                enriched = await _with_timeout(self.enricher.enrich(article), self._enrich_timeout)
                if not isinstance(enriched, Article):
                    raise TypeError(f"Enricher returned {type(enriched).__name__}, expected Article")
                # identity and discovery metadata belong to the pipeline
                return enriched.model_copy(
                    update={"id": article.id, "first_seen": article.first_seen, "is_new": article.is_new}
                )
            except Exception as e:
                logger.warning(
                    "Failed to enrich article",
                    article_id=article.id,
                    title=article.title,
                    error=str(e) or type(e).__name__,
                )
                return article.model_copy(update={"enrichment": EnrichmentState.FAILED})

    async def retry_enrichment(self, article_id: str) -> Optional[Article]:
        """
        Enrich one cached article on demand.

        Returns None for an unknown id and the record unchanged when it is
        already enriched.
        """
        async with self._get_lock():
            cached = await self.store.load()
            index = next((i for i, a in enumerate(cached) if a.id == article_id), None)
            if index is None:
                return None

            target = cached[index]
            if target.is_enriched:
                return target

            enriched = await self._enrich_one(target, asyncio.Semaphore(1))
            cached[index] = enriched
            await self.store.save(cached)

            logger.info("Enrichment retried", article_id=article_id, state=enriched.enrichment.value)
            return enriched

    async def stored_articles(self) -> list[Article]:
        """Cached collection, newest first, without crawling."""
        return _sort_newest_first(await self.store.load())
