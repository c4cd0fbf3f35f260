"""Article cache API routes."""

from __future__ import annotations

import secrets
import time
from collections import defaultdict, deque
from datetime import datetime, timezone
from threading import Lock
from typing import Callable

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status

from src.api.schemas.articles import ArticleListResponse, ClearResponse, RefreshResponse
from src.api.services.scout_service import ScoutService, get_scout_service
from src.config.settings import resolve_refresh_security_settings
from src.scout import Article, CrawlError
from src.utils.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/articles", tags=["articles"])


class _SlidingWindowLimiter:
    """Simple in-memory sliding-window rate limiter."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._events: dict[str, deque[float]] = defaultdict(deque)
        self._lock = Lock()
        self._clock = clock

    def allow(self, key: str, limit: int, window_seconds: int) -> bool:
        now = self._clock()
        threshold = now - window_seconds

        with self._lock:
            # forget clients whose events have all left the window
            stale = [k for k, events in self._events.items() if not events or events[-1] <= threshold]
            for k in stale:
                del self._events[k]

            bucket = self._events[key]
            while bucket and bucket[0] <= threshold:
                bucket.popleft()

            if len(bucket) >= limit:
                return False

            bucket.append(now)
            return True

    def reset(self) -> None:
        with self._lock:
            self._events.clear()


_refresh_limiter = _SlidingWindowLimiter()


def reset_refresh_rate_limiter() -> None:
    """Reset in-memory refresh rate limit state (for tests)."""
    _refresh_limiter.reset()


def _get_client_identifier(request: Request) -> str:
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        first_hop = forwarded_for.split(",", maxsplit=1)[0].strip()
        if first_hop:
            return first_hop

    if request.client and request.client.host:
        return request.client.host

    return "unknown"


def _require_admin_token(x_admin_token: str | None) -> None:
    expected_token = resolve_refresh_security_settings().admin_token
    if not expected_token:
        return

    provided_token = (x_admin_token or "").strip()
    if not provided_token or not secrets.compare_digest(provided_token, expected_token):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin token required. Use header X-Admin-Token.",
        )


def _enforce_refresh_rate_limit(request: Request) -> None:
    security_settings = resolve_refresh_security_settings()
    allowed = _refresh_limiter.allow(
        key=_get_client_identifier(request),
        limit=security_settings.refresh_rate_limit,
        window_seconds=security_settings.refresh_window_seconds,
    )
    if not allowed:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Refresh rate limit exceeded. Please retry later.",
        )


def _list_response(articles: list[Article]) -> dict:
    return {
        "items": articles,
        "total": len(articles),
        "new_count": sum(1 for a in articles if a.is_new),
        "enriched_count": sum(1 for a in articles if a.is_enriched),
    }


@router.get("", response_model=ArticleListResponse)
async def list_articles(
    service: ScoutService = Depends(get_scout_service),
) -> ArticleListResponse:
    """Return the cached articles without crawling."""
    articles = await service.list_articles()
    return ArticleListResponse(**_list_response(articles))


@router.post("/refresh", response_model=RefreshResponse)
async def refresh_articles(
    request: Request,
    x_admin_token: str | None = Header(
        default=None,
        alias="X-Admin-Token",
        description="Required when SCOUT_ADMIN_TOKEN is configured.",
    ),
    service: ScoutService = Depends(get_scout_service),
) -> RefreshResponse:
    """Crawl for new articles, enrich the new ones and return the merged cache.

    The first refresh may take a minute while new articles are translated;
    the progress labels seen during the run are returned in ``stages``.
    """
    _require_admin_token(x_admin_token)
    _enforce_refresh_rate_limit(request)

    stages: list[str] = []
    try:
        articles = await service.refresh(stages.append)
    except CrawlError as e:
        logger.warning("Refresh failed with empty cache", error=str(e))
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e)) from e

    return RefreshResponse(
        **_list_response(articles),
        stages=stages,
        refreshed_at=datetime.now(timezone.utc),
    )


@router.post("/enrich", response_model=Article)
async def retry_enrichment(
    article_id: str = Query(..., description="Id of the cached article (usually its URL)"),
    service: ScoutService = Depends(get_scout_service),
) -> Article:
    """Retry translation and summary for one cached article."""
    article = await service.retry_enrichment(article_id)
    if article is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown article: {article_id}")
    return article


@router.delete("", response_model=ClearResponse)
async def clear_articles(
    x_admin_token: str | None = Header(default=None, alias="X-Admin-Token"),
    service: ScoutService = Depends(get_scout_service),
) -> ClearResponse:
    """Wipe the cached collection."""
    _require_admin_token(x_admin_token)
    await service.clear()
    return ClearResponse(cleared=True)
