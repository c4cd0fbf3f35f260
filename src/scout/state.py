"""
Scout State Definition

Article records as they live in the cache, the raw candidates produced by a
crawl, and the stages a refresh cycle reports while it runs.
"""

import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

UNKNOWN_ARTICLE_ID = "unknown_id"


def now_ms() -> int:
    """Wall-clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)


def iso_from_ms(timestamp_ms: int) -> str:
    dt = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class EnrichmentState(str, Enum):
    """Where an article stands with respect to translation and summary."""

    PENDING = "pending"
    ENRICHED = "enriched"
    FAILED = "failed"


class RefreshStage(str, Enum):
    """
    Coarse progress stages of one refresh cycle.

    The pipeline reports the first three; COMPLETE is implied by refresh
    returning and is what the CLI shows afterwards.
    """

    LOADING_CACHE = "LOADING_CACHE"
    CRAWLING = "CRAWLING"
    ENRICHING = "ENRICHING"
    COMPLETE = "COMPLETE"

    def label(self, count: int = 0) -> str:
        if self is RefreshStage.LOADING_CACHE:
            return "Loading cached data..."
        if self is RefreshStage.CRAWLING:
            return "Crawling JCTC ASAP articles..."
        if self is RefreshStage.ENRICHING:
            return f"Enriching {count} new articles via external AI..."
        return "Refresh complete."


class RawArticle(BaseModel):
    """A best-effort candidate returned by a crawl; every field may be missing."""

    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
    authors: Optional[str] = None
    date: Optional[str] = None
    url: Optional[str] = None
    abstract: Optional[str] = None

    @field_validator("authors", mode="before")
    @classmethod
    def _join_authors(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            names = [str(v).strip() for v in value if v is not None and str(v).strip()]
            return ", ".join(names) or None
        return value

    @field_validator("title", "authors", "date", "url", "abstract", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if value is None or isinstance(value, (list, tuple)):
            return value
        if not isinstance(value, str):
            value = str(value)
        value = value.strip()
        return value or None


def derive_article_id(raw: RawArticle) -> str:
    """Stable identity: the URL, else the title, else a sentinel."""
    return raw.url or raw.title or UNKNOWN_ARTICLE_ID


class Article(BaseModel):
    """A cached article, optionally carrying its Chinese translation and summary."""

    model_config = ConfigDict(extra="ignore")

    id: str
    title: str
    title_cn: Optional[str] = None
    authors: Optional[str] = None
    date: str = ""
    url: str = ""

    abstract: Optional[str] = None
    abstract_cn: Optional[str] = None
    summary_cn: Optional[str] = None

    first_seen: int
    last_updated: int
    is_new: bool = False
    enrichment: EnrichmentState = EnrichmentState.PENDING

    @model_validator(mode="before")
    @classmethod
    def _upgrade_legacy_record(cls, data: Any) -> Any:
        # Older caches keyed records by url and had no enrichment state.
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if not data.get("id") and data.get("url"):
            data["id"] = data["url"]
        if data.get("enrichment") is None:
            data["enrichment"] = (
                EnrichmentState.ENRICHED if data.get("summary_cn") else EnrichmentState.PENDING
            )
        if data.get("last_updated") is None and data.get("first_seen") is not None:
            data["last_updated"] = data["first_seen"]
        return data

    @property
    def is_enriched(self) -> bool:
        return bool(self.summary_cn)

    @classmethod
    def from_raw(cls, raw: RawArticle, article_id: str, now: int) -> "Article":
        """Build a freshly discovered record from a crawl candidate."""
        return cls(
            id=article_id,
            title=raw.title or "",
            url=raw.url or "",
            authors=raw.authors,
            date=raw.date or iso_from_ms(now),
            abstract=raw.abstract,
            first_seen=now,
            last_updated=now,
            is_new=True,
            enrichment=EnrichmentState.PENDING,
        )
