"""
JCTC ASAP Feed Crawler

Reads the ACS "ASAP" RSS feed of the Journal of Chemical Theory and
Computation and turns its entries into raw article candidates.
"""

import asyncio
import logging
from datetime import datetime
from typing import Optional

import feedparser
import requests
from bs4 import BeautifulSoup

from src.config.settings import DEFAULT_CRAWL_LIMIT, DEFAULT_FEED_URL
from src.scout.pipeline import CrawlError
from src.scout.state import RawArticle

logger = logging.getLogger(__name__)

_HEADERS = {
    "User-Agent": "JCTCScout/1.0 (+https://pubs.acs.org/journal/jctcce)",
    "Accept": "application/rss+xml, application/xml;q=0.9, */*;q=0.8",
}


def _clean_html(fragment: str) -> Optional[str]:
    """Plain text of an HTML fragment, or None when nothing is left."""
    if not fragment:
        return None
    text = BeautifulSoup(fragment, "html.parser").get_text(" ", strip=True)
    return " ".join(text.split()) or None


def _entry_date(entry) -> Optional[str]:
    for key in ("published_parsed", "updated_parsed"):
        parsed = entry.get(key)
        if parsed:
            try:
                return datetime(*parsed[:6]).strftime("%Y-%m-%d")
            except (TypeError, ValueError):
                continue
    return entry.get("published") or entry.get("updated") or None


def _entry_authors(entry) -> Optional[str]:
    names = [a.get("name", "").strip() for a in entry.get("authors", []) if a.get("name")]
    if names:
        return ", ".join(names)
    return entry.get("author") or None


def parse_feed_entries(content: bytes | str, limit: int = DEFAULT_CRAWL_LIMIT) -> list[RawArticle]:
    """
    Parse RSS/Atom content into raw article candidates.

    Raises:
        CrawlError: If the document is malformed and yields no entries.
    """
    parsed = feedparser.parse(content)
    if parsed.bozo and not parsed.entries:
        raise CrawlError(f"Malformed feed: {parsed.get('bozo_exception')}")

    articles: list[RawArticle] = []
    for entry in parsed.entries[:limit]:
        url = entry.get("link", "")
        articles.append(
            RawArticle(
                title=_clean_html(entry.get("title", "")),
                authors=_entry_authors(entry),
                date=_entry_date(entry),
                url=url,
                abstract=_clean_html(entry.get("summary", "")),
            )
        )
    return articles


class JctcFeedCrawler:
    """Crawl collaborator backed by the journal's ASAP RSS feed."""

    def __init__(
        self,
        feed_url: str = DEFAULT_FEED_URL,
        limit: int = DEFAULT_CRAWL_LIMIT,
        timeout: float = 30.0,
    ) -> None:
        self.feed_url = feed_url
        self.limit = limit
        self.timeout = timeout

    def _fetch(self) -> bytes:
        try:
            response = requests.get(self.feed_url, headers=_HEADERS, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise CrawlError(f"Failed to fetch feed {self.feed_url}: {exc}") from exc
        return response.content

    async def crawl(self) -> list[RawArticle]:
        content = await asyncio.to_thread(self._fetch)
        articles = parse_feed_entries(content, limit=self.limit)
        logger.debug("Fetched %d entries from %s", len(articles), self.feed_url)
        return articles
