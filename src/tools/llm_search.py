"""
LLM Search Crawler

Asks a search-capable chat model for the most recent JCTC ASAP articles and
parses the JSON array it answers with. Models tend to wrap the array in
prose, so only the text between the first ``[`` and the last ``]`` is parsed.
"""

import json
import logging
from typing import Any, Optional

from langchain_core.messages import HumanMessage
from pydantic import ValidationError

from src.config.llm_factory import SEARCH_PROVIDERS, create_llm
from src.config.settings import DEFAULT_CRAWL_LIMIT
from src.prompts import load_prompt
from src.scout.pipeline import CrawlError
from src.scout.state import RawArticle

logger = logging.getLogger(__name__)

JOURNAL_NAME = "Journal of Chemical Theory and Computation"
JOURNAL_SITE = "pubs.acs.org"


def _response_text(response: Any) -> str:
    content = response.content if hasattr(response, "content") else response
    if isinstance(content, list):
        # Anthropic-style content blocks
        parts = []
        for block in content:
            if isinstance(block, dict):
                parts.append(str(block.get("text", "")))
            else:
                parts.append(str(block))
        return "".join(parts)
    return str(content or "")


def parse_crawl_response(text: str) -> list[RawArticle]:
    """
    Extract raw articles from a model answer that contains a JSON array.

    Entries lacking a title or url are dropped.

    Raises:
        CrawlError: If no JSON array can be found or parsed.
    """
    if not text or not text.strip():
        raise CrawlError("No response from the search model")

    first = text.find("[")
    last = text.rfind("]")
    if first == -1 or last == -1 or last < first:
        logger.debug("Search model answer without JSON array: %s", text[:500])
        raise CrawlError("Model response did not contain a JSON array")

    try:
        payload = json.loads(text[first : last + 1])
    except json.JSONDecodeError as exc:
        raise CrawlError(f"Failed to parse crawler results: {exc}") from exc

    if not isinstance(payload, list):
        raise CrawlError("Crawler results are not a JSON array")

    articles: list[RawArticle] = []
    for item in payload:
        if not isinstance(item, dict):
            continue
        try:
            raw = RawArticle.model_validate(item)
        except ValidationError:
            continue
        if not raw.title or not raw.url:
            continue
        articles.append(raw)
    return articles


class LLMSearchCrawler:
    """Crawl collaborator that delegates discovery to a search-grounded LLM."""

    def __init__(
        self,
        llm: Optional[Any] = None,
        *,
        limit: int = DEFAULT_CRAWL_LIMIT,
        model_provider: str = "aliyun",
        model_name: Optional[str] = None,
    ) -> None:
        if llm is None and model_provider not in SEARCH_PROVIDERS:
            raise ValueError(
                f"LLM crawling needs a search-enabled provider ({', '.join(sorted(SEARCH_PROVIDERS))}), "
                f"got '{model_provider}'"
            )
        self._llm = llm
        self.limit = limit
        self.model_provider = model_provider
        self.model_name = model_name

    def _get_llm(self) -> Any:
        if self._llm is None:
            self._llm = create_llm(
                model_provider=self.model_provider,
                model_name=self.model_name,
                temperature=0.0,
                enable_search=True,
            )
        return self._llm

    async def crawl(self) -> list[RawArticle]:
        prompt = load_prompt("crawl_jctc", limit=self.limit, journal=JOURNAL_NAME, site=JOURNAL_SITE)
        response = await self._get_llm().ainvoke([HumanMessage(content=prompt)])
        articles = parse_crawl_response(_response_text(response))
        return articles[: self.limit]
