"""
Article Enrichment

Collaborators that add a Chinese title, abstract translation and short
summary to an article. Both follow the same contract:

- an article that already has ``summary_cn`` is returned untouched
- on success the article comes back ``enriched`` with ``last_updated`` bumped
- on any failure the original article comes back marked ``failed``
"""

import logging
from typing import Any, Callable, Optional

import httpx

from src.config.llm_factory import create_llm
from src.prompts import load_prompt
from src.scout.state import Article, EnrichmentState, now_ms
from src.scout.structured_outputs import EnrichmentResult

logger = logging.getLogger(__name__)

JOURNAL_NAME = "Journal of Chemical Theory and Computation"


def apply_enrichment(article: Article, result: EnrichmentResult, now: int) -> Article:
    """Merge an enrichment result into *article*.

    Raises:
        ValueError: If the result carries an empty summary.
    """
    summary = (result.summary_cn or "").strip()
    if not summary:
        raise ValueError("enrichment returned an empty summary")

    return article.model_copy(
        update={
            "summary_cn": summary,
            "title_cn": (result.title_cn or "").strip() or article.title_cn,
            "abstract_cn": (result.abstract_cn or "").strip() or article.abstract_cn,
            "enrichment": EnrichmentState.ENRICHED,
            "last_updated": now,
        }
    )


def _mark_failed(article: Article) -> Article:
    return article.model_copy(update={"enrichment": EnrichmentState.FAILED})


class LLMEnricher:
    """Translates and summarises with a chat model using structured output."""

    def __init__(
        self,
        llm: Optional[Any] = None,
        *,
        model_provider: str = "aliyun",
        model_name: Optional[str] = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._llm = llm
        self.model_provider = model_provider
        self.model_name = model_name
        self._clock = clock

    def _get_llm(self) -> Any:
        if self._llm is None:
            self._llm = create_llm(model_provider=self.model_provider, model_name=self.model_name)
        return self._llm

    async def enrich(self, article: Article) -> Article:
        if article.is_enriched:
            return article

        prompt = load_prompt(
            "enrich_article",
            journal=JOURNAL_NAME,
            title=article.title,
            authors=article.authors,
            date=article.date,
            abstract=article.abstract,
        )
        try:
            llm_with_output = self._get_llm().with_structured_output(EnrichmentResult)
            result: EnrichmentResult = await llm_with_output.ainvoke(prompt)
            return apply_enrichment(article, result, self._clock())
        except Exception:
            logger.warning("LLM enrichment failed for %s", article.id, exc_info=True)
            return _mark_failed(article)


class HttpEnricher:
    """Posts the article to an external translation/summary endpoint."""

    def __init__(
        self,
        endpoint: str,
        *,
        api_key: Optional[str] = None,
        timeout: float = 60.0,
        client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.endpoint = endpoint
        self.api_key = api_key
        self.timeout = timeout
        self._client = client
        self._clock = clock

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        if self._client is not None:
            response = await self._client.post(self.endpoint, json=payload, headers=self._headers())
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.endpoint, json=payload, headers=self._headers())
        response.raise_for_status()
        return response.json()

    async def enrich(self, article: Article) -> Article:
        if article.is_enriched:
            return article

        payload = {
            "title": article.title,
            "url": article.url,
            "abstract": article.abstract,
            "authors": article.authors,
            "date": article.date,
        }
        try:
            data = await self._post(payload)
            result = EnrichmentResult.model_validate(data)
            return apply_enrichment(article, result, self._clock())
        except Exception as exc:
            logger.warning("External enrichment failed for %s: %s", article.id, exc)
            return _mark_failed(article)
