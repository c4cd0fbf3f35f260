"""Tests for the translation/summary collaborators."""

import json
from unittest.mock import MagicMock

import httpx
import pytest

from src.scout.state import Article, EnrichmentState
from src.scout.structured_outputs import EnrichmentResult
from src.tools.enrichment import HttpEnricher, LLMEnricher, apply_enrichment

ENDPOINT = "https://enrich.example.com/v1/enrich"


def _article(**overrides) -> Article:
    data = {
        "id": "https://pubs.acs.org/doi/10.1021/acs.jctc.5c00301",
        "title": "Range-Separated Hybrids for Charge Transfer",
        "url": "https://pubs.acs.org/doi/10.1021/acs.jctc.5c00301",
        "authors": "Ada Lovelace",
        "date": "2025-06-01",
        "abstract": "We benchmark range-separated hybrids.",
        "first_seen": 100,
        "last_updated": 100,
        "is_new": True,
    }
    data.update(overrides)
    return Article(**data)


class _StructuredLLM:
    def __init__(self, result=None, error: Exception | None = None):
        self.result = result
        self.error = error
        self.prompts: list[str] = []

    async def ainvoke(self, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.result


class FakeLLM:
    def __init__(self, structured: _StructuredLLM):
        self.structured = structured
        self.schemas = []

    def with_structured_output(self, schema):
        self.schemas.append(schema)
        return self.structured


class TestApplyEnrichment:
    def test_fills_fields_and_marks_enriched(self):
        result = EnrichmentResult(title_cn="电荷转移", abstract_cn="摘要", summary_cn="总结")

        enriched = apply_enrichment(_article(), result, now=500)

        assert enriched.title_cn == "电荷转移"
        assert enriched.abstract_cn == "摘要"
        assert enriched.summary_cn == "总结"
        assert enriched.enrichment == EnrichmentState.ENRICHED
        assert enriched.last_updated == 500
        assert enriched.first_seen == 100

    def test_missing_translations_fall_back_to_existing_values(self):
        article = _article(title_cn="旧标题", abstract_cn="旧摘要")

        enriched = apply_enrichment(article, EnrichmentResult(summary_cn="总结", title_cn="  "), now=500)

        assert enriched.title_cn == "旧标题"
        assert enriched.abstract_cn == "旧摘要"

    def test_empty_summary_is_rejected(self):
        with pytest.raises(ValueError):
            apply_enrichment(_article(), EnrichmentResult(summary_cn="   "), now=500)


class TestLLMEnricher:
    async def test_enrich_success(self):
        structured = _StructuredLLM(
            EnrichmentResult(title_cn="范围分离杂化泛函", abstract_cn="我们评测了……", summary_cn="评测了电荷转移激发。")
        )
        llm = FakeLLM(structured)
        enricher = LLMEnricher(llm=llm, clock=lambda: 999)

        enriched = await enricher.enrich(_article())

        assert llm.schemas == [EnrichmentResult]
        assert enriched.title_cn == "范围分离杂化泛函"
        assert enriched.enrichment == EnrichmentState.ENRICHED
        assert enriched.last_updated == 999
        (prompt,) = structured.prompts
        assert "Range-Separated Hybrids for Charge Transfer" in prompt
        assert "We benchmark range-separated hybrids." in prompt

    async def test_prompt_without_abstract(self):
        structured = _StructuredLLM(EnrichmentResult(summary_cn="总结"))
        enricher = LLMEnricher(llm=FakeLLM(structured))

        await enricher.enrich(_article(abstract=None, authors=None))

        assert "No abstract provided." in structured.prompts[0]
        assert "作者" not in structured.prompts[0]

    async def test_model_error_marks_failed(self):
        structured = _StructuredLLM(error=RuntimeError("rate limited"))
        enricher = LLMEnricher(llm=FakeLLM(structured))

        result = await enricher.enrich(_article())

        assert result.enrichment == EnrichmentState.FAILED
        assert result.summary_cn is None
        assert result.title == _article().title

    async def test_empty_summary_marks_failed(self):
        enricher = LLMEnricher(llm=FakeLLM(_StructuredLLM(EnrichmentResult(summary_cn=""))))

        result = await enricher.enrich(_article())

        assert result.enrichment == EnrichmentState.FAILED

    async def test_already_enriched_article_is_untouched(self):
        llm = MagicMock()
        article = _article(summary_cn="已有总结")

        result = await LLMEnricher(llm=llm).enrich(article)

        assert result is article
        llm.with_structured_output.assert_not_called()


class TestHttpEnricher:
    async def test_enrich_posts_article_and_applies_response(self):
        seen: dict = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("Authorization")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"summary_cn": "总结", "title_cn": "标题"})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            enricher = HttpEnricher(ENDPOINT, api_key="secret", client=client, clock=lambda: 777)
            result = await enricher.enrich(_article(abstract_cn="旧摘要"))

        assert seen["url"] == ENDPOINT
        assert seen["auth"] == "Bearer secret"
        assert seen["body"] == {
            "title": "Range-Separated Hybrids for Charge Transfer",
            "url": "https://pubs.acs.org/doi/10.1021/acs.jctc.5c00301",
            "abstract": "We benchmark range-separated hybrids.",
            "authors": "Ada Lovelace",
            "date": "2025-06-01",
        }
        assert result.summary_cn == "总结"
        assert result.title_cn == "标题"
        assert result.abstract_cn == "旧摘要"
        assert result.enrichment == EnrichmentState.ENRICHED
        assert result.last_updated == 777

    async def test_no_authorization_header_without_key(self):
        seen: dict = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={"summary_cn": "总结"})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            await HttpEnricher(ENDPOINT, client=client).enrich(_article())

        assert seen["auth"] is None

    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(500, text="upstream exploded"),
            httpx.Response(200, json={"title_cn": "只有标题"}),
            httpx.Response(200, json={"summary_cn": ""}),
            httpx.Response(200, text="not json"),
        ],
    )
    async def test_bad_responses_mark_failed(self, response: httpx.Response):
        async with httpx.AsyncClient(transport=httpx.MockTransport(lambda request: response)) as client:
            result = await HttpEnricher(ENDPOINT, client=client).enrich(_article())

        assert result.enrichment == EnrichmentState.FAILED
        assert result.summary_cn is None

    async def test_transport_error_marks_failed(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            result = await HttpEnricher(ENDPOINT, client=client).enrich(_article())

        assert result.enrichment == EnrichmentState.FAILED
