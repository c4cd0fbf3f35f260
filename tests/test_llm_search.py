"""Tests for the LLM-backed search crawler."""

import json

import pytest
from langchain_core.messages import AIMessage, HumanMessage

import src.tools.llm_search as llm_search
from src.scout.pipeline import CrawlError
from src.tools.llm_search import LLMSearchCrawler, _response_text, parse_crawl_response

_ITEMS = [
    {
        "title": "Excited States from TDDFT",
        "authors": ["Ada Lovelace", "Alan Turing"],
        "date": "2025-06-01",
        "url": "https://pubs.acs.org/doi/10.1021/acs.jctc.5c00201",
        "abstract": "We study excited states.",
    },
    {
        "title": "Free Energy Perturbation at Scale",
        "authors": "Grace Hopper",
        "url": "https://pubs.acs.org/doi/10.1021/acs.jctc.5c00202",
    },
    {"title": "No url here"},
    {"url": "https://pubs.acs.org/doi/10.1021/acs.jctc.5c00203"},
]


class FakeLLM:
    def __init__(self, content):
        self.content = content
        self.calls = []

    async def ainvoke(self, messages):
        self.calls.append(messages)
        return AIMessage(content=self.content)


class TestParseCrawlResponse:
    def test_extracts_array_from_prose(self):
        text = f"Here are the latest articles:\n```json\n{json.dumps(_ITEMS)}\n```\nEnjoy!"

        articles = parse_crawl_response(text)

        assert [a.title for a in articles] == ["Excited States from TDDFT", "Free Energy Perturbation at Scale"]
        assert articles[0].authors == "Ada Lovelace, Alan Turing"
        assert articles[1].date is None

    def test_non_object_items_are_skipped(self):
        text = json.dumps([1, "two", None, _ITEMS[1]])
        assert [a.title for a in parse_crawl_response(text)] == ["Free Energy Perturbation at Scale"]

    def test_empty_array(self):
        assert parse_crawl_response("[]") == []

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "   ",
            "I could not find any articles.",
            '{"title": "object, not array"}',
            "[{'title': 'single quotes'}]",
            "] backwards [",
        ],
    )
    def test_unusable_responses_raise(self, text: str):
        with pytest.raises(CrawlError):
            parse_crawl_response(text)


def test_response_text_joins_content_blocks():
    message = AIMessage(content=[{"type": "text", "text": "[{"}, {"type": "text", "text": "}]"}])
    assert _response_text(message) == "[{}]"


class TestLLMSearchCrawler:
    async def test_crawl_sends_prompt_and_parses_answer(self):
        llm = FakeLLM(json.dumps(_ITEMS))
        crawler = LLMSearchCrawler(llm=llm, limit=5)

        articles = await crawler.crawl()

        assert len(articles) == 2
        (messages,) = llm.calls
        assert isinstance(messages[0], HumanMessage)
        assert "Journal of Chemical Theory and Computation" in messages[0].content
        assert "5 most recent" in messages[0].content

    async def test_crawl_applies_limit(self):
        crawler = LLMSearchCrawler(llm=FakeLLM(json.dumps(_ITEMS)), limit=1)

        articles = await crawler.crawl()

        assert [a.title for a in articles] == ["Excited States from TDDFT"]

    async def test_default_model_is_search_enabled(self, monkeypatch: pytest.MonkeyPatch):
        llm = FakeLLM(json.dumps(_ITEMS))
        requested = {}

        def fake_create_llm(**kwargs):
            requested.update(kwargs)
            return llm

        monkeypatch.setattr(llm_search, "create_llm", fake_create_llm)
        crawler = LLMSearchCrawler(model_provider="openrouter", model_name="gpt-5")

        articles = await crawler.crawl()

        assert requested["enable_search"] is True
        assert requested["model_provider"] == "openrouter"
        assert len(llm.calls) == 1
        assert len(articles) == 2

    def test_provider_without_search_is_rejected(self):
        with pytest.raises(ValueError, match="search-enabled provider"):
            LLMSearchCrawler(model_provider="anthropic")

    async def test_crawl_raises_on_unparseable_answer(self):
        crawler = LLMSearchCrawler(llm=FakeLLM("Sorry, I cannot browse the web."))

        with pytest.raises(CrawlError):
            await crawler.crawl()
