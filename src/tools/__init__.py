"""Crawl and enrichment collaborators for the scout pipeline."""

from src.tools.enrichment import HttpEnricher, LLMEnricher, apply_enrichment
from src.tools.jctc_feed import JctcFeedCrawler, parse_feed_entries
from src.tools.llm_search import LLMSearchCrawler, parse_crawl_response

__all__ = [
    "HttpEnricher",
    "LLMEnricher",
    "apply_enrichment",
    "JctcFeedCrawler",
    "parse_feed_entries",
    "LLMSearchCrawler",
    "parse_crawl_response",
]
