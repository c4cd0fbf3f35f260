"""Tests for the JCTC ASAP feed crawler."""

from unittest.mock import MagicMock

import pytest
import requests

import src.tools.jctc_feed as jctc_feed
from src.scout.pipeline import CrawlError
from src.tools.jctc_feed import JctcFeedCrawler, parse_feed_entries

SAMPLE_RSS = """\
<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:dc="http://purl.org/dc/elements/1.1/">
  <channel>
    <title>Journal of Chemical Theory and Computation: Latest Articles (ACS Publications)</title>
    <link>https://pubs.acs.org/journal/jctcce</link>
    <description>Latest articles</description>
    <item>
      <title>Machine-Learned Potentials for Reactive Dynamics</title>
      <link>https://pubs.acs.org/doi/10.1021/acs.jctc.5c00101</link>
      <description><![CDATA[<p>We present <b>a neural network potential</b> for reactive systems.</p>]]></description>
      <dc:creator>Jane Doe</dc:creator>
      <pubDate>Mon, 06 Jan 2025 08:00:00 GMT</pubDate>
    </item>
    <item>
      <title>Coupled Cluster Benchmarks for Transition Metals</title>
      <link>https://pubs.acs.org/doi/10.1021/acs.jctc.5c00102</link>
      <description>Benchmark study.</description>
      <pubDate>Tue, 07 Jan 2025 08:00:00 GMT</pubDate>
    </item>
    <item>
      <title>Embedding Schemes Revisited</title>
      <link>https://pubs.acs.org/doi/10.1021/acs.jctc.5c00103</link>
    </item>
  </channel>
</rss>
"""


@pytest.fixture
def mock_get(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    response = MagicMock()
    response.content = SAMPLE_RSS.encode("utf-8")
    response.raise_for_status.return_value = None
    get = MagicMock(return_value=response)
    monkeypatch.setattr(jctc_feed.requests, "get", get)
    return get


class TestParseFeedEntries:
    def test_parses_items(self):
        articles = parse_feed_entries(SAMPLE_RSS, limit=10)

        assert len(articles) == 3
        first = articles[0]
        assert first.title == "Machine-Learned Potentials for Reactive Dynamics"
        assert first.url == "https://pubs.acs.org/doi/10.1021/acs.jctc.5c00101"
        assert first.date == "2025-01-06"
        assert first.authors == "Jane Doe"

    def test_abstract_is_plain_text(self):
        first = parse_feed_entries(SAMPLE_RSS)[0]

        assert "neural network potential" in first.abstract
        assert "<" not in first.abstract

    def test_missing_fields_are_none(self):
        last = parse_feed_entries(SAMPLE_RSS)[2]

        assert last.abstract is None
        assert last.authors is None
        assert last.date is None

    def test_limit(self):
        assert len(parse_feed_entries(SAMPLE_RSS, limit=2)) == 2

    def test_malformed_feed_raises(self):
        with pytest.raises(CrawlError):
            parse_feed_entries("this is not a feed at all")

    def test_empty_channel_yields_nothing(self):
        empty = '<?xml version="1.0"?><rss version="2.0"><channel><title>x</title></channel></rss>'
        assert parse_feed_entries(empty) == []


class TestJctcFeedCrawler:
    async def test_crawl_fetches_and_parses(self, mock_get: MagicMock):
        crawler = JctcFeedCrawler(feed_url="https://example.com/feed", limit=2, timeout=5.0)

        articles = await crawler.crawl()

        assert [a.url for a in articles] == [
            "https://pubs.acs.org/doi/10.1021/acs.jctc.5c00101",
            "https://pubs.acs.org/doi/10.1021/acs.jctc.5c00102",
        ]
        mock_get.assert_called_once()
        args, kwargs = mock_get.call_args
        assert args[0] == "https://example.com/feed"
        assert kwargs["timeout"] == 5.0

    async def test_network_error_raises_crawl_error(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr(
            jctc_feed.requests,
            "get",
            MagicMock(side_effect=requests.ConnectionError("connection refused")),
        )

        with pytest.raises(CrawlError, match="connection refused"):
            await JctcFeedCrawler().crawl()

    async def test_http_error_raises_crawl_error(self, mock_get: MagicMock):
        mock_get.return_value.raise_for_status.side_effect = requests.HTTPError("503 Server Error")

        with pytest.raises(CrawlError, match="503"):
            await JctcFeedCrawler().crawl()
