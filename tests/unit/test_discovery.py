from unittest.mock import Mock

from src.pipeline.discovery import (
    SeedLinkUrlSource,
    StaticUrlSource,
    discover_links,
    topic_tokens,
)
from src.pipeline.fetchers.static import FetchError, FetchResult, StaticFetcher


DIRECTORY = """
<html><body>
  <a href="/roasters/acme">Acme Coffee Roasters</a>
  <a href="https://other.example.org/coffee-shops/">Shops</a>
  <a href="/about">About us</a>
  <a href="mailto:coffee@dir.example">Mail</a>
  <a href="/roasters/acme#top">Acme again</a>
</body></html>
"""


def test_topic_tokens():
    assert topic_tokens("Coffee Shops") == ["coffee", "shops", "coffee-shops"]
    assert topic_tokens("ai") == ["ai"]


def test_discover_links_matches_href_or_text():
    links = discover_links("https://dir.example.com/list", DIRECTORY, "coffee")
    assert links == [
        "https://dir.example.com/roasters/acme",
        "https://other.example.org/coffee-shops",
    ]


def test_static_source_dedupes_in_order():
    source = StaticUrlSource(["https://a/", "https://b/", "https://a/", " "])
    assert source.candidate_urls("ignored", 10) == ["https://a/", "https://b/"]


def test_seed_source_adds_discovered_links():
    fetcher = Mock(spec=StaticFetcher)
    fetcher.fetch.return_value = FetchResult(
        url="https://dir.example.com/list", status_code=200, mime="text/html",
        content_length=len(DIRECTORY), text=DIRECTORY, headers={},
    )
    source = SeedLinkUrlSource(["https://dir.example.com/list"], fetcher=fetcher)

    urls = source.candidate_urls("coffee", 10)

    assert urls == [
        "https://dir.example.com/list",
        "https://dir.example.com/roasters/acme",
        "https://other.example.org/coffee-shops",
    ]


def test_seed_source_respects_max_results_and_failures():
    fetcher = Mock(spec=StaticFetcher)
    fetcher.fetch.return_value = FetchError(url="https://down.example/", cause="refused")
    source = SeedLinkUrlSource(["https://down.example/", "https://b.example/"], fetcher=fetcher)

    assert source.candidate_urls("coffee", 1) == ["https://down.example/"]
    assert source.candidate_urls("coffee", 5) == ["https://down.example/", "https://b.example/"]
