"""
Candidate URL sources for the web scrape.

No search engine is queried. A source either hands back a fixed list or
fetches a few seed pages and keeps the links whose href or anchor text
mentions the topic.
"""

from __future__ import annotations

import re
from typing import Iterable, List, Optional, Protocol, Sequence, Set
from urllib.parse import urljoin, urlparse, urlunparse

from selectolax.parser import HTMLParser

from .fetchers.static import FetchError, StaticFetcher


class UrlSource(Protocol):
    def candidate_urls(
        self,
        topic: str,
        max_results: int,
        *,
        search_engine: str = "google",
        language: str = "en",
        country: str = "us",
    ) -> List[str]:
        ...


def _normalize_url(u: str) -> str:
    try:
        p = urlparse(u)
        netloc = (p.netloc or '').lower()
        path = p.path or ''
        if path.endswith('/') and path != '/':
            path = path.rstrip('/')
        p2 = p._replace(netloc=netloc, path=path, fragment='')
        return urlunparse(p2)
    except ValueError:
        return u


def _dedupe(urls: Iterable[str]) -> List[str]:
    seen: Set[str] = set()
    out: List[str] = []
    for u in urls:
        u = (u or "").strip()
        if u and u not in seen:
            seen.add(u)
            out.append(u)
    return out


def topic_tokens(topic: str) -> List[str]:
    """Lowercased words of the topic, plus its slug ("data science" -> "data-science")."""
    words = [w for w in re.split(r"[^a-z0-9]+", (topic or "").lower()) if len(w) >= 3]
    slug = "-".join(re.split(r"[^a-z0-9]+", (topic or "").lower())).strip("-")
    tokens = list(words)
    if slug and slug not in tokens:
        tokens.append(slug)
    return tokens


class StaticUrlSource:
    """A fixed candidate list (e.g. read from an input file); the topic is ignored."""

    def __init__(self, urls: Sequence[str]):
        self.urls = _dedupe(urls)

    def candidate_urls(self, topic, max_results, *, search_engine="google", language="en", country="us") -> List[str]:
        return list(self.urls)


def discover_links(base_url: str, html: str, topic: str, max_links: int = 20) -> List[str]:
    """Absolute http(s) links from ``html`` whose href or text mentions the topic."""
    tokens = topic_tokens(topic)
    if not tokens:
        return []
    parser = HTMLParser(html)
    out: List[str] = []
    seen: Set[str] = set()
    for a in parser.css("a"):
        href = a.attrs.get("href") if a.attrs else None
        if not href or href.startswith(("mailto:", "tel:", "javascript:", "#")):
            continue
        text = (a.text() or "").strip().lower()
        low = href.lower()
        if not any(t in low or t in text for t in tokens):
            continue
        abs_url = urljoin(base_url, href)
        if urlparse(abs_url).scheme not in ("http", "https"):
            continue
        nu = _normalize_url(abs_url)
        if nu not in seen:
            seen.add(nu)
            out.append(nu)
        if len(out) >= max_links:
            break
    return out


class SeedLinkUrlSource:
    """Seeds first, then topic-matching links found on the seed pages."""

    def __init__(self, seeds: Sequence[str], fetcher: Optional[StaticFetcher] = None, max_links_per_seed: int = 20):
        self.seeds = _dedupe(seeds)
        self.fetcher = fetcher or StaticFetcher()
        self.max_links_per_seed = max_links_per_seed

    def candidate_urls(self, topic, max_results, *, search_engine="google", language="en", country="us") -> List[str]:
        found: List[str] = list(self.seeds)
        for seed in self.seeds:
            if len(_dedupe(found)) >= max_results:
                break
            res = self.fetcher.fetch(seed)
            if isinstance(res, FetchError):
                print(f"  ⚠️  Seed unavailable: {seed}: {res.cause}")
                continue
            if res.status_code >= 400 or not res.text:
                continue
            found.extend(discover_links(res.url, res.text, topic, self.max_links_per_seed))
        return _dedupe(found)[:max_results]
