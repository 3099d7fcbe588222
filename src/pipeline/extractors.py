"""
Contact Extraction Logic - Page Fields and Profile Bios

Turns a fetched document (selectolax) or a follower/following list entry
into a record by running the pattern library over it.

Key Features:
- Title / description / main-content detection with ordered fallbacks
- Emails, phones and social links from the visible page text
- Bio parsing for emails, phones, website, contact and location cues
"""

import re
from typing import List, Optional
from urllib.parse import urlparse

from selectolax.parser import HTMLParser

from ..schemas import PageRecord, ProfileRecord, RecordStatus
from .patterns import (
    extract_contact_cue,
    extract_emails,
    extract_location_cue,
    extract_phone_numbers,
    extract_social_links,
    extract_website,
    visible_text,
)


_WS_RE = re.compile(r"\s+")


def _clean(text: Optional[str]) -> str:
    return _WS_RE.sub(" ", text or "").strip()


def _truncate(text: str, limit: int) -> str:
    return text[:limit] + "..." if len(text) > limit else text


class ContactExtractor:
    """
    Extracts structured fields from web pages and profile list entries.

    Stateless after construction, so one instance is shared by all HTTP
    workers.
    """

    def __init__(
        self,
        *,
        content_limit: int = 2000,
        description_limit: int = 200,
        profile_base_url: str = "https://www.instagram.com",
    ):
        """
        Initialize Contact Extractor.

        Args:
            content_limit: Max characters of main content before "..." is appended
            description_limit: Max characters of the first-paragraph fallback
            profile_base_url: Base used to build profile URLs from usernames
        """
        self.content_limit = content_limit
        self.description_limit = description_limit
        self.profile_base_url = profile_base_url.rstrip("/")

        # Meta descriptions, in priority order
        self.description_selectors = [
            'meta[name="description"]',
            'meta[property="og:description"]',
            'meta[name="twitter:description"]',
        ]

        # Main content containers, first non-empty wins
        self.content_selectors = [
            "main", "article", ".content", ".post", ".entry", ".main-content",
            ".page-content", ".article-content", ".post-content", ".entry-content",
            "#content", "#main", "#article", ".container", ".wrapper",
        ]

        # Page chrome removed before content detection
        self.boilerplate_tags = ["nav", "header", "footer", "aside"]

    # -------------------------
    # Web pages
    # -------------------------
    def extract_from_static_html(self, html: str, source_url: str, response_time_ms: int = 0) -> PageRecord:
        """
        Build a success record from a fetched document.

        Args:
            html: Response body (HTML or any text)
            source_url: URL that was requested
            response_time_ms: Time spent fetching

        Returns:
            PageRecord with every web field populated
        """
        parser = HTMLParser(html or "")
        parser.strip_tags(["script", "style", "noscript", "template"])

        title = self._extract_title(parser)
        description = self._extract_description(parser)
        text = visible_text(parser)
        emails = extract_emails(text)
        phones = extract_phone_numbers(text)
        social = extract_social_links(parser)
        # Content detection mutates the tree, so it runs last
        content = self._extract_content(parser)

        return PageRecord(
            url=source_url,
            title=title,
            description=description,
            emails=emails,
            phone_numbers=phones,
            social_links=social,
            content=content,
            domain=self._extract_domain(source_url),
            status=RecordStatus.SUCCESS,
            response_time_ms=response_time_ms,
        )

    def _extract_title(self, parser: HTMLParser) -> str:
        node = parser.css_first("title")
        return _clean(node.text()) if node is not None else ""

    def _extract_description(self, parser: HTMLParser) -> str:
        for selector in self.description_selectors:
            node = parser.css_first(selector)
            if node is None:
                continue
            content = (node.attrs.get("content") or "").strip()
            if content:
                return content

        paragraphs: List[str] = [_clean(p.text(separator=" ")) for p in parser.css("p")]
        for text in paragraphs:
            if 50 < len(text) < 300:
                return text
        if paragraphs:
            return _truncate(paragraphs[0], self.description_limit)
        return ""

    def _extract_content(self, parser: HTMLParser) -> str:
        parser.strip_tags(self.boilerplate_tags)
        for selector in self.content_selectors:
            node = parser.css_first(selector)
            if node is None:
                continue
            text = _clean(node.text(separator=" "))
            if text:
                return _truncate(text, self.content_limit)
        if parser.body is not None:
            return _truncate(_clean(parser.body.text(separator=" ")), self.content_limit)
        return ""

    def _extract_domain(self, url: str) -> str:
        try:
            return urlparse(url).hostname or ""
        except ValueError:
            return ""

    # -------------------------
    # Profile list entries
    # -------------------------
    def extract_from_profile_entry(
        self,
        username: str,
        display_name: Optional[str],
        bio: Optional[str],
        response_time_ms: int = 0,
    ) -> ProfileRecord:
        """Build a success record from a list entry's visible name and bio."""
        name = _clean(display_name) or username
        bio_text = (bio or "").strip()
        return ProfileRecord(
            username=username,
            full_name=name,
            profile_url=f"{self.profile_base_url}/{username}",
            bio=bio_text,
            emails=extract_emails(bio_text),
            phone_numbers=extract_phone_numbers(bio_text),
            website=extract_website(bio_text),
            contact=extract_contact_cue(bio_text),
            location=extract_location_cue(bio_text),
            status=RecordStatus.SUCCESS,
            response_time_ms=response_time_ms,
        )
