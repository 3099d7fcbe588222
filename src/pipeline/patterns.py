"""
Contact Patterns - Email, Phone, Website, Social and Free-Text Cue Matchers

Pure functions over text. Every pattern is compiled once at import time and
shared read-only by all worker threads.

Key Features:
- Email extraction with asset-filename false-positive filtering
- North-American phone numbers returned verbatim (no normalization)
- First-website lookup for bios
- Social links from both href attributes and visible text
- Contact/location cues from bio-style text ("Contact: ...", "📍 Berlin")
"""

from __future__ import annotations

import re
from typing import Optional, Set, Union

from selectolax.parser import HTMLParser


EMAIL_PATTERN = re.compile(
    r"\b[A-Za-z0-9](?:[A-Za-z0-9._%-]*[A-Za-z0-9])?"
    r"@[A-Za-z0-9](?:[A-Za-z0-9.-]*[A-Za-z0-9])?\.[A-Za-z]{2,}\b"
)

# Optional country code 1, optional parentheses around the area code.
# Separators stay on one line: space, dot or dash only
PHONE_PATTERN = re.compile(
    r"(?<!\w)(?:\+?1[-. ]?)?(?:\(\d{3}\)|\d{3})[-. ]?\d{3}[-. ]?\d{4}(?!\w)"
)

WEBSITE_PATTERN = re.compile(
    r"https?://[\w\-]+(?:\.[\w\-]+)+(?:[\w\-.,@?^=%&:/~+#]*[\w\-@?^=%&/~+#])?"
)

SOCIAL_DOMAINS = (
    "instagram.com", "twitter.com", "x.com", "facebook.com", "linkedin.com",
    "youtube.com", "github.com", "medium.com", "reddit.com", "pinterest.com",
    "tiktok.com", "snapchat.com",
)

# Left boundary keeps "dropbox.com/..." from matching as x.com
SOCIAL_PATTERN = re.compile(
    r"(?<![\w.-])(?:https?://)?(?:[\w-]+\.)*(?:"
    + "|".join(re.escape(d) for d in SOCIAL_DOMAINS)
    + r")/[\w\-./]+",
    re.IGNORECASE,
)

# Substrings that mark image/script artifacts misparsed as addresses
EMAIL_FALSE_POSITIVE_MARKERS = ("@2x", "@3x", "fallback", ".min.")
EMAIL_FALSE_POSITIVE_SUFFIXES = (".js", ".css")
NUMERIC_DOMAIN_RE = re.compile(r"@\d+\.\d+")

CONTACT_KEYWORDS = (
    "contact:", "email:", "reach me:", "dm me:", "message me:",
    "get in touch:", "business:", "collab:", "collaboration:",
)

LOCATION_KEYWORDS = ("📍", "🌍", "🌎", "🌏", "based in", "located in", "from")

_CONTACT_CUES = tuple(re.compile(re.escape(k), re.IGNORECASE) for k in CONTACT_KEYWORDS)
_LOCATION_CUES = tuple(re.compile(re.escape(k), re.IGNORECASE) for k in LOCATION_KEYWORDS)

_WS_RE = re.compile(r"\s+")


def is_false_positive_email(email: str) -> bool:
    """True for tokens like ``icon@2x.png`` or ``app@1.2.min.js``."""
    low = email.lower()
    if any(m in low for m in EMAIL_FALSE_POSITIVE_MARKERS):
        return True
    if low.endswith(EMAIL_FALSE_POSITIVE_SUFFIXES):
        return True
    return NUMERIC_DOMAIN_RE.search(low) is not None


def extract_emails(text: Optional[str]) -> Set[str]:
    if not text:
        return set()
    out: Set[str] = set()
    for m in EMAIL_PATTERN.finditer(text):
        email = m.group(0).lower()
        if not is_false_positive_email(email):
            out.add(email)
    return out


def extract_phone_numbers(text: Optional[str]) -> Set[str]:
    """Return matched phone substrings as they appear in the text."""
    if not text:
        return set()
    return {m.group(0).strip() for m in PHONE_PATTERN.finditer(text)}


def extract_website(text: Optional[str]) -> Optional[str]:
    if not text:
        return None
    m = WEBSITE_PATTERN.search(text)
    return m.group(0) if m else None


def visible_text(parser: HTMLParser) -> str:
    """Whitespace-collapsed text of a parsed document (script/style excluded)."""
    root = parser.body or parser.root
    if root is None:
        return ""
    # Work on a copy so callers keep their script/style nodes
    clone = HTMLParser(root.html or "")
    clone.strip_tags(["script", "style", "noscript", "template"])
    node = clone.body or clone.root
    text = node.text(separator=" ") if node is not None else ""
    return _WS_RE.sub(" ", text).strip()


def extract_social_links(source: Union[HTMLParser, str, None]) -> Set[str]:
    """Social links from href attributes and from plain-text mentions.

    Accepts a parsed document (hrefs + visible text) or plain text.
    """
    if source is None:
        return set()
    links: Set[str] = set()
    if isinstance(source, HTMLParser):
        for a in source.css("a[href]"):
            href = (a.attrs.get("href") or "").strip()
            if href and SOCIAL_PATTERN.search(href):
                links.add(href)
        text = visible_text(source)
    else:
        text = source
    for m in SOCIAL_PATTERN.finditer(text or ""):
        links.add(m.group(0))
    return links


def _first_cue(text: Optional[str], cues) -> Optional[str]:
    if not text:
        return None
    for cue in cues:
        m = cue.search(text)
        if not m:
            continue
        # Text after the keyword; leading blank lines are skipped
        remainder = text[m.end():].strip()
        line = remainder.splitlines()[0].strip() if remainder else ""
        return line or None
    return None


def extract_contact_cue(text: Optional[str]) -> Optional[str]:
    return _first_cue(text, _CONTACT_CUES)


def extract_location_cue(text: Optional[str]) -> Optional[str]:
    return _first_cue(text, _LOCATION_CUES)
