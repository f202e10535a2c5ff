"""
HTML cleanup helpers

Removes non-content markup (scripts, styles, frames, ads, cookie banners,
popups) before extraction and turns markup into plain text for prompts and
word counts.
"""
import re
from typing import List

from bs4 import BeautifulSoup

REMOVED_TAGS: List[str] = ["script", "style", "iframe", "noscript"]
REMOVED_SELECTORS: List[str] = [
    ".advertisement",
    ".ad",
    '[class*="cookie"]',
    '[class*="popup"]',
]
# Never drop the document skeleton even if a theme puts e.g. "popup-open" on <body>
_STRUCTURAL_TAGS = {"html", "head", "body", "main", "article"}

_TAG_RE = re.compile(r"<[^>]*>")
_WS_RE = re.compile(r"\s+")


def sanitize_soup(soup: BeautifulSoup) -> BeautifulSoup:
    """Strip non-content elements and inline event handlers in place."""
    for tag in soup.find_all(REMOVED_TAGS):
        tag.decompose()
    for selector in REMOVED_SELECTORS:
        for el in soup.select(selector):
            if el.decomposed or el.name in _STRUCTURAL_TAGS:
                continue
            el.decompose()
    for el in soup.find_all(True):
        handlers = [a for a in el.attrs if a.lower().startswith("on")]
        for attr in handlers:
            del el[attr]
    return soup


def clean_html(html: str) -> str:
    if not html:
        return ""
    soup = BeautifulSoup(html, "html.parser")
    return str(sanitize_soup(soup)).strip()


def strip_html(html: str) -> str:
    if not html:
        return ""
    text = _TAG_RE.sub(" ", html)
    return _WS_RE.sub(" ", text).strip()


def excerpt(html: str, length: int = 200) -> str:
    text = _TAG_RE.sub("", html or "")
    return text[:length] + ("..." if len(text) > length else "")
