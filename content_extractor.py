"""
Content extraction heuristics for blog article pages

A loaded page is snapshotted into a DocumentView (sanitized, parsed markup)
and every field is resolved by an ordered cascade: the first candidate that
yields a usable value wins. Content candidates must also clear a length
threshold, so a short teaser container never shadows the real article body.
"""
import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup
from bs4.element import Tag
from dateutil import parser as date_parser

import config
from html_sanitizer import sanitize_soup
from models import SourceDocument

LOGGER = logging.getLogger(__name__)

MIN_CONTENT_LENGTH = 200

CONTENT_SELECTORS: List[str] = [
    ".entry-content",
    ".post-content",
    ".article-content",
    ".blog-content",
    '[class*="post-body"]',
    '[class*="entry-body"]',
    "article .content",
    "article > div",
    ".elementor-widget-container",
    '[data-elementor-type="wp-post"]',
    ".elementor-element",
    ".content-area",
    "main article",
]
BLOCK_CONTAINER_SELECTORS: List[str] = ["article", "main", ".post"]
BLOCK_ELEMENTS = "p, h1, h2, h3, h4, h5, h6, ul, ol, blockquote, pre"
FALLBACK_CONTAINER_SELECTORS: List[str] = ["main", "article", ".site-content"]

TITLE_SELECTORS: List[str] = ["h1", ".article-title", '[class*="title"]']
AUTHOR_SELECTORS: List[str] = [".author", '[class*="author"]', '[rel="author"]', ".post-author"]
DATE_SELECTORS: List[str] = ["time", ".date", '[class*="date"]', ".published"]
TITLE_SEPARATORS: List[str] = ["|", " - ", " – "]

LISTING_SELECTORS: List[str] = [
    "article",
    ".blog-post",
    ".post",
    ".article-card",
    '[class*="article"]',
    '[class*="post"]',
]


class DocumentView:
    """Read-only, sanitized view of a rendered page."""

    def __init__(self, url: str, html: str, page_title: Optional[str] = None) -> None:
        self.url = url
        self.soup = sanitize_soup(BeautifulSoup(html or "", "html.parser"))
        if page_title is None:
            title_tag = self.soup.find("title")
            page_title = title_tag.get_text() if title_tag else ""
        self.page_title = (page_title or "").strip()

    def select_one(self, selector: str) -> Optional[Tag]:
        try:
            return self.soup.select_one(selector)
        except Exception:
            return None

    def select(self, selector: str) -> List[Tag]:
        try:
            return list(self.soup.select(selector))
        except Exception:
            return []

    def text_of(self, selector: str) -> str:
        el = self.select_one(selector)
        return el.get_text(" ", strip=True) if el else ""

    def inner_html(self, selector: str) -> str:
        el = self.select_one(selector)
        return el.decode_contents().strip() if el else ""

    @property
    def body_html(self) -> str:
        body = self.soup.body
        if body is None:
            return self.soup.decode_contents().strip()
        return body.decode_contents().strip()


ContentStrategy = Callable[[DocumentView], Optional[str]]


def _meets_threshold(markup: Optional[str]) -> bool:
    return bool(markup) and len(markup) > MIN_CONTENT_LENGTH


def _container_strategy(selector: str) -> ContentStrategy:
    def strategy(view: DocumentView) -> Optional[str]:
        markup = view.inner_html(selector)
        return markup if _meets_threshold(markup) else None

    return strategy


def _block_elements_strategy(view: DocumentView) -> Optional[str]:
    container = None
    for selector in BLOCK_CONTAINER_SELECTORS:
        container = view.select_one(selector)
        if container is not None:
            break
    if container is None:
        return None
    blocks = container.select(BLOCK_ELEMENTS)
    if not blocks:
        return None
    markup = "\n".join(str(b) for b in blocks)
    return markup if _meets_threshold(markup) else None


CONTENT_STRATEGIES: List[Tuple[str, ContentStrategy]] = [
    (selector, _container_strategy(selector)) for selector in CONTENT_SELECTORS
] + [("block-elements", _block_elements_strategy)]


def _fallback_content(view: DocumentView) -> Tuple[str, str]:
    for selector in FALLBACK_CONTAINER_SELECTORS:
        el = view.select_one(selector)
        if el is not None:
            return selector, el.decode_contents().strip()
    return "body", view.body_html


def extract_content(view: DocumentView) -> Tuple[str, str]:
    """Return (content_markup, strategy_name) for the page."""
    for name, strategy in CONTENT_STRATEGIES:
        try:
            markup = strategy(view)
        except Exception as e:
            LOGGER.debug("[extract] strategy %s raised on %s: %s", name, view.url, e)
            continue
        if markup:
            return markup, name
    name, markup = _fallback_content(view)
    LOGGER.info("[extract] No strategy met the threshold on %s, using %s fallback", view.url, name)
    return markup, name


def extract_title(view: DocumentView) -> str:
    for selector in TITLE_SELECTORS:
        text = view.text_of(selector)
        if text:
            return text
    title = view.page_title
    for sep in TITLE_SEPARATORS:
        if sep in title:
            title = title.split(sep)[0]
            break
    return title.strip()


def extract_author(view: DocumentView, default: Optional[str] = None) -> str:
    for selector in AUTHOR_SELECTORS:
        text = view.text_of(selector)
        if text:
            return text
    return default or config.DEFAULT_AUTHOR


def _parse_date(value: str) -> Optional[datetime]:
    try:
        parsed = date_parser.parse(value, fuzzy=True)
    except (ValueError, OverflowError, TypeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def extract_published_at(view: DocumentView) -> datetime:
    for selector in DATE_SELECTORS:
        el = view.select_one(selector)
        if el is None:
            continue
        for raw in (el.get("datetime"), el.get_text(" ", strip=True)):
            if isinstance(raw, str) and raw.strip():
                parsed = _parse_date(raw.strip())
                if parsed is not None:
                    return parsed
    return datetime.now(timezone.utc)


def extract(view: DocumentView, default_author: Optional[str] = None) -> SourceDocument:
    content, strategy = extract_content(view)
    title = extract_title(view) or "Untitled Article"
    LOGGER.debug("[extract] %s: title=%r strategy=%s chars=%s", view.url, title, strategy, len(content))
    return SourceDocument(
        title=title,
        content=content,
        author=extract_author(view, default_author),
        published_at=extract_published_at(view),
        source_url=view.url,
    )


def _element_href(el: Tag) -> Optional[str]:
    href = el.get("href") if el.name == "a" else None
    if not href:
        anchor = el.find("a", href=True)
        href = anchor.get("href") if anchor else None
    return href or None


def extract_listing_links(view: DocumentView, count: int, link_pattern: str = "/blogs/") -> List[str]:
    """Pick the trailing `count` article links from a listing page.

    The listing is assumed to be ordered oldest-last, which is a heuristic and
    not guaranteed by the site.
    """
    elements: List[Tag] = []
    selectors = LISTING_SELECTORS + [f'a[href*="{link_pattern}"]']
    for selector in selectors:
        elements = view.select(selector)
        if elements:
            LOGGER.info("[extract] Found %s listing items using selector: %s", len(elements), selector)
            break

    listing_path = urlparse(view.url).path.rstrip("/")
    if not elements:
        LOGGER.info("[extract] Using fallback: extracting all links")
        elements = [a for a in view.select("a[href]") if link_pattern in (a.get("href") or "")]

    urls: List[str] = []
    for el in elements:
        href = _element_href(el)
        if not href:
            continue
        absolute = urljoin(view.url, href)
        if urlparse(absolute).path.rstrip("/") == listing_path:
            continue
        if absolute not in urls:
            urls.append(absolute)
    return urls[-count:] if count > 0 else []
