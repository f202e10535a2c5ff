"""
Web search for top-ranking competitor articles

Providers are tried in order: the rendered Google results page first, then
the static DuckDuckGo HTML endpoint. An empty result set is not an error, it
means the article is enhanced without references.
"""
import logging
from typing import Any, List, Optional, Sequence
from urllib.parse import parse_qs, quote_plus, urljoin, urlparse

import httpx

from content_extractor import DocumentView
from errors import PipelineError
from models import SearchResult

LOGGER = logging.getLogger(__name__)

DENIED_DOMAINS: List[str] = [
    "google.com",
    "duckduckgo.com",
    "youtube.com",
    "facebook.com",
    "twitter.com",
    "x.com",
    "linkedin.com",
    "instagram.com",
    "tiktok.com",
]
DENIED_EXTENSIONS = (".pdf",)

GOOGLE_SEARCH_URL = "https://www.google.com/search?q={query}"
GOOGLE_RESULT_SELECTORS: List[str] = ["div.g", "div[data-hveid]", ".rc"]
DUCKDUCKGO_SEARCH_URL = "https://html.duckduckgo.com/html/?q={query}"
DUCKDUCKGO_TIMEOUT_S = 10.0


def is_denied_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return True
    if parsed.scheme not in ("http", "https"):
        return True
    host = (parsed.hostname or "").lower()
    if not host:
        return True
    for domain in DENIED_DOMAINS:
        if host == domain or host.endswith("." + domain):
            return True
    return parsed.path.lower().endswith(DENIED_EXTENSIONS)


def _unwrap_redirect(href: str, base_url: str) -> str:
    """Resolve relative links and unwrap engine redirect URLs (/url?q=, /l/?uddg=)."""
    absolute = urljoin(base_url, href)
    parsed = urlparse(absolute)
    params = parse_qs(parsed.query)
    host = (parsed.hostname or "").lower()
    is_engine = host.endswith("google.com") or host.endswith("duckduckgo.com")
    if is_engine and parsed.path in ("/url", "/l/", "/l"):
        for key in ("q", "url", "uddg"):
            if params.get(key):
                return params[key][0]
    return absolute


def _filter_results(candidates: Sequence[SearchResult], limit: int) -> List[SearchResult]:
    results: List[SearchResult] = []
    seen = set()
    for item in candidates:
        if len(results) >= limit:
            break
        if not item.url or item.url in seen or is_denied_url(item.url):
            continue
        seen.add(item.url)
        results.append(item)
    return results


def parse_google_results(view: DocumentView, limit: int) -> List[SearchResult]:
    blocks = []
    for selector in GOOGLE_RESULT_SELECTORS:
        blocks = view.select(selector)
        if blocks:
            break
    candidates: List[SearchResult] = []
    for block in blocks:
        anchor = block.select_one("a[href]")
        if anchor is None:
            continue
        url = _unwrap_redirect(anchor.get("href") or "", view.url)
        heading = block.select_one("h3")
        title = heading.get_text(" ", strip=True) if heading else url
        candidates.append(SearchResult(url=url, title=title or url))
    return _filter_results(candidates, limit)


def parse_duckduckgo_results(html: str, base_url: str, limit: int) -> List[SearchResult]:
    view = DocumentView(url=base_url, html=html)
    candidates: List[SearchResult] = []
    for anchor in view.select(".result__a"):
        href = anchor.get("href")
        if not href:
            continue
        url = _unwrap_redirect(href, base_url)
        candidates.append(SearchResult(url=url, title=anchor.get_text(" ", strip=True) or url))
    return _filter_results(candidates, limit)


class GoogleSearchProvider:
    name = "google"

    def __init__(self, session: Any, timeout_ms: int = 30_000, settle_ms: int = 2_000) -> None:
        self.session = session
        self.timeout_ms = timeout_ms
        self.settle_ms = settle_ms

    async def search(self, query: str, limit: int) -> List[SearchResult]:
        url = GOOGLE_SEARCH_URL.format(query=quote_plus(query))
        try:
            view = await self.session.load(
                url,
                timeout_ms=self.timeout_ms,
                scroll=False,
                settle_ms=self.settle_ms,
            )
        except PipelineError as e:
            LOGGER.warning("[search] Google search error: %s", e)
            return []
        return parse_google_results(view, limit)


class DuckDuckGoSearchProvider:
    name = "duckduckgo"

    def __init__(self, timeout_s: float = DUCKDUCKGO_TIMEOUT_S, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.timeout_s = timeout_s
        self.transport = transport

    async def search(self, query: str, limit: int) -> List[SearchResult]:
        url = DUCKDUCKGO_SEARCH_URL.format(query=quote_plus(query))
        headers = {"User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, transport=self.transport, follow_redirects=True) as client:
                r = await client.get(url, headers=headers)
                r.raise_for_status()
        except httpx.HTTPError as e:
            LOGGER.warning("[search] DuckDuckGo search error: %s", e)
            return []
        return parse_duckduckgo_results(r.text, url, limit)


class SearchClient:
    def __init__(self, providers: Sequence[Any]) -> None:
        self.providers = list(providers)

    @classmethod
    def default(cls, session: Any) -> "SearchClient":
        return cls([GoogleSearchProvider(session), DuckDuckGoSearchProvider()])

    async def search(self, query: str, limit: int = 2) -> List[SearchResult]:
        for index, provider in enumerate(self.providers):
            LOGGER.info("[search] Searching %s for: %r", provider.name, query)
            results = await provider.search(query, limit)
            if results:
                LOGGER.info("[search] %s returned %s results", provider.name, len(results))
                return results[:limit]
            if index + 1 < len(self.providers):
                LOGGER.warning("[search] %s returned no results, falling back", provider.name)
        LOGGER.warning("[search] No search results found for %r", query)
        return []
