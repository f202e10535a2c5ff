"""Tests for the listing scraper with a fake browser session."""

import asyncio

from articles_store import ArticleStore
from content_extractor import DocumentView
from scrape_pipeline import ScrapePipeline

_LISTING_URL = "https://example.com/blogs/"


class FakeSession:
    def __init__(self, pages, failing=()):
        self.pages = pages
        self.failing = set(failing)
        self.loaded = []

    async def load(self, url, **kwargs):
        self.loaded.append(url)
        if url in self.failing:
            raise RuntimeError(f"cannot load {url}")
        return DocumentView(url, self.pages[url])


def _article_page(title: str) -> str:
    return (
        f"<html><head><title>{title} | Example</title></head><body>"
        f'<h1>{title}</h1><span class="author">Jane</span>'
        '<time datetime="2023-06-01T00:00:00Z">June 1</time>'
        f'<div class="entry-content"><p>{"content " * 50}</p><script>track()</script></div>'
        "</body></html>"
    )


def _pages(n: int):
    listing = "<html><body>" + "".join(
        f'<article><a href="/blogs/post-{i}/">Post {i}</a></article>' for i in range(1, n + 1)
    ) + "</body></html>"
    pages = {_LISTING_URL: listing}
    for i in range(1, n + 1):
        pages[f"{_LISTING_URL}post-{i}/"] = _article_page(f"Post {i}")
    return pages


def test_scrape_saves_trailing_articles(store: ArticleStore) -> None:
    session = FakeSession(_pages(4))
    pipeline = ScrapePipeline(store, session, blog_url=_LISTING_URL, article_delay_ms=0)

    summary = asyncio.run(pipeline.run(count=2))

    assert (summary.found, summary.saved, summary.skipped, summary.failed) == (2, 2, 0, 0)
    saved = store.find_original_by_url(f"{_LISTING_URL}post-4/")
    assert saved is not None
    assert saved.title == "Post 4"
    assert saved.author == "Jane"
    assert "track()" not in saved.content
    assert saved.metadata.word_count == 50


def test_scrape_skips_existing_urls(store: ArticleStore) -> None:
    pages = _pages(2)
    asyncio.run(ScrapePipeline(store, FakeSession(pages), blog_url=_LISTING_URL, article_delay_ms=0).run(count=2))

    session = FakeSession(pages)
    summary = asyncio.run(ScrapePipeline(store, session, blog_url=_LISTING_URL, article_delay_ms=0).run(count=2))

    assert (summary.saved, summary.skipped) == (0, 2)
    assert session.loaded == [_LISTING_URL]
    assert store.count(is_updated=False) == 2


def test_scrape_counts_failures_and_continues(store: ArticleStore) -> None:
    session = FakeSession(_pages(3), failing={f"{_LISTING_URL}post-2/"})
    pipeline = ScrapePipeline(store, session, blog_url=_LISTING_URL, article_delay_ms=0)

    summary = asyncio.run(pipeline.run(count=3))

    assert (summary.saved, summary.failed) == (2, 1)
