"""
Scrapes original articles from the blog listing page and stores them

The listing heuristic takes the trailing N article links in page order and
assumes those are the oldest posts; listing order is not guaranteed to be
chronological on every site.
"""
import asyncio
import logging
import sys
from dataclasses import dataclass
from typing import Any, Optional

import config
from articles_store import ArticleStore
from content_extractor import extract, extract_listing_links
from errors import PipelineError
from html_sanitizer import clean_html
from models import ArticleRecord
from navigation import open_session

LOGGER = logging.getLogger(__name__)

CONTENT_READY_SELECTOR = "article, .entry-content, .post-content"


@dataclass
class ScrapeSummary:
    found: int = 0
    saved: int = 0
    skipped: int = 0
    failed: int = 0


class ScrapePipeline:
    def __init__(
        self,
        store: Any,
        session: Any,
        blog_url: str = config.BLOG_URL,
        link_pattern: str = config.BLOG_LINK_PATTERN,
        article_delay_ms: int = config.SCRAPING_DELAY_MS,
        default_author: Optional[str] = None,
    ) -> None:
        self.store = store
        self.session = session
        self.blog_url = blog_url
        self.link_pattern = link_pattern
        self.article_delay_ms = article_delay_ms
        self.default_author = default_author

    async def scrape_article(self, url: str) -> ArticleRecord:
        view = await self.session.load(url, wait_for_selector=CONTENT_READY_SELECTOR)
        source = extract(view, default_author=self.default_author)
        source.content = clean_html(source.content)
        source.source_url = url
        return ArticleRecord.from_source(source)

    async def run(self, count: int = 5) -> ScrapeSummary:
        summary = ScrapeSummary()
        LOGGER.info("[scrape] Navigating to %s", self.blog_url)
        listing = await self.session.load(self.blog_url, scroll=True)
        urls = extract_listing_links(listing, count, self.link_pattern)
        summary.found = len(urls)
        LOGGER.info("[scrape] Processing %s articles...", len(urls))

        for index, url in enumerate(urls):
            if index > 0 and self.article_delay_ms > 0:
                await asyncio.sleep(self.article_delay_ms / 1000)
            LOGGER.info("[scrape] %s. Scraping: %s", index + 1, url)
            try:
                existing = await asyncio.to_thread(self.store.find_original_by_url, url)
                if existing is not None:
                    LOGGER.info("[scrape] Skipped (already exists): %s", existing.title)
                    summary.skipped += 1
                    continue
                record = await self.scrape_article(url)
                saved = await asyncio.to_thread(self.store.insert_original, record)
            except Exception as e:
                LOGGER.error("[scrape] Error scraping article %s (%s): %s", index + 1, url, e)
                summary.failed += 1
                continue
            summary.saved += 1
            LOGGER.info(
                "[scrape] Saved: %s (id=%s, words=%s, reading time=%s min)",
                saved.title,
                saved.id,
                saved.metadata.word_count,
                saved.metadata.reading_time_minutes,
            )

        LOGGER.info(
            "[scrape] Summary: found=%s saved=%s skipped=%s failed=%s",
            summary.found,
            summary.saved,
            summary.skipped,
            summary.failed,
        )
        return summary


async def run_scrape(count: int = 5, headful: bool = False, blog_url: Optional[str] = None) -> ScrapeSummary:
    store = ArticleStore.from_env()
    try:
        store.ping()
        store.init_indexes()
        async with open_session(headful=headful) as session:
            pipeline = ScrapePipeline(store, session, blog_url=blog_url or config.BLOG_URL)
            return await pipeline.run(count)
    finally:
        store.close()


def _cli():
    import argparse

    parser = argparse.ArgumentParser(description="Scrape the oldest articles from the blog listing into MongoDB")
    parser.add_argument("--count", type=int, default=5, help="Number of articles to scrape (default 5)")
    parser.add_argument("--blog-url", default=None, help="Listing page URL (default BLOG_URL)")
    parser.add_argument("--headful", action="store_true")
    parser.add_argument("--log-level", default=None)
    args = parser.parse_args()

    config.configure_logging(args.log_level)
    try:
        summary = asyncio.run(run_scrape(count=args.count, headful=args.headful, blog_url=args.blog_url))
    except PipelineError as e:
        LOGGER.error("[scrape] Fatal error: %s", e)
        sys.exit(1)
    if summary.found == 0:
        LOGGER.error("[scrape] No articles were found. Please check the website structure.")
        sys.exit(1)


if __name__ == "__main__":
    _cli()
