"""
Fetches the bodies of competing articles found by search
"""
import asyncio
import logging
from typing import Any, List, Sequence

import config
from content_extractor import extract
from errors import ExtractionInsufficient
from models import ReferenceDocument, SearchResult

LOGGER = logging.getLogger(__name__)

REFERENCE_SETTLE_MS = 1_500
CONTENT_READY_SELECTOR = "article, .entry-content, .post-content"


class ReferenceCollector:
    def __init__(
        self,
        session: Any,
        delay_ms: int = config.REFERENCE_DELAY_MS,
        timeout_ms: int = config.NAVIGATION_TIMEOUT_MS,
        settle_ms: int = REFERENCE_SETTLE_MS,
    ) -> None:
        self.session = session
        self.delay_ms = delay_ms
        self.timeout_ms = timeout_ms
        self.settle_ms = settle_ms

    async def fetch(self, result: SearchResult) -> ReferenceDocument:
        view = await self.session.load(
            result.url,
            timeout_ms=self.timeout_ms,
            wait_for_selector=CONTENT_READY_SELECTOR,
            settle_ms=self.settle_ms,
        )
        doc = extract(view)
        if not doc.content.strip():
            raise ExtractionInsufficient(result.url)
        return ReferenceDocument(url=result.url, title=result.title or doc.title, content=doc.content)

    async def collect(self, results: Sequence[SearchResult]) -> List[ReferenceDocument]:
        """Fetch each result in order; failures are logged and skipped."""
        references: List[ReferenceDocument] = []
        for index, result in enumerate(results):
            if index > 0 and self.delay_ms > 0:
                await asyncio.sleep(self.delay_ms / 1000)
            LOGGER.info("[collect] Scraping: %s", result.url)
            try:
                references.append(await self.fetch(result))
            except Exception as e:
                LOGGER.warning("[collect] Failed to scrape %s: %s", result.url, e)
                continue
            LOGGER.info("[collect] Scraped successfully: %s", result.url)
        LOGGER.info("[collect] Successfully scraped %s/%s reference articles", len(references), len(results))
        return references
