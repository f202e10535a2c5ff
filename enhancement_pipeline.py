"""
Enhancement pipeline: search -> collect references -> rewrite -> persist

Articles are processed strictly one at a time, in the order the store returns
them, with fixed delays between steps and between articles to keep the
request rate against search engines and third-party sites predictable. A
failure on one article is logged and counted; it never stops the batch.
"""
import asyncio
import enum
import logging
import sys
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, List, Optional

import config
from articles_store import ArticleStore
from enhancer import LLMEnhancementClient
from errors import FatalStartupError, PersistenceError
from models import ArticleRecord, ReferenceDocument, ReferenceMeta
from navigation import open_session
from reference_collector import ReferenceCollector
from search_client import SearchClient

LOGGER = logging.getLogger(__name__)


class ArticleState(str, enum.Enum):
    PENDING = "pending"
    SEARCHING = "searching"
    REFERENCE_COLLECTING = "reference_collecting"
    ENHANCING = "enhancing"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


@dataclass
class PipelineSettings:
    search_limit: int = config.SEARCH_RESULT_LIMIT
    batch_limit: int = config.ENHANCE_BATCH_LIMIT
    step_delay_ms: int = config.STEP_DELAY_MS
    article_delay_ms: int = config.SCRAPING_DELAY_MS


@dataclass
class ArticleOutcome:
    article_id: Optional[str]
    title: str
    state: ArticleState = ArticleState.PENDING
    failed_in: Optional[ArticleState] = None
    error: Optional[str] = None
    enhanced_id: Optional[str] = None
    reference_count: int = 0


@dataclass
class PipelineSummary:
    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    outcomes: List[ArticleOutcome] = field(default_factory=list)


def build_enhanced_record(
    original: ArticleRecord,
    content: str,
    references: List[ReferenceDocument],
    now: Optional[datetime] = None,
) -> ArticleRecord:
    now = now or datetime.now(timezone.utc)
    return ArticleRecord(
        title=original.title,
        content=content,
        author=original.author,
        date=original.date,
        url=original.url + "-enhanced",
        is_updated=True,
        original_article_id=original.id,
        references=[ReferenceMeta(url=r.url, title=r.title, scraped_at=now) for r in references],
        metadata=replace(original.metadata, enhanced_at=now).recomputed(content),
    )


class EnhancementPipeline:
    def __init__(
        self,
        store: Any,
        search_client: Any,
        collector: Any,
        enhancer: Any,
        settings: Optional[PipelineSettings] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.store = store
        self.search_client = search_client
        self.collector = collector
        self.enhancer = enhancer
        self.settings = settings or PipelineSettings()
        self._sleep = sleep

    async def _delay(self, ms: int) -> None:
        if ms > 0:
            await self._sleep(ms / 1000)

    async def process_article(self, original: ArticleRecord) -> ArticleOutcome:
        outcome = ArticleOutcome(article_id=original.id, title=original.title)
        LOGGER.info("[pipeline] Article: %s (%s)", original.title, original.url)
        try:
            outcome.state = ArticleState.SEARCHING
            results = await self.search_client.search(original.title, self.settings.search_limit)
            if not results:
                LOGGER.info("[pipeline] No search results found, proceeding without references")
            for idx, result in enumerate(results, start=1):
                LOGGER.info("[pipeline]   %s. %s (%s)", idx, result.title, result.url)
            await self._delay(self.settings.step_delay_ms)

            outcome.state = ArticleState.REFERENCE_COLLECTING
            references = await self.collector.collect(results)
            outcome.reference_count = len(references)

            outcome.state = ArticleState.ENHANCING
            content = await self.enhancer.enhance(original.content, references)

            outcome.state = ArticleState.PERSISTING
            record = build_enhanced_record(original, content, references)
            try:
                saved = await asyncio.to_thread(self.store.insert_enhanced, record)
            except PersistenceError:
                raise
            except Exception as e:
                raise PersistenceError(f"Saving enhanced article failed: {e}") from e
            outcome.enhanced_id = saved.id
            outcome.state = ArticleState.DONE
            LOGGER.info(
                "[pipeline] Enhanced article saved: id=%s words=%s references=%s",
                saved.id,
                saved.metadata.word_count,
                len(references),
            )
        except Exception as e:  # one article's failure must not stop the batch
            outcome.failed_in = outcome.state
            outcome.state = ArticleState.FAILED
            outcome.error = str(e)
            LOGGER.error(
                "[pipeline] Failed while %s for %r (%s): %s",
                outcome.failed_in.value,
                original.title,
                original.url,
                e,
            )
        return outcome

    async def run(self, limit: Optional[int] = None) -> PipelineSummary:
        limit = self.settings.batch_limit if limit is None else limit
        originals = await asyncio.to_thread(self.store.list_pending_originals, limit)
        summary = PipelineSummary()
        if not originals:
            LOGGER.warning("[pipeline] No original articles found to enhance. Run the scraper first.")
            return summary

        LOGGER.info("[pipeline] Found %s articles to enhance", len(originals))
        for index, original in enumerate(originals):
            LOGGER.info("[pipeline] Article %s/%s", index + 1, len(originals))
            outcome = await self.process_article(original)
            summary.attempted += 1
            summary.outcomes.append(outcome)
            if outcome.state is ArticleState.DONE:
                summary.succeeded += 1
            else:
                summary.failed += 1
            if index < len(originals) - 1:
                await self._delay(self.settings.article_delay_ms)

        LOGGER.info(
            "[pipeline] Summary: attempted=%s succeeded=%s failed=%s",
            summary.attempted,
            summary.succeeded,
            summary.failed,
        )
        return summary


async def run_enhancement(limit: Optional[int] = None, headful: bool = False) -> PipelineSummary:
    """Wire the store, browser session and clients together and run one batch."""
    store = ArticleStore.from_env()
    try:
        store.ping()
        store.init_indexes()
        async with open_session(headful=headful) as session:
            pipeline = EnhancementPipeline(
                store=store,
                search_client=SearchClient.default(session),
                collector=ReferenceCollector(session),
                enhancer=LLMEnhancementClient.from_env(),
            )
            return await pipeline.run(limit)
    finally:
        store.close()


def _cli():
    import argparse

    parser = argparse.ArgumentParser(description="Enhance stored original articles with search references and an LLM rewrite")
    parser.add_argument("--limit", type=int, default=config.ENHANCE_BATCH_LIMIT, help="Max originals to enhance in this run")
    parser.add_argument("--headful", action="store_true")
    parser.add_argument("--log-level", default=None)
    args = parser.parse_args()

    config.configure_logging(args.log_level)
    try:
        summary = asyncio.run(run_enhancement(limit=args.limit, headful=args.headful))
    except FatalStartupError as e:
        LOGGER.error("[pipeline] Fatal error: %s", e)
        sys.exit(1)
    LOGGER.info(
        "[pipeline] Done. processed=%s enhanced=%s failed=%s. View articles at: %s/articles?isUpdated=true",
        summary.attempted,
        summary.succeeded,
        summary.failed,
        config.API_BASE_URL,
    )


if __name__ == "__main__":
    _cli()
