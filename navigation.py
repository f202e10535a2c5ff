"""
Browser navigation for scraping and search

One Chromium session is opened per pipeline run and shared by every
component that needs a rendered page. `open_session` guarantees the browser
is closed on every exit path.
"""
import logging
import random
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

import config
from content_extractor import DocumentView
from errors import FatalStartupError, NavigationError, NavigationTimeout

LOGGER = logging.getLogger(__name__)

LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
]
SELECTOR_WAIT_MS = 5_000


def _random_user_agent() -> str:
    chrome_versions = [
        "127.0.6533.72",
        "128.0.6613.84",
        "129.0.6668.90",
    ]
    version = random.choice(chrome_versions)
    platforms = [
        "Windows NT 10.0; Win64; x64",
        "Macintosh; Intel Mac OS X 10_15_7",
        "X11; Linux x86_64",
    ]
    platform = random.choice(platforms)
    return f"Mozilla/5.0 ({platform}) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/{version} Safari/537.36"


def _default_headers() -> Dict[str, str]:
    return {
        "Accept-Language": "en-US,en;q=0.9",
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    }


class BrowserSession:
    """A single page reused for every navigation in a run."""

    def __init__(
        self,
        page: Any,
        timeout_ms: int = config.NAVIGATION_TIMEOUT_MS,
        settle_ms: int = config.SETTLE_DELAY_MS,
    ) -> None:
        self.page = page
        self.timeout_ms = timeout_ms
        self.settle_ms = settle_ms

    async def load(
        self,
        url: str,
        timeout_ms: Optional[int] = None,
        wait_until: str = "networkidle",
        wait_for_selector: Optional[str] = None,
        scroll: bool = True,
        settle_ms: Optional[int] = None,
    ) -> DocumentView:
        """Navigate to url, let lazy content materialize and snapshot the DOM.

        Raises NavigationTimeout when the page does not reach `wait_until`
        within the timeout. Any other browser failure after the page
        starts loading surfaces as NavigationError.
        """
        timeout = self.timeout_ms if timeout_ms is None else timeout_ms
        settle = self.settle_ms if settle_ms is None else settle_ms
        LOGGER.debug("[nav] Navigating to %s (wait_until=%s, timeout=%sms)", url, wait_until, timeout)
        try:
            await self.page.goto(url, wait_until=wait_until, timeout=timeout)
        except PlaywrightTimeoutError as e:
            raise NavigationTimeout(url, timeout) from e
        except PlaywrightError as e:
            raise NavigationError(url, str(e)) from e

        try:
            if wait_for_selector:
                try:
                    await self.page.wait_for_selector(wait_for_selector, timeout=SELECTOR_WAIT_MS)
                except PlaywrightTimeoutError:
                    LOGGER.debug("[nav] Selector %r not found on %s, continuing", wait_for_selector, url)

            if scroll:
                await self.page.evaluate("() => window.scrollTo(0, document.body.scrollHeight)")
            if settle > 0:
                await self.page.wait_for_timeout(settle)

            html = await self.page.content()
            title = await self.page.title()
        except PlaywrightError as e:
            raise NavigationError(url, str(e)) from e
        return DocumentView(url=self.page.url or url, html=html, page_title=title)


@asynccontextmanager
async def open_session(
    headful: bool = False,
    slowmo_ms: int = 0,
    timeout_ms: int = config.NAVIGATION_TIMEOUT_MS,
    settle_ms: int = config.SETTLE_DELAY_MS,
) -> AsyncIterator[BrowserSession]:
    """Launch Chromium and yield a BrowserSession; always closes the browser."""
    async with async_playwright() as p:
        try:
            browser = await p.chromium.launch(
                headless=not headful,
                slow_mo=slowmo_ms or None,
                args=LAUNCH_ARGS,
            )
        except PlaywrightError as e:
            raise FatalStartupError(f"Could not launch browser: {e}") from e
        LOGGER.info("[nav] Browser launched (headful=%s)", headful)
        try:
            context = await browser.new_context(
                user_agent=_random_user_agent(),
                viewport={"width": random.randint(1200, 1440), "height": random.randint(800, 1000)},
                extra_http_headers=_default_headers(),
            )
            page = await context.new_page()
            yield BrowserSession(page, timeout_ms=timeout_ms, settle_ms=settle_ms)
        finally:
            await browser.close()
            LOGGER.info("[nav] Browser closed")
