"""
Browser session used to fetch rendered listing and detail pages
"""
import sys
from typing import Optional, Protocol

from playwright.async_api import async_playwright, Browser, BrowserContext, Route
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..config import settings
from ..exceptions import FetchError
from ..logging_config import setup_logging

logger = setup_logging(__name__)

LISTING_READY_SELECTOR = '.ipsBox a[href*="/forums/topic/"]'
DETAIL_READY_SELECTOR = ".cPost_contentWrap"
BLOCKED_RESOURCE_TYPES = {"font", "media"}


class PageFetcher(Protocol):
    """What the pipeline needs from a page source"""

    async def fetch_listing(self, url: str, timeout: float) -> str:
        ...

    async def fetch_detail(self, url: str, timeout: float) -> str:
        ...


class BrowserSession:
    """Owns one headless Chromium for the lifetime of a run or service.

    The caller opens and closes it (``async with BrowserSession() as s``);
    pages are created per fetch and always closed.
    """

    def __init__(self, user_agent: Optional[str] = None, headless: bool = True):
        self.user_agent = user_agent or settings.SCRAPER_USER_AGENT
        self.headless = headless
        self.playwright = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    @property
    def is_running(self) -> bool:
        return self.browser is not None and self.browser.is_connected()

    async def start(self):
        """Launch the browser and create the shared context"""
        if self.is_running:
            logger.debug("Browser already running")
            return

        self.playwright = await async_playwright().start()
        launch_args = [
            '--disable-dev-shm-usage',
            '--disable-accelerated-2d-canvas',
            '--disable-gpu',
            '--window-size=1920,1080',
        ]
        if sys.platform != 'win32':
            launch_args.extend(['--no-sandbox', '--disable-setuid-sandbox'])

        self.browser = await self.playwright.chromium.launch(
            headless=self.headless,
            args=launch_args,
        )
        self.context = await self.browser.new_context(
            user_agent=self.user_agent,
            viewport={"width": 1920, "height": 1080},
        )
        # Fonts and media are never needed for extraction
        await self.context.route("**/*", self._filter_request)

        logger.info("Browser session initialized")

    async def close(self):
        """Clean up resources"""
        if self.context:
            await self.context.close()
            self.context = None
        if self.browser:
            await self.browser.close()
            self.browser = None
        if self.playwright:
            await self.playwright.stop()
            self.playwright = None

        logger.info("Browser session closed")

    @staticmethod
    async def _filter_request(route: Route):
        if route.request.resource_type in BLOCKED_RESOURCE_TYPES:
            await route.abort()
        else:
            await route.continue_()

    async def fetch_listing(self, url: str, timeout: float) -> str:
        """Rendered markup of the listing page"""
        return await self._fetch(url, timeout, LISTING_READY_SELECTOR)

    async def fetch_detail(self, url: str, timeout: float) -> str:
        """Rendered markup of a topic page, once its first post has content"""
        return await self._fetch(url, timeout, DETAIL_READY_SELECTOR, wait_for_body=True)

    async def _fetch(self, url: str, timeout: float, ready_selector: str, wait_for_body: bool = False) -> str:
        if not self.context:
            await self.start()

        timeout_ms = timeout * 1000
        page = await self.context.new_page()
        try:
            logger.info(f"Navigating to: {url}", extra={"url": url})
            response = await page.goto(url, wait_until="networkidle", timeout=timeout_ms)
            if response is not None and response.status >= 400:
                raise FetchError(url, f"HTTP {response.status}")

            await page.wait_for_selector(ready_selector, timeout=timeout_ms)

            if wait_for_body:
                # Post bodies are filled in by scripts after the wrapper appears
                try:
                    await page.wait_for_function(
                        "(sel) => { const w = document.querySelector(sel); return w && w.innerHTML.length > 100; }",
                        arg=ready_selector,
                        timeout=min(timeout_ms, 5000),
                    )
                except PlaywrightTimeoutError:
                    logger.warning("Content wait timeout - proceeding anyway", extra={"url": url})

            return await page.content()

        except PlaywrightTimeoutError as e:
            raise FetchError(url, f"timed out after {timeout}s") from e
        except PlaywrightError as e:
            raise FetchError(url, str(e)) from e
        finally:
            await page.close()
