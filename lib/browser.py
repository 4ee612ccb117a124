"""Browser session for Playwright page automation.

Provides one managed browser/context/page. The booking flows drive a single
interactive session at a time, so there is no pool.
"""

from typing import Awaitable, Callable, Optional, Tuple

from loguru import logger
from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright
from playwright.async_api import TimeoutError as PWTimeoutError
from playwright_stealth import Stealth

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)


class BrowserSession:
    """Manages one Chromium browser with a single stealth context and page."""

    def __init__(
        self,
        headless: bool = True,
        user_agent: str = DEFAULT_USER_AGENT,
        viewport: Tuple[int, int] = (1280, 800),
        locale: Optional[str] = "en-US",
        default_timeout_ms: int = 10000,
    ):
        self.headless = headless
        self.user_agent = user_agent
        self.viewport = viewport
        self.locale = locale
        self.default_timeout_ms = default_timeout_ms
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

    async def __aenter__(self) -> "BrowserSession":
        """Start browser and open the session page.

        If any launch step fails, whatever already started is shut down
        before the error propagates.
        """
        self._stealth = Stealth()
        self._playwright = await async_playwright().start()
        try:
            self._browser = await self._playwright.chromium.launch(headless=self.headless)

            width, height = self.viewport
            self._context = await self._browser.new_context(
                user_agent=self.user_agent,
                viewport={"width": width, "height": height},
                locale=self.locale,
            )
            await self._stealth.apply_stealth_async(self._context)
            self._context.set_default_timeout(self.default_timeout_ms)

            self._page = await self._context.new_page()
        except Exception as e:
            logger.warning(f"Browser session failed to start: {e}")
            await self._close()
            raise

        logger.debug(f"Browser session started (headless={self.headless})")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Clean up browser resources."""
        await self._close()
        logger.debug("Browser session closed")

    async def _close(self) -> None:
        context, browser, playwright = self._context, self._browser, self._playwright
        self._page = self._context = self._browser = self._playwright = None
        if context is not None:
            await context.close()
        if browser is not None:
            await browser.close()
        if playwright is not None:
            await playwright.stop()

    @property
    def page(self) -> Page:
        """The page currently driven by this session."""
        if self._page is None:
            raise RuntimeError("BrowserSession is not started")
        return self._page

    async def new_page_from(
        self,
        action: Callable[[], Awaitable[None]],
        timeout_ms: int = 5000,
    ) -> Optional[Page]:
        """Run action and switch to the tab it opens.

        Search buttons on booking sites often open results in a new tab.
        If no tab opens within timeout_ms the current page is kept and None
        is returned (the action still ran).
        """
        if self._context is None:
            raise RuntimeError("BrowserSession is not started")

        try:
            async with self._context.expect_page(timeout=timeout_ms) as page_info:
                await action()
            new_page = await page_info.value
        except PWTimeoutError:
            logger.debug(f"No new tab opened within {timeout_ms}ms")
            return None

        await new_page.wait_for_load_state("domcontentloaded")
        self._page = new_page
        logger.info(f"Switched to new tab: {new_page.url}")
        return new_page
