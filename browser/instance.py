"""Browser instance management for conformance runs.

Provides :class:`BrowserManager`, a thin lifecycle wrapper around a
Playwright Chromium browser.  Features include:

* Headless or visible operation.
* One isolated ``BrowserContext`` per UI session, so sessions running
  concurrently share no cookies, storage or navigation history.
* Context tracking that makes double-close harmless.
"""

from __future__ import annotations
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Page,
    async_playwright,
)
import asyncio
import logging

logger = logging.getLogger(__name__)

DEFAULT_VIEWPORT = {"width": 1280, "height": 800}


class BrowserManager:
    """Manages the lifecycle of one Chromium browser process.

    Responsibilities:
        * Starting / stopping Playwright and the browser process.
        * Creating an isolated ``BrowserContext`` per UI session with the
          configured navigation timeout.
        * Closing contexts exactly once.

    Instantiate once per run; all public methods are coroutines.
    """

    def __init__(
        self,
        headless: bool = True,
        timeout: int = 60000,
    ) -> None:
        """Initialise the BrowserManager.

        Args:
            headless: Whether to run the browser without a window.
            timeout: Default navigation and action timeout in
                milliseconds.
        """
        self.headless = headless
        self.timeout = timeout
        self.playwright: Optional[Any] = None
        self.browser: Optional[Browser] = None
        self._lock = asyncio.Lock()

        # Track closed contexts to prevent double-close errors
        self._closed_contexts: set = set()

    async def launch(self) -> "BrowserManager":
        """Start Playwright and launch Chromium if not already running."""
        async with self._lock:
            if self.browser:
                return self
            logger.info(
                "Launching Chromium (headless=%s)", self.headless,
            )
            self.playwright = await async_playwright().start()
            self.browser = await self.playwright.chromium.launch(
                headless=self.headless,
            )
        return self

    async def create_context(self) -> BrowserContext:
        """Create a fresh, isolated browser context."""
        if not self.browser:
            await self.launch()
        context = await self.browser.new_context(viewport=DEFAULT_VIEWPORT)
        context.set_default_timeout(self.timeout)
        context.set_default_navigation_timeout(self.timeout)
        return context

    @asynccontextmanager
    async def session(self) -> AsyncIterator[Page]:
        """Yield a page in its own context; the context is closed on exit.

        Usage::

            async with manager.session() as page:
                await page.goto(url)
        """
        context = await self.create_context()
        try:
            yield await context.new_page()
        finally:
            await self.safe_close_context(context)

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    async def safe_close_context(self, context: BrowserContext) -> bool:
        """Close *context* once, tolerating an already-closed target.

        Returns:
            ``True`` if this call closed the context.
        """
        if not context:
            return False

        context_id = id(context)
        if context_id in self._closed_contexts:
            logger.debug("Context %s already marked as closed", context_id)
            return False

        self._closed_contexts.add(context_id)
        try:
            await asyncio.wait_for(context.close(), timeout=5.0)
            return True
        except asyncio.TimeoutError:
            logger.warning("Context close timed out for %s", context_id)
            return False
        except PlaywrightError as e:
            logger.debug("Context close on closed target: %s", e)
            return False

    async def close(self) -> None:
        """Shut down the browser and Playwright."""
        if self.browser:
            try:
                await self.browser.close()
            except PlaywrightError as e:
                logger.debug("Error during browser exit: %s", e)
            self.browser = None
        if self.playwright:
            await self.playwright.stop()
            self.playwright = None
        self._closed_contexts.clear()
        logger.info("Browser closed.")
