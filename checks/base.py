"""Shared page helpers for the browser-driven checks.

:class:`PageCheck` bundles the page, settings and result sink that every
UI check needs, plus guarded navigation, control lookup and a liveness
probe.  Playwright faults raised by these helpers are converted into
return values; the callers turn them into named failed checks.
"""

import asyncio
import logging
from typing import Optional, Tuple

from playwright.async_api import (
    ElementHandle,
    Error as PlaywrightError,
    Page,
    Response,
)

from core.config import ConformanceSettings
from core.errors import ErrorType
from core.results import ResultAggregator

logger = logging.getLogger(__name__)


def display_path(path: str) -> str:
    """Path as shown in check names (the root is ``/``)."""
    return path or "/"


def _is_closed_target_error(error: BaseException) -> bool:
    err_str = str(error).lower()
    return "closed" in err_str and (
        "target" in err_str or "connection" in err_str
    )


class PageCheck:
    """Base class for checks that drive one browser page."""

    def __init__(
        self,
        page: Page,
        settings: ConformanceSettings,
        aggregator: ResultAggregator,
    ) -> None:
        self.page = page
        self.settings = settings
        self.aggregator = aggregator

    def record(
        self,
        name: str,
        passed: bool,
        detail: str = "",
        error_type: ErrorType = ErrorType.STRUCTURAL,
    ) -> bool:
        self.aggregator.record(name, passed, detail, error_type)
        return passed

    async def check_page_health(self) -> bool:
        """Return ``False`` if the page is closed or unresponsive."""
        try:
            if self.page.is_closed():
                logger.debug("Page health check: page is closed")
                return False
            await asyncio.wait_for(self.page.evaluate("1 + 1"), timeout=3.0)
            return True
        except asyncio.TimeoutError:
            logger.warning("Page health check timed out - page likely frozen")
            return False
        except PlaywrightError as e:
            if not _is_closed_target_error(e):
                logger.debug("Page health check failed: %s", e)
            return False

    async def safe_goto(
        self, path: str,
    ) -> Tuple[Optional[Response], Optional[str]]:
        """Open *path* and wait for the network to go idle.

        Returns:
            ``(response, None)`` on success, ``(None, reason)`` if the
            navigation raised.
        """
        url = self.settings.url_for(path)
        try:
            response = await self.page.goto(
                url,
                wait_until="networkidle",
                timeout=self.settings.navigation_timeout_ms,
            )
            return response, None
        except PlaywrightError as e:
            logger.warning("Navigation to %s failed: %s", url, e)
            return None, str(e).splitlines()[0] if str(e) else type(e).__name__

    async def find_control(
        self, tag: str, label: str,
    ) -> Optional[ElementHandle]:
        """Return the first *tag* element whose trimmed text is *label*."""
        try:
            for element in await self.page.query_selector_all(tag):
                text = await element.text_content()
                if (text or "").strip() == label:
                    return element
        except PlaywrightError as e:
            logger.warning("Looking up %s %r failed: %s", tag, label, e)
        return None

    async def page_content(self) -> str:
        try:
            return await self.page.content()
        except PlaywrightError as e:
            logger.warning("Reading page content failed: %s", e)
            return ""
