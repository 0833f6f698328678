"""Action Executor: exercises a located button by its declared kind.

Each :class:`ActionKind` member has exactly one handler; the handler table
is checked for completeness when the executor is built, so declaring a new
kind without a handler fails before any page is opened.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict

from playwright.async_api import ElementHandle, Error as PlaywrightError

from checks.base import PageCheck, display_path
from core.descriptors import ActionKind, ButtonActionDescriptor
from core.errors import ErrorType
from core.extractor import DataExtractor

logger = logging.getLogger(__name__)

Handler = Callable[[ButtonActionDescriptor, ElementHandle], Awaitable[bool]]


class ActionExecutor(PageCheck):
    """Performs the interaction declared for a button and asserts its effect.

    Callers hand over a control that already passed its existence,
    visibility and enabled-state checks.
    """

    def __init__(self, page, settings, aggregator) -> None:
        super().__init__(page, settings, aggregator)
        self._handlers: Dict[ActionKind, Handler] = {
            ActionKind.NAVIGATE: self._navigate,
            ActionKind.CLICKABLE: self._clickable,
            ActionKind.EXPECT_ERROR: self._expect_error,
        }
        missing = [kind.name for kind in ActionKind if kind not in self._handlers]
        if missing:
            raise TypeError(f"No handler for action kind(s): {missing}")

    async def execute(
        self, action: ButtonActionDescriptor, element: ElementHandle,
    ) -> bool:
        """Run the handler for ``action.kind`` and record its check.

        Returns:
            Whether the declared postcondition held.
        """
        logger.debug(
            "Executing %s on %r at %s",
            action.kind.value, action.label, display_path(action.path),
        )
        return await self._handlers[action.kind](action, element)

    def _check_name(self, action: ButtonActionDescriptor, effect: str) -> str:
        return (
            f'Clicking "{action.label}" on "{display_path(action.path)}" '
            f"{effect}"
        )

    async def _navigate(
        self, action: ButtonActionDescriptor, element: ElementHandle,
    ) -> bool:
        name = self._check_name(action, "navigates away")
        before = self.page.url
        try:
            await element.click()
        except PlaywrightError as e:
            return self.record(name, False, str(e), ErrorType.BEHAVIORAL)
        await asyncio.sleep(self.settings.settle_delay_seconds)
        after = self.page.url
        passed = self.record(
            name, after != before, f"{before} -> {after}",
            ErrorType.BEHAVIORAL,
        )
        if passed:
            # Later checks on this page expect to start from it again
            response, error = await self.safe_goto(action.path)
            if response is None:
                logger.warning(
                    "Could not return to %s: %s",
                    display_path(action.path), error,
                )
        return passed

    async def _clickable(
        self, action: ButtonActionDescriptor, element: ElementHandle,
    ) -> bool:
        name = self._check_name(action, "does not raise")
        try:
            await element.click()
        except PlaywrightError as e:
            return self.record(name, False, str(e), ErrorType.BEHAVIORAL)
        healthy = await self.check_page_health()
        return self.record(
            name, healthy,
            "" if healthy else "page stopped responding after click",
            ErrorType.BEHAVIORAL,
        )

    async def _expect_error(
        self, action: ButtonActionDescriptor, element: ElementHandle,
    ) -> bool:
        name = self._check_name(
            action, f'shows error matching "{action.error_pattern}"',
        )
        try:
            await element.click()
        except PlaywrightError as e:
            return self.record(name, False, str(e), ErrorType.BEHAVIORAL)
        await asyncio.sleep(self.settings.claim_failure_wait_seconds)
        shown = DataExtractor.find_error_text(
            await self.page_content(), action.error_pattern,
        )
        return self.record(
            name, shown is not None,
            f"shown: {shown}" if shown else "no matching text rendered",
            ErrorType.BEHAVIORAL,
        )
