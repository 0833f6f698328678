"""Claim Flow Runner: submits addresses through the faucet claim forms.

For every ``(address, expected)`` pair of a :class:`ClaimScenario` the runner
clears the address input, types the address, presses the claim button and
classifies the outcome:

* success: a new transaction artifact is rendered and no invalid-address
  message is shown;
* rejection: the invalid-address message is shown and no new transaction
  artifact appears.
"""

import asyncio
import logging
from typing import Optional

from playwright.async_api import Error as PlaywrightError

from checks.base import PageCheck, display_path
from core.descriptors import ClaimScenario, DescriptorRegistry
from core.errors import ErrorType
from core.extractor import DataExtractor

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 0.1


class ClaimFlowRunner(PageCheck):
    """Drives every claim scenario in the registry on one page."""

    def __init__(self, page, registry: DescriptorRegistry, settings, aggregator):
        super().__init__(page, settings, aggregator)
        self.registry = registry

    async def run(self) -> None:
        for scenario in self.registry.claim_scenarios:
            await self.run_scenario(scenario)

    async def run_scenario(self, scenario: ClaimScenario) -> None:
        path = display_path(scenario.path)
        response, error = await self.safe_goto(scenario.path)
        if response is None:
            self.record(
                f"Claim page {path} reachable", False, error or "no response",
                ErrorType.CONNECTIVITY,
            )
            return
        for address, expected in scenario.pairs():
            await self.submit(scenario, address, expected)

    async def _artifact_count(self) -> int:
        try:
            return len(
                await self.page.query_selector_all(
                    self.settings.transaction_selector,
                )
            )
        except PlaywrightError as e:
            logger.debug("Counting transaction artifacts failed: %s", e)
            return 0

    async def _wait_for_new_artifact(self, before: int) -> bool:
        """Poll until more artifacts than *before* exist or time runs out."""
        loop = asyncio.get_event_loop()
        deadline = loop.time() + self.settings.artifact_timeout_ms / 1000
        while True:
            if await self._artifact_count() > before:
                return True
            if loop.time() >= deadline:
                return False
            await asyncio.sleep(POLL_INTERVAL_SECONDS)

    async def _invalid_message(self) -> Optional[str]:
        return DataExtractor.find_error_text(
            await self.page_content(), self.settings.invalid_address_pattern,
        )

    async def _fill_address(self, path: str, address: str) -> bool:
        input_box = await self.page.query_selector(
            self.settings.address_input_selector,
        )
        if not self.record(f"Input exists on {path}", input_box is not None):
            return False
        try:
            # select-all then delete so earlier addresses do not concatenate
            await input_box.click(click_count=3)
            await self.page.keyboard.press("Backspace")
            await input_box.type(address)
        except PlaywrightError as e:
            self.record(
                f"Address {address!r} entered on {path}", False, str(e),
                ErrorType.BEHAVIORAL,
            )
            return False
        return True

    async def submit(
        self, scenario: ClaimScenario, address: str, expected: bool,
    ) -> bool:
        """Submit one address and record whether the outcome matched."""
        path = display_path(scenario.path)
        if not await self._fill_address(path, address):
            return False

        button = await self.find_control("button", scenario.button_label)
        if not self.record(f"Claim button exists on {path}", button is not None):
            return False

        before = await self._artifact_count()
        try:
            await button.click()
        except PlaywrightError as e:
            self.record(
                f"Claim button clicked on {path}", False, str(e),
                ErrorType.BEHAVIORAL,
            )
            return False

        if expected:
            await asyncio.sleep(self.settings.claim_success_wait_seconds)
            artifact = await self._wait_for_new_artifact(before)
            message = await self._invalid_message()
            detail = (
                f"transaction artifact: {'yes' if artifact else 'no'}; "
                f"error: {message or 'none'}"
            )
            return self.record(
                f"Claim success for '{address}' on {path}",
                artifact and message is None,
                detail,
                ErrorType.BEHAVIORAL,
            )

        await asyncio.sleep(self.settings.claim_failure_wait_seconds)
        message = await self._invalid_message()
        new_artifact = await self._artifact_count() > before
        detail = (
            f"error: {message or 'none'}; "
            f"new transaction artifact: {'yes' if new_artifact else 'no'}"
        )
        return self.record(
            f"Invalid address error for '{address}' on {path}",
            message is not None and not new_artifact,
            detail,
            ErrorType.BEHAVIORAL,
        )
