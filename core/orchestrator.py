"""Run orchestration for faucet conformance checks.

This module sequences the suites of one run against a shared
:class:`ResultAggregator`:

* Pre-flight health check of the app root; exhausting connectivity retries
  here is the only condition that aborts the whole run.
* Browser suites (``ui``, ``claims``), each in its own isolated browser
  context, run concurrently.
* A cooldown buffer separates browser claim flows from the stateful API
  scenario sets, since both consume the same server-side cooldowns.
  With waits disabled there is no buffer, so API sets that need fresh
  cooldowns are skipped instead.
* API scenario sets (``api``) run strictly one after another.
* CORS checks (``cors``) run last because their probes can claim tokens.

Classes:
    ConformanceRunner: Builds the collaborators of a run and executes it.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Iterable, List, Optional

from playwright.async_api import Error as PlaywrightError, Page

from browser.instance import BrowserManager
from checks.claim import ClaimFlowRunner
from checks.ui import UIConformanceVerifier
from core.config import ConformanceSettings
from core.descriptors import DescriptorRegistry
from core.errors import ConnectivityError, ErrorType
from core.registry import build_default_registry
from core.results import ResultAggregator
from probes.chain import ChainVerifier
from probes.client import ClaimApiClient
from probes.cors import CorsVerifier
from probes.rate_limit import RateLimitScenarioEngine

logger = logging.getLogger(__name__)

SUITE_UI = "ui"
SUITE_CLAIMS = "claims"
SUITE_API = "api"
SUITE_CORS = "cors"
ALL_SUITES = (SUITE_UI, SUITE_CLAIMS, SUITE_API, SUITE_CORS)
BROWSER_SUITES = (SUITE_UI, SUITE_CLAIMS)


class ConformanceRunner:
    """Executes the selected suites of one conformance run.

    Args:
        settings: Run configuration.
        registry: Descriptor tables; defaults to the built-in tables.
        aggregator: Result sink; a fresh one is created if omitted.
        browser_manager: Browser lifecycle; created on demand.
        client: Claim API client; created on demand.
        sleep: Awaitable delay used for the cooldown buffer.
    """

    def __init__(
        self,
        settings: ConformanceSettings,
        registry: Optional[DescriptorRegistry] = None,
        aggregator: Optional[ResultAggregator] = None,
        browser_manager: Optional[BrowserManager] = None,
        client: Optional[ClaimApiClient] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.settings = settings
        self.registry = registry or build_default_registry()
        self.aggregator = aggregator or ResultAggregator()
        self.browser_manager = browser_manager
        self.client = client or ClaimApiClient(settings)
        self._sleep = sleep

        chain_verifier = (
            ChainVerifier(self.client, settings)
            if settings.verify_on_chain else None
        )
        self.engine = RateLimitScenarioEngine(
            self.client, self.registry, settings, self.aggregator,
            chain_verifier=chain_verifier, sleep=sleep,
        )

    async def preflight(self) -> None:
        """Check the app root answers before any suite starts.

        Raises:
            ConnectivityError: If the server stays unreachable.
        """
        name = "Pre-flight: GET / -> 200"
        try:
            result = await self.client.health_check()
        except ConnectivityError as e:
            self.aggregator.record(name, False, str(e), ErrorType.CONNECTIVITY)
            raise
        self.aggregator.record(
            name, result.status == 200, f"got {result.status}",
            ErrorType.CONNECTIVITY,
        )

    async def _browser_session(
        self, label: str, body: Callable[[Page], Awaitable[None]],
    ) -> None:
        """Run *body* on a page of a fresh context, containing its faults."""
        try:
            async with self.browser_manager.session() as page:
                await body(page)
        except PlaywrightError as e:
            self.aggregator.record(
                f"{label} session completed", False, str(e),
                ErrorType.CONNECTIVITY,
            )

    async def run_ui(self, page: Page) -> None:
        await UIConformanceVerifier(
            page, self.registry, self.settings, self.aggregator,
        ).run()

    async def run_claims(self, page: Page) -> None:
        await ClaimFlowRunner(
            page, self.registry, self.settings, self.aggregator,
        ).run()

    async def run_browser_suites(self, suites: List[str]) -> None:
        if self.browser_manager is None:
            self.browser_manager = BrowserManager(
                headless=self.settings.headless,
                timeout=self.settings.navigation_timeout_ms,
            )
        sessions = []
        if SUITE_UI in suites:
            sessions.append(self._browser_session("UI", self.run_ui))
        if SUITE_CLAIMS in suites:
            sessions.append(self._browser_session("Claim flow", self.run_claims))
        await asyncio.gather(*sessions)

    async def run(self, suites: Optional[Iterable[str]] = None) -> ResultAggregator:
        """Run the selected suites (all by default) in their fixed order.

        Raises:
            ConnectivityError: If the pre-flight check cannot reach the app.
            ScenarioSequenceError: If a scenario set is inconsistent.
        """
        selected = [s for s in ALL_SUITES if suites is None or s in set(suites)]
        logger.info("Starting conformance run: %s", ", ".join(selected))

        if SUITE_API in selected:
            # Without the buffer the claim flows leave cooldowns running
            self.engine.cooldowns_spent = (
                SUITE_CLAIMS in selected and not self.settings.allow_waits
            )
            # Reject inconsistent scenario tables before touching the server
            self.engine.plan()

        try:
            await self.preflight()

            if any(s in selected for s in BROWSER_SUITES):
                await self.run_browser_suites(selected)

            if SUITE_API in selected:
                if SUITE_CLAIMS in selected and self.settings.allow_waits:
                    logger.info(
                        "Waiting %.0fs for claim-flow cooldowns to expire",
                        self.settings.cooldown_buffer_seconds,
                    )
                    await self._sleep(self.settings.cooldown_buffer_seconds)
                await self.engine.run()

            if SUITE_CORS in selected:
                await CorsVerifier(
                    self.client, self.settings, self.aggregator,
                ).run()
        finally:
            await self.close()

        return self.aggregator

    async def close(self) -> None:
        if self.browser_manager is not None:
            await self.browser_manager.close()
        await self.client.close()
