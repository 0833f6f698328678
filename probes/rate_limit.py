"""Rate-Limit Scenario Engine.

Executes ordered scenario sets against the claim API one probe at a time.
Probes within a set never overlap: the shared resource is the server's
cooldown and wallet-cap state, so a concurrent probe would race the very
transitions being asserted.

Per case the engine records separate named checks for the status code, the
transaction-id format, the retry-after window, the body text, the CORS
origin header, the latency ceiling and (optionally) on-chain confirmation.
A failed check never stops the set; an unreachable server does.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Iterable, List, Optional

from core.address import WalletResolver
from core.config import ConformanceSettings
from core.descriptors import (
    STATUS_SUCCESS,
    STATUS_TOO_MANY_REQUESTS,
    WALLET_CAP_RETRY_FLOOR_SECONDS,
    DescriptorRegistry,
    FaucetType,
    RateLimitCase,
    ScenarioSet,
)
from core.errors import ConnectivityError, ErrorType
from core.extractor import DataExtractor
from core.results import ResultAggregator
from probes.chain import ChainVerifier
from probes.client import ClaimApiClient, ProbeResult
from probes.cors import ALLOW_ORIGIN
from probes.model import Prediction, validate_plan

logger = logging.getLogger(__name__)

Sleeper = Callable[[float], Awaitable[None]]


class RateLimitScenarioEngine:
    """Runs the registry's scenario sets and reports every assertion.

    Args:
        client: Claim API client.
        registry: Descriptor tables holding the scenario sets.
        settings: Run configuration.
        aggregator: Result sink.
        chain_verifier: Optional receipt checker for successful claims.
        sleep: Awaitable delay; injectable so tests need not wait.
    """

    def __init__(
        self,
        client: ClaimApiClient,
        registry: DescriptorRegistry,
        settings: ConformanceSettings,
        aggregator: ResultAggregator,
        chain_verifier: Optional[ChainVerifier] = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self.client = client
        self.registry = registry
        self.settings = settings
        self.aggregator = aggregator
        self.chain_verifier = chain_verifier
        self.resolver = WalletResolver(registry.equivalence_classes)
        self._sleep = sleep
        # Set when earlier claims in this run left cooldowns running
        self.cooldowns_spent = False

    def _waits_allowed(self, scenario_set: ScenarioSet) -> bool:
        return self.settings.allow_waits and scenario_set.allow_waits

    def runnable_sets(self) -> List[ScenarioSet]:
        """Scenario sets that can run under the current wait policy.

        With waits disabled for the run, sets that declare wait-before
        delays are dropped.  When earlier claims of the run left cooldowns
        running (:attr:`cooldowns_spent`), sets that start from a fresh
        server are dropped as well.  Any set continuing from a dropped set
        is dropped with it.
        """
        runnable: List[ScenarioSet] = []
        skipped = set()
        for scenario_set in self.registry.scenario_sets:
            reason = None
            if scenario_set.continues in skipped:
                reason = f"continues skipped set {scenario_set.continues!r}"
            elif scenario_set.needs_waits and not self.settings.allow_waits:
                reason = "waits are disabled"
            elif self.cooldowns_spent and scenario_set.needs_fresh_cooldowns:
                reason = "faucet cooldowns already spent by claim flows"
            if reason is not None:
                logger.warning(
                    "Skipping scenario set %r: %s", scenario_set.name, reason,
                )
                skipped.add(scenario_set.name)
                continue
            runnable.append(scenario_set)
        return runnable

    def plan(self) -> Dict[str, List[Optional[Prediction]]]:
        """Validate every runnable scenario set before any probe is sent.

        Raises:
            ScenarioSequenceError: If a set contradicts its own history.
        """
        return validate_plan(self.runnable_sets(), resolver=self.resolver)

    async def run(self, names: Optional[Iterable[str]] = None) -> None:
        """Run the selected runnable scenario sets (all by default) in order."""
        runnable = self.runnable_sets()
        plan = validate_plan(runnable, resolver=self.resolver)
        selected = set(names) if names is not None else None

        for scenario_set in runnable:
            if selected is not None and scenario_set.name not in selected:
                continue
            await self.run_set(scenario_set, plan[scenario_set.name])

    async def run_set(
        self,
        scenario_set: ScenarioSet,
        predictions: List[Optional[Prediction]],
    ) -> bool:
        """Execute one set strictly in order.

        Returns:
            ``False`` if the set was aborted by a connectivity failure.
        """
        logger.info(
            "Running scenario set %r (%d cases)",
            scenario_set.name, len(scenario_set.cases),
        )
        succeeded: List[bool] = []

        for index, case in enumerate(scenario_set.cases):
            prefix = f"[{scenario_set.name}] {case.name}"

            if case.requires is not None and not succeeded[case.requires]:
                required = scenario_set.cases[case.requires].name
                self.aggregator.record(
                    f"{prefix} -> prerequisite met",
                    False,
                    f"required case {required!r} did not succeed",
                    ErrorType.SCENARIO,
                )
                succeeded.append(False)
                continue

            if case.wait_before_seconds and self._waits_allowed(scenario_set):
                logger.info(
                    "Waiting %.0fs before %r", case.wait_before_seconds,
                    case.name,
                )
                await self._sleep(case.wait_before_seconds)

            try:
                result = await self.client.claim(case.faucet_type, case.address)
            except ConnectivityError as e:
                self.aggregator.record(
                    f"{prefix} -> server reachable", False, str(e),
                    ErrorType.CONNECTIVITY,
                )
                logger.error(
                    "Aborting scenario set %r: %s", scenario_set.name, e,
                )
                return False

            succeeded.append(result.status == STATUS_SUCCESS)
            await self._assert_case(prefix, case, predictions[index], result)
        return True

    # ------------------------------------------------------------------
    # Assertions
    # ------------------------------------------------------------------

    async def _assert_case(
        self,
        prefix: str,
        case: RateLimitCase,
        prediction: Optional[Prediction],
        result: ProbeResult,
    ) -> None:
        record = self.aggregator.record
        status_ok = result.status == case.expected_status
        record(
            f"{prefix} -> status {case.expected_status}",
            status_ok,
            f"got {result.status}: {result.body[:120]}",
            ErrorType.API_CONTRACT,
        )

        if case.expected_body_contains is not None:
            record(
                f"{prefix} -> body contains {case.expected_body_contains!r}",
                DataExtractor.contains_text(
                    result.body, case.expected_body_contains,
                ),
                f"body: {result.body[:120]!r}",
                ErrorType.API_CONTRACT,
            )

        if self.settings.max_response_seconds is not None:
            record(
                f"{prefix} -> responds within "
                f"{self.settings.max_response_seconds:g}s",
                result.elapsed <= self.settings.max_response_seconds,
                f"took {result.elapsed:.2f}s",
                ErrorType.API_CONTRACT,
            )

        # Browser wallets read every answer cross-origin, errors included
        allow_origin = result.header(ALLOW_ORIGIN)
        record(
            f"{prefix} -> {ALLOW_ORIGIN} is '*'",
            allow_origin == "*",
            f"{ALLOW_ORIGIN}: {allow_origin!r} (status {result.status})",
            ErrorType.API_CONTRACT,
        )

        if not status_ok:
            return

        if result.status == STATUS_SUCCESS and case.expected_tx_format:
            tx_hash = DataExtractor.extract_transaction_id(result.body)
            record(
                f"{prefix} -> well-formed transaction id",
                tx_hash is not None,
                f"body: {result.body[:120]!r}",
                ErrorType.API_CONTRACT,
            )
            if tx_hash and self.chain_verifier is not None:
                await self._assert_on_chain(prefix, case, tx_hash)

        if result.status == STATUS_TOO_MANY_REQUESTS and case.is_stateful:
            self._assert_retry_after(prefix, case, prediction, result)

    def _assert_retry_after(
        self,
        prefix: str,
        case: RateLimitCase,
        prediction: Optional[Prediction],
        result: ProbeResult,
    ) -> None:
        retry_after = DataExtractor.parse_retry_after_seconds(
            result.body, result.header("Retry-After"),
        )
        if case.wallet_cap or prediction is Prediction.WALLET_CAPPED:
            name = (
                f"{prefix} -> retry-after beyond "
                f"{WALLET_CAP_RETRY_FLOOR_SECONDS}s (wallet cap)"
            )
            passed = (
                retry_after is not None
                and retry_after > WALLET_CAP_RETRY_FLOOR_SECONDS
            )
        else:
            cooldown = FaucetType.parse(case.faucet_type).cooldown_seconds
            name = f"{prefix} -> retry-after within {cooldown}s cooldown"
            passed = retry_after is not None and 0 < retry_after <= cooldown
        self.aggregator.record(
            name, passed, f"retry-after: {retry_after}", ErrorType.API_CONTRACT,
        )

    async def _assert_on_chain(
        self, prefix: str, case: RateLimitCase, tx_hash: str,
    ) -> None:
        faucet = FaucetType.parse(case.faucet_type)
        if faucet is None or not faucet.claimable:
            return
        name = f"{prefix} -> transaction accepted on chain"
        try:
            status = await self.chain_verifier.receipt_status(tx_hash)
        except ConnectivityError as e:
            self.aggregator.record(name, False, str(e), ErrorType.CONNECTIVITY)
            return
        self.aggregator.record(
            name, status.acceptable, f"{tx_hash}: {status.value}",
            ErrorType.API_CONTRACT,
        )
