"""CORS checks for the claim API.

Browser wallets call the claim endpoint cross-origin, so every response,
error responses included, must allow any origin without credentials.
"""

import logging
from typing import Dict, Optional, Sequence

from core.config import ConformanceSettings
from core.descriptors import (
    STATUS_SUCCESS,
    STATUS_TOO_MANY_REQUESTS,
    FaucetType,
)
from core.errors import ConnectivityError, ErrorType
from core.registry import ETH_ADDRESS, F1_ADDRESS, INVALID_ADDRESSES
from core.results import ResultAggregator
from probes.client import ClaimApiClient, ProbeResult

logger = logging.getLogger(__name__)

PREFLIGHT_ORIGIN = "https://external-example.com"
DEFAULT_ORIGINS = (
    "https://app.example.com",
    "http://localhost:3000",
    "https://wallet.filecoin.io",
)

ALLOW_ORIGIN = "Access-Control-Allow-Origin"
ALLOW_METHODS = "Access-Control-Allow-Methods"
ALLOW_CREDENTIALS = "Access-Control-Allow-Credentials"


class CorsVerifier:
    """Checks preflight and actual responses of the claim endpoint.

    Claims issued here can succeed, so the verifier runs after every
    stateful scenario set.
    """

    def __init__(
        self,
        client: ClaimApiClient,
        settings: ConformanceSettings,
        aggregator: ResultAggregator,
        origins: Sequence[str] = DEFAULT_ORIGINS,
    ) -> None:
        self.client = client
        self.settings = settings
        self.aggregator = aggregator
        self.origins = tuple(origins)

    def _claim_params(self) -> Dict[str, str]:
        return {
            "faucet_info": FaucetType.CALIBNET_FIL.value,
            "address": ETH_ADDRESS,
        }

    async def _get(
        self,
        params: Dict[str, str],
        origin: Optional[str] = PREFLIGHT_ORIGIN,
    ) -> ProbeResult:
        headers = {"Origin": origin} if origin else None
        return await self.client.request(
            "GET", self.settings.claim_url, params=params, headers=headers,
        )

    def _assert_allows_any_origin(self, label: str, result: ProbeResult) -> None:
        value = result.header(ALLOW_ORIGIN)
        self.aggregator.record(
            f"CORS {label}: {ALLOW_ORIGIN} is '*'",
            value == "*",
            f"{ALLOW_ORIGIN}: {value!r} (status {result.status})",
            ErrorType.API_CONTRACT,
        )

    async def run(self) -> None:
        """Run every CORS check; a connectivity failure ends the suite."""
        try:
            await self._check_preflight()
            await self._check_actual_requests()
            await self._check_credentials()
            await self._check_error_responses()
        except ConnectivityError as e:
            self.aggregator.record(
                "CORS: server reachable", False, str(e), ErrorType.CONNECTIVITY,
            )

    async def _check_preflight(self) -> None:
        result = await self.client.request(
            "OPTIONS",
            self.settings.claim_url,
            headers={
                "Origin": PREFLIGHT_ORIGIN,
                "Access-Control-Request-Method": "GET",
            },
        )
        self.aggregator.record(
            "CORS preflight: status is 200 or 204",
            result.status in (200, 204),
            f"got {result.status}",
            ErrorType.API_CONTRACT,
        )
        self._assert_allows_any_origin("preflight", result)
        methods = result.header(ALLOW_METHODS) or ""
        self.aggregator.record(
            "CORS preflight: allows GET",
            "GET" in methods.upper(),
            f"{ALLOW_METHODS}: {methods!r}",
            ErrorType.API_CONTRACT,
        )

    async def _check_actual_requests(self) -> None:
        same_origin = await self._get(self._claim_params(), origin=None)
        self.aggregator.record(
            "CORS same-origin: request answered with 200 or 429",
            same_origin.status in (STATUS_SUCCESS, STATUS_TOO_MANY_REQUESTS),
            f"got {same_origin.status}",
            ErrorType.API_CONTRACT,
        )
        self._assert_allows_any_origin("same-origin", same_origin)

        for origin in (PREFLIGHT_ORIGIN,) + self.origins:
            result = await self._get(self._claim_params(), origin=origin)
            self.aggregator.record(
                f"CORS origin {origin}: request answered with 200 or 429",
                result.status in (STATUS_SUCCESS, STATUS_TOO_MANY_REQUESTS)
                and bool(result.body),
                f"got {result.status}",
                ErrorType.API_CONTRACT,
            )
            self._assert_allows_any_origin(f"origin {origin}", result)

    async def _check_credentials(self) -> None:
        result = await self._get(self._claim_params())
        value = result.header(ALLOW_CREDENTIALS)
        self.aggregator.record(
            f"CORS: {ALLOW_CREDENTIALS} absent or false",
            value is None or value.lower() == "false",
            f"{ALLOW_CREDENTIALS}: {value!r}",
            ErrorType.API_CONTRACT,
        )

    async def _check_error_responses(self) -> None:
        error_requests = (
            ("unknown parameters", {"invalid": "params"}),
            ("malformed address", {
                "faucet_info": FaucetType.CALIBNET_FIL.value,
                "address": INVALID_ADDRESSES[0],
            }),
            ("disabled faucet", {
                "faucet_info": FaucetType.MAINNET_FIL.value,
                "address": F1_ADDRESS,
            }),
        )
        for label, params in error_requests:
            result = await self._get(params)
            self._assert_allows_any_origin(f"error response ({label})", result)
