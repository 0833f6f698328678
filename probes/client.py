"""HTTP client for the faucet claim API.

Wraps one :class:`aiohttp.ClientSession` per run.  Transient connection
failures and timeouts are retried a bounded number of times with a fixed
backoff; once the attempts are exhausted :class:`ConnectivityError` is
raised.  Any HTTP answer, whatever its status, is returned as a
:class:`ProbeResult` for the caller to assert on.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import aiohttp

from core.config import ConformanceSettings
from core.errors import ConnectivityError

logger = logging.getLogger(__name__)


@dataclass
class ProbeResult:
    """One HTTP exchange as observed by the client.

    Attributes:
        status: HTTP status code.
        body: Decoded response body.
        elapsed: Seconds from sending the request to reading the body.
        headers: Response headers with lower-cased names.
    """

    status: int
    body: str
    elapsed: float = 0.0
    headers: Dict[str, str] = field(default_factory=dict)

    def header(self, name: str) -> Optional[str]:
        return self.headers.get(name.lower())


class ClaimApiClient:
    """Async client for the claim endpoint and the app's plain routes.

    Usage::

        async with ClaimApiClient(settings) as client:
            result = await client.claim("CalibnetFIL", "t1...")
    """

    def __init__(
        self,
        settings: ConformanceSettings,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self.settings = settings
        self.session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "ClaimApiClient":
        await self._ensure_session()
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[Any],
    ) -> None:
        await self.close()

    async def _ensure_session(self) -> None:
        """Lazily create the aiohttp session if one was not injected."""
        if not self.session:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(
                    total=self.settings.request_timeout_seconds,
                ),
            )
            self._owns_session = True

    async def close(self) -> None:
        if self.session and self._owns_session:
            await self.session.close()
        self.session = None

    async def request(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
        json_body: Optional[Dict[str, Any]] = None,
    ) -> ProbeResult:
        """Send one request, retrying only on connectivity failures.

        Args:
            method: HTTP method.
            url: Absolute URL.
            params: Query-string parameters.
            headers: Extra request headers.
            json_body: JSON payload for ``POST`` requests.

        Returns:
            The observed :class:`ProbeResult`.

        Raises:
            ConnectivityError: If every attempt failed to connect or timed
                out.
        """
        await self._ensure_session()
        attempts = max(1, self.settings.connect_retries)
        last_error: Optional[BaseException] = None
        loop = asyncio.get_event_loop()

        for attempt in range(1, attempts + 1):
            started = loop.time()
            try:
                async with self.session.request(
                    method, url, params=params, headers=headers,
                    json=json_body,
                ) as resp:
                    body = await resp.text()
                    return ProbeResult(
                        status=resp.status,
                        body=body,
                        elapsed=loop.time() - started,
                        headers={
                            k.lower(): v for k, v in resp.headers.items()
                        },
                    )
            except (aiohttp.ClientConnectionError, asyncio.TimeoutError) as e:
                last_error = e
                logger.warning(
                    "%s %s failed (attempt %d/%d): %s",
                    method, url, attempt, attempts, str(e) or type(e).__name__,
                )
                if attempt < attempts:
                    await asyncio.sleep(self.settings.connect_backoff_seconds)

        raise ConnectivityError(url, attempts, last_error)

    async def claim(
        self, faucet_type: Optional[str], address: Optional[str],
    ) -> ProbeResult:
        """Call the claim endpoint; ``None`` parameters are omitted."""
        params = {
            key: value
            for key, value in (
                ("faucet_info", faucet_type), ("address", address),
            )
            if value is not None
        }
        logger.debug("Claim probe %s", params)
        return await self.request(
            "GET", self.settings.claim_url, params=params,
        )

    async def health_check(self) -> ProbeResult:
        """Fetch the app root; used before any scenario starts."""
        return await self.request("GET", self.settings.url_for("/"))
