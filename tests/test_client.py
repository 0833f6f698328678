import asyncio
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from core.errors import ConnectivityError
from probes.client import ClaimApiClient, ProbeResult


def _response(status=200, body="ok", headers=None):
    resp = MagicMock()
    resp.status = status
    resp.text = AsyncMock(return_value=body)
    resp.headers = headers or {}
    ctx = MagicMock()
    ctx.__aenter__ = AsyncMock(return_value=resp)
    ctx.__aexit__ = AsyncMock(return_value=False)
    return ctx


def _session(*outcomes):
    """Session whose request() yields the given responses or raises."""
    session = MagicMock()
    session.close = AsyncMock()
    session.request = MagicMock(side_effect=list(outcomes))
    return session


class TestProbeResult:
    def test_header_lookup_is_case_insensitive(self):
        result = ProbeResult(200, "", headers={"retry-after": "30"})
        assert result.header("Retry-After") == "30"
        assert result.header("Origin") is None


class TestClaimApiClient:
    """Test suite for ClaimApiClient."""

    @pytest.mark.asyncio
    async def test_claim_sends_query_parameters(self, settings):
        session = _session(_response(200, '"0xabc"', {"Content-Type": "text/plain"}))
        client = ClaimApiClient(settings, session=session)

        result = await client.claim("CalibnetFIL", "t1abc")

        assert result.status == 200
        assert result.body == '"0xabc"'
        assert result.header("content-type") == "text/plain"
        method, url = session.request.call_args.args
        assert method == "GET"
        assert url == "http://faucet.test/api/claim_token"
        assert session.request.call_args.kwargs["params"] == {
            "faucet_info": "CalibnetFIL", "address": "t1abc",
        }

    @pytest.mark.asyncio
    async def test_missing_parameters_are_omitted(self, settings):
        session = _session(_response(500, "missing field"))
        client = ClaimApiClient(settings, session=session)

        await client.claim(None, "t1abc")

        assert session.request.call_args.kwargs["params"] == {"address": "t1abc"}

    @pytest.mark.asyncio
    async def test_http_errors_are_results_not_exceptions(self, settings):
        session = _session(_response(429, "Too many requests"))
        client = ClaimApiClient(settings, session=session)

        result = await client.claim("CalibnetFIL", "t1abc")

        assert result.status == 429
        assert session.request.call_count == 1

    @pytest.mark.asyncio
    async def test_retries_connection_errors(self, settings):
        session = _session(
            aiohttp.ClientConnectionError("refused"),
            asyncio.TimeoutError(),
            _response(200, "ok"),
        )
        client = ClaimApiClient(settings, session=session)

        result = await client.health_check()

        assert result.status == 200
        assert session.request.call_count == 3
        assert session.request.call_args.args[1] == "http://faucet.test/"

    @pytest.mark.asyncio
    async def test_exhausted_retries_raise(self, settings):
        session = _session(*[aiohttp.ClientConnectionError("refused")] * 3)
        client = ClaimApiClient(settings, session=session)

        with pytest.raises(ConnectivityError) as excinfo:
            await client.health_check()

        assert excinfo.value.attempts == 3
        assert "refused" in str(excinfo.value)

    @pytest.mark.asyncio
    async def test_injected_session_is_not_closed(self, settings):
        session = _session()
        client = ClaimApiClient(settings, session=session)
        await client.close()
        session.close.assert_not_called()
        assert client.session is None

    @pytest.mark.asyncio
    async def test_context_manager_owns_its_session(self, settings):
        async with ClaimApiClient(settings) as client:
            assert isinstance(client.session, aiohttp.ClientSession)
            session = client.session
        assert session.closed
        assert client.session is None
