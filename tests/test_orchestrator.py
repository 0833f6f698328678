from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from playwright.async_api import Error as PlaywrightError

from core.errors import ConnectivityError, ErrorType, ScenarioSequenceError
from core.orchestrator import ConformanceRunner


def _client(probe, status=200):
    client = MagicMock()
    client.health_check = AsyncMock(return_value=probe(status, "<html>"))
    client.close = AsyncMock()
    return client


def _browser_manager(page=None, error=None):
    session = MagicMock()
    session.__aenter__ = AsyncMock(return_value=page or MagicMock(), side_effect=error)
    session.__aexit__ = AsyncMock(return_value=False)
    manager = MagicMock()
    manager.session = MagicMock(return_value=session)
    manager.close = AsyncMock()
    return manager


def _runner(settings, aggregator, registry, client, manager=None, sleep=None):
    runner = ConformanceRunner(
        settings, registry, aggregator,
        browser_manager=manager or _browser_manager(),
        client=client, sleep=sleep or AsyncMock(),
    )
    runner.engine.run = AsyncMock()
    runner.run_ui = AsyncMock()
    runner.run_claims = AsyncMock()
    return runner


class TestConformanceRunner:
    """Test suite for ConformanceRunner."""

    @pytest.mark.asyncio
    async def test_preflight_recorded(self, settings, aggregator, registry, probe):
        runner = _runner(settings, aggregator, registry, _client(probe))

        with patch("core.orchestrator.CorsVerifier") as cors:
            cors.return_value.run = AsyncMock()
            await runner.run()

        assert aggregator.results[0].name == "Pre-flight: GET / -> 200"
        assert aggregator.results[0].passed
        runner.run_ui.assert_awaited_once()
        runner.run_claims.assert_awaited_once()
        runner.engine.run.assert_awaited_once()
        cors.return_value.run.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unreachable_target_aborts(self, settings, aggregator, registry, probe):
        client = _client(probe)
        client.health_check = AsyncMock(
            side_effect=ConnectivityError("http://faucet.test/", 3),
        )
        manager = _browser_manager()
        runner = _runner(settings, aggregator, registry, client, manager)

        with pytest.raises(ConnectivityError):
            await runner.run()

        assert aggregator.results[0].error_type is ErrorType.CONNECTIVITY
        runner.run_ui.assert_not_awaited()
        runner.engine.run.assert_not_awaited()
        manager.close.assert_awaited_once()
        client.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_api_only_skips_browser_and_buffer(
        self, settings, aggregator, registry, probe,
    ):
        sleep = AsyncMock()
        manager = _browser_manager()
        runner = _runner(
            settings, aggregator, registry, _client(probe), manager, sleep,
        )

        await runner.run(["api"])

        manager.session.assert_not_called()
        sleep.assert_not_awaited()
        runner.engine.run.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_cooldown_buffer_between_claims_and_api(
        self, settings, aggregator, registry, probe,
    ):
        settings.cooldown_buffer_seconds = 65
        sleep = AsyncMock()
        runner = _runner(
            settings, aggregator, registry, _client(probe), sleep=sleep,
        )

        await runner.run(["claims", "api"])

        sleep.assert_awaited_once_with(65)
        runner.run_ui.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_waits_disabled_skips_sets_needing_fresh_cooldowns(
        self, settings, aggregator, registry, probe,
    ):
        """Claim flows without a buffer leave only stateless API sets."""
        settings.allow_waits = False
        sleep = AsyncMock()
        runner = _runner(
            settings, aggregator, registry, _client(probe), sleep=sleep,
        )

        await runner.run(["claims", "api"])

        sleep.assert_not_awaited()
        assert runner.engine.cooldowns_spent is True
        assert [s.name for s in runner.engine.runnable_sets()] == [
            "invalid_requests",
        ]

    @pytest.mark.asyncio
    async def test_api_without_claims_keeps_cooldown_set_when_waits_disabled(
        self, settings, aggregator, registry, probe,
    ):
        settings.allow_waits = False
        runner = _runner(settings, aggregator, registry, _client(probe))

        await runner.run(["api"])

        assert runner.engine.cooldowns_spent is False
        assert [s.name for s in runner.engine.runnable_sets()] == [
            "invalid_requests", "cooldown",
        ]

    @pytest.mark.asyncio
    async def test_buffer_keeps_cooldown_set(
        self, settings, aggregator, registry, probe,
    ):
        runner = _runner(settings, aggregator, registry, _client(probe))

        await runner.run(["claims", "api"])

        assert runner.engine.cooldowns_spent is False
        assert "cooldown" in [s.name for s in runner.engine.runnable_sets()]

    @pytest.mark.asyncio
    async def test_browser_session_fault_is_contained(
        self, settings, aggregator, registry, probe,
    ):
        manager = _browser_manager(error=PlaywrightError("browser crashed"))
        runner = _runner(settings, aggregator, registry, _client(probe), manager)

        await runner.run(["ui"])

        last = aggregator.results[-1]
        assert last.name == "UI session completed"
        assert not last.passed
        assert "browser crashed" in last.detail

    @pytest.mark.asyncio
    async def test_inconsistent_plan_rejected_before_probing(
        self, settings, aggregator, registry, probe,
    ):
        client = _client(probe)
        runner = _runner(settings, aggregator, registry, client)
        runner.engine.plan = MagicMock(side_effect=ScenarioSequenceError("bad"))

        with pytest.raises(ScenarioSequenceError):
            await runner.run(["api"])

        client.health_check.assert_not_awaited()
