import os
import tempfile
from unittest.mock import AsyncMock, patch

import pytest

import main
from core.config import ConformanceSettings
from core.errors import ConnectivityError, ScenarioSequenceError
from core.results import ResultAggregator


def _patched_runner(aggregator, error=None):
    runner = patch("main.ConformanceRunner").start()
    runner.return_value.aggregator = aggregator
    runner.return_value.run = AsyncMock(return_value=aggregator, side_effect=error)
    return runner


@pytest.fixture(autouse=True)
def quiet_logging():
    with patch("main.setup_logging_from_settings") as setup:
        yield setup
    patch.stopall()


class TestArguments:
    def test_suites_accumulate(self):
        args = main.build_parser().parse_args(["--suite", "ui", "--suite", "cors"])
        assert args.suite == ["ui", "cors"]

    def test_unknown_suite_rejected(self):
        with pytest.raises(SystemExit):
            main.build_parser().parse_args(["--suite", "perf"])

    def test_apply_args(self):
        settings = ConformanceSettings(_env_file=None)
        args = main.build_parser().parse_args([
            "--base-url", "https://faucet.example/", "--visible",
            "--no-wait", "--results", "out.json",
        ])
        main.apply_args(settings, args)
        assert settings.base_url == "https://faucet.example"
        assert settings.headless is False
        assert settings.allow_waits is False
        assert settings.results_file == "out.json"


class TestMain:
    @pytest.mark.asyncio
    async def test_all_passed_exits_zero(self):
        aggregator = ResultAggregator()
        aggregator.record("Pre-flight: GET / -> 200", True)
        runner = _patched_runner(aggregator)

        assert await main.main(["--suite", "api"]) == main.EXIT_OK
        runner.return_value.run.assert_awaited_once_with(["api"])

    @pytest.mark.asyncio
    async def test_failed_check_exits_one(self):
        aggregator = ResultAggregator()
        aggregator.record("Button \"Home\" exists", False)
        _patched_runner(aggregator)

        assert await main.main([]) == main.EXIT_CHECKS_FAILED

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        ConnectivityError("http://127.0.0.1:8787/", 3),
        ScenarioSequenceError("declared 200 but the prior sequence implies cooldown"),
    ])
    async def test_aborted_run_exits_two(self, error):
        _patched_runner(ResultAggregator(), error=error)

        assert await main.main([]) == main.EXIT_ABORTED

    @pytest.mark.asyncio
    async def test_logging_configured_from_settings(
        self, quiet_logging, monkeypatch,
    ):
        monkeypatch.setenv("CONFORMANCE_LOG_FILE", "ci/conformance.log")
        monkeypatch.setenv("CONFORMANCE_LOG_BACKUPS", "2")
        _patched_runner(ResultAggregator())

        await main.main([])

        quiet_logging.assert_called_once()
        settings = quiet_logging.call_args.args[0]
        assert settings.log_file == "ci/conformance.log"
        assert settings.log_backups == 2

    @pytest.mark.asyncio
    async def test_results_exported(self):
        aggregator = ResultAggregator()
        aggregator.record("Pre-flight: GET / -> 200", True)
        _patched_runner(aggregator)

        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "results.json")
            await main.main(["--results", path])
            assert os.path.exists(path)
