"""
Faucet Conformance Suite - Main Entry Point

Verifies a deployed faucet web app: page structure and button behaviour in
a real browser, claim-form outcomes, and the claim API's validation,
cooldown, wallet-cap and CORS contract.

Usage:
    python main.py                          # Run every suite
    python main.py --suite ui --visible     # UI checks with a visible browser
    python main.py --suite api --no-wait    # Stateless API checks only
    python main.py --results results.json   # Export named results
"""
from dotenv import load_dotenv

# Load environment variables from .env file into os.environ
load_dotenv()

import asyncio
import argparse
import logging
import signal
import sys

from core.config import ConformanceSettings
from core.errors import ConnectivityError, ScenarioSequenceError
from core.logging_setup import setup_logging_from_settings
from core.orchestrator import ALL_SUITES, ConformanceRunner

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_CHECKS_FAILED = 1
EXIT_ABORTED = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Faucet conformance checks (UI, claim flows, claim API, CORS)",
    )
    parser.add_argument(
        "--suite", action="append", choices=ALL_SUITES,
        help="Suite to run; repeat to select several (default: all)",
    )
    parser.add_argument("--base-url", type=str, help="Faucet app root URL")
    parser.add_argument("--visible", action="store_true", help="Show browser")
    parser.add_argument(
        "--no-wait", action="store_true",
        help="Skip scenario sets that must wait out cooldowns",
    )
    parser.add_argument("--results", type=str, help="Write results JSON here")
    return parser


def apply_args(settings: ConformanceSettings, args: argparse.Namespace) -> None:
    """Let command-line flags override environment settings."""
    if args.base_url:
        settings.base_url = args.base_url.rstrip("/")
    if args.visible:
        settings.headless = False
    if args.no_wait:
        settings.allow_waits = False
    if args.results:
        settings.results_file = args.results


async def main(argv=None) -> int:
    """
    Main execution flow.

    1. Parses command line arguments over environment settings.
    2. Sets up logging.
    3. Runs the selected suites through the ConformanceRunner.
    4. Prints the summary and exports results if requested.

    Returns:
        Process exit code: 0 if every check passed, 1 if any failed,
        2 if the run was aborted.
    """
    args = build_parser().parse_args(argv)

    settings = ConformanceSettings()
    apply_args(settings, args)
    setup_logging_from_settings(settings)

    runner = ConformanceRunner(settings)
    run_task = asyncio.ensure_future(runner.run(args.suite))

    def handle_sigterm():
        logger.info("Received SIGTERM. Cancelling run...")
        run_task.cancel()

    loop = asyncio.get_running_loop()
    if sys.platform != "win32":
        loop.add_signal_handler(signal.SIGTERM, handle_sigterm)

    exit_code = EXIT_OK
    try:
        await run_task
    except ConnectivityError as e:
        logger.error("Run aborted, target unreachable: %s", e)
        exit_code = EXIT_ABORTED
    except ScenarioSequenceError as e:
        logger.error("Run aborted, inconsistent scenario set: %s", e)
        exit_code = EXIT_ABORTED
    except asyncio.CancelledError:
        logger.warning("Run cancelled")
        exit_code = EXIT_ABORTED

    aggregator = runner.aggregator
    aggregator.display()
    if settings.results_file:
        aggregator.export(settings.results_file)

    if exit_code == EXIT_OK and not aggregator.all_passed:
        exit_code = EXIT_CHECKS_FAILED
    return exit_code


def cli() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
