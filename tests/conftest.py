import pytest
from unittest.mock import AsyncMock, MagicMock

from core.config import ConformanceSettings
from core.registry import build_default_registry
from core.results import ResultAggregator
from probes.client import ProbeResult


@pytest.fixture
def settings():
    """Settings with every wait shortened so tests never sleep."""
    return ConformanceSettings(
        base_url="http://faucet.test",
        settle_delay_seconds=0,
        claim_success_wait_seconds=0,
        claim_failure_wait_seconds=0,
        artifact_timeout_ms=0,
        connect_retries=3,
        connect_backoff_seconds=0,
        cooldown_buffer_seconds=0,
    )


@pytest.fixture
def aggregator():
    return ResultAggregator()


@pytest.fixture
def registry():
    return build_default_registry()


@pytest.fixture
def make_element():
    """Factory for fake Playwright element handles."""
    def _make(text, visible=True, enabled=True, href="#"):
        element = MagicMock()
        element.text_content = AsyncMock(return_value=f"  {text}\n")
        element.is_visible = AsyncMock(return_value=visible)
        element.is_enabled = AsyncMock(return_value=enabled)
        element.get_attribute = AsyncMock(return_value=href)
        element.click = AsyncMock()
        element.type = AsyncMock()
        return element
    return _make


@pytest.fixture
def make_page():
    """Factory for a fake Playwright page serving fixed controls."""
    def _make(buttons=(), links=(), content="<html></html>", status=200,
              url="http://faucet.test/"):
        page = MagicMock()
        page.url = url
        page.goto = AsyncMock(return_value=MagicMock(status=status))
        controls = {"button": list(buttons), "a": list(links)}
        page.query_selector_all = AsyncMock(
            side_effect=lambda selector: controls.get(selector, [])
        )
        page.query_selector = AsyncMock(return_value=None)
        page.content = AsyncMock(return_value=content)
        page.is_closed = MagicMock(return_value=False)
        page.evaluate = AsyncMock(return_value=2)
        page.keyboard = MagicMock()
        page.keyboard.press = AsyncMock()
        return page
    return _make


@pytest.fixture
def probe():
    """Factory for ProbeResult values.

    Without explicit *headers* the answer carries the permissive CORS
    header a conforming claim API sends.
    """
    def _make(status, body="", elapsed=0.1, headers=None):
        if headers is None:
            headers = {"Access-Control-Allow-Origin": "*"}
        return ProbeResult(
            status=status, body=body, elapsed=elapsed,
            headers={k.lower(): v for k, v in headers.items()},
        )
    return _make
