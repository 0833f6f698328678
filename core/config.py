"""Run configuration for faucet conformance checks.

Settings are loaded by Pydantic v2 from environment variables (prefixed
``CONFORMANCE_``) with ``.env`` file support, and may be overridden from an
optional ``config/conformance_config.json`` file.

Key exports:
    ConformanceSettings: Root settings model (instantiate once per run).
    BASE_DIR / CONFIG_DIR / LOGS_DIR: Canonical project paths.
"""

# pylint: disable=no-member

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# ---------------------------------------------------------------------------
# Base Paths
# ---------------------------------------------------------------------------
BASE_DIR: Path = Path(__file__).parent.parent
"""Project root directory (parent of ``core/``)."""

CONFIG_DIR: Path = BASE_DIR / "config"
"""Directory holding optional JSON overrides."""

LOGS_DIR: Path = BASE_DIR / "logs"
"""Directory for log output files."""

logger: logging.Logger = logging.getLogger(__name__)


class ConformanceSettings(BaseSettings):
    """Root configuration model for a conformance run.

    Section overview:
        * **Core** -- log level and rotating log file, target deployment.
        * **Browser** -- headless mode, navigation timeout, waits after
          interactions, selectors of claim-form elements.
        * **Claim API** -- request timeout, connection retries, latency
          ceiling, cooldown buffer.
        * **On-chain** -- optional receipt verification through JSON-RPC.
        * **Output** -- results export path.
    """

    # Core
    log_level: str = "INFO"
    # Rotating log file; None or "" keeps logging on the console only
    log_file: Optional[str] = str(LOGS_DIR / "conformance.log")
    log_max_bytes: int = 10 * 1024 * 1024
    log_backups: int = 5
    base_url: str = "http://127.0.0.1:8787"
    claim_endpoint: str = "/api/claim_token"

    # Browser
    headless: bool = True
    # Page loads on a cold worker can take a while
    navigation_timeout_ms: int = 60000
    settle_delay_seconds: float = 0.5
    claim_success_wait_seconds: float = 0.5
    claim_failure_wait_seconds: float = 0.25
    artifact_timeout_ms: int = 2000
    address_input_selector: str = "input.input"
    transaction_selector: str = ".transaction-container"
    invalid_address_pattern: str = "Invalid address"
    footer_links: List[str] = Field(
        default_factory=lambda: ["Forest Explorer", "ChainSafe Systems"]
    )

    # Claim API
    request_timeout_seconds: float = 30.0
    connect_retries: int = 3
    connect_backoff_seconds: float = 2.0
    # Latency ceiling per probe; None disables the check
    max_response_seconds: Optional[float] = None
    allow_waits: bool = True
    cooldown_buffer_seconds: float = 65.0

    # On-chain verification
    verify_on_chain: bool = False
    calibnet_rpc_url: str = "https://api.calibration.node.glif.io/rpc/v1"

    # Output
    results_file: Optional[str] = None

    model_config = SettingsConfigDict(
        env_prefix="CONFORMANCE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    def model_post_init(self, __context: Any) -> None:
        """Normalise URLs and merge ``config/conformance_config.json``."""
        self._load_config_overrides()
        self.base_url = self.base_url.rstrip("/")
        if not self.claim_endpoint.startswith("/"):
            self.claim_endpoint = "/" + self.claim_endpoint

    def _load_config_overrides(self) -> None:
        """Apply known keys from the optional JSON override file.

        Unknown keys are logged and ignored; a malformed file is logged
        and skipped so the environment values stay in effect.
        """
        config_path: Path = CONFIG_DIR / "conformance_config.json"
        if not config_path.exists():
            return

        try:
            data: Dict[str, Any] = json.loads(
                config_path.read_text(encoding="utf-8")
            )
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable %s: %s", config_path, e)
            return

        for key, value in data.items():
            if key in type(self).model_fields:
                setattr(self, key, value)
            else:
                logger.warning(
                    "Unknown key %r in %s ignored", key, config_path.name,
                )

    def url_for(self, path: str) -> str:
        """Absolute URL of a page path relative to :attr:`base_url`."""
        return f"{self.base_url}{path}"

    @property
    def claim_url(self) -> str:
        return self.url_for(self.claim_endpoint)
