"""On-chain confirmation of claim transactions.

Looks the transaction receipt up over Ethereum-compatible JSON-RPC
(``eth_getTransactionReceipt``) on the calibration network.
"""

import json
import logging
from enum import Enum

from core.config import ConformanceSettings
from probes.client import ClaimApiClient

logger = logging.getLogger(__name__)


class ReceiptStatus(Enum):
    """State of a transaction as reported by the node.

    Members:
        CONFIRMED: Included in a block and executed successfully.
        PENDING: Not yet included (no receipt).
        FAILED: Included but reverted, or the lookup returned an error.
    """

    CONFIRMED = "confirmed"
    PENDING = "pending"
    FAILED = "failed"

    @property
    def acceptable(self) -> bool:
        return self is not ReceiptStatus.FAILED


class ChainVerifier:
    """Queries transaction receipts through the configured RPC endpoint."""

    def __init__(
        self, client: ClaimApiClient, settings: ConformanceSettings,
    ) -> None:
        self.client = client
        self.settings = settings
        self._request_id = 0

    async def receipt_status(self, tx_hash: str) -> ReceiptStatus:
        """Classify *tx_hash* by its receipt.

        Raises:
            ConnectivityError: If the RPC endpoint cannot be reached.
        """
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": "eth_getTransactionReceipt",
            "params": [tx_hash],
        }
        result = await self.client.request(
            "POST", self.settings.calibnet_rpc_url, json_body=payload,
        )
        if result.status != 200:
            logger.warning(
                "Receipt lookup for %s returned HTTP %d", tx_hash, result.status,
            )
            return ReceiptStatus.FAILED

        try:
            data = json.loads(result.body)
        except json.JSONDecodeError:
            data = None
        if not isinstance(data, dict):
            logger.warning("Receipt lookup for %s returned non-JSON", tx_hash)
            return ReceiptStatus.FAILED

        if data.get("error"):
            logger.warning("RPC error for %s: %s", tx_hash, data["error"])
            return ReceiptStatus.FAILED

        receipt = data.get("result")
        if receipt is None:
            return ReceiptStatus.PENDING
        if receipt.get("blockNumber") and receipt.get("status") == "0x1":
            return ReceiptStatus.CONFIRMED
        return ReceiptStatus.FAILED
