"""Data extraction utilities for claim responses and rendered pages.

Provides standardised parsing of claim-API bodies (transaction hashes and
retry-after hints) and of page markup (error texts), shared by the
browser checks and the wire-level probes.
"""

import re
import logging
from typing import Optional

logger = logging.getLogger(__name__)

# Claim bodies are either a bare or JSON-quoted 32-byte hash
TX_HASH_PATTERN = re.compile(r'^"?(0x[0-9a-fA-F]{64})"?$')

_RETRY_HINT_PATTERN = re.compile(
    r'try\s+again\s+in\s+(\d+(?:\.\d+)?)', re.IGNORECASE,
)
_NUMBER_PATTERN = re.compile(r'(\d+(?:\.\d+)?)')


class DataExtractor:
    """Utility class for extracting data from claim responses and pages.

    Examples:
        >>> DataExtractor.is_well_formed_tx_hash("0x1234")
        False
        >>> DataExtractor.parse_retry_after_seconds(
        ...     "Rate limited. Try again in 42 seconds.")
        42.0
        >>> DataExtractor.find_error_text(
        ...     "<p>Invalid address: bad checksum</p>", "invalid address")
        'Invalid address: bad checksum'
    """

    @staticmethod
    def extract_transaction_id(body: str) -> Optional[str]:
        """Return the transaction hash carried by a claim body.

        Args:
            body: Raw response body of a successful claim.

        Returns:
            The ``0x``-prefixed hash, or ``None`` if *body* is anything
            other than a single well-formed hash.
        """
        if body is None:
            return None
        match = TX_HASH_PATTERN.match(body.strip())
        return match.group(1) if match else None

    @staticmethod
    def is_well_formed_tx_hash(body: str) -> bool:
        return DataExtractor.extract_transaction_id(body) is not None

    @staticmethod
    def parse_retry_after_seconds(
        body: Optional[str],
        retry_after_header: Optional[str] = None,
    ) -> Optional[float]:
        """Parse how long a rate-limited caller has to wait.

        Lookup order:
            1. A numeric ``Retry-After`` header.
            2. A ``"try again in N"`` hint in the body.
            3. The first number in the body.

        Args:
            body: Response body of a 429.
            retry_after_header: Value of the ``Retry-After`` header, if any.

        Returns:
            Seconds as a float, or ``None`` when no hint is present.
        """
        if retry_after_header is not None:
            try:
                return float(retry_after_header.strip())
            except ValueError:
                logger.debug(
                    "Non-numeric Retry-After %r", retry_after_header,
                )

        if not body:
            return None
        match = _RETRY_HINT_PATTERN.search(body) or _NUMBER_PATTERN.search(body)
        if match:
            return float(match.group(1))
        logger.debug("No retry-after hint in body: %.80s", body)
        return None

    @staticmethod
    def contains_text(body: Optional[str], needle: str) -> bool:
        """Case-insensitive substring test."""
        return bool(body) and needle.lower() in body.lower()

    @staticmethod
    def find_error_text(html: str, pattern: str) -> Optional[str]:
        """Find *pattern* rendered as visible text in *html*.

        The pattern is a case-insensitive regular expression, extended to
        the end of the enclosing text node.  Occurrences inside tags or
        attribute values are ignored.

        Args:
            html: Serialised page markup.
            pattern: Regular expression of the expected message.

        Returns:
            The matched text, or ``None`` if the message is not shown.
        """
        regex = re.compile(pattern + r'[^<>]*', re.IGNORECASE)
        for match in regex.finditer(html):
            preceding = html[:match.start()]
            last_open = preceding.rfind("<")
            last_close = preceding.rfind(">")
            # inside a tag when the last bracket before the match opens one
            if last_open > last_close:
                continue
            return match.group(0).strip()
        return None
