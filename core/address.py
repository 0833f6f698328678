"""Wallet-identity canonicalisation for faucet addresses.

A single wallet can be written several ways: a ``0x`` EVM address, its
``t410f``/``f410f`` delegated form, a numeric actor id (``t0…``) and the
masked-id EVM form (``0xff000…``).  Cooldown and wallet-cap assertions are
expressed against one :class:`WalletKey` per wallet instead of raw strings.

Two layers:

1. :func:`parse_address` is purely syntactic.  It validates base32 payloads
   and blake2b checksums, and decodes delegated addresses back to their
   20-byte EVM form.  The network prefix (``t``/``f``) is not part of the
   identity.
2. :meth:`WalletResolver.wallet_key` applies faucet semantics.  ERC-20
   faucets key wallets by the 20-byte EVM address, so an actor id and the
   delegated address of the same account stay distinct there.  Native faucets resolve addresses
   on chain, so encodings listed in one :class:`AddressEquivalenceClass`
   collapse to the class's wallet name.

Examples:
    >>> canonical_address("t410fw6vb5heeptnf6yhrvzxwlq7k4reerva7p667swi")
    'evm:b7aa1e9c847cda5f60f1ae6f65c3eae44848d41f'
    >>> canonical_address("0xff0000000000000000000000000000000002aba5")
    'id:175013'
"""

import base64
import binascii
import hashlib
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from core.descriptors import AddressEquivalenceClass, FaucetType, TokenKind

logger = logging.getLogger(__name__)

PROTOCOL_ID = 0
PROTOCOL_SECP256K1 = 1
PROTOCOL_ACTOR = 2
PROTOCOL_BLS = 3
PROTOCOL_DELEGATED = 4

EAM_NAMESPACE = 10
EVM_ADDRESS_BYTES = 20
CHECKSUM_BYTES = 4
MAX_ACTOR_ID = 2 ** 63 - 1

_PAYLOAD_LENGTHS = {
    PROTOCOL_SECP256K1: 20,
    PROTOCOL_ACTOR: 20,
    PROTOCOL_BLS: 48,
}

# 0xff followed by 11 zero bytes marks an EVM-encoded actor id
_MASKED_ID_PREFIX = bytes([0xFF]) + bytes(11)


class AddressError(ValueError):
    """Raised when a string is not a recognisable wallet address."""


@dataclass(frozen=True)
class ParsedAddress:
    """Network-independent decoded address.

    Attributes:
        protocol: Filecoin address protocol (0-4).
        payload: Raw payload; for delegated EAM addresses the 20-byte EVM
            address, for ids the decimal id encoded as ASCII.
        network_prefix: ``"t"``, ``"f"`` or ``None`` for ``0x`` forms.
    """

    protocol: int
    payload: bytes
    network_prefix: Optional[str] = None

    @property
    def canonical(self) -> str:
        if self.protocol == PROTOCOL_ID:
            return f"id:{self.payload.decode('ascii')}"
        if self.protocol == PROTOCOL_DELEGATED:
            return f"evm:{self.payload.hex()}"
        return f"p{self.protocol}:{self.payload.hex()}"

    @property
    def evm_form(self) -> Optional[str]:
        """The 20-byte EVM key, or ``None`` for keys with no EVM form."""
        if self.protocol == PROTOCOL_DELEGATED:
            return self.payload.hex()
        if self.protocol == PROTOCOL_ID:
            actor_id = int(self.payload.decode("ascii"))
            return (_MASKED_ID_PREFIX + actor_id.to_bytes(8, "big")).hex()
        return None


def _checksum(data: bytes) -> bytes:
    return hashlib.blake2b(data, digest_size=CHECKSUM_BYTES).digest()


def _leb128(value: int) -> bytes:
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def _b32decode(text: str) -> bytes:
    try:
        return base64.b32decode(text.upper() + "=" * (-len(text) % 8))
    except (binascii.Error, ValueError) as e:
        raise AddressError(f"Invalid base32 payload {text!r}: {e}") from e


def _parse_actor_id(digits: str) -> ParsedAddress:
    if not digits.isdigit():
        raise AddressError(f"Invalid actor id {digits!r}")
    actor_id = int(digits)
    if actor_id > MAX_ACTOR_ID:
        raise AddressError(f"Actor id {digits} out of range")
    return ParsedAddress(PROTOCOL_ID, str(actor_id).encode("ascii"))


def _parse_hex(body: str) -> ParsedAddress:
    if len(body) != EVM_ADDRESS_BYTES * 2:
        raise AddressError("Invalid address length")
    try:
        raw = bytes.fromhex(body)
    except ValueError as e:
        raise AddressError("Invalid characters in address") from e
    if raw.startswith(_MASKED_ID_PREFIX):
        actor_id = int.from_bytes(raw[len(_MASKED_ID_PREFIX):], "big")
        return _parse_actor_id(str(actor_id))
    return ParsedAddress(PROTOCOL_DELEGATED, raw)


def _parse_delegated(rest: str) -> ParsedAddress:
    namespace_digits, sep, encoded = rest.partition("f")
    if not sep or not namespace_digits.isdigit() or not encoded:
        raise AddressError(f"Malformed delegated address body {rest!r}")
    namespace = int(namespace_digits)
    if namespace != EAM_NAMESPACE:
        raise AddressError(f"Unsupported delegated namespace {namespace}")
    decoded = _b32decode(encoded)
    subaddress, checksum = decoded[:-CHECKSUM_BYTES], decoded[-CHECKSUM_BYTES:]
    if len(subaddress) != EVM_ADDRESS_BYTES:
        raise AddressError("Invalid address length")
    expected = _checksum(
        bytes([PROTOCOL_DELEGATED]) + _leb128(namespace) + subaddress
    )
    if checksum != expected:
        raise AddressError("Invalid address checksum")
    return ParsedAddress(PROTOCOL_DELEGATED, subaddress)


def _parse_hashed(protocol: int, encoded: str) -> ParsedAddress:
    decoded = _b32decode(encoded)
    payload, checksum = decoded[:-CHECKSUM_BYTES], decoded[-CHECKSUM_BYTES:]
    if len(payload) != _PAYLOAD_LENGTHS[protocol]:
        raise AddressError("Invalid address length")
    if checksum != _checksum(bytes([protocol]) + payload):
        raise AddressError("Invalid address checksum")
    return ParsedAddress(protocol, payload)


def parse_address(raw: str) -> ParsedAddress:
    """Decode any supported address encoding.

    Args:
        raw: Address text; surrounding whitespace and case are ignored.

    Returns:
        The decoded :class:`ParsedAddress`.

    Raises:
        AddressError: If *raw* is not a well-formed address.
    """
    if raw is None:
        raise AddressError("Address is missing")
    text = raw.strip().lower()
    if len(text) < 3:
        raise AddressError(f"Address {raw!r} is too short")

    if text.startswith("0x"):
        return _parse_hex(text[2:])

    prefix, protocol_char, rest = text[0], text[1], text[2:]
    if prefix not in ("t", "f"):
        raise AddressError(f"Unknown network prefix in {raw!r}")
    if not protocol_char.isdigit():
        raise AddressError(f"Unknown address protocol in {raw!r}")

    protocol = int(protocol_char)
    if protocol == PROTOCOL_ID:
        parsed = _parse_actor_id(rest)
    elif protocol in _PAYLOAD_LENGTHS:
        parsed = _parse_hashed(protocol, rest)
    elif protocol == PROTOCOL_DELEGATED:
        parsed = _parse_delegated(rest)
    else:
        raise AddressError(f"Unknown address protocol in {raw!r}")
    return ParsedAddress(parsed.protocol, parsed.payload, prefix)


def canonical_address(raw: str) -> str:
    """Return the network-independent canonical form of *raw*."""
    return parse_address(raw).canonical


@dataclass(frozen=True)
class WalletKey:
    """Identity of a wallet as seen by one faucet's cooldown/cap logic."""

    faucet: FaucetType
    wallet: str

    def __str__(self) -> str:
        return f"{self.faucet.value}/{self.wallet}"


class WalletResolver:
    """Maps raw addresses to :class:`WalletKey` values.

    Built from the declared equivalence classes once per run.
    """

    def __init__(
        self, classes: Iterable[AddressEquivalenceClass] = (),
    ) -> None:
        self._class_of: Dict[str, str] = {}
        for eq_class in classes:
            for encoding in eq_class.encodings:
                canonical = canonical_address(encoding)
                owner = self._class_of.get(canonical)
                if owner is not None and owner != eq_class.wallet:
                    raise ValueError(
                        f"Encoding {encoding!r} is declared for both "
                        f"{owner!r} and {eq_class.wallet!r}"
                    )
                self._class_of[canonical] = eq_class.wallet

    def wallet_key(self, faucet: FaucetType, raw: str) -> WalletKey:
        """Resolve *raw* to the wallet identity used by *faucet*.

        Raises:
            AddressError: If *raw* cannot be parsed, or has no EVM form
                while *faucet* pays out an ERC-20 token.
        """
        parsed = parse_address(raw)
        if faucet.token_kind is TokenKind.ERC20:
            evm = parsed.evm_form
            if evm is None:
                raise AddressError(
                    f"{raw!r} has no EVM form for {faucet.value}"
                )
            return WalletKey(faucet, f"evm:{evm}")
        canonical = parsed.canonical
        return WalletKey(faucet, self._class_of.get(canonical, canonical))

    def same_wallet(self, faucet: FaucetType, first: str, second: str) -> bool:
        return self.wallet_key(faucet, first) == self.wallet_key(faucet, second)
