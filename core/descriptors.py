"""Declarative descriptor model for faucet conformance runs.

Descriptors are immutable: they are built once at start-of-run (see
:mod:`core.registry`) and passed explicitly into every verifier, runner and
engine.  Invariants are enforced at construction time so that a bad table
fails loudly before any page is opened or any probe is sent.

Key exports:
    FaucetType: Enumerated faucet selector with its rate-limit parameters.
    ActionKind: Tagged variant of declared button behaviour.
    PageDescriptor / ButtonActionDescriptor / ClaimScenario: UI tables.
    RateLimitCase / ScenarioSet: Ordered wire-level probe plans.
    AddressEquivalenceClass: Declared encodings of a single wallet.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple

# ---------------------------------------------------------------------------
# HTTP status codes used by the claim API
# ---------------------------------------------------------------------------
STATUS_SUCCESS = 200
STATUS_BAD_REQUEST = 400
STATUS_TEAPOT = 418
STATUS_TOO_MANY_REQUESTS = 429
STATUS_SERVER_ERROR = 500

# A wallet cap outlives the per-faucet cooldown by a wide margin; any
# retry-after above this floor can only come from the cap.
WALLET_CAP_RETRY_FLOOR_SECONDS = 3600
DRIP_CAP_RESET_SECONDS = 86400


class Network(Enum):
    """Chain network a faucet pays out on."""

    MAINNET = "mainnet"
    TESTNET = "testnet"


class TokenKind(Enum):
    """How the dripped token is represented on chain."""

    NATIVE = "native"
    ERC20 = "erc20"


class FaucetType(Enum):
    """Faucet selector sent as ``faucet_info`` to the claim API.

    Members:
        CALIBNET_FIL: Calibration-network native token (tFIL).
        CALIBNET_USDFC: Calibration-network stablecoin (tUSDFC, ERC-20).
        MAINNET_FIL: Mainnet native token; disabled for automated claims.
    """

    CALIBNET_FIL = "CalibnetFIL"
    CALIBNET_USDFC = "CalibnetUSDFC"
    MAINNET_FIL = "MainnetFIL"

    @classmethod
    def parse(cls, raw: Optional[str]) -> Optional["FaucetType"]:
        """Return the member whose wire value is exactly *raw*, else ``None``."""
        for member in cls:
            if member.value == raw:
                return member
        return None

    @property
    def unit(self) -> str:
        return _FAUCET_PARAMS[self]["unit"]

    @property
    def network(self) -> Network:
        return _FAUCET_PARAMS[self]["network"]

    @property
    def token_kind(self) -> TokenKind:
        return _FAUCET_PARAMS[self]["token_kind"]

    @property
    def cooldown_seconds(self) -> int:
        """Faucet-wide cooldown started by every successful claim."""
        return _FAUCET_PARAMS[self]["cooldown_seconds"]

    @property
    def wallet_cap_claims(self) -> int:
        """Successful claims per wallet before the long-lived cap applies."""
        return _FAUCET_PARAMS[self]["wallet_cap_claims"]

    @property
    def claimable(self) -> bool:
        """``False`` for faucets that always answer 418."""
        return _FAUCET_PARAMS[self]["claimable"]


_FAUCET_PARAMS: Dict[FaucetType, Dict] = {
    FaucetType.CALIBNET_FIL: {
        "unit": "tFIL",
        "network": Network.TESTNET,
        "token_kind": TokenKind.NATIVE,
        "cooldown_seconds": 60,
        "wallet_cap_claims": 2,
        "claimable": True,
    },
    FaucetType.CALIBNET_USDFC: {
        "unit": "tUSDFC",
        "network": Network.TESTNET,
        "token_kind": TokenKind.ERC20,
        "cooldown_seconds": 60,
        "wallet_cap_claims": 2,
        "claimable": True,
    },
    FaucetType.MAINNET_FIL: {
        "unit": "FIL",
        "network": Network.MAINNET,
        "token_kind": TokenKind.NATIVE,
        "cooldown_seconds": 600,
        "wallet_cap_claims": 1,
        "claimable": False,
    },
}


class ActionKind(Enum):
    """Declared behaviour class of a button.

    Members:
        NAVIGATE: Activation must change the page location.
        CLICKABLE: Activation must not raise or break the page.
        EXPECT_ERROR: Activation must render a declared error text.
    """

    NAVIGATE = "navigate"
    CLICKABLE = "clickable"
    EXPECT_ERROR = "expect_error"


def _require_unique(labels: Tuple[str, ...], what: str, path: str) -> None:
    seen = set()
    for label in labels:
        if label in seen:
            raise ValueError(
                f"Duplicate {what} label {label!r} on page {path!r}"
            )
        seen.add(label)


@dataclass(frozen=True)
class PageDescriptor:
    """Expected structure of one page.

    Attributes:
        path: Route relative to the base URL (``""`` is the root).
        buttons: Ordered button labels, matched by exact trimmed text.
        links: Ordered link labels, matched by exact trimmed text.
    """

    path: str
    buttons: Tuple[str, ...] = ()
    links: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        _require_unique(self.buttons, "button", self.path)
        _require_unique(self.links, "link", self.path)


@dataclass(frozen=True)
class ButtonActionDescriptor:
    """Declared behaviour of the button ``label`` on page ``path``."""

    path: str
    label: str
    kind: ActionKind
    error_pattern: Optional[str] = None

    def __post_init__(self) -> None:
        if self.kind is ActionKind.EXPECT_ERROR and not (
            self.error_pattern and self.error_pattern.strip()
        ):
            raise ValueError(
                f"ExpectError action for {self.label!r} on {self.path!r} "
                "needs a non-empty error pattern"
            )

    @property
    def key(self) -> Tuple[str, str]:
        return (self.path, self.label)


@dataclass(frozen=True)
class ClaimScenario:
    """Addresses to submit through one claim form.

    ``expected_outcome[i]`` is ``True`` when ``addresses[i]`` should
    produce a transaction and ``False`` when it should be rejected.
    """

    path: str
    button_label: str
    addresses: Tuple[str, ...]
    expected_outcome: Tuple[bool, ...]

    def __post_init__(self) -> None:
        if len(self.addresses) != len(self.expected_outcome):
            raise ValueError(
                f"Claim scenario on {self.path!r} declares "
                f"{len(self.addresses)} addresses but "
                f"{len(self.expected_outcome)} expected outcomes"
            )

    def pairs(self) -> Tuple[Tuple[str, bool], ...]:
        return tuple(zip(self.addresses, self.expected_outcome))


@dataclass(frozen=True)
class AddressEquivalenceClass:
    """All surface encodings known to denote one wallet.

    Encodings that differ only syntactically (``0x`` vs ``t410f``) are
    joined by :mod:`core.address` on its own; this class additionally joins
    forms the chain resolves to the same actor (an ``f4`` account and its
    numeric id).
    """

    wallet: str
    encodings: Tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.encodings:
            raise ValueError(f"Wallet {self.wallet!r} has no encodings")


@dataclass(frozen=True)
class RateLimitCase:
    """One probe against the claim API.

    Attributes:
        name: Human-readable case name used in check names.
        faucet_type: Raw ``faucet_info`` value; ``None`` omits the parameter.
        address: Raw ``address`` value; ``None`` omits the parameter.
        expected_status: Exact HTTP status the probe must return.
        expected_tx_format: When set, a 200 body must be a well-formed
            transaction hash.
        wait_before_seconds: Delay before the probe (waits out a cooldown).
        wallet_cap: The probe targets a capped wallet; a 429 must carry a
            retry-after above :data:`WALLET_CAP_RETRY_FLOOR_SECONDS`.
        expected_body_contains: Case-insensitive substring the body must
            contain.
        requires: Index of an earlier case in the same set that must have
            succeeded for this one to be meaningful.
    """

    name: str
    faucet_type: Optional[str]
    address: Optional[str]
    expected_status: int
    expected_tx_format: bool = False
    wait_before_seconds: float = 0
    wallet_cap: bool = False
    expected_body_contains: Optional[str] = None
    requires: Optional[int] = None

    @property
    def is_stateful(self) -> bool:
        """Whether the case reads or writes cooldown/cap state."""
        faucet = FaucetType.parse(self.faucet_type)
        return (
            faucet is not None
            and faucet.claimable
            and self.address is not None
            and self.expected_status
            in (STATUS_SUCCESS, STATUS_TOO_MANY_REQUESTS)
        )


@dataclass(frozen=True)
class ScenarioSet:
    """Ordered group of probes whose later members depend on earlier ones.

    Attributes:
        name: Set identifier.
        cases: Cases in execution order.
        allow_waits: Whether declared ``wait_before_seconds`` are honoured.
        continues: Name of the set whose server-side effects this one
            assumes (``None`` for a set starting from fresh state).
    """

    name: str
    cases: Tuple[RateLimitCase, ...]
    allow_waits: bool = True
    continues: Optional[str] = None

    def __post_init__(self) -> None:
        for index, case in enumerate(self.cases):
            if case.requires is None:
                continue
            if not 0 <= case.requires < index:
                raise ValueError(
                    f"Case {case.name!r} in set {self.name!r} requires "
                    f"case #{case.requires}, which does not precede it"
                )
            if self.cases[case.requires].expected_status != STATUS_SUCCESS:
                raise ValueError(
                    f"Case {case.name!r} in set {self.name!r} requires "
                    f"case #{case.requires}, which is not expected to succeed"
                )

    @property
    def needs_waits(self) -> bool:
        return any(case.wait_before_seconds > 0 for case in self.cases)

    @property
    def is_stateful(self) -> bool:
        return any(case.is_stateful for case in self.cases)

    @property
    def needs_fresh_cooldowns(self) -> bool:
        """Whether the set assumes no faucet has been claimed from yet."""
        return self.continues is None and self.is_stateful


@dataclass(frozen=True)
class DescriptorRegistry:
    """Every table a run needs, bundled for explicit passing."""

    pages: Tuple[PageDescriptor, ...]
    button_actions: Tuple[ButtonActionDescriptor, ...]
    claim_scenarios: Tuple[ClaimScenario, ...]
    scenario_sets: Tuple[ScenarioSet, ...]
    equivalence_classes: Tuple[AddressEquivalenceClass, ...] = ()
    _actions_by_key: Dict[Tuple[str, str], ButtonActionDescriptor] = field(
        default_factory=dict, init=False, repr=False, compare=False,
    )

    def __post_init__(self) -> None:
        index: Dict[Tuple[str, str], ButtonActionDescriptor] = {}
        for action in self.button_actions:
            if action.key in index:
                raise ValueError(
                    f"Duplicate action for {action.label!r} on {action.path!r}"
                )
            index[action.key] = action
        # frozen dataclass: populate the cached index in place
        self._actions_by_key.update(index)

        names = [s.name for s in self.scenario_sets]
        for position, scenario_set in enumerate(self.scenario_sets):
            if scenario_set.continues is None:
                continue
            if scenario_set.continues not in names[:position]:
                raise ValueError(
                    f"Scenario set {scenario_set.name!r} continues "
                    f"{scenario_set.continues!r}, which is not declared "
                    "before it"
                )

    def action_for(
        self, path: str, label: str,
    ) -> Optional[ButtonActionDescriptor]:
        return self._actions_by_key.get((path, label))

    def scenario_set(self, name: str) -> ScenarioSet:
        for scenario_set in self.scenario_sets:
            if scenario_set.name == name:
                return scenario_set
        raise KeyError(name)
