"""Default descriptor tables for a faucet conformance run.

Maps the faucet web app's pages, buttons, claim forms and claim-API scenario
sets to immutable descriptors.  :func:`build_default_registry` assembles them
into one :class:`DescriptorRegistry` that the orchestrator passes explicitly
to every verifier, runner and engine.

Usage::

    from core.registry import build_default_registry

    registry = build_default_registry()
    for page in registry.pages:
        ...

How to extend:
    * Add pages, buttons or links to ``PAGES`` as the UI evolves.
    * Declare the behaviour of new buttons in ``BUTTON_ACTIONS``.
    * Add claim forms to ``CLAIM_SCENARIOS``.
    * Append cases to a scenario set only at the end unless every later
      case's expectations are re-derived; sets are order-dependent.
"""

from typing import Tuple

from core.descriptors import (
    STATUS_BAD_REQUEST,
    STATUS_SERVER_ERROR,
    STATUS_SUCCESS,
    STATUS_TEAPOT,
    STATUS_TOO_MANY_REQUESTS,
    ActionKind,
    AddressEquivalenceClass,
    ButtonActionDescriptor,
    ClaimScenario,
    DescriptorRegistry,
    FaucetType,
    PageDescriptor,
    RateLimitCase,
    ScenarioSet,
)

# Calibration cooldown is 60s; the extra seconds absorb clock skew.
FAUCET_COOLDOWN_BUFFER_SECONDS = 65

CALIBNET_FIL = FaucetType.CALIBNET_FIL.value
CALIBNET_USDFC = FaucetType.CALIBNET_USDFC.value
MAINNET_FIL = FaucetType.MAINNET_FIL.value
INVALID_FAUCET = "InvalidFaucet"

# ---------------------------------------------------------------------------
# Test addresses
# ---------------------------------------------------------------------------
F1_ADDRESS = "f15ydyu3d65gznpp2qxwpkjsgz4waubeunn6upvla"
T1_ADDRESS = "t15ydyu3d65gznpp2qxwpkjsgz4waubeunn6upvla"
T410_ADDRESS = "t410fw6vb5heeptnf6yhrvzxwlq7k4reerva7p667swi"
ETH_ADDRESS = "0xb7aA1e9c847CDA5F60f1AE6f65C3eae44848D41f"
T0_ADDRESS = "t0175013"
ETH_ID_ADDRESS = "0xff0000000000000000000000000000000002aba5"

INVALID_ADDRESSES: Tuple[str, ...] = (
    "invalidaddress",
    "0xinvalid",
    "t1invalid",
    "f1invalid",
    "",
    "0x123",
    "randomstring",
    "0xABC",
    "t1abc",
    "f1xyz",
)

# t1/f1 differ only by network prefix.  The delegated account behind the
# 0x/t410 forms was assigned actor id 175013 on calibration, so native
# faucets treat all four of its encodings as one wallet.
EQUIVALENCE_CLASSES: Tuple[AddressEquivalenceClass, ...] = (
    AddressEquivalenceClass(
        wallet="secp256k1-wallet",
        encodings=(T1_ADDRESS, F1_ADDRESS),
    ),
    AddressEquivalenceClass(
        wallet="delegated-wallet",
        encodings=(ETH_ADDRESS, T410_ADDRESS, T0_ADDRESS, ETH_ID_ADDRESS),
    ),
)

# ---------------------------------------------------------------------------
# Page structure
# ---------------------------------------------------------------------------
PAGES: Tuple[PageDescriptor, ...] = (
    PageDescriptor(
        path="",
        buttons=("Faucet List",),
        links=("Filecoin Slack", "documentation"),
    ),
    PageDescriptor(
        path="/faucet",
        buttons=("Home",),
        links=(
            "💰 Calibration Network USDFC Faucet",
            "🧪 Calibration Network Faucet",
            "🌐 Mainnet Network Faucet",
        ),
    ),
    PageDescriptor(
        path="/faucet/calibnet_usdfc",
        buttons=("Faucet List", "Transaction History", "Claim tUSDFC"),
    ),
    PageDescriptor(
        path="/faucet/calibnet",
        buttons=("Faucet List", "Transaction History", "Claim tFIL"),
    ),
    PageDescriptor(
        path="/faucet/mainnet",
        buttons=("Faucet List", "Transaction History", "Claim FIL"),
    ),
)


def _faucet_page_actions(
    path: str, claim_label: str,
) -> Tuple[ButtonActionDescriptor, ...]:
    return (
        ButtonActionDescriptor(path, "Faucet List", ActionKind.NAVIGATE),
        ButtonActionDescriptor(
            path, "Transaction History", ActionKind.CLICKABLE,
        ),
        ButtonActionDescriptor(
            path, claim_label, ActionKind.EXPECT_ERROR,
            error_pattern="Invalid address",
        ),
    )


BUTTON_ACTIONS: Tuple[ButtonActionDescriptor, ...] = (
    _faucet_page_actions("/faucet/calibnet_usdfc", "Claim tUSDFC")
    + _faucet_page_actions("/faucet/calibnet", "Claim tFIL")
    + _faucet_page_actions("/faucet/mainnet", "Claim FIL")
)

# ---------------------------------------------------------------------------
# Claim forms
# ---------------------------------------------------------------------------
CLAIM_SCENARIOS: Tuple[ClaimScenario, ...] = (
    ClaimScenario(
        path="/faucet/calibnet_usdfc",
        button_label="Claim tUSDFC",
        addresses=(
            "0xAe9C4b9508c929966ef37209b336E5796D632CDc",
            "f1mwllxrw7frn2lwhf4u26y4f3m7f6wsl4i3o3jvi",
        ),
        expected_outcome=(True, False),
    ),
    ClaimScenario(
        path="/faucet/mainnet",
        button_label="Claim FIL",
        addresses=(
            "f1rgci272nfk4k6cpyejepzv4xstpejjckldlzidy",
            "t1ox5dc3ifjimvn33tawpnyizikkbdikbnllyi2nq",
        ),
        expected_outcome=(True, False),
    ),
    ClaimScenario(
        path="/faucet/calibnet",
        button_label="Claim tFIL",
        addresses=(
            "t1pxxbe7he3c6vcw5as3gfvq33kprpmlufgtjgfdq",
            "f1mwllxrw7frn2lwhf4u26y4f3m7f6wsl4i3o3jvi",
        ),
        expected_outcome=(True, False),
    ),
)

# ---------------------------------------------------------------------------
# Claim API scenario sets
# ---------------------------------------------------------------------------
INVALID_REQUEST_CASES: Tuple[RateLimitCase, ...] = (
    RateLimitCase(
        name="Missing both parameters",
        faucet_type=None,
        address=None,
        expected_status=STATUS_SERVER_ERROR,
        expected_body_contains="missing",
    ),
    RateLimitCase(
        name="Missing faucet_info parameter",
        faucet_type=None,
        address=T1_ADDRESS,
        expected_status=STATUS_SERVER_ERROR,
        expected_body_contains="missing",
    ),
    RateLimitCase(
        name="Missing address parameter CalibnetFIL",
        faucet_type=CALIBNET_FIL,
        address=None,
        expected_status=STATUS_SERVER_ERROR,
        expected_body_contains="missing",
    ),
    RateLimitCase(
        name="Missing address parameter CalibnetUSDFC",
        faucet_type=CALIBNET_USDFC,
        address=None,
        expected_status=STATUS_SERVER_ERROR,
        expected_body_contains="missing",
    ),
    RateLimitCase(
        name="MainnetFIL request (should be blocked)",
        faucet_type=MAINNET_FIL,
        address=F1_ADDRESS,
        expected_status=STATUS_TEAPOT,
        expected_body_contains="teapot",
    ),
    RateLimitCase(
        name="Invalid faucet type",
        faucet_type=INVALID_FAUCET,
        address=T1_ADDRESS,
        expected_status=STATUS_SERVER_ERROR,
        expected_body_contains="unknown variant",
    ),
    RateLimitCase(
        name="Typo in faucet type",
        faucet_type="CalibnettFIL",
        address=T1_ADDRESS,
        expected_status=STATUS_SERVER_ERROR,
        expected_body_contains="unknown variant",
    ),
    RateLimitCase(
        name="Empty faucet_info parameter",
        faucet_type="",
        address=T1_ADDRESS,
        expected_status=STATUS_SERVER_ERROR,
        expected_body_contains="unknown variant",
    ),
    RateLimitCase(
        name="Invalid address format for CalibnetUSDFC",
        faucet_type=CALIBNET_USDFC,
        address=T1_ADDRESS,
        expected_status=STATUS_SERVER_ERROR,
        expected_body_contains="invalid address",
    ),
) + tuple(
    RateLimitCase(
        name=f"CalibnetFIL invalid address {address!r}",
        faucet_type=CALIBNET_FIL,
        address=address,
        expected_status=STATUS_BAD_REQUEST,
        expected_body_contains="invalid",
    )
    for address in INVALID_ADDRESSES
)


def _success(name: str, faucet: str, address: str, wait: float = 0,
             requires=None) -> RateLimitCase:
    return RateLimitCase(
        name=name,
        faucet_type=faucet,
        address=address,
        expected_status=STATUS_SUCCESS,
        expected_tx_format=True,
        wait_before_seconds=wait,
        requires=requires,
    )


def _limited(name: str, faucet: str, address: str, wait: float = 0,
             requires=None, wallet_cap: bool = False) -> RateLimitCase:
    return RateLimitCase(
        name=name,
        faucet_type=faucet,
        address=address,
        expected_status=STATUS_TOO_MANY_REQUESTS,
        wait_before_seconds=wait,
        wallet_cap=wallet_cap,
        requires=requires,
    )


# One success per faucet type starts its cooldown; every encoding of every
# wallet is then rejected for that faucet type only.
COOLDOWN_CASES: Tuple[RateLimitCase, ...] = (
    _success("CalibnetFIL (t1) - 1st success starts cooldown",
             CALIBNET_FIL, T1_ADDRESS),
    _limited("CalibnetFIL (t410) - rate limited within cooldown",
             CALIBNET_FIL, T410_ADDRESS, requires=0),
    _limited("CalibnetFIL (eth) - rate limited within cooldown",
             CALIBNET_FIL, ETH_ADDRESS, requires=0),
    _limited("CalibnetFIL (t0) - rate limited within cooldown",
             CALIBNET_FIL, T0_ADDRESS, requires=0),
    _limited("CalibnetFIL (ID) - rate limited within cooldown",
             CALIBNET_FIL, ETH_ID_ADDRESS, requires=0),
    _success("CalibnetUSDFC (eth) - 1st success, independent cooldown",
             CALIBNET_USDFC, ETH_ADDRESS),
    _limited("CalibnetUSDFC (t410) - rate limited within cooldown",
             CALIBNET_USDFC, T410_ADDRESS, requires=5),
    _limited("CalibnetUSDFC (t0) - rate limited within cooldown",
             CALIBNET_USDFC, T0_ADDRESS, requires=5),
    _limited("CalibnetUSDFC (ID) - rate limited within cooldown",
             CALIBNET_USDFC, ETH_ID_ADDRESS, requires=5),
)

_WAIT = FAUCET_COOLDOWN_BUFFER_SECONDS

# Continues from COOLDOWN_CASES: the t1 wallet already holds one CalibnetFIL
# claim and the delegated wallet one CalibnetUSDFC claim.
WALLET_CAP_CASES: Tuple[RateLimitCase, ...] = (
    _success("CalibnetFIL (t1) - 2nd success reaches cap",
             CALIBNET_FIL, T1_ADDRESS, wait=_WAIT),
    _limited("CalibnetFIL (t1) - 3rd attempt wallet capped",
             CALIBNET_FIL, T1_ADDRESS, wait=_WAIT, requires=0,
             wallet_cap=True),
    _success("CalibnetFIL (eth) - 1st success",
             CALIBNET_FIL, ETH_ADDRESS, wait=_WAIT),
    _success("CalibnetFIL (eth) - 2nd success reaches cap",
             CALIBNET_FIL, ETH_ADDRESS, wait=_WAIT, requires=2),
    _limited("CalibnetFIL (eth) - 3rd attempt wallet capped",
             CALIBNET_FIL, ETH_ADDRESS, wait=_WAIT, requires=3,
             wallet_cap=True),
    _limited("CalibnetFIL (t410) - equivalent encoding wallet capped",
             CALIBNET_FIL, T410_ADDRESS, requires=3, wallet_cap=True),
    _limited("CalibnetFIL (t0) - equivalent encoding wallet capped",
             CALIBNET_FIL, T0_ADDRESS, requires=3, wallet_cap=True),
    _limited("CalibnetFIL (ID) - equivalent encoding wallet capped",
             CALIBNET_FIL, ETH_ID_ADDRESS, requires=3, wallet_cap=True),
    _success("CalibnetUSDFC (eth) - 2nd success reaches cap",
             CALIBNET_USDFC, ETH_ADDRESS, wait=_WAIT),
    _limited("CalibnetUSDFC (eth) - 3rd attempt wallet capped",
             CALIBNET_USDFC, ETH_ADDRESS, wait=_WAIT, requires=8,
             wallet_cap=True),
    _limited("CalibnetUSDFC (t410) - equivalent encoding wallet capped",
             CALIBNET_USDFC, T410_ADDRESS, requires=8, wallet_cap=True),
    _success("CalibnetUSDFC (ID) - 1st success on fresh wallet",
             CALIBNET_USDFC, ETH_ID_ADDRESS, wait=_WAIT),
    _success("CalibnetUSDFC (ID) - 2nd success reaches cap",
             CALIBNET_USDFC, ETH_ID_ADDRESS, wait=_WAIT, requires=11),
    _limited("CalibnetUSDFC (ID) - 3rd attempt wallet capped",
             CALIBNET_USDFC, ETH_ID_ADDRESS, wait=_WAIT, requires=12,
             wallet_cap=True),
    _limited("CalibnetUSDFC (t0) - equivalent encoding wallet capped",
             CALIBNET_USDFC, T0_ADDRESS, requires=12, wallet_cap=True),
)

SCENARIO_SETS: Tuple[ScenarioSet, ...] = (
    ScenarioSet(name="invalid_requests", cases=INVALID_REQUEST_CASES),
    ScenarioSet(name="cooldown", cases=COOLDOWN_CASES),
    ScenarioSet(
        name="wallet_cap", cases=WALLET_CAP_CASES, continues="cooldown",
    ),
)


def build_default_registry() -> DescriptorRegistry:
    """Assemble the default tables into a :class:`DescriptorRegistry`."""
    return DescriptorRegistry(
        pages=PAGES,
        button_actions=BUTTON_ACTIONS,
        claim_scenarios=CLAIM_SCENARIOS,
        scenario_sets=SCENARIO_SETS,
        equivalence_classes=EQUIVALENCE_CLASSES,
    )
