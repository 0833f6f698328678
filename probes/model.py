"""Client-side model of the faucet's cooldown and wallet-cap state.

The model replays scenario sets on a virtual clock and predicts what the
server must answer for every stateful case.  It is used twice:

* before any probe is sent, to reject scenario sets whose declared
  expectations contradict their own history (:meth:`validate_set`);
* at run time, to decide which retry-after window a 429 must fall into.

State rules:
    * A successful claim starts a faucet-wide cooldown of
      :attr:`FaucetType.cooldown_seconds` and counts one claim against the
      claiming wallet.
    * A wallet holding :attr:`FaucetType.wallet_cap_claims` claims is capped
      for the rest of the drip-cap window.
    * The cap takes precedence over the cooldown when both apply.
"""

import copy
import logging
from enum import Enum
from typing import Dict, Iterable, List, Optional

from core.address import AddressError, WalletKey, WalletResolver
from core.descriptors import (
    DRIP_CAP_RESET_SECONDS,
    STATUS_SUCCESS,
    FaucetType,
    RateLimitCase,
    ScenarioSet,
)
from core.errors import ScenarioSequenceError

logger = logging.getLogger(__name__)


class Prediction(Enum):
    """Expected server decision for a stateful claim."""

    SUCCESS = "success"
    COOLDOWN = "cooldown"
    WALLET_CAPPED = "wallet_capped"


class WalletStateModel:
    """Virtual-clock replica of per-faucet cooldowns and per-wallet claims."""

    def __init__(self, resolver: Optional[WalletResolver] = None) -> None:
        self.resolver = resolver or WalletResolver()
        self.clock: float = 0.0
        self._cooldown_until: Dict[FaucetType, float] = {}
        self._claims: Dict[WalletKey, List[float]] = {}

    def advance(self, seconds: float) -> None:
        if seconds < 0:
            raise ValueError("Cannot move the clock backwards")
        self.clock += seconds

    def fork(self) -> "WalletStateModel":
        """Independent copy sharing only the resolver."""
        clone = copy.copy(self)
        clone._cooldown_until = dict(self._cooldown_until)
        clone._claims = {k: list(v) for k, v in self._claims.items()}
        return clone

    def claims_for(self, faucet: FaucetType, address: str) -> int:
        """Claims counted against the wallet within the drip-cap window."""
        key = self.resolver.wallet_key(faucet, address)
        window_start = self.clock - DRIP_CAP_RESET_SECONDS
        return sum(1 for t in self._claims.get(key, ()) if t > window_start)

    def cooldown_remaining(self, faucet: FaucetType) -> float:
        return max(0.0, self._cooldown_until.get(faucet, 0.0) - self.clock)

    def predict(self, faucet: FaucetType, address: str) -> Prediction:
        if self.claims_for(faucet, address) >= faucet.wallet_cap_claims:
            return Prediction.WALLET_CAPPED
        if self.cooldown_remaining(faucet) > 0:
            return Prediction.COOLDOWN
        return Prediction.SUCCESS

    def record_success(self, faucet: FaucetType, address: str) -> None:
        key = self.resolver.wallet_key(faucet, address)
        self._claims.setdefault(key, []).append(self.clock)
        self._cooldown_until[faucet] = self.clock + faucet.cooldown_seconds
        logger.debug(
            "Model t=%.0fs: %s claimed, cooldown until t=%.0fs",
            self.clock, key, self._cooldown_until[faucet],
        )

    # ------------------------------------------------------------------
    # Scenario validation
    # ------------------------------------------------------------------

    def _check_case(
        self, scenario_set: ScenarioSet, case: RateLimitCase,
    ) -> Prediction:
        faucet = FaucetType.parse(case.faucet_type)
        try:
            prediction = self.predict(faucet, case.address)
        except AddressError as e:
            raise ScenarioSequenceError(
                f"[{scenario_set.name}] {case.name}: {e}"
            ) from e

        if case.expected_status == STATUS_SUCCESS:
            consistent = prediction is Prediction.SUCCESS
        elif case.wallet_cap:
            consistent = prediction is Prediction.WALLET_CAPPED
        else:
            consistent = prediction is not Prediction.SUCCESS

        if not consistent:
            raise ScenarioSequenceError(
                f"[{scenario_set.name}] {case.name}: declared "
                f"{case.expected_status}"
                f"{' (wallet cap)' if case.wallet_cap else ''} but the "
                f"prior sequence implies {prediction.value} at "
                f"t={self.clock:.0f}s"
            )
        if prediction is Prediction.SUCCESS:
            self.record_success(faucet, case.address)
        return prediction

    def validate_set(
        self, scenario_set: ScenarioSet, honour_waits: bool = True,
    ) -> List[Optional[Prediction]]:
        """Replay *scenario_set* and return one prediction per case.

        Stateless cases get ``None``.  The model is mutated in place so
        later sets can continue from it.

        Raises:
            ScenarioSequenceError: If a declared status contradicts the
                replayed state.
        """
        predictions: List[Optional[Prediction]] = []
        for case in scenario_set.cases:
            if honour_waits and scenario_set.allow_waits:
                self.advance(case.wait_before_seconds)
            if not case.is_stateful:
                predictions.append(None)
                continue
            predictions.append(self._check_case(scenario_set, case))
        return predictions


def validate_plan(
    scenario_sets: Iterable[ScenarioSet],
    resolver: Optional[WalletResolver] = None,
    honour_waits: bool = True,
) -> Dict[str, List[Optional[Prediction]]]:
    """Validate ordered scenario sets against one another.

    A set with ``continues`` starts from the state left by the named set;
    any other set starts from a fresh server.

    Returns:
        Per-set predictions keyed by set name.

    Raises:
        ScenarioSequenceError: On the first inconsistent case.
    """
    resolver = resolver or WalletResolver()
    end_states: Dict[str, WalletStateModel] = {}
    plan: Dict[str, List[Optional[Prediction]]] = {}

    for scenario_set in scenario_sets:
        if scenario_set.continues is not None:
            if scenario_set.continues not in end_states:
                raise ScenarioSequenceError(
                    f"Set {scenario_set.name!r} continues unknown set "
                    f"{scenario_set.continues!r}"
                )
            model = end_states[scenario_set.continues].fork()
        else:
            model = WalletStateModel(resolver)
        plan[scenario_set.name] = model.validate_set(
            scenario_set, honour_waits=honour_waits,
        )
        end_states[scenario_set.name] = model
    return plan

