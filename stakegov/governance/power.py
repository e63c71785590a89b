"""
Governance Power & Delegation

Voting weight is derived live from the staking ledger and the token ledger:

    own(X)   = 2 * staked(X) + balance(X)
    power(X) = (own(X) if X has not delegated else 0)
               + sum(own(D) for every D that delegated directly to X)

Delegation moves an account's *own* contribution to exactly one delegate.
It is single-hop: power received by X is never forwarded by X's own
delegation. Resolution is a single dictionary lookup, so delegation cycles
cannot cause a loop.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from ..constants import STAKED_POWER_MULTIPLIER
from ..exceptions import InvalidDelegateError
from ..logger import get_logger
from ..staking.ledger import StakingLedger
from ..tokens.ledger import TokenLedger

logger = get_logger(__name__)


@dataclass(frozen=True)
class DelegateChangedEvent:
    """Delegation moved from *previous* to *new* (None means the delegator itself)."""
    delegator: str
    previous: Optional[str]
    new: Optional[str]
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "DelegateChanged",
            "delegator": self.delegator,
            "fromDelegate": self.previous,
            "toDelegate": self.new,
            "timestamp": self.timestamp,
        }


class GovernancePower:
    """
    Voting-power calculator and delegation registry.

    Holds only identifiers: `delegator → delegate` plus the reverse index
    `delegate → [delegators]` in delegation order.
    """

    def __init__(
        self,
        staking: StakingLedger,
        token: TokenLedger,
        clock: Callable[[], int],
    ):
        self.staking = staking
        self.token = token
        self._clock = clock
        self._delegates: Dict[str, str] = {}
        self._delegators: Dict[str, List[str]] = {}
        self._events: List[Any] = []

    # ── Power ─────────────────────────────────────────────────────────

    def own_power(self, account: str) -> int:
        """Power the account contributes, before delegation is applied."""
        return (
            STAKED_POWER_MULTIPLIER * self.staking.get_staked_amount(account)
            + self.token.balance_of(account)
        )

    def get_voting_power(self, account: str) -> int:
        own = 0 if account in self._delegates else self.own_power(account)
        received = sum(self.own_power(d) for d in self._delegators.get(account, ()))
        return own + received

    def get_delegated_power(self, account: str) -> int:
        """Power received from direct delegators only."""
        return sum(self.own_power(d) for d in self._delegators.get(account, ()))

    # ── Delegation ────────────────────────────────────────────────────

    def delegate_of(self, account: str) -> Optional[str]:
        return self._delegates.get(account)

    def delegators_of(self, account: str) -> List[str]:
        return list(self._delegators.get(account, ()))

    def _unlink(self, delegator: str) -> Optional[str]:
        previous = self._delegates.pop(delegator, None)
        if previous is not None:
            remaining = [d for d in self._delegators[previous] if d != delegator]
            if remaining:
                self._delegators[previous] = remaining
            else:
                del self._delegators[previous]
        return previous

    def delegate(self, caller: str, to: str) -> DelegateChangedEvent:
        """Move the caller's own power to *to*."""
        if not to:
            raise InvalidDelegateError("Delegate address is required")
        if to == caller:
            raise InvalidDelegateError(
                "Cannot delegate to self; undelegate to restore own power"
            )
        previous = self._unlink(caller)
        self._delegates[caller] = to
        self._delegators.setdefault(to, []).append(caller)

        event = DelegateChangedEvent(caller, previous, to, self._clock())
        self._events.append(event)
        logger.info(f"Delegation: {caller} → {to} (was {previous or 'self'})")
        return event

    def undelegate(self, caller: str) -> Optional[DelegateChangedEvent]:
        """Return to self-delegation. Returns None if the caller had not delegated."""
        previous = self._unlink(caller)
        if previous is None:
            logger.debug(f"Undelegate: {caller} was not delegating")
            return None
        event = DelegateChangedEvent(caller, previous, None, self._clock())
        self._events.append(event)
        logger.info(f"Delegation: {caller} → self (was {previous})")
        return event

    # ── Queries ───────────────────────────────────────────────────────

    @property
    def events(self) -> List[Any]:
        return list(self._events)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "delegations": dict(self._delegates),
        }

    def __repr__(self) -> str:
        return f"<GovernancePower delegations={len(self._delegates)}>"
