"""
Token Ledger

Fungible balances for the staking token:
  - balance_of / total_supply / allowance queries
  - transfer, approve, transfer_from
  - mint / burn restricted to minter accounts (owner + authorized minters)

Amounts are integers in the token's smallest unit. Every mutating call checks
all preconditions before touching a balance, so a failed call leaves the
ledger unchanged.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from ..clock import SystemClock
from ..constants import TOKEN_DECIMALS, TOKEN_DEFAULT_NAME, TOKEN_DEFAULT_SYMBOL
from ..exceptions import (
    InsufficientAllowanceError,
    InsufficientBalanceError,
    InvalidAmountError,
    TokenError,
    UnauthorizedError,
)
from ..logger import get_logger

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  EVENTS
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TransferEvent:
    """Emitted on every balance move, including mint (sender=None) and burn (recipient=None)."""
    token_symbol: str
    sender: Optional[str]
    recipient: Optional[str]
    amount: int
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "Transfer",
            "token": self.token_symbol,
            "from": self.sender,
            "to": self.recipient,
            "amount": str(self.amount),
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class ApprovalEvent:
    """Emitted on every successful approve."""
    token_symbol: str
    owner: str
    spender: str
    amount: int
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "Approval",
            "token": self.token_symbol,
            "owner": self.owner,
            "spender": self.spender,
            "amount": str(self.amount),
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class MinterChangedEvent:
    """Emitted when a minter is authorized or revoked."""
    token_symbol: str
    minter: str
    authorized: bool
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "MinterChanged",
            "token": self.token_symbol,
            "minter": self.minter,
            "authorized": self.authorized,
            "timestamp": self.timestamp,
        }


# ══════════════════════════════════════════════════════════════════════
#  TOKEN LEDGER
# ══════════════════════════════════════════════════════════════════════

class TokenLedger:
    """
    Mintable fungible token.

    Mirrors the subset of ERC-20 the staking system relies on:
        - balance_of(address) → int
        - transfer(sender, recipient, amount)
        - approve(owner, spender, amount)
        - transfer_from(spender, owner, recipient, amount)
        - total_supply → int

    The owner is the initial minter and the only account that can grant or
    revoke the minter role. Supply starts at zero.
    """

    def __init__(
        self,
        owner: str,
        name: str = TOKEN_DEFAULT_NAME,
        symbol: str = TOKEN_DEFAULT_SYMBOL,
        decimals: int = TOKEN_DECIMALS,
        clock: Optional[Callable[[], int]] = None,
    ):
        if not owner:
            raise TokenError("Token owner is required")
        if not name:
            raise TokenError("Token name cannot be empty")
        if not symbol:
            raise TokenError("Token symbol cannot be empty")
        if decimals < 0 or decimals > 18:
            raise TokenError(f"Decimals must be 0-18, got {decimals}")

        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self.owner = owner
        self._clock = clock or SystemClock()

        self._total_supply = 0
        self._balances: Dict[str, int] = {}
        self._allowances: Dict[Tuple[str, str], int] = {}  # (owner, spender)
        self._minters: Set[str] = {owner}
        self._events: List[Any] = []

        logger.info(f"Token ledger created: {symbol} ({name}), owner={owner}")

    # ── Read-only views ───────────────────────────────────────────────

    @property
    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, address: str) -> int:
        return self._balances.get(address, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    def is_minter(self, address: str) -> bool:
        return address in self._minters

    @property
    def events(self) -> List[Any]:
        return list(self._events)

    # ── Guards ────────────────────────────────────────────────────────

    def _require_owner(self, caller: str):
        if caller != self.owner:
            raise UnauthorizedError(f"{caller} is not the token owner")

    def _require_minter(self, caller: str):
        if caller not in self._minters:
            raise UnauthorizedError(f"{caller} is not an authorized minter")

    @staticmethod
    def _require_positive(amount: int, what: str):
        if amount <= 0:
            raise InvalidAmountError(f"{what} amount must be positive, got {amount}")

    def _move(self, sender: str, recipient: str, amount: int) -> TransferEvent:
        bal = self.balance_of(sender)
        if bal < amount:
            raise InsufficientBalanceError(
                f"{sender} balance {bal} < transfer amount {amount}"
            )
        self._balances[sender] = bal - amount
        self._balances[recipient] = self.balance_of(recipient) + amount
        event = TransferEvent(self.symbol, sender, recipient, amount, self._clock())
        self._events.append(event)
        return event

    # ── Minter role ───────────────────────────────────────────────────

    def add_minter(self, caller: str, minter: str) -> MinterChangedEvent:
        """Authorize *minter* to mint and burn. Owner only."""
        self._require_owner(caller)
        self._minters.add(minter)
        event = MinterChangedEvent(self.symbol, minter, True, self._clock())
        self._events.append(event)
        logger.info(f"Minter added: {minter} for {self.symbol}")
        return event

    def remove_minter(self, caller: str, minter: str) -> MinterChangedEvent:
        """Revoke the minter role. The owner always keeps it."""
        self._require_owner(caller)
        if minter == self.owner:
            raise TokenError("Owner minter role cannot be revoked")
        self._minters.discard(minter)
        event = MinterChangedEvent(self.symbol, minter, False, self._clock())
        self._events.append(event)
        logger.info(f"Minter removed: {minter} for {self.symbol}")
        return event

    # ── Supply ────────────────────────────────────────────────────────

    def mint(self, caller: str, recipient: str, amount: int) -> TransferEvent:
        """Create *amount* new tokens for *recipient*."""
        self._require_minter(caller)
        self._require_positive(amount, "Mint")

        self._total_supply += amount
        self._balances[recipient] = self.balance_of(recipient) + amount

        event = TransferEvent(self.symbol, None, recipient, amount, self._clock())
        self._events.append(event)
        logger.debug(f"Mint: {amount} {self.symbol} → {recipient}")
        return event

    def burn(self, caller: str, account: str, amount: int) -> TransferEvent:
        """Destroy *amount* tokens held by *account*."""
        self._require_minter(caller)
        self._require_positive(amount, "Burn")

        bal = self.balance_of(account)
        if bal < amount:
            raise InsufficientBalanceError(
                f"{account} balance {bal} < burn amount {amount}"
            )
        self._balances[account] = bal - amount
        self._total_supply -= amount

        event = TransferEvent(self.symbol, account, None, amount, self._clock())
        self._events.append(event)
        logger.debug(f"Burn: {account} burned {amount} {self.symbol}")
        return event

    # ── Transfers ─────────────────────────────────────────────────────

    def transfer(self, sender: str, recipient: str, amount: int) -> TransferEvent:
        self._require_positive(amount, "Transfer")
        if sender == recipient:
            raise TokenError("Cannot transfer to self")
        event = self._move(sender, recipient, amount)
        logger.debug(f"Transfer: {sender} → {recipient} {amount} {self.symbol}")
        return event

    def approve(self, owner: str, spender: str, amount: int) -> ApprovalEvent:
        """Set spender allowance; zero revokes it."""
        if amount < 0:
            raise InvalidAmountError("Allowance amount cannot be negative")
        self._allowances[(owner, spender)] = amount
        event = ApprovalEvent(self.symbol, owner, spender, amount, self._clock())
        self._events.append(event)
        logger.debug(f"Approve: {owner} → {spender} allowance={amount} {self.symbol}")
        return event

    def transfer_from(
        self,
        spender: str,
        owner: str,
        recipient: str,
        amount: int,
    ) -> TransferEvent:
        """Move *owner*'s tokens using *spender*'s allowance."""
        self._require_positive(amount, "Transfer")
        allow = self.allowance(owner, spender)
        if allow < amount:
            raise InsufficientAllowanceError(
                f"Allowance {allow} < transfer amount {amount}"
            )
        event = self._move(owner, recipient, amount)
        self._allowances[(owner, spender)] = allow - amount
        logger.debug(
            f"transferFrom: spender={spender} {owner} → {recipient} {amount} {self.symbol}"
        )
        return event

    # ── Serialization ─────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "owner": self.owner,
            "totalSupply": str(self._total_supply),
            "minters": sorted(self._minters),
            "holders": len([b for b in self._balances.values() if b > 0]),
            "balances": {a: str(b) for a, b in self._balances.items() if b > 0},
        }

    def __repr__(self) -> str:
        return f"<TokenLedger {self.symbol} supply={self._total_supply}>"
