"""
Staking Ledger

Per-account staked principal with checkpoint-based linear reward accrual:

    pending = staked_amount * reward_rate * (now - reward_checkpoint) // REWARD_PRECISION

Rewards never compound on their own. Every operation that changes principal
first settles the reward earned on the old principal up to `now`, so each
accrual interval is computed over a constant principal. `compound()` is the
only path that folds reward into principal.

Staked tokens sit in the ledger's custody address on the token ledger;
rewards are minted, which requires the custody address to hold the minter
role.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from ..config.loader import StakingSettings
from ..constants import REWARD_PRECISION
from ..exceptions import InsufficientStakeError, InvalidAmountError, StakingError
from ..logger import get_logger
from ..tokens.ledger import TokenLedger
from .leaderboard import Leaderboard

logger = get_logger(__name__)

STAKING_CUSTODY_ADDRESS = "stakegov:staking"


# ══════════════════════════════════════════════════════════════════════
#  ACCOUNT STATE
# ══════════════════════════════════════════════════════════════════════

@dataclass
class StakeAccount:
    """
    Staking state of one address.

    Attributes:
        address:            Owner of the stake
        staked_amount:      Principal currently locked
        reward_checkpoint:  Timestamp of the last accrual-affecting event
        accrued_unclaimed:  Reward settled by a stake() but not yet paid
    """
    address: str
    staked_amount: int = 0
    reward_checkpoint: int = 0
    accrued_unclaimed: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "stakedAmount": str(self.staked_amount),
            "rewardCheckpoint": self.reward_checkpoint,
            "accruedUnclaimed": str(self.accrued_unclaimed),
        }


# ══════════════════════════════════════════════════════════════════════
#  EVENTS
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class StakedEvent:
    account: str
    amount: int
    settled_reward: int
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "Staked",
            "account": self.account,
            "amount": str(self.amount),
            "settledReward": str(self.settled_reward),
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class UnstakedEvent:
    account: str
    amount: int
    reward_paid: int
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "Unstaked",
            "account": self.account,
            "amount": str(self.amount),
            "rewardPaid": str(self.reward_paid),
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class RewardsClaimedEvent:
    account: str
    amount: int
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "RewardsClaimed",
            "account": self.account,
            "amount": str(self.amount),
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class CompoundedEvent:
    account: str
    amount: int
    new_principal: int
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "Compounded",
            "account": self.account,
            "amount": str(self.amount),
            "newPrincipal": str(self.new_principal),
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class EmergencyWithdrawnEvent:
    account: str
    amount: int
    forfeited_reward: int
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "EmergencyWithdrawn",
            "account": self.account,
            "amount": str(self.amount),
            "forfeitedReward": str(self.forfeited_reward),
            "timestamp": self.timestamp,
        }


# ══════════════════════════════════════════════════════════════════════
#  STAKING LEDGER
# ══════════════════════════════════════════════════════════════════════

class StakingLedger:
    """
    Stake custody, reward accrual and the top-stakers leaderboard.

    Responsibilities:
        - Lock and release principal through the token ledger
        - Settle, pay out and compound rewards
        - Keep the leaderboard in step with every principal change
    """

    def __init__(
        self,
        token: TokenLedger,
        clock: Callable[[], int],
        settings: Optional[StakingSettings] = None,
        address: str = STAKING_CUSTODY_ADDRESS,
    ):
        """
        Args:
            token:    Token ledger holding balances and custody
            clock:    Callable() → int, current time in seconds
            settings: Reward rate and leaderboard size
            address:  Custody address on the token ledger
        """
        self.token = token
        self.address = address
        self.settings = settings or StakingSettings()
        self.settings.validate()
        self._clock = clock

        self._accounts: Dict[str, StakeAccount] = {}
        self._total_staked = 0
        self._leaderboard = Leaderboard(self.settings.leaderboard_size)
        self._events: List[Any] = []

    @property
    def reward_rate(self) -> int:
        return self.settings.reward_rate

    # ── Reward math ───────────────────────────────────────────────────

    def _pending(self, account: StakeAccount, now: int) -> int:
        elapsed = max(0, now - account.reward_checkpoint)
        return account.staked_amount * self.reward_rate * elapsed // REWARD_PRECISION

    def _owed(self, account: StakeAccount, now: int) -> int:
        return account.accrued_unclaimed + self._pending(account, now)

    # ── Internal helpers ──────────────────────────────────────────────

    def _require_custody(self, amount: int):
        held = self.token.balance_of(self.address)
        if held < amount:
            raise StakingError(
                f"Custody balance {held} cannot cover withdrawal of {amount}"
            )

    def _set_principal(self, acct: StakeAccount, amount: int):
        self._total_staked += amount - acct.staked_amount
        acct.staked_amount = amount
        self._leaderboard.update(acct.address, amount)

    @staticmethod
    def _require_positive(amount: int):
        if amount <= 0:
            raise InvalidAmountError(f"Cannot stake or unstake {amount}")

    # ── Commands ──────────────────────────────────────────────────────

    def stake(self, caller: str, amount: int) -> StakedEvent:
        """
        Lock *amount* of the caller's tokens.

        Reward earned so far is settled into `accrued_unclaimed` and stays
        claimable; the checkpoint restarts at now.
        """
        self._require_positive(amount)
        now = self._clock()
        acct = self._accounts.get(caller) or StakeAccount(address=caller, reward_checkpoint=now)
        pending = self._pending(acct, now)

        # Raises before anything is recorded if the caller cannot pay
        self.token.transfer(caller, self.address, amount)

        self._accounts[caller] = acct
        acct.accrued_unclaimed += pending
        acct.reward_checkpoint = now
        self._set_principal(acct, acct.staked_amount + amount)

        event = StakedEvent(caller, amount, pending, now)
        self._events.append(event)
        logger.info(f"Stake: {caller} locked {amount} (principal={acct.staked_amount})")
        return event

    def unstake(self, caller: str, amount: int) -> UnstakedEvent:
        """Release *amount* of principal and pay out all unpaid reward."""
        self._require_positive(amount)
        acct = self._accounts.get(caller)
        staked = acct.staked_amount if acct else 0
        if amount > staked:
            raise InsufficientStakeError(
                f"{caller} has {staked} staked, cannot unstake {amount}"
            )
        now = self._clock()
        reward = self._owed(acct, now)
        self._require_custody(amount)

        if reward > 0:
            self.token.mint(self.address, caller, reward)
        self.token.transfer(self.address, caller, amount)

        acct.accrued_unclaimed = 0
        acct.reward_checkpoint = now
        self._set_principal(acct, staked - amount)

        if reward > 0:
            self._events.append(RewardsClaimedEvent(caller, reward, now))
        event = UnstakedEvent(caller, amount, reward, now)
        self._events.append(event)
        logger.info(
            f"Unstake: {caller} released {amount}, reward={reward} "
            f"(principal={acct.staked_amount})"
        )
        return event

    def claim_rewards(self, caller: str) -> int:
        """Pay all unpaid reward to the caller. Returns the amount paid (may be 0)."""
        now = self._clock()
        acct = self._accounts.get(caller)
        reward = self._owed(acct, now) if acct else 0

        if reward > 0:
            self.token.mint(self.address, caller, reward)
        if acct:
            acct.accrued_unclaimed = 0
            acct.reward_checkpoint = now

        self._events.append(RewardsClaimedEvent(caller, reward, now))
        if reward > 0:
            logger.info(f"Claim: {caller} received {reward}")
        else:
            logger.debug(f"Claim: {caller} had no reward")
        return reward

    def compound(self, caller: str) -> int:
        """Fold all unpaid reward into principal. Returns the amount folded."""
        now = self._clock()
        acct = self._accounts.get(caller)
        reward = self._owed(acct, now) if acct else 0

        if reward > 0:
            self.token.mint(self.address, self.address, reward)
        if acct:
            acct.accrued_unclaimed = 0
            acct.reward_checkpoint = now
            if reward > 0:
                self._set_principal(acct, acct.staked_amount + reward)

        new_principal = acct.staked_amount if acct else 0
        self._events.append(CompoundedEvent(caller, reward, new_principal, now))
        logger.info(f"Compound: {caller} folded {reward} (principal={new_principal})")
        return reward

    def emergency_withdraw(self, caller: str) -> EmergencyWithdrawnEvent:
        """Return the whole principal at once, forfeiting every unpaid reward."""
        acct = self._accounts.get(caller)
        if acct is None or acct.staked_amount == 0:
            raise InsufficientStakeError(f"{caller} has nothing staked")
        now = self._clock()
        amount = acct.staked_amount
        forfeited = self._owed(acct, now)
        self._require_custody(amount)

        self.token.transfer(self.address, caller, amount)

        acct.accrued_unclaimed = 0
        acct.reward_checkpoint = now
        self._set_principal(acct, 0)

        event = EmergencyWithdrawnEvent(caller, amount, forfeited, now)
        self._events.append(event)
        logger.warning(
            f"Emergency withdraw: {caller} took {amount}, forfeited reward {forfeited}"
        )
        return event

    # ── Queries ───────────────────────────────────────────────────────

    def get_staked_amount(self, address: str) -> int:
        acct = self._accounts.get(address)
        return acct.staked_amount if acct else 0

    def get_rewards(self, address: str) -> int:
        """Unpaid reward as of now. Pure read."""
        acct = self._accounts.get(address)
        if acct is None:
            return 0
        return self._owed(acct, self._clock())

    def get_top_stakers(self) -> List[str]:
        return self._leaderboard.top()

    def get_account(self, address: str) -> Optional[StakeAccount]:
        acct = self._accounts.get(address)
        if acct is None:
            return None
        return StakeAccount(**vars(acct))

    @property
    def total_staked(self) -> int:
        return self._total_staked

    @property
    def staker_count(self) -> int:
        """Accounts with non-zero principal, on or off the leaderboard."""
        return sum(1 for acct in self._accounts.values() if acct.staked_amount > 0)

    @property
    def events(self) -> List[Any]:
        return list(self._events)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "rewardRate": str(self.reward_rate),
            "totalStaked": str(self._total_staked),
            "topStakers": self._leaderboard.top(),
            "accounts": {a: acct.to_dict() for a, acct in self._accounts.items()},
        }

    def __repr__(self) -> str:
        return f"<StakingLedger stakers={self.staker_count} total={self._total_staked}>"
