"""
Staking Ledger Test Suite

Coverage:
  - stake / unstake custody movements and validation
  - linear reward accrual, claim, compound, emergency withdraw
  - settlement of reward on principal changes
  - leaderboard ordering, ties and bounds
  - failed calls leave ledger state untouched
"""

import os
import sys

import pytest

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from stakegov.clock import ManualClock
from stakegov.config import StakingSettings
from stakegov.constants import DEFAULT_REWARD_RATE, REWARD_PRECISION, SECONDS_PER_DAY, WEI
from stakegov.exceptions import (
    InsufficientBalanceError,
    InsufficientStakeError,
    InvalidAmountError,
    UnauthorizedError,
)
from stakegov.staking import Leaderboard, StakedEvent, StakingLedger, UnstakedEvent
from stakegov.tokens import TokenLedger


# ══════════════════════════════════════════════════════════════════════
#  HELPERS
# ══════════════════════════════════════════════════════════════════════

OWNER = "0x" + "00" * 19 + "01"
ALICE = "0x" + "a1" * 20
BOB = "0x" + "b2" * 20
CAROL = "0x" + "c3" * 20
DAVE = "0x" + "d4" * 20

RATE = DEFAULT_REWARD_RATE
DAY = SECONDS_PER_DAY


def reward_for(principal: int, seconds: int, rate: int = RATE) -> int:
    return principal * rate * seconds // REWARD_PRECISION


def make_ledger(rate=RATE, leaderboard_size=10, grant_minter=True):
    """Token + staking ledger on a manual clock, each test account funded with 1000 tokens."""
    clock = ManualClock(1_700_000_000)
    token = TokenLedger(owner=OWNER, clock=clock)
    staking = StakingLedger(
        token,
        clock,
        StakingSettings(reward_rate=rate, leaderboard_size=leaderboard_size),
    )
    if grant_minter:
        token.add_minter(OWNER, staking.address)
    for who in (ALICE, BOB, CAROL, DAVE):
        token.mint(OWNER, who, 1000 * WEI)
    return token, staking, clock


# ══════════════════════════════════════════════════════════════════════
#  STAKE / UNSTAKE
# ══════════════════════════════════════════════════════════════════════

class TestStake:
    """Locking principal."""

    def test_stake_moves_tokens_into_custody(self):
        token, staking, _ = make_ledger()
        event = staking.stake(ALICE, 100 * WEI)
        assert isinstance(event, StakedEvent)
        assert token.balance_of(ALICE) == 900 * WEI
        assert token.balance_of(staking.address) == 100 * WEI
        assert staking.get_staked_amount(ALICE) == 100 * WEI
        assert staking.total_staked == 100 * WEI

    def test_stake_zero_raises(self):
        _, staking, _ = make_ledger()
        with pytest.raises(InvalidAmountError):
            staking.stake(ALICE, 0)

    def test_stake_negative_raises(self):
        _, staking, _ = make_ledger()
        with pytest.raises(InvalidAmountError):
            staking.stake(ALICE, -5)

    def test_stake_beyond_balance_changes_nothing(self):
        token, staking, _ = make_ledger()
        with pytest.raises(InsufficientBalanceError):
            staking.stake(ALICE, 1001 * WEI)
        assert staking.get_staked_amount(ALICE) == 0
        assert staking.get_account(ALICE) is None
        assert token.balance_of(ALICE) == 1000 * WEI
        assert staking.get_top_stakers() == []

    def test_stake_settles_pending_reward(self):
        _, staking, clock = make_ledger()
        staking.stake(ALICE, 100 * WEI)
        clock.advance(DAY)
        first = reward_for(100 * WEI, DAY)

        event = staking.stake(ALICE, 100 * WEI)
        assert event.settled_reward == first
        assert staking.get_rewards(ALICE) == first
        assert staking.get_account(ALICE).reward_checkpoint == clock.now

        clock.advance(DAY)
        assert staking.get_rewards(ALICE) == first + reward_for(200 * WEI, DAY)


class TestUnstake:
    """Releasing principal."""

    def test_unstake_pays_principal_and_reward(self):
        token, staking, clock = make_ledger()
        staking.stake(ALICE, 100 * WEI)
        clock.advance(DAY)
        balance_before = token.balance_of(ALICE)

        event = staking.unstake(ALICE, 50 * WEI)

        assert isinstance(event, UnstakedEvent)
        assert event.reward_paid == reward_for(100 * WEI, DAY)
        assert staking.get_staked_amount(ALICE) == 50 * WEI
        assert token.balance_of(ALICE) == balance_before + 50 * WEI + event.reward_paid
        assert token.balance_of(ALICE) > balance_before + 50 * WEI
        assert staking.get_rewards(ALICE) == 0

    def test_unstake_more_than_staked_raises(self):
        token, staking, clock = make_ledger()
        staking.stake(ALICE, 100 * WEI)
        clock.advance(DAY)
        with pytest.raises(InsufficientStakeError, match="cannot unstake"):
            staking.unstake(ALICE, 100 * WEI + 1)
        assert staking.get_staked_amount(ALICE) == 100 * WEI
        assert staking.get_rewards(ALICE) == reward_for(100 * WEI, DAY)
        assert token.balance_of(ALICE) == 900 * WEI

    def test_unstake_without_stake_raises(self):
        _, staking, _ = make_ledger()
        with pytest.raises(InsufficientStakeError):
            staking.unstake(BOB, 1)

    def test_unstake_zero_raises(self):
        _, staking, _ = make_ledger()
        staking.stake(ALICE, 10)
        with pytest.raises(InvalidAmountError):
            staking.unstake(ALICE, 0)

    def test_unstake_then_restake_restores_principal(self):
        _, staking, clock = make_ledger()
        staking.stake(ALICE, 300 * WEI)
        clock.advance(3600)
        before = staking.get_staked_amount(ALICE)
        staking.unstake(ALICE, 120 * WEI)
        staking.stake(ALICE, 120 * WEI)
        assert staking.get_staked_amount(ALICE) == before

    def test_full_unstake_leaves_leaderboard(self):
        _, staking, _ = make_ledger()
        staking.stake(ALICE, 100)
        staking.unstake(ALICE, 100)
        assert staking.get_staked_amount(ALICE) == 0
        assert ALICE not in staking.get_top_stakers()


# ══════════════════════════════════════════════════════════════════════
#  REWARDS
# ══════════════════════════════════════════════════════════════════════

class TestRewards:
    """Accrual, claim and compound."""

    def test_rewards_positive_after_one_day(self):
        _, staking, clock = make_ledger()
        staking.stake(ALICE, 100 * WEI)
        clock.advance(DAY)
        assert staking.get_rewards(ALICE) > 0

    def test_rewards_zero_at_checkpoint(self):
        _, staking, _ = make_ledger()
        staking.stake(ALICE, 100 * WEI)
        assert staking.get_rewards(ALICE) == 0

    def test_rewards_linear_and_read_only(self):
        _, staking, clock = make_ledger()
        staking.stake(ALICE, 100 * WEI)
        for _ in range(10):
            clock.advance(777)
            staking.get_rewards(ALICE)
        assert staking.get_rewards(ALICE) == reward_for(100 * WEI, 7770)
        assert staking.get_rewards(ALICE) == staking.get_rewards(ALICE)

    def test_rewards_unknown_account_zero(self):
        _, staking, _ = make_ledger()
        assert staking.get_rewards(CAROL) == 0

    def test_claim_pays_about_1000_tokens_per_day_for_100_staked(self):
        token, staking, clock = make_ledger()
        staking.stake(ALICE, 100 * WEI)
        initial = token.balance_of(ALICE)
        clock.advance(DAY)

        paid = staking.claim_rewards(ALICE)

        assert paid == reward_for(100 * WEI, DAY)
        assert abs(token.balance_of(ALICE) - (initial + 1000 * WEI)) < WEI // 50
        assert staking.get_rewards(ALICE) == 0
        assert staking.get_staked_amount(ALICE) == 100 * WEI

    def test_claim_with_nothing_owed_pays_zero(self):
        token, staking, _ = make_ledger()
        supply = token.total_supply
        assert staking.claim_rewards(ALICE) == 0
        staking.stake(BOB, 10)
        assert staking.claim_rewards(BOB) == 0
        assert token.total_supply == supply

    def test_claims_are_additive_over_constant_principal(self):
        _, split, split_clock = make_ledger()
        _, single, single_clock = make_ledger()
        split.stake(ALICE, 123 * WEI)
        single.stake(ALICE, 123 * WEI)

        split_clock.advance(5_000)
        total = split.claim_rewards(ALICE)
        split_clock.advance(9_000)
        total += split.claim_rewards(ALICE)

        single_clock.advance(14_000)
        assert abs(single.claim_rewards(ALICE) - total) <= 1

    def test_compound_grows_principal(self):
        token, staking, clock = make_ledger()
        staking.stake(ALICE, 100 * WEI)
        clock.advance(DAY)

        folded = staking.compound(ALICE)

        assert folded == reward_for(100 * WEI, DAY)
        assert abs(staking.get_staked_amount(ALICE) - 1100 * WEI) < WEI // 50
        assert token.balance_of(staking.address) == staking.get_staked_amount(ALICE)
        assert token.balance_of(ALICE) == 900 * WEI
        assert staking.get_rewards(ALICE) == 0

    def test_two_compounds_match_closed_form(self):
        _, staking, clock = make_ledger()
        principal = 100 * WEI
        staking.stake(ALICE, principal)

        clock.advance(3_600)
        r1 = staking.compound(ALICE)
        clock.advance(7_200)
        r2 = staking.compound(ALICE)

        assert r1 == reward_for(principal, 3_600)
        assert r2 == reward_for(principal + r1, 7_200)
        assert staking.get_staked_amount(ALICE) == principal + r1 + r2

    def test_two_compounds_vs_one_differ_only_by_reward_on_reward(self):
        _, twice, twice_clock = make_ledger()
        _, once, once_clock = make_ledger()
        principal = 100 * WEI
        twice.stake(ALICE, principal)
        once.stake(ALICE, principal)

        twice_clock.advance(3_600)
        r1 = twice.compound(ALICE)
        twice_clock.advance(7_200)
        twice.compound(ALICE)

        once_clock.advance(3_600 + 7_200)
        once.compound(ALICE)

        gap = twice.get_staked_amount(ALICE) - once.get_staked_amount(ALICE)
        assert abs(gap - reward_for(r1, 7_200)) <= 1

    def test_compound_with_nothing_owed(self):
        _, staking, _ = make_ledger()
        staking.stake(ALICE, 100)
        assert staking.compound(ALICE) == 0
        assert staking.get_staked_amount(ALICE) == 100

    def test_reward_payout_requires_minter_role(self):
        token, staking, clock = make_ledger(grant_minter=False)
        staking.stake(ALICE, 100 * WEI)
        clock.advance(DAY)
        owed = staking.get_rewards(ALICE)

        with pytest.raises(UnauthorizedError):
            staking.claim_rewards(ALICE)
        with pytest.raises(UnauthorizedError):
            staking.unstake(ALICE, 10 * WEI)

        assert staking.get_rewards(ALICE) == owed
        assert staking.get_staked_amount(ALICE) == 100 * WEI
        assert token.balance_of(ALICE) == 900 * WEI


# ══════════════════════════════════════════════════════════════════════
#  EMERGENCY WITHDRAW
# ══════════════════════════════════════════════════════════════════════

class TestEmergencyWithdraw:
    """Immediate exit forfeiting rewards."""

    def test_returns_principal_and_forfeits_reward(self):
        token, staking, clock = make_ledger()
        staking.stake(ALICE, 100 * WEI)
        clock.advance(DAY)
        supply = token.total_supply

        event = staking.emergency_withdraw(ALICE)

        assert event.amount == 100 * WEI
        assert event.forfeited_reward == reward_for(100 * WEI, DAY)
        assert token.balance_of(ALICE) == 1000 * WEI
        assert token.total_supply == supply
        assert staking.get_staked_amount(ALICE) == 0
        assert staking.get_rewards(ALICE) == 0
        assert ALICE not in staking.get_top_stakers()

    def test_forfeits_settled_reward_too(self):
        _, staking, clock = make_ledger()
        staking.stake(ALICE, 100 * WEI)
        clock.advance(DAY)
        staking.stake(ALICE, 1)  # settles a day of reward into the account
        event = staking.emergency_withdraw(ALICE)
        assert event.forfeited_reward == reward_for(100 * WEI, DAY)

    def test_nothing_staked_raises(self):
        _, staking, _ = make_ledger()
        with pytest.raises(InsufficientStakeError):
            staking.emergency_withdraw(ALICE)
        staking.stake(ALICE, 5)
        staking.emergency_withdraw(ALICE)
        with pytest.raises(InsufficientStakeError):
            staking.emergency_withdraw(ALICE)

    def test_principal_never_negative_over_mixed_sequence(self):
        _, staking, clock = make_ledger()
        steps = [
            lambda: staking.stake(ALICE, 40 * WEI),
            lambda: staking.unstake(ALICE, 15 * WEI),
            lambda: staking.compound(ALICE),
            lambda: staking.unstake(ALICE, 10**30),
            lambda: staking.emergency_withdraw(ALICE),
            lambda: staking.emergency_withdraw(ALICE),
            lambda: staking.stake(ALICE, 1),
        ]
        for step in steps:
            clock.advance(1_000)
            try:
                step()
            except InsufficientStakeError:
                pass
            assert staking.get_staked_amount(ALICE) >= 0
        assert staking.get_staked_amount(ALICE) == 1


# ══════════════════════════════════════════════════════════════════════
#  LEADERBOARD
# ══════════════════════════════════════════════════════════════════════

class TestLeaderboard:
    """Ranking of top stakers."""

    def test_larger_stake_ranks_first(self):
        _, staking, _ = make_ledger()
        staking.stake(ALICE, 100 * WEI)
        staking.stake(BOB, 200 * WEI)
        assert staking.get_top_stakers() == [BOB, ALICE]

    def test_tie_goes_to_earlier_staker(self):
        _, staking, _ = make_ledger()
        staking.stake(BOB, 100)
        staking.stake(ALICE, 100)
        assert staking.get_top_stakers() == [BOB, ALICE]

    def test_tie_position_kept_when_adding_stake(self):
        _, staking, _ = make_ledger()
        staking.stake(BOB, 100)
        staking.stake(ALICE, 150)
        staking.stake(BOB, 50)
        assert staking.get_top_stakers() == [BOB, ALICE]

    def test_rejoining_staker_loses_tie_position(self):
        _, staking, _ = make_ledger()
        staking.stake(BOB, 100)
        staking.stake(ALICE, 100)
        staking.emergency_withdraw(BOB)
        staking.stake(BOB, 100)
        assert staking.get_top_stakers() == [ALICE, BOB]

    def test_board_is_bounded_and_refills(self):
        _, staking, _ = make_ledger(leaderboard_size=3)
        for i, who in enumerate((ALICE, BOB, CAROL, DAVE)):
            staking.stake(who, (i + 1) * 100)
        assert staking.get_top_stakers() == [DAVE, CAROL, BOB]

        staking.unstake(DAVE, 350)
        assert staking.get_top_stakers() == [CAROL, BOB, ALICE]

    def test_compound_can_change_rank(self):
        _, staking, clock = make_ledger()
        staking.stake(ALICE, 100 * WEI)
        staking.stake(BOB, 101 * WEI)
        clock.advance(DAY)
        staking.compound(ALICE)
        assert staking.get_top_stakers() == [ALICE, BOB]

    def test_leaderboard_rank_of(self):
        board = Leaderboard(2)
        board.update(ALICE, 5)
        board.update(BOB, 9)
        assert board.rank_of(BOB) == 1
        assert board.rank_of(ALICE) == 2
        assert board.rank_of(CAROL) == 0

    def test_leaderboard_size_must_be_positive(self):
        with pytest.raises(ValueError):
            Leaderboard(0)


class TestSerialization:
    """Snapshots."""

    def test_to_dict(self):
        _, staking, _ = make_ledger()
        staking.stake(ALICE, 100)
        d = staking.to_dict()
        assert d["totalStaked"] == "100"
        assert d["topStakers"] == [ALICE]
        assert d["accounts"][ALICE]["stakedAmount"] == "100"

    def test_repr_counts_stakers_beyond_leaderboard(self):
        _, staking, _ = make_ledger(leaderboard_size=1)
        for who in (ALICE, BOB, CAROL):
            staking.stake(who, 100)
        staking.stake(DAVE, 100)
        staking.emergency_withdraw(DAVE)
        assert staking.get_top_stakers() == [ALICE]
        assert staking.staker_count == 3
        assert "stakers=3" in repr(staking)

    def test_events(self):
        _, staking, clock = make_ledger()
        staking.stake(ALICE, 100 * WEI)
        clock.advance(DAY)
        staking.unstake(ALICE, 100 * WEI)
        kinds = [e.to_dict()["event"] for e in staking.events]
        assert kinds == ["Staked", "RewardsClaimed", "Unstaked"]
