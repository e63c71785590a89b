"""
stakegov Staking

Provides:
  - StakingLedger / StakeAccount  (ledger.py)
  - Leaderboard                   (leaderboard.py)
"""

from .leaderboard import Leaderboard
from .ledger import (
    STAKING_CUSTODY_ADDRESS,
    CompoundedEvent,
    EmergencyWithdrawnEvent,
    RewardsClaimedEvent,
    StakeAccount,
    StakedEvent,
    StakingLedger,
    UnstakedEvent,
)

__all__ = [
    "STAKING_CUSTODY_ADDRESS",
    "CompoundedEvent",
    "EmergencyWithdrawnEvent",
    "Leaderboard",
    "RewardsClaimedEvent",
    "StakeAccount",
    "StakedEvent",
    "StakingLedger",
    "UnstakedEvent",
]
