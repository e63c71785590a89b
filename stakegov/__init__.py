"""
stakegov: token staking and on-chain style governance.

Users lock a fungible token to earn time-based rewards and voting power;
voting power drives a proposal lifecycle with quorum and threshold checks.
"""

__version__ = "0.1.0"

from .clock import ManualClock, SystemClock
from .config import StakeGovConfig, load_config
from .engine import StakingGovernanceEngine

__all__ = [
    "ManualClock",
    "StakeGovConfig",
    "StakingGovernanceEngine",
    "SystemClock",
    "load_config",
]
