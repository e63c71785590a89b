"""
stakegov Configuration

Loads config.toml at startup. Environment variables override TOML values.
"""

from .loader import (
    GovernanceSettings,
    LoggingSettings,
    StakeGovConfig,
    StakingSettings,
    TokenSettings,
    load_config,
)

__all__ = [
    "GovernanceSettings",
    "LoggingSettings",
    "StakeGovConfig",
    "StakingSettings",
    "TokenSettings",
    "load_config",
]
