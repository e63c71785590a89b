"""
stakegov TOML Configuration Loader

Loads every section of a config.toml with environment variable overrides.
Each section is a dataclass with `from_dict` and `apply_env`.

Environment variable mapping:
    [token] owner                  → STAKEGOV_TOKEN_OWNER
    [staking] reward_rate          → STAKEGOV_REWARD_RATE
    [governance] quorum_percentage → STAKEGOV_QUORUM_PERCENTAGE
    ...
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from ..constants import (
    DEFAULT_PROPOSAL_THRESHOLD,
    DEFAULT_QUORUM_PERCENTAGE,
    DEFAULT_REWARD_RATE,
    DEFAULT_VOTING_DELAY,
    DEFAULT_VOTING_PERIOD,
    LEADERBOARD_SIZE,
    QUORUM_PERCENTAGE_MAX,
    QUORUM_PERCENTAGE_MIN,
    TOKEN_DECIMALS,
    TOKEN_DEFAULT_NAME,
    TOKEN_DEFAULT_SYMBOL,
)
from ..exceptions import ConfigurationError
from ..logger import get_logger

logger = get_logger(__name__)


def _env_int(name: str) -> Optional[int]:
    v = os.environ.get(name)
    if v is None or not v.strip():
        return None
    try:
        return int(v.replace("_", ""))
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {v!r}") from e


def _require_int(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(
            f"{name} must be an integer, got {type(value).__name__} {value!r}"
        )
    return value


# ---------------------------------------------------------------------------
# Section dataclasses
# ---------------------------------------------------------------------------


@dataclass
class TokenSettings:
    """[token] section."""
    name: str = TOKEN_DEFAULT_NAME
    symbol: str = TOKEN_DEFAULT_SYMBOL
    decimals: int = TOKEN_DECIMALS
    owner: str = "0x" + "00" * 19 + "01"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TokenSettings":
        return cls(
            name=data.get("name", TOKEN_DEFAULT_NAME),
            symbol=data.get("symbol", TOKEN_DEFAULT_SYMBOL),
            decimals=data.get("decimals", TOKEN_DECIMALS),
            owner=data.get("owner", cls.owner),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("STAKEGOV_TOKEN_NAME"):
            self.name = v
        if v := os.environ.get("STAKEGOV_TOKEN_SYMBOL"):
            self.symbol = v
        if v := os.environ.get("STAKEGOV_TOKEN_OWNER"):
            self.owner = v

    def validate(self) -> None:
        _require_int("token.decimals", self.decimals)
        if not self.owner:
            raise ConfigurationError("token.owner is required")
        if not 0 <= self.decimals <= 18:
            raise ConfigurationError(f"token.decimals must be 0-18, got {self.decimals}")


@dataclass
class StakingSettings:
    """[staking] section."""
    reward_rate: int = DEFAULT_REWARD_RATE
    leaderboard_size: int = LEADERBOARD_SIZE

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StakingSettings":
        return cls(
            reward_rate=data.get("reward_rate", DEFAULT_REWARD_RATE),
            leaderboard_size=data.get("leaderboard_size", LEADERBOARD_SIZE),
        )

    def apply_env(self) -> None:
        if (v := _env_int("STAKEGOV_REWARD_RATE")) is not None:
            self.reward_rate = v
        if (v := _env_int("STAKEGOV_LEADERBOARD_SIZE")) is not None:
            self.leaderboard_size = v

    def validate(self) -> None:
        _require_int("staking.reward_rate", self.reward_rate)
        _require_int("staking.leaderboard_size", self.leaderboard_size)
        if self.reward_rate < 0:
            raise ConfigurationError(f"staking.reward_rate cannot be negative, got {self.reward_rate}")
        if self.leaderboard_size < 1:
            raise ConfigurationError(
                f"staking.leaderboard_size must be at least 1, got {self.leaderboard_size}"
            )


@dataclass
class GovernanceSettings:
    """
    [governance] section.

    The voting engine keeps its own copy and mutates it only through its
    privileged setters.
    """
    admin: str = "0x" + "00" * 19 + "01"
    voting_delay: int = DEFAULT_VOTING_DELAY
    voting_period: int = DEFAULT_VOTING_PERIOD
    proposal_threshold: int = DEFAULT_PROPOSAL_THRESHOLD
    quorum_percentage: int = DEFAULT_QUORUM_PERCENTAGE

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GovernanceSettings":
        return cls(
            admin=data.get("admin", cls.admin),
            voting_delay=data.get("voting_delay", DEFAULT_VOTING_DELAY),
            voting_period=data.get("voting_period", DEFAULT_VOTING_PERIOD),
            proposal_threshold=data.get("proposal_threshold", DEFAULT_PROPOSAL_THRESHOLD),
            quorum_percentage=data.get("quorum_percentage", DEFAULT_QUORUM_PERCENTAGE),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("STAKEGOV_GOVERNANCE_ADMIN"):
            self.admin = v
        if (v := _env_int("STAKEGOV_VOTING_DELAY")) is not None:
            self.voting_delay = v
        if (v := _env_int("STAKEGOV_VOTING_PERIOD")) is not None:
            self.voting_period = v
        if (v := _env_int("STAKEGOV_PROPOSAL_THRESHOLD")) is not None:
            self.proposal_threshold = v
        if (v := _env_int("STAKEGOV_QUORUM_PERCENTAGE")) is not None:
            self.quorum_percentage = v

    def validate(self) -> None:
        for name in ("voting_delay", "voting_period", "proposal_threshold", "quorum_percentage"):
            _require_int(f"governance.{name}", getattr(self, name))
        if not self.admin:
            raise ConfigurationError("governance.admin is required")
        if self.voting_delay < 0:
            raise ConfigurationError("governance.voting_delay cannot be negative")
        if self.voting_period <= 0:
            raise ConfigurationError("governance.voting_period must be positive")
        if self.proposal_threshold < 0:
            raise ConfigurationError("governance.proposal_threshold cannot be negative")
        if not QUORUM_PERCENTAGE_MIN <= self.quorum_percentage <= QUORUM_PERCENTAGE_MAX:
            raise ConfigurationError(
                f"governance.quorum_percentage must be "
                f"{QUORUM_PERCENTAGE_MIN}-{QUORUM_PERCENTAGE_MAX}, got {self.quorum_percentage}"
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "admin": self.admin,
            "votingDelay": self.voting_delay,
            "votingPeriod": self.voting_period,
            "proposalThreshold": str(self.proposal_threshold),
            "quorumPercentage": self.quorum_percentage,
        }


@dataclass
class LoggingSettings:
    """[logging] section."""
    level: str = "INFO"
    file_output: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoggingSettings":
        return cls(
            level=data.get("level", "INFO"),
            file_output=data.get("file_output", False),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("STAKEGOV_LOG_LEVEL"):
            self.level = v


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------


@dataclass
class StakeGovConfig:
    """Complete engine configuration."""
    token: TokenSettings = field(default_factory=TokenSettings)
    staking: StakingSettings = field(default_factory=StakingSettings)
    governance: GovernanceSettings = field(default_factory=GovernanceSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StakeGovConfig":
        return cls(
            token=TokenSettings.from_dict(data.get("token", {})),
            staking=StakingSettings.from_dict(data.get("staking", {})),
            governance=GovernanceSettings.from_dict(data.get("governance", {})),
            logging=LoggingSettings.from_dict(data.get("logging", {})),
        )

    def apply_env(self) -> None:
        self.token.apply_env()
        self.staking.apply_env()
        self.governance.apply_env()
        self.logging.apply_env()

    def validate(self) -> None:
        self.token.validate()
        self.staking.validate()
        self.governance.validate()


def load_config(path: Optional[str | Path] = None, apply_env: bool = True) -> StakeGovConfig:
    """
    Load configuration from a TOML file.

    A missing *path* (or None) yields the built-in defaults. Environment
    variables are applied on top unless *apply_env* is False.

    Raises:
        ConfigurationError: unreadable TOML or an invalid value.
    """
    data: Dict[str, Any] = {}
    if path is not None:
        p = Path(path)
        if p.exists():
            try:
                with open(p, "rb") as f:
                    data = tomllib.load(f)
            except tomllib.TOMLDecodeError as e:
                raise ConfigurationError(f"Invalid TOML in {p}: {e}") from e
            logger.info(f"Loaded config from {p}")
        else:
            logger.warning(f"Config file {p} not found, using defaults")

    config = StakeGovConfig.from_dict(data)
    if apply_env:
        config.apply_env()
    config.validate()
    return config
