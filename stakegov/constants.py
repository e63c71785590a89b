"""
stakegov Constants

This module consolidates the protocol defaults and the environment-driven
logging configuration used throughout the codebase. Constants are organized
by category for easy reference and maintenance.
"""
import ast
from dotenv import dotenv_values

# =============================================================================
# ENVIRONMENT CONFIGURATION
# =============================================================================
# Load environment variables once at module import
_config = dotenv_values(".env")

LOGGER_DEFAULTS = {
    'LOG_LEVEL':                       'INFO',
    'LOG_FORMAT':                      '%(asctime)s - %(levelname)s - %(name)s - %(message)s',
    'LOG_DATE_FORMAT':                 '%Y-%m-%dT%H:%M:%S',
    'LOG_CONSOLE_HIGHLIGHTING':        'True',
    'LOG_FILE_OUTPUT':                 'False',
}

LOG_MAX_FILE_SIZE = 10 * 1024 * 1024 # 10MB
LOG_BACKUP_COUNT = 5


# ==================================================================================
# TOKEN PARAMETERS
# ==================================================================================
TOKEN_DEFAULT_NAME = "Staking Token"
TOKEN_DEFAULT_SYMBOL = "STK"
TOKEN_DECIMALS = 18
WEI = 10 ** TOKEN_DECIMALS  # Smallest units per whole token


# ==================================================================================
# STAKING PARAMETERS
# ==================================================================================
# reward_rate is expressed in reward units per staked unit per second, scaled
# by REWARD_PRECISION so that it can stay an integer.
REWARD_PRECISION = 10 ** 18
SECONDS_PER_DAY = 86400

# ~10 tokens per staked token per day (1000 / 100 / 86400, floored)
DEFAULT_REWARD_RATE = 115_740_740_740_740

LEADERBOARD_SIZE = 10


# ==================================================================================
# GOVERNANCE PARAMETERS
# ==================================================================================
DEFAULT_VOTING_DELAY = SECONDS_PER_DAY          # 1 day
DEFAULT_VOTING_PERIOD = 7 * SECONDS_PER_DAY     # 1 week
DEFAULT_PROPOSAL_THRESHOLD = 100 * WEI
DEFAULT_QUORUM_PERCENTAGE = 40

QUORUM_PERCENTAGE_MIN = 1
QUORUM_PERCENTAGE_MAX = 100

VOTE_AGAINST = 0
VOTE_FOR = 1
VOTE_ABSTAIN = 2

# Staked tokens count double relative to liquid balance
STAKED_POWER_MULTIPLIER = 2


# ==================================================================================
# CONFIGURATION WRAPPERS
# ==================================================================================
class ConfigString(str):
    """
    String subclass that stores a default value.
    """
    def __new__(cls, value, default):
        obj = str.__new__(cls, value)
        obj._default = default
        return obj

    def default(self):
        return self._default

class ConfigBool(int):
    """
    Int subclass acting as a boolean that stores a default value.
    """
    def __new__(cls, value, default):
        obj = int.__new__(cls, bool(value))
        obj._default = default
        return obj

    def default(self):
        return self._default

    def __repr__(self):
        return str(bool(self))

    def __str__(self):
        return str(bool(self))

    def __eq__(self, other):
        return bool(self) == other

    __hash__ = int.__hash__


# ==================================================================================
# DYNAMIC CONFIGURATION LOADING
# ==================================================================================
namespace = globals()

def parse_bool(v):
    """
    Convert "True"/"False" (any casing, with surrounding whitespace) into bool.
    Leaves every other value untouched.
    """
    if not isinstance(v, str):
        return v
    s = v.strip()
    if s.casefold() in {"true", "false"}:
        return ast.literal_eval(s.title())
    return v

for key, default_raw in LOGGER_DEFAULTS.items():
    # dotenv_values returns strings or None. None is treated as missing.
    raw = _config.get(key)
    value_raw = default_raw if raw is None else raw

    value = parse_bool(value_raw)
    default_val = parse_bool(default_raw)

    if isinstance(value, bool):
        namespace[key] = ConfigBool(value, default_val)
    else:
        namespace[key] = ConfigString(value_raw, default_val)
