"""
stakegov Exceptions

Exception hierarchy shared by the token ledger, the staking ledger and the
governance engine. Component modules raise the concrete subclasses; callers
may catch any of the category bases below.
"""


class StakeGovError(Exception):
    """Base exception for stakegov."""
    pass


class ConfigurationError(StakeGovError):
    """Configuration error."""
    pass


class ClockError(StakeGovError):
    """Time source moved backwards or was misconfigured."""
    pass


class UnauthorizedError(StakeGovError):
    """Caller lacks the role required by a privileged command."""
    pass


class InvalidAmountError(StakeGovError):
    """Amount is zero or negative where a positive amount is required."""
    pass


# ── Token ledger ──────────────────────────────────────────────────────

class TokenError(StakeGovError):
    """Base exception for token ledger operations."""
    pass


class InsufficientBalanceError(TokenError):
    """Account balance is too low."""
    pass


class InsufficientAllowanceError(TokenError):
    """Spender allowance is too low."""
    pass


# ── Staking ledger ────────────────────────────────────────────────────

class StakingError(StakeGovError):
    """Base exception for staking ledger operations."""
    pass


class InsufficientStakeError(StakingError):
    """Unstake amount exceeds staked principal."""
    pass


# ── Governance ────────────────────────────────────────────────────────

class GovernanceError(StakeGovError):
    """Base governance exception."""
    pass


class InvalidDelegateError(GovernanceError):
    """Delegation target is the delegator itself or empty."""
    pass


class InvalidProposalError(GovernanceError):
    """Proposal data is malformed."""
    pass


class UnknownProposalError(GovernanceError):
    """No proposal exists with the given id."""
    pass


class BelowThresholdError(GovernanceError):
    """Proposer voting power is below the proposal threshold."""
    pass


class CannotExecuteError(GovernanceError):
    """Proposal is not in the SUCCEEDED state."""
    pass


class CannotCancelError(GovernanceError):
    """Proposal is not in the PENDING state."""
    pass


class InvalidQuorumError(GovernanceError):
    """Quorum percentage outside 1..100."""
    pass


class InvalidSettingError(GovernanceError):
    """Governance setting value rejected."""
    pass


class ProposalExecutionError(GovernanceError):
    """An action handler failed while executing a proposal."""
    pass


class VotingError(GovernanceError):
    """Base voting error."""
    pass


class NotActiveError(VotingError):
    """Vote cast outside the active window."""
    pass


class AlreadyVotedError(VotingError):
    """Voter already cast a vote on this proposal."""
    pass


class InvalidSupportError(VotingError):
    """Support value is not Against, For or Abstain."""
    pass
