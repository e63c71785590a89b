"""
stakegov Governance

Provides:
  - GovernancePower / DelegateChangedEvent                  (power.py)
  - Proposal / ProposalState / VoteSupport / proposal_state (proposals.py)
  - VotingEngine and its events                             (voting.py)
  - ProposalExecutor                                        (execution.py)
"""

from .execution import ProposalExecutor
from .power import DelegateChangedEvent, GovernancePower
from .proposals import (
    Proposal,
    ProposalAction,
    ProposalState,
    VoteReceipt,
    VoteSupport,
    proposal_state,
    quorum_reached,
)
from .voting import (
    GovernanceSettingChangedEvent,
    ProposalCanceledEvent,
    ProposalCreatedEvent,
    ProposalExecutedEvent,
    ProposalExecutionFailedEvent,
    QuorumPercentageChangedEvent,
    VoteCastEvent,
    VotingEngine,
)

__all__ = [
    # Power
    "DelegateChangedEvent",
    "GovernancePower",
    # Proposals
    "Proposal",
    "ProposalAction",
    "ProposalState",
    "VoteReceipt",
    "VoteSupport",
    "proposal_state",
    "quorum_reached",
    # Voting
    "GovernanceSettingChangedEvent",
    "ProposalCanceledEvent",
    "ProposalCreatedEvent",
    "ProposalExecutedEvent",
    "ProposalExecutionFailedEvent",
    "QuorumPercentageChangedEvent",
    "VoteCastEvent",
    "VotingEngine",
    # Execution
    "ProposalExecutor",
]
