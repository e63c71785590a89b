"""
Governance Proposals

Defines the proposal record, the vote-support constants and the lifecycle
states. A proposal's state is never stored: `proposal_state()` derives it
from the record, the current time and the quorum inputs on every query.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, List, Optional, Set

from ..constants import VOTE_ABSTAIN, VOTE_AGAINST, VOTE_FOR


# ══════════════════════════════════════════════════════════════════════
#  ENUMS
# ══════════════════════════════════════════════════════════════════════

class ProposalState(IntEnum):
    """Lifecycle stage, numbered like the usual on-chain governor states."""
    PENDING = 0      # Created, voting not started
    ACTIVE = 1       # Voting window open
    CANCELED = 2     # Canceled while pending
    DEFEATED = 3     # Window closed, quorum missed or for <= against
    SUCCEEDED = 4    # Window closed, quorum met and for > against
    # 5 is QUEUED in timelocked governors; there is no timelock here
    EXECUTED = 6     # Actions run


class VoteSupport(IntEnum):
    """Ballot choice."""
    AGAINST = VOTE_AGAINST
    FOR = VOTE_FOR
    ABSTAIN = VOTE_ABSTAIN

    @classmethod
    def is_valid(cls, value: int) -> bool:
        if isinstance(value, bool) or not isinstance(value, int):
            return False
        return value in {m.value for m in cls}


# ══════════════════════════════════════════════════════════════════════
#  RECORDS
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ProposalAction:
    """One opaque call carried by a proposal."""
    target: str
    value: int
    calldata: bytes

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target": self.target,
            "value": str(self.value),
            "calldata": "0x" + self.calldata.hex(),
        }


@dataclass(frozen=True)
class VoteReceipt:
    """A vote as it was counted."""
    voter: str
    support: VoteSupport
    weight: int
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "voter": self.voter,
            "support": self.support.name,
            "weight": str(self.weight),
            "timestamp": self.timestamp,
        }


@dataclass
class Proposal:
    """
    Governance proposal.

    Fields:
        id:             Unique monotonic identifier (from 1)
        proposer:       Address that created it
        actions:        Opaque calls executed together on success
        description:    Free text
        vote_start:     created_at + voting_delay
        vote_end:       vote_start + voting_period
        for_votes / against_votes / abstain_votes: tallies
        executed / canceled: terminal flags, never both true
        execution_error: set when the one execution attempt failed
    """
    id: int
    proposer: str
    actions: List[ProposalAction]
    description: str
    created_at: int
    vote_start: int
    vote_end: int
    for_votes: int = 0
    against_votes: int = 0
    abstain_votes: int = 0
    executed: bool = False
    canceled: bool = False
    executed_at: Optional[int] = None
    canceled_at: Optional[int] = None
    execution_error: Optional[str] = None
    has_voted: Set[str] = field(default_factory=set)
    receipts: Dict[str, VoteReceipt] = field(default_factory=dict, repr=False)

    @property
    def targets(self) -> List[str]:
        return [a.target for a in self.actions]

    @property
    def values(self) -> List[int]:
        return [a.value for a in self.actions]

    @property
    def calldatas(self) -> List[bytes]:
        return [a.calldata for a in self.actions]

    @property
    def total_votes(self) -> int:
        """Participation, abstain included."""
        return self.for_votes + self.against_votes + self.abstain_votes

    def add_vote(self, receipt: VoteReceipt) -> None:
        if receipt.support == VoteSupport.FOR:
            self.for_votes += receipt.weight
        elif receipt.support == VoteSupport.AGAINST:
            self.against_votes += receipt.weight
        else:
            self.abstain_votes += receipt.weight
        self.has_voted.add(receipt.voter)
        self.receipts[receipt.voter] = receipt

    def snapshot(self) -> "Proposal":
        """Detached copy for read queries."""
        return Proposal(
            id=self.id,
            proposer=self.proposer,
            actions=list(self.actions),
            description=self.description,
            created_at=self.created_at,
            vote_start=self.vote_start,
            vote_end=self.vote_end,
            for_votes=self.for_votes,
            against_votes=self.against_votes,
            abstain_votes=self.abstain_votes,
            executed=self.executed,
            canceled=self.canceled,
            executed_at=self.executed_at,
            canceled_at=self.canceled_at,
            execution_error=self.execution_error,
            has_voted=set(self.has_voted),
            receipts=dict(self.receipts),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "proposer": self.proposer,
            "actions": [a.to_dict() for a in self.actions],
            "description": self.description,
            "createdAt": self.created_at,
            "voteStart": self.vote_start,
            "voteEnd": self.vote_end,
            "forVotes": str(self.for_votes),
            "againstVotes": str(self.against_votes),
            "abstainVotes": str(self.abstain_votes),
            "executed": self.executed,
            "canceled": self.canceled,
            "executedAt": self.executed_at,
            "canceledAt": self.canceled_at,
            "executionError": self.execution_error,
            "voters": len(self.has_voted),
        }

    def __repr__(self) -> str:
        return (
            f"<Proposal #{self.id} by {self.proposer} "
            f"for={self.for_votes} against={self.against_votes} abstain={self.abstain_votes}>"
        )


# ══════════════════════════════════════════════════════════════════════
#  STATE FUNCTION
# ══════════════════════════════════════════════════════════════════════

def quorum_reached(proposal: Proposal, total_supply: int, quorum_percentage: int) -> bool:
    """total votes >= quorum_percentage% of total supply, in exact integers."""
    return proposal.total_votes * 100 >= quorum_percentage * total_supply


def vote_succeeded(proposal: Proposal) -> bool:
    return proposal.for_votes > proposal.against_votes


def proposal_state(
    proposal: Proposal,
    now: int,
    total_supply: int,
    quorum_percentage: int,
) -> ProposalState:
    """
    Derive the lifecycle state of *proposal* at time *now*.

    Cancellation is checked first: it is only ever set while pending and
    must stay visible before the voting window opens.
    """
    if proposal.canceled:
        return ProposalState.CANCELED
    if now < proposal.vote_start:
        return ProposalState.PENDING
    if now <= proposal.vote_end:
        return ProposalState.ACTIVE
    if proposal.executed:
        return ProposalState.EXECUTED
    if quorum_reached(proposal, total_supply, quorum_percentage) and vote_succeeded(proposal):
        return ProposalState.SUCCEEDED
    return ProposalState.DEFEATED
