"""
Proposal Store & Voting Engine

Implements:
  - Proposal creation gated by the proposal threshold
  - For / Against / Abstain voting with live (unsnapshotted) power
  - One vote per account per proposal
  - Quorum: total votes (abstain included) >= quorum_percentage% of supply
  - One-shot execution of succeeded proposals, cancellation of pending ones
  - Privileged updates of the governance settings
"""

import dataclasses
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from ..config.loader import GovernanceSettings
from ..constants import QUORUM_PERCENTAGE_MAX, QUORUM_PERCENTAGE_MIN
from ..exceptions import (
    AlreadyVotedError,
    BelowThresholdError,
    CannotCancelError,
    CannotExecuteError,
    InvalidProposalError,
    InvalidQuorumError,
    InvalidSettingError,
    InvalidSupportError,
    NotActiveError,
    ProposalExecutionError,
    UnauthorizedError,
    UnknownProposalError,
)
from ..logger import get_logger
from ..tokens.ledger import TokenLedger
from .execution import ProposalExecutor
from .power import GovernancePower
from .proposals import (
    Proposal,
    ProposalAction,
    ProposalState,
    VoteReceipt,
    VoteSupport,
    proposal_state,
)

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  EVENTS
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ProposalCreatedEvent:
    proposal_id: int
    proposer: str
    vote_start: int
    vote_end: int
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "ProposalCreated",
            "proposalId": self.proposal_id,
            "proposer": self.proposer,
            "voteStart": self.vote_start,
            "voteEnd": self.vote_end,
            "description": self.description,
        }


@dataclass(frozen=True)
class VoteCastEvent:
    voter: str
    proposal_id: int
    support: int
    weight: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "VoteCast",
            "voter": self.voter,
            "proposalId": self.proposal_id,
            "support": VoteSupport(self.support).name,
            "weight": str(self.weight),
        }


@dataclass(frozen=True)
class ProposalExecutedEvent:
    proposal_id: int
    executor: str
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "ProposalExecuted",
            "proposalId": self.proposal_id,
            "executor": self.executor,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class ProposalExecutionFailedEvent:
    proposal_id: int
    executor: str
    error: str
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "ProposalExecutionFailed",
            "proposalId": self.proposal_id,
            "executor": self.executor,
            "error": self.error,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class ProposalCanceledEvent:
    proposal_id: int
    canceled_by: str
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "ProposalCanceled",
            "proposalId": self.proposal_id,
            "canceledBy": self.canceled_by,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class QuorumPercentageChangedEvent:
    old: int
    new: int

    def to_dict(self) -> Dict[str, Any]:
        return {"event": "QuorumPercentageChanged", "old": self.old, "new": self.new}


@dataclass(frozen=True)
class GovernanceSettingChangedEvent:
    name: str
    old: int
    new: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "GovernanceSettingChanged",
            "name": self.name,
            "old": str(self.old),
            "new": str(self.new),
        }


def _to_calldata(raw: Union[bytes, str]) -> bytes:
    if isinstance(raw, (bytes, bytearray)):
        return bytes(raw)
    if isinstance(raw, str):
        text = raw[2:] if raw.startswith("0x") else raw
        try:
            return bytes.fromhex(text)
        except ValueError as e:
            raise InvalidProposalError(f"Calldata is not valid hex: {raw!r}") from e
    raise InvalidProposalError(f"Calldata must be bytes or hex string, got {type(raw).__name__}")


# ══════════════════════════════════════════════════════════════════════
#  VOTING ENGINE
# ══════════════════════════════════════════════════════════════════════

class VotingEngine:
    """
    Proposal store and voting engine.

    Responsibilities:
        - Create proposals and schedule their voting window
        - Accept votes weighted by the voter's power at vote time
        - Derive proposal state from stored fields and the clock
        - Execute succeeded proposals exactly once
        - Hold the governance settings, changed only by the admin
    """

    def __init__(
        self,
        power: GovernancePower,
        token: TokenLedger,
        clock: Callable[[], int],
        settings: Optional[GovernanceSettings] = None,
        executor: Optional[ProposalExecutor] = None,
    ):
        """
        Args:
            power:    Voting power calculator
            token:    Token ledger, source of total supply for quorum
            clock:    Callable() → int, current time in seconds
            settings: Initial governance settings (copied)
            executor: Action executor for succeeded proposals
        """
        self.power = power
        self.token = token
        self.executor = executor or ProposalExecutor()
        self._clock = clock
        self._settings = dataclasses.replace(settings or GovernanceSettings())
        self._settings.validate()

        self._proposals: Dict[int, Proposal] = {}
        self._next_id = 1
        self._events: List[Any] = []

    # ── Settings ──────────────────────────────────────────────────────

    @property
    def settings(self) -> GovernanceSettings:
        return dataclasses.replace(self._settings)

    @property
    def admin(self) -> str:
        return self._settings.admin

    @property
    def voting_delay(self) -> int:
        return self._settings.voting_delay

    @property
    def voting_period(self) -> int:
        return self._settings.voting_period

    @property
    def proposal_threshold(self) -> int:
        return self._settings.proposal_threshold

    @property
    def quorum_percentage(self) -> int:
        return self._settings.quorum_percentage

    def _require_admin(self, caller: str):
        if caller != self._settings.admin:
            raise UnauthorizedError(f"{caller} is not the governance admin")

    def set_quorum_percentage(self, caller: str, percentage: int) -> QuorumPercentageChangedEvent:
        self._require_admin(caller)
        if not QUORUM_PERCENTAGE_MIN <= percentage <= QUORUM_PERCENTAGE_MAX:
            raise InvalidQuorumError(f"Invalid quorum percentage {percentage}")
        old = self._settings.quorum_percentage
        self._settings.quorum_percentage = percentage
        event = QuorumPercentageChangedEvent(old, percentage)
        self._events.append(event)
        logger.info(f"Quorum percentage changed: {old} → {percentage}")
        return event

    def _change_setting(self, caller: str, name: str, value: int) -> GovernanceSettingChangedEvent:
        old = getattr(self._settings, name)
        setattr(self._settings, name, value)
        event = GovernanceSettingChangedEvent(name, old, value)
        self._events.append(event)
        logger.info(f"Governance setting '{name}' changed by {caller}: {old} → {value}")
        return event

    def set_voting_delay(self, caller: str, delay: int) -> GovernanceSettingChangedEvent:
        self._require_admin(caller)
        if delay < 0:
            raise InvalidSettingError(f"Voting delay cannot be negative, got {delay}")
        return self._change_setting(caller, "voting_delay", delay)

    def set_voting_period(self, caller: str, period: int) -> GovernanceSettingChangedEvent:
        self._require_admin(caller)
        if period <= 0:
            raise InvalidSettingError(f"Voting period must be positive, got {period}")
        return self._change_setting(caller, "voting_period", period)

    def set_proposal_threshold(self, caller: str, threshold: int) -> GovernanceSettingChangedEvent:
        self._require_admin(caller)
        if threshold < 0:
            raise InvalidSettingError(f"Proposal threshold cannot be negative, got {threshold}")
        return self._change_setting(caller, "proposal_threshold", threshold)

    # ── Lookup ────────────────────────────────────────────────────────

    def _get(self, proposal_id: int) -> Proposal:
        proposal = self._proposals.get(proposal_id)
        if proposal is None:
            raise UnknownProposalError(f"Proposal #{proposal_id} does not exist")
        return proposal

    def _state_of(self, proposal: Proposal) -> ProposalState:
        return proposal_state(
            proposal,
            self._clock(),
            self.token.total_supply,
            self._settings.quorum_percentage,
        )

    # ── Propose ───────────────────────────────────────────────────────

    def propose(
        self,
        caller: str,
        targets: Sequence[str],
        values: Sequence[int],
        calldatas: Sequence[Union[bytes, str]],
        description: str,
    ) -> int:
        """
        Create a proposal and return its id.

        Voting opens `voting_delay` seconds from now and stays open for
        `voting_period` seconds.
        """
        if not targets:
            raise InvalidProposalError("Proposal must contain at least one action")
        if not len(targets) == len(values) == len(calldatas):
            raise InvalidProposalError(
                f"Proposal length mismatch: {len(targets)} targets, "
                f"{len(values)} values, {len(calldatas)} calldatas"
            )
        if any(v < 0 for v in values):
            raise InvalidProposalError("Action values cannot be negative")
        actions = [
            ProposalAction(target=t, value=v, calldata=_to_calldata(c))
            for t, v, c in zip(targets, values, calldatas)
        ]

        power = self.power.get_voting_power(caller)
        if power < self._settings.proposal_threshold:
            raise BelowThresholdError(
                f"Proposer votes below threshold: {power} < {self._settings.proposal_threshold}"
            )

        now = self._clock()
        vote_start = now + self._settings.voting_delay
        vote_end = vote_start + self._settings.voting_period
        proposal = Proposal(
            id=self._next_id,
            proposer=caller,
            actions=actions,
            description=description,
            created_at=now,
            vote_start=vote_start,
            vote_end=vote_end,
        )
        self._proposals[proposal.id] = proposal
        self._next_id += 1

        self._events.append(
            ProposalCreatedEvent(proposal.id, caller, vote_start, vote_end, description)
        )
        logger.info(
            f"Proposal #{proposal.id} created by {caller}: "
            f"voting {vote_start} → {vote_end}"
        )
        return proposal.id

    # ── Vote ──────────────────────────────────────────────────────────

    def cast_vote(self, caller: str, proposal_id: int, support: int) -> int:
        """
        Record the caller's vote and return the weight counted.

        The weight is the caller's voting power right now, not at proposal
        creation.
        """
        if not VoteSupport.is_valid(support):
            raise InvalidSupportError(f"Invalid vote type: {support}")
        proposal = self._get(proposal_id)

        state = self._state_of(proposal)
        if state != ProposalState.ACTIVE:
            raise NotActiveError(
                f"Voting is not active for proposal #{proposal_id} (state={state.name})"
            )
        if caller in proposal.has_voted:
            raise AlreadyVotedError(f"{caller} has already voted on proposal #{proposal_id}")

        weight = self.power.get_voting_power(caller)
        choice = VoteSupport(support)
        proposal.add_vote(VoteReceipt(caller, choice, weight, self._clock()))

        self._events.append(VoteCastEvent(caller, proposal_id, int(choice), weight))
        logger.info(f"Vote: {caller} → {choice.name} on proposal #{proposal_id} (weight={weight})")
        return weight

    # ── Execute / cancel ──────────────────────────────────────────────

    def execute_proposal(self, caller: str, proposal_id: int) -> List[Any]:
        """
        Run a succeeded proposal's actions. Returns handler results.

        There is exactly one attempt: a failing handler leaves the proposal
        EXECUTED with `execution_error` set.
        """
        proposal = self._get(proposal_id)
        state = self._state_of(proposal)
        if state != ProposalState.SUCCEEDED:
            raise CannotExecuteError(
                f"Proposal #{proposal_id} cannot be executed (state={state.name})"
            )

        now = self._clock()
        proposal.executed = True
        proposal.executed_at = now
        try:
            results = self.executor.execute(proposal)
        except Exception as e:
            # Actions that already ran cannot be undone; the attempt is final.
            proposal.execution_error = str(e) or type(e).__name__
            self._events.append(
                ProposalExecutionFailedEvent(proposal_id, caller, proposal.execution_error, now)
            )
            logger.error(f"Proposal #{proposal_id} execution failed: {e}")
            raise ProposalExecutionError(
                f"Proposal #{proposal_id} execution failed: {e}"
            ) from e

        self._events.append(ProposalExecutedEvent(proposal_id, caller, now))
        logger.info(f"Proposal #{proposal_id} EXECUTED by {caller}")
        return results

    def cancel_proposal(self, caller: str, proposal_id: int) -> ProposalCanceledEvent:
        """Cancel a pending proposal. Proposer or admin only."""
        proposal = self._get(proposal_id)
        state = self._state_of(proposal)
        if state != ProposalState.PENDING:
            raise CannotCancelError(
                f"Proposal #{proposal_id} cannot be canceled (state={state.name})"
            )
        if caller not in (proposal.proposer, self._settings.admin):
            raise UnauthorizedError(
                f"{caller} may not cancel proposal #{proposal_id}"
            )

        now = self._clock()
        proposal.canceled = True
        proposal.canceled_at = now
        event = ProposalCanceledEvent(proposal_id, caller, now)
        self._events.append(event)
        logger.warning(f"Proposal #{proposal_id} CANCELED by {caller}")
        return event

    # ── Queries ───────────────────────────────────────────────────────

    def state(self, proposal_id: int) -> ProposalState:
        return self._state_of(self._get(proposal_id))

    def proposals(self, proposal_id: int) -> Proposal:
        """Detached copy of the proposal record."""
        return self._get(proposal_id).snapshot()

    @property
    def proposal_count(self) -> int:
        return len(self._proposals)

    def has_voted(self, proposal_id: int, account: str) -> bool:
        return account in self._get(proposal_id).has_voted

    def get_receipt(self, proposal_id: int, account: str) -> Optional[VoteReceipt]:
        return self._get(proposal_id).receipts.get(account)

    def get_voting_power(self, account: str) -> int:
        return self.power.get_voting_power(account)

    def quorum_votes(self) -> int:
        """Votes needed for quorum at current supply (rounded up)."""
        return -(-self._settings.quorum_percentage * self.token.total_supply // 100)

    @property
    def events(self) -> List[Any]:
        return list(self._events)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "settings": self._settings.to_dict(),
            "proposalCount": len(self._proposals),
            "proposals": {
                pid: {**p.to_dict(), "state": self._state_of(p).name}
                for pid, p in self._proposals.items()
            },
        }

    def __repr__(self) -> str:
        return f"<VotingEngine proposals={len(self._proposals)}>"
