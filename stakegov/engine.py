"""
stakegov Engine

Command/query facade over the token ledger, staking ledger, governance power
calculator and voting engine. Every command takes the authenticated caller
explicitly and runs under one re-entrant lock, giving the single-writer,
totally ordered execution the ledgers assume. Queries take the same lock,
so they see the state before or after a command, never part of one.
"""

import threading
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from .clock import SystemClock
from .config.loader import StakeGovConfig
from .governance.execution import ActionHandler, ProposalExecutor
from .governance.power import DelegateChangedEvent, GovernancePower
from .governance.proposals import Proposal, ProposalState, VoteReceipt
from .governance.voting import VotingEngine
from .logger import apply_settings, get_logger
from .staking.ledger import STAKING_CUSTODY_ADDRESS, StakingLedger
from .tokens.ledger import TokenLedger

logger = get_logger(__name__)


class StakingGovernanceEngine:
    """
    Main coordinator for staking and governance operations.

    Wires the components together, grants the staking ledger the minter
    role it needs to pay rewards, and serializes all writes. Events from
    every component are collected into one journal in command order.
    """

    def __init__(
        self,
        config: Optional[StakeGovConfig] = None,
        clock: Optional[Callable[[], int]] = None,
    ):
        """
        Args:
            config: Engine configuration (defaults if omitted)
            clock:  Callable() → int, monotonic seconds (SystemClock if omitted)
        """
        self.config = config or StakeGovConfig()
        self.config.validate()
        apply_settings(self.config.logging.level, self.config.logging.file_output)
        self.clock = clock or SystemClock()
        self._lock = threading.RLock()

        tok = self.config.token
        self.token = TokenLedger(
            owner=tok.owner,
            name=tok.name,
            symbol=tok.symbol,
            decimals=tok.decimals,
            clock=self.clock,
        )
        self.staking = StakingLedger(
            self.token,
            self.clock,
            settings=self.config.staking,
            address=STAKING_CUSTODY_ADDRESS,
        )
        self.token.add_minter(tok.owner, self.staking.address)
        self.power = GovernancePower(self.staking, self.token, self.clock)
        self.executor = ProposalExecutor()
        self.governance = VotingEngine(
            self.power,
            self.token,
            self.clock,
            settings=self.config.governance,
            executor=self.executor,
        )
        self._components = (self.token, self.staking, self.power, self.governance)
        self._journal: List[Any] = [e for c in self._components for e in c.events]
        logger.info(
            f"Engine ready: token={self.token.symbol} "
            f"reward_rate={self.staking.reward_rate} "
            f"quorum={self.governance.quorum_percentage}%"
        )

    def _command(self, operation: Callable[..., Any], *args):
        """Run *operation* under the write lock and journal the events it emitted."""
        with self._lock:
            marks = [len(c.events) for c in self._components]
            try:
                return operation(*args)
            finally:
                # A failing command may still have emitted events (e.g. a failed execution)
                for component, mark in zip(self._components, marks):
                    self._journal.extend(component.events[mark:])

    # ── Token commands ────────────────────────────────────────────────

    def mint(self, caller: str, to: str, amount: int):
        return self._command(self.token.mint, caller, to, amount)

    def burn(self, caller: str, account: str, amount: int):
        return self._command(self.token.burn, caller, account, amount)

    def transfer(self, caller: str, to: str, amount: int):
        return self._command(self.token.transfer, caller, to, amount)

    # ── Staking commands ──────────────────────────────────────────────

    def stake(self, caller: str, amount: int):
        return self._command(self.staking.stake, caller, amount)

    def unstake(self, caller: str, amount: int):
        return self._command(self.staking.unstake, caller, amount)

    def claim_rewards(self, caller: str) -> int:
        return self._command(self.staking.claim_rewards, caller)

    def compound(self, caller: str) -> int:
        return self._command(self.staking.compound, caller)

    def emergency_withdraw(self, caller: str):
        return self._command(self.staking.emergency_withdraw, caller)

    # ── Governance commands ───────────────────────────────────────────

    def delegate(self, caller: str, to: str) -> DelegateChangedEvent:
        return self._command(self.power.delegate, caller, to)

    def undelegate(self, caller: str) -> Optional[DelegateChangedEvent]:
        return self._command(self.power.undelegate, caller)

    def propose(
        self,
        caller: str,
        targets: Sequence[str],
        values: Sequence[int],
        calldatas: Sequence[Union[bytes, str]],
        description: str,
    ) -> int:
        return self._command(
            self.governance.propose, caller, targets, values, calldatas, description
        )

    def cast_vote(self, caller: str, proposal_id: int, support: int) -> int:
        return self._command(self.governance.cast_vote, caller, proposal_id, support)

    def execute_proposal(self, caller: str, proposal_id: int) -> List[Any]:
        return self._command(self.governance.execute_proposal, caller, proposal_id)

    def cancel_proposal(self, caller: str, proposal_id: int):
        return self._command(self.governance.cancel_proposal, caller, proposal_id)

    def set_quorum_percentage(self, caller: str, percentage: int):
        return self._command(self.governance.set_quorum_percentage, caller, percentage)

    def register_action_handler(self, target: str, handler: ActionHandler):
        with self._lock:
            self.executor.register_handler(target, handler)

    # ── Queries ───────────────────────────────────────────────────────

    def balance_of(self, account: str) -> int:
        with self._lock:
            return self.token.balance_of(account)

    def get_staked_amount(self, account: str) -> int:
        with self._lock:
            return self.staking.get_staked_amount(account)

    def get_rewards(self, account: str) -> int:
        with self._lock:
            return self.staking.get_rewards(account)

    def get_top_stakers(self) -> List[str]:
        with self._lock:
            return self.staking.get_top_stakers()

    def get_voting_power(self, account: str) -> int:
        with self._lock:
            return self.power.get_voting_power(account)

    def state(self, proposal_id: int) -> ProposalState:
        with self._lock:
            return self.governance.state(proposal_id)

    def proposals(self, proposal_id: int) -> Proposal:
        with self._lock:
            return self.governance.proposals(proposal_id)

    def get_receipt(self, proposal_id: int, account: str) -> Optional[VoteReceipt]:
        with self._lock:
            return self.governance.get_receipt(proposal_id, account)

    def events(self) -> List[Any]:
        """Every component event, in the order the commands ran."""
        with self._lock:
            return list(self._journal)

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "now": self.clock(),
                "token": self.token.to_dict(),
                "staking": self.staking.to_dict(),
                "delegation": self.power.to_dict(),
                "governance": self.governance.to_dict(),
            }

    def __repr__(self) -> str:
        return f"<StakingGovernanceEngine {self.token!r} {self.staking!r} {self.governance!r}>"
