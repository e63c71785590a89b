"""
Proposal Action Executor

Runs the opaque action payload of a succeeded proposal. Handlers are
registered per target; a target with no handler behaves like a call to a
plain account and succeeds without effect.
"""

from typing import Any, Callable, Dict, List

from ..logger import get_logger
from .proposals import Proposal, ProposalAction

logger = get_logger(__name__)

# handler(value, calldata) → result
ActionHandler = Callable[[int, bytes], Any]


class ProposalExecutor:
    """
    Dispatches proposal actions to target handlers.

    Handlers run in proposal order; the first exception aborts the run and
    propagates to the voting engine.
    """

    def __init__(self):
        self._handlers: Dict[str, ActionHandler] = {}
        self._execution_log: List[Dict[str, Any]] = []

    # ── Handlers ──────────────────────────────────────────────────────

    def register_handler(self, target: str, handler: ActionHandler):
        """Register the function invoked for actions aimed at *target*."""
        self._handlers[target] = handler
        logger.debug(f"Action handler registered for {target}")

    def unregister_handler(self, target: str):
        self._handlers.pop(target, None)

    def has_handler(self, target: str) -> bool:
        return target in self._handlers

    # ── Execute ───────────────────────────────────────────────────────

    def _run_action(self, action: ProposalAction) -> Any:
        if not self.has_handler(action.target):
            logger.debug(f"No handler for {action.target}, treating as plain call")
            return None
        return self._handlers[action.target](action.value, action.calldata)

    def execute(self, proposal: Proposal) -> List[Any]:
        """Run every action of *proposal* and return the handler results."""
        results = [self._run_action(action) for action in proposal.actions]
        self._execution_log.append({
            "proposalId": proposal.id,
            "actions": len(proposal.actions),
            "results": results,
        })
        logger.info(f"Proposal #{proposal.id}: ran {len(proposal.actions)} action(s)")
        return results

    # ── Queries ───────────────────────────────────────────────────────

    @property
    def execution_log(self) -> List[Dict[str, Any]]:
        return list(self._execution_log)

    def execution_count(self) -> int:
        return len(self._execution_log)

    def __repr__(self) -> str:
        return (
            f"<ProposalExecutor handlers={len(self._handlers)} "
            f"executed={len(self._execution_log)}>"
        )
