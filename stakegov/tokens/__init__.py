"""
stakegov Token Ledger

Provides:
  - TokenLedger : mintable fungible token with transfer / allowance support
  - TransferEvent / ApprovalEvent / MinterChangedEvent
"""

from .ledger import (
    ApprovalEvent,
    MinterChangedEvent,
    TokenLedger,
    TransferEvent,
)

__all__ = [
    "ApprovalEvent",
    "MinterChangedEvent",
    "TokenLedger",
    "TransferEvent",
]
