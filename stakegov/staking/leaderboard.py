"""
Top-stakers leaderboard.

Ranks accounts by staked principal, descending. Ties go to the account that
became a staker first. The ranking is rebuilt from the full staker set on
every change so an account dropping out of the top N is always replaced by
the next best staker.
"""

import heapq
import itertools
from typing import Dict, List, Tuple


class Leaderboard:
    """Bounded ranked view over staker principals."""

    def __init__(self, size: int):
        if size < 1:
            raise ValueError(f"Leaderboard size must be at least 1, got {size}")
        self.size = size
        self._entries: Dict[str, Tuple[int, int]] = {}  # address → (amount, seq)
        self._seq = itertools.count()
        self._top: List[str] = []

    def update(self, address: str, amount: int) -> None:
        """Record *address*'s new principal; zero removes it."""
        if amount <= 0:
            if self._entries.pop(address, None) is not None:
                self._rebuild()
            return
        entry = self._entries.get(address)
        seq = entry[1] if entry else next(self._seq)
        self._entries[address] = (amount, seq)
        self._rebuild()

    def _rebuild(self) -> None:
        ranked = heapq.nsmallest(
            self.size,
            self._entries.items(),
            key=lambda item: (-item[1][0], item[1][1]),
        )
        self._top = [address for address, _ in ranked]

    def top(self) -> List[str]:
        return list(self._top)

    def rank_of(self, address: str) -> int:
        """1-based rank within the board, 0 if not on it."""
        try:
            return self._top.index(address) + 1
        except ValueError:
            return 0

    def __len__(self) -> int:
        return len(self._top)

    def __repr__(self) -> str:
        return f"<Leaderboard size={self.size} stakers={len(self._entries)}>"
