"""Bounded trade log, most recent first."""

from collections import deque
from decimal import Decimal
from typing import Iterable, Iterator, Optional

from token_exchange.core.trade import TradeRecord


class Ledger:
    """Append-only trade log keeping the most recent `capacity` trades.

    Backed by a deque with maxlen, so inserting at the front evicts the
    oldest trade once the ledger is full. Eviction is by count only; the
    age of a trade never matters.
    """

    def __init__(self, capacity: int = 50, trades: Optional[Iterable[TradeRecord]] = None):
        """
        Args:
            capacity: Maximum number of trades retained
            trades: Existing trades, most recent first
        """
        if capacity <= 0:
            raise ValueError(f"capacity must be > 0, got {capacity}")
        self.capacity = capacity
        self._trades: deque[TradeRecord] = deque(list(trades or ())[:capacity], maxlen=capacity)

    def append(self, trade: TradeRecord) -> None:
        """Record a trade as the most recent entry."""
        self._trades.appendleft(trade)

    def recent(self, limit: int = 10) -> list[TradeRecord]:
        """Most recent trades first, at most `limit` of them."""
        if limit <= 0:
            return []
        return list(self._trades)[:limit]

    def volume_since(self, timestamp: int) -> Decimal:
        """Fiat notional of trades at or after `timestamp`."""
        return sum(
            (t.fiat_amount for t in self._trades if t.timestamp >= timestamp),
            Decimal("0"),
        )

    def __len__(self) -> int:
        return len(self._trades)

    def __iter__(self) -> Iterator[TradeRecord]:
        return iter(self._trades)
