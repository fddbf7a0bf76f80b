"""Time-windowed price history."""

from decimal import Decimal
from typing import Iterable, Iterator, Optional

from token_exchange.core.trade import PriceSample

SEVEN_DAYS_MS = 7 * 24 * 60 * 60 * 1000


class PriceSeries:
    """Chronological price samples with a time-based retention window.

    Every append purges samples older than `retention_ms` relative to the
    appended sample's timestamp. Samples are kept oldest first.
    """

    def __init__(
        self,
        samples: Optional[Iterable[PriceSample]] = None,
        retention_ms: int = SEVEN_DAYS_MS,
    ):
        if retention_ms <= 0:
            raise ValueError(f"retention_ms must be > 0, got {retention_ms}")
        self.retention_ms = retention_ms
        self._samples: list[PriceSample] = list(samples or ())

    @classmethod
    def seeded(
        cls,
        now: int,
        seed_price: Decimal = Decimal("0.1"),
        retention_ms: int = SEVEN_DAYS_MS,
    ) -> "PriceSeries":
        """Series holding a single launch sample."""
        return cls([PriceSample(timestamp=now, price=seed_price)], retention_ms=retention_ms)

    def append(self, price: Decimal, timestamp: int) -> None:
        """Append a sample and drop everything outside the retention window."""
        self._samples.append(PriceSample(timestamp=timestamp, price=price))
        cutoff = timestamp - self.retention_ms
        self._samples = [s for s in self._samples if s.timestamp >= cutoff]

    def change_since(self, cutoff: int, current_price: Decimal) -> Optional[Decimal]:
        """Percent change from a reference sample to `current_price`.

        The reference is the first stored sample (oldest first) whose
        timestamp is at or before `cutoff`. That is the oldest retained
        sample in that range, not the one closest to the cutoff.

        Returns:
            Percent change, or None with fewer than two samples or no
            sample at or before the cutoff
        """
        if len(self._samples) < 2:
            return None
        reference = next((s for s in self._samples if s.timestamp <= cutoff), None)
        if reference is None:
            return None
        return (current_price - reference.price) / reference.price * 100

    def windowed(self, start_time: int, now: int, current_price: Decimal) -> list[PriceSample]:
        """Samples at or after `start_time`, never empty.

        An empty window yields a single sample at `now` priced at
        `current_price`.
        """
        window = [s for s in self._samples if s.timestamp >= start_time]
        if not window:
            window = [PriceSample(timestamp=now, price=current_price)]
        return window

    @property
    def latest(self) -> Optional[PriceSample]:
        return self._samples[-1] if self._samples else None

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[PriceSample]:
        return iter(self._samples)
