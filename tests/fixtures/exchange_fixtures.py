"""Test fixtures for exchange state and accounting checks.

Provides a controllable clock, engine factories, and immutable state
snapshots so tests can compare the engine before and after a request
using exact Decimal values.

Standard setups:
- Seed pool: 10000 tokens / 1000 fiat, k = 10,000,000
- Starting grant: 100 fiat per new account
"""

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Optional, Sequence

from token_exchange.config import DEFAULT_SETTINGS, ExchangeSettings
from token_exchange.core.engine import TradingEngine
from token_exchange.core.interfaces import Store

# 2024-01-01T00:00:00Z in epoch milliseconds
BASE_TIME_MS = 1_704_067_200_000


class FakeClock:
    """Deterministic millisecond clock.

    Example:
        >>> clock = FakeClock()
        >>> clock.advance(1000)
        >>> clock() - BASE_TIME_MS
        1000
    """

    def __init__(self, start: int = BASE_TIME_MS):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@dataclass(frozen=True)
class EngineStateSnapshot:
    """Immutable capture of everything a trade may change."""
    token_reserve: Decimal
    fiat_reserve: Decimal
    k: Decimal
    balances: tuple[tuple[str, Decimal, Decimal, Decimal], ...]  # (user, fiat, tokens, traded)
    ledger_length: int
    series_length: int
    serialized: dict

    @property
    def total_fiat(self) -> Decimal:
        """Fiat held by the pool and all accounts."""
        return self.fiat_reserve + sum((b[1] for b in self.balances), Decimal("0"))

    @property
    def total_tokens(self) -> Decimal:
        """Tokens held by the pool and all accounts."""
        return self.token_reserve + sum((b[2] for b in self.balances), Decimal("0"))


def snapshot_engine_state(engine: TradingEngine) -> EngineStateSnapshot:
    """Capture current engine state for later comparison."""
    return EngineStateSnapshot(
        token_reserve=engine.pool.token_reserve,
        fiat_reserve=engine.pool.fiat_reserve,
        k=engine.pool.k,
        balances=tuple(
            (a.username, a.fiat_balance, a.token_balance, a.total_traded)
            for a in engine.accounts
        ),
        ledger_length=len(engine.ledger),
        series_length=len(engine.price_series),
        serialized=engine.snapshot(),
    )


def relative_error(actual: Decimal, expected: Decimal) -> Decimal:
    """|actual - expected| / |expected|."""
    return abs(actual - expected) / abs(expected)


def create_engine(
    usernames: Sequence[str] = (),
    clock: Optional[FakeClock] = None,
    store: Optional[Store] = None,
    starting_grant: Optional[Decimal] = None,
    settings: ExchangeSettings = DEFAULT_SETTINGS,
) -> TradingEngine:
    """Create a seeded engine with the given users logged in.

    Args:
        usernames: Accounts to open
        clock: Clock to use (a fresh FakeClock by default)
        store: Optional store to persist into
        starting_grant: Override the fiat grant of new accounts

    Returns:
        Engine on the seed pool with a single seed price sample
    """
    if starting_grant is not None:
        settings = replace(settings, starting_grant=starting_grant)
    engine = TradingEngine(store=store, settings=settings, clock=clock or FakeClock())
    for username in usernames:
        engine.login(username)
    return engine
