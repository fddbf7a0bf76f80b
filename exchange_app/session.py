"""Wiring of store, engine and stats for a host application."""

from dataclasses import dataclass
from typing import Callable, Optional

from exchange_app.database import Database
from exchange_app.stats import StatsCalculator
from token_exchange.config import DEFAULT_SETTINGS, ExchangeSettings, resolve_db_path
from token_exchange.core.engine import TradingEngine, now_ms
from token_exchange.core.interfaces import Store


@dataclass
class ExchangeSession:
    """One process-wide exchange: its store, engine and stats view."""
    store: Store
    engine: TradingEngine
    stats: StatsCalculator


def open_session(
    store: Optional[Store] = None,
    settings: ExchangeSettings = DEFAULT_SETTINGS,
    clock: Callable[[], int] = now_ms,
) -> ExchangeSession:
    """Load the exchange from `store` (SQLite at the configured path by default)."""
    if store is None:
        store = Database(resolve_db_path())
    engine = TradingEngine.from_store(store, settings=settings, clock=clock)
    return ExchangeSession(store=store, engine=engine, stats=StatsCalculator(engine))
