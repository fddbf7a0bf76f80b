"""Shared configuration for the exchange: seed state, retention and timeframes."""

from dataclasses import dataclass
from decimal import Decimal
import os

MINUTE_MS = 60 * 1000
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS


@dataclass(frozen=True)
class ExchangeSettings:
    seed_token_reserve: Decimal
    seed_fiat_reserve: Decimal
    seed_price: Decimal
    starting_grant: Decimal
    ledger_capacity: int
    price_retention_ms: int
    change_lookback_ms: int
    recent_trades_limit: int
    leaderboard_limit: int
    total_supply: Decimal


DEFAULT_SETTINGS = ExchangeSettings(
    seed_token_reserve=Decimal("10000"),
    seed_fiat_reserve=Decimal("1000"),
    seed_price=Decimal("0.1"),
    starting_grant=Decimal("100"),
    ledger_capacity=50,
    price_retention_ms=7 * DAY_MS,
    change_lookback_ms=DAY_MS,
    recent_trades_limit=10,
    leaderboard_limit=10,
    total_supply=Decimal("10000"),
)


# Chart lookback windows selectable by the presentation layer
TIMEFRAMES = {
    "1h": HOUR_MS,
    "4h": 4 * HOUR_MS,
    "1d": DAY_MS,
    "7d": 7 * DAY_MS,
}
DEFAULT_TIMEFRAME = "1h"


def timeframe_ms(timeframe: str) -> int:
    """Lookback for a chart timeframe; unknown names fall back to one hour."""
    return TIMEFRAMES.get(timeframe, TIMEFRAMES[DEFAULT_TIMEFRAME])


def resolve_db_path() -> str:
    """Resolve the SQLite store location from the environment."""
    return os.environ.get("EXCHANGE_DB_PATH", "data/exchange.db")


def resolve_log_level() -> str:
    """Resolve the log level from the environment."""
    return os.environ.get("EXCHANGE_LOG_LEVEL", "INFO").upper()


# Environment variables overriding the level of one package
PACKAGE_LOG_LEVEL_VARS = {
    "token_exchange": "EXCHANGE_ENGINE_LOG_LEVEL",
    "exchange_app": "EXCHANGE_APP_LOG_LEVEL",
}


def resolve_package_log_levels() -> dict[str, str]:
    """Per-package log level overrides set in the environment."""
    return {
        package: os.environ[var].upper()
        for package, var in PACKAGE_LOG_LEVEL_VARS.items()
        if os.environ.get(var)
    }
