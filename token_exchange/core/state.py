"""Encoding of exchange state to and from a key-value store."""

from dataclasses import dataclass
from typing import Any

from token_exchange.config import DEFAULT_SETTINGS, ExchangeSettings
from token_exchange.core.account import Account, AccountBook
from token_exchange.core.interfaces import Store
from token_exchange.core.ledger import Ledger
from token_exchange.core.pool import LiquidityPool
from token_exchange.core.price_series import PriceSeries
from token_exchange.core.trade import PriceSample, TradeRecord

ACCOUNTS_KEY = "accounts"
TRADES_KEY = "trades"
PRICE_HISTORY_KEY = "priceHistory"
POOL_KEY = "liquidityPool"

STATE_KEYS = (ACCOUNTS_KEY, TRADES_KEY, PRICE_HISTORY_KEY, POOL_KEY)


@dataclass
class ExchangeState:
    """Everything the engine owns, as loaded from a store."""
    pool: LiquidityPool
    accounts: AccountBook
    ledger: Ledger
    price_series: PriceSeries


def encode_accounts(accounts: AccountBook) -> dict[str, Any]:
    return {a.username: a.to_dict() for a in accounts}


def encode_state(state: ExchangeState) -> dict[str, Any]:
    """JSON-ready values for every state key."""
    return {
        ACCOUNTS_KEY: encode_accounts(state.accounts),
        TRADES_KEY: [t.to_dict() for t in state.ledger],
        PRICE_HISTORY_KEY: [s.to_dict() for s in state.price_series],
        POOL_KEY: state.pool.to_dict(),
    }


def _decode(key: str, decoder, raw):
    try:
        return decoder(raw)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise ValueError(f"Corrupt {key!r} entry in store: {e}") from e


def decode_state(
    store: Store,
    now: int,
    settings: ExchangeSettings = DEFAULT_SETTINGS,
) -> ExchangeState:
    """Load state from `store`, filling absent keys with launch defaults.

    Defaults: no accounts, an empty ledger, a price history holding one
    seed sample, and the seed pool reserves.

    Raises:
        ValueError: If a stored value cannot be decoded
    """
    accounts = AccountBook(starting_grant=settings.starting_grant)
    raw_accounts = store.get(ACCOUNTS_KEY) or {}
    for account in _decode(
        ACCOUNTS_KEY, lambda r: [Account.from_dict(d) for d in r.values()], raw_accounts
    ):
        accounts.add(account)

    raw_trades = store.get(TRADES_KEY) or []
    ledger = Ledger(
        capacity=settings.ledger_capacity,
        trades=_decode(TRADES_KEY, lambda r: [TradeRecord.from_dict(d) for d in r], raw_trades),
    )

    raw_history = store.get(PRICE_HISTORY_KEY) or []
    samples = _decode(PRICE_HISTORY_KEY, lambda r: [PriceSample.from_dict(d) for d in r], raw_history)
    if samples:
        price_series = PriceSeries(samples, retention_ms=settings.price_retention_ms)
    else:
        price_series = PriceSeries.seeded(
            now, seed_price=settings.seed_price, retention_ms=settings.price_retention_ms
        )

    raw_pool = store.get(POOL_KEY)
    if raw_pool is None:
        pool = LiquidityPool.seeded(settings)
    else:
        pool = _decode(POOL_KEY, LiquidityPool.from_dict, raw_pool)

    return ExchangeState(pool=pool, accounts=accounts, ledger=ledger, price_series=price_series)
