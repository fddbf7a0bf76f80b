"""Core exchange components."""

from token_exchange.core.errors import (
    ExchangeError,
    InsufficientBalance,
    InvalidAmount,
    InvalidUsername,
    PoolIntegrityError,
)
from token_exchange.core.trade import PriceSample, TradeRecord, TradeSide
from token_exchange.core.pool import LiquidityPool, Quote
from token_exchange.core.ledger import Ledger
from token_exchange.core.price_series import PriceSeries
from token_exchange.core.account import Account, AccountBook
from token_exchange.core.interfaces import Store
from token_exchange.core.engine import MarketSnapshot, RequestState, TradeResult, TradingEngine

__all__ = [
    "ExchangeError",
    "InsufficientBalance",
    "InvalidAmount",
    "InvalidUsername",
    "PoolIntegrityError",
    "PriceSample",
    "TradeRecord",
    "TradeSide",
    "LiquidityPool",
    "Quote",
    "Ledger",
    "PriceSeries",
    "Account",
    "AccountBook",
    "Store",
    "MarketSnapshot",
    "RequestState",
    "TradeResult",
    "TradingEngine",
]
