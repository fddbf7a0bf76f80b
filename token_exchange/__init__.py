"""Constant-product token exchange."""

from token_exchange.core.engine import TradeResult, TradingEngine
from token_exchange.core.interfaces import Store
from token_exchange.core.pool import LiquidityPool, Quote
from token_exchange.core.trade import TradeRecord, TradeSide

__all__ = [
    "TradeResult",
    "TradingEngine",
    "Store",
    "LiquidityPool",
    "Quote",
    "TradeRecord",
    "TradeSide",
]
