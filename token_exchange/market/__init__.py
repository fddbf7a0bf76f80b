"""Market simulation components."""

from token_exchange.market.retail import RetailOrder, RetailTrader, run_retail_flow, submit_order

__all__ = [
    "RetailOrder",
    "RetailTrader",
    "run_retail_flow",
    "submit_order",
]
