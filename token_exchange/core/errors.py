"""Exchange error types."""

from decimal import Decimal
from typing import Optional


class ExchangeError(Exception):
    """Base class for all exchange errors."""


class InvalidUsername(ExchangeError, ValueError):
    """Username is empty after trimming, or unknown to the exchange."""


class InvalidAmount(ExchangeError, ValueError):
    """Amount is non-numeric, non-finite, zero, negative or too small to trade."""


class InsufficientBalance(ExchangeError):
    """Account does not hold enough of an asset to cover a trade."""

    def __init__(
        self,
        asset: str,
        requested: Decimal,
        available: Decimal,
        message: Optional[str] = None,
    ):
        self.asset = asset
        self.requested = requested
        self.available = available
        super().__init__(
            message or f"Insufficient {asset}: requested {requested}, available {available}"
        )


class PoolIntegrityError(ExchangeError, AssertionError):
    """A pool reserve would become non-positive.

    Validation should make this unreachable; seeing it means a logic defect.
    """
