"""Trade data classes."""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Union

from token_exchange.core.errors import InvalidAmount

Amount = Union[Decimal, int, float, str]


class TradeSide(Enum):
    """Side of a trade from the trader's perspective."""
    BUY = "buy"    # Trader pays fiat, receives tokens
    SELL = "sell"  # Trader pays tokens, receives fiat


def to_decimal(value: Amount) -> Decimal:
    """Coerce a user-supplied amount to Decimal.

    Floats go through str() so 0.1 becomes Decimal("0.1") rather than
    its binary expansion.

    Raises:
        InvalidAmount: If the value is not numeric or not finite
    """
    if isinstance(value, bool):
        raise InvalidAmount(f"Amount must be numeric, got {value!r}")
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise InvalidAmount(f"Amount must be numeric, got {value!r}") from None
    if not amount.is_finite():
        raise InvalidAmount(f"Amount must be finite, got {value!r}")
    return amount


def decimal_field(data: dict, key: str) -> Decimal:
    try:
        return Decimal(str(data[key]))
    except KeyError:
        raise ValueError(f"Missing field {key!r}") from None
    except InvalidOperation:
        raise ValueError(f"Field {key!r} is not a number: {data[key]!r}") from None


@dataclass(frozen=True)
class TradeRecord:
    """An executed trade as kept in the ledger."""
    side: TradeSide
    username: str
    fiat_amount: Decimal   # Fiat paid (buy) or received (sell)
    token_amount: Decimal  # Tokens received (buy) or paid (sell)
    price_after: Decimal   # Pool price once the trade settled
    timestamp: int         # Epoch milliseconds

    def __post_init__(self) -> None:
        if self.fiat_amount <= 0:
            raise ValueError(f"fiat_amount must be > 0, got {self.fiat_amount}")
        if self.token_amount <= 0:
            raise ValueError(f"token_amount must be > 0, got {self.token_amount}")
        if self.price_after <= 0:
            raise ValueError(f"price_after must be > 0, got {self.price_after}")

    @property
    def effective_price(self) -> Decimal:
        """Average fiat paid per token on this trade."""
        return self.fiat_amount / self.token_amount

    def to_dict(self) -> dict[str, Any]:
        return {
            "side": self.side.value,
            "username": self.username,
            "fiatAmount": str(self.fiat_amount),
            "tokenAmount": str(self.token_amount),
            "priceAfter": str(self.price_after),
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TradeRecord":
        return cls(
            side=TradeSide(data["side"]),
            username=data["username"],
            fiat_amount=decimal_field(data, "fiatAmount"),
            token_amount=decimal_field(data, "tokenAmount"),
            price_after=decimal_field(data, "priceAfter"),
            timestamp=int(data["timestamp"]),
        )


@dataclass(frozen=True)
class PriceSample:
    """A single point of the price history."""
    timestamp: int
    price: Decimal

    def __post_init__(self) -> None:
        if self.price <= 0:
            raise ValueError(f"price must be > 0, got {self.price}")

    def to_dict(self) -> dict[str, Any]:
        return {"timestamp": self.timestamp, "price": str(self.price)}

    @classmethod
    def from_dict(cls, data: dict) -> "PriceSample":
        return cls(timestamp=int(data["timestamp"]), price=decimal_field(data, "price"))
