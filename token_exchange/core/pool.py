"""Constant product liquidity pool for the token/fiat pair."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

from token_exchange.config import DEFAULT_SETTINGS, ExchangeSettings
from token_exchange.core.errors import PoolIntegrityError
from token_exchange.core.trade import TradeSide, decimal_field

ZERO = Decimal("0")
HUNDRED = Decimal("100")


@dataclass(frozen=True)
class Quote:
    """A quote for a potential trade."""
    side: TradeSide
    amount_in: Decimal          # Fiat (buy) or tokens (sell) paid in
    amount_out: Decimal         # Tokens (buy) or fiat (sell) paid out
    new_price: Decimal          # Pool price after the trade
    price_impact_pct: Decimal   # Percent move of the pool price

    @property
    def effective_price(self) -> Decimal:
        """Average fiat per token of the quoted trade."""
        if self.side == TradeSide.BUY:
            fiat, tokens = self.amount_in, self.amount_out
        else:
            fiat, tokens = self.amount_out, self.amount_in
        if tokens == 0:
            return ZERO
        return fiat / tokens


@dataclass
class LiquidityPool:
    """Constant product pool holding token and fiat reserves.

    Implements x * y = k where x is the token reserve and y the fiat
    reserve. k is fixed at construction and every quote derives the new
    reserves from it, so trades never compound rounding error into k:
    - Buy:  (y + Δy) * (x - Δx) = k
    - Sell: (x + Δx) * (y - Δy) = k
    No fees are charged; price impact comes from the curve alone.
    """
    token_reserve: Decimal
    fiat_reserve: Decimal
    k: Optional[Decimal] = None

    def __post_init__(self) -> None:
        if self.token_reserve <= 0:
            raise ValueError(f"token_reserve must be > 0, got {self.token_reserve}")
        if self.fiat_reserve <= 0:
            raise ValueError(f"fiat_reserve must be > 0, got {self.fiat_reserve}")
        if self.k is None:
            self.k = self.token_reserve * self.fiat_reserve
        elif self.k <= 0:
            raise ValueError(f"k must be > 0, got {self.k}")

    @classmethod
    def seeded(cls, settings: ExchangeSettings = DEFAULT_SETTINGS) -> "LiquidityPool":
        """Pool with the launch reserves."""
        return cls(
            token_reserve=settings.seed_token_reserve,
            fiat_reserve=settings.seed_fiat_reserve,
        )

    def current_price(self) -> Decimal:
        """Current spot price (fiat per token)."""
        return self.fiat_reserve / self.token_reserve

    def _impact(self, new_price: Decimal) -> Decimal:
        return (new_price / self.current_price() - 1) * HUNDRED

    def quote_buy(self, fiat_in: Decimal) -> Quote:
        """Quote a trader paying fiat for tokens.

        Args:
            fiat_in: Fiat the trader pays into the pool (must be > 0)

        Returns:
            Quote with tokens out, post-trade price and price impact
        """
        new_fiat_reserve = self.fiat_reserve + fiat_in
        new_token_reserve = self.k / new_fiat_reserve
        tokens_out = max(ZERO, self.token_reserve - new_token_reserve)
        new_price = new_fiat_reserve / new_token_reserve

        return Quote(
            side=TradeSide.BUY,
            amount_in=fiat_in,
            amount_out=tokens_out,
            new_price=new_price,
            price_impact_pct=self._impact(new_price),
        )

    def quote_sell(self, tokens_in: Decimal) -> Quote:
        """Quote a trader paying tokens for fiat.

        Args:
            tokens_in: Tokens the trader pays into the pool (must be > 0)

        Returns:
            Quote with fiat out, post-trade price and (negative) price impact
        """
        new_token_reserve = self.token_reserve + tokens_in
        new_fiat_reserve = self.k / new_token_reserve
        fiat_out = max(ZERO, self.fiat_reserve - new_fiat_reserve)
        new_price = new_fiat_reserve / new_token_reserve

        return Quote(
            side=TradeSide.SELL,
            amount_in=tokens_in,
            amount_out=fiat_out,
            new_price=new_price,
            price_impact_pct=self._impact(new_price),
        )

    def apply_buy(self, fiat_in: Decimal, tokens_out: Decimal) -> None:
        """Move reserves by the amounts of an accepted buy quote."""
        self._apply(
            new_token_reserve=self.token_reserve - tokens_out,
            new_fiat_reserve=self.fiat_reserve + fiat_in,
        )

    def apply_sell(self, tokens_in: Decimal, fiat_out: Decimal) -> None:
        """Move reserves by the amounts of an accepted sell quote."""
        self._apply(
            new_token_reserve=self.token_reserve + tokens_in,
            new_fiat_reserve=self.fiat_reserve - fiat_out,
        )

    def _apply(self, new_token_reserve: Decimal, new_fiat_reserve: Decimal) -> None:
        if new_token_reserve <= 0 or new_fiat_reserve <= 0:
            raise PoolIntegrityError(
                f"Reserves would become non-positive: "
                f"token={new_token_reserve}, fiat={new_fiat_reserve}"
            )
        self.token_reserve = new_token_reserve
        self.fiat_reserve = new_fiat_reserve

    def to_dict(self) -> dict[str, Any]:
        return {
            "tokenReserve": str(self.token_reserve),
            "fiatReserve": str(self.fiat_reserve),
            "k": str(self.k),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LiquidityPool":
        k = decimal_field(data, "k") if "k" in data else None
        return cls(
            token_reserve=decimal_field(data, "tokenReserve"),
            fiat_reserve=decimal_field(data, "fiatReserve"),
            k=k,
        )
