"""Random retail order flow for exercising the exchange."""

from dataclasses import dataclass
from decimal import Decimal
import logging
from typing import Optional, Sequence

import numpy as np

from token_exchange.core.engine import TradeResult, TradingEngine
from token_exchange.core.trade import TradeSide

logger = logging.getLogger(__name__)


@dataclass
class RetailOrder:
    """An order to submit to the engine."""
    username: str
    side: TradeSide
    size: Decimal  # Fiat to spend (buy) or fraction of holdings to sell (sell)


class RetailTrader:
    """Generates retail trading flow with Poisson arrivals.

    Retail traders arrive according to a Poisson process and are
    uninformed: each picks a side at random. Buy sizes are lognormal in
    fiat; sells dispose of a uniform fraction of the trader's tokens.
    """

    def __init__(
        self,
        arrival_rate: float = 1.0,
        mean_size: float = 5.0,
        size_sigma: float = 1.2,
        buy_prob: float = 0.5,
        seed: Optional[int] = None,
    ):
        """
        Args:
            arrival_rate: Expected number of orders per step (lambda)
            mean_size: Mean buy size in fiat
            size_sigma: Lognormal sigma (log-space)
            buy_prob: Probability of a buy order
            seed: Random seed for reproducibility
        """
        self.arrival_rate = arrival_rate
        self.mean_size = mean_size
        self.size_sigma = size_sigma
        self.buy_prob = buy_prob
        self._rng = np.random.default_rng(seed)

    def reset(self, seed: Optional[int] = None) -> None:
        """Reset the random state."""
        if seed is not None:
            self._rng = np.random.default_rng(seed)

    def generate_orders(self, usernames: Sequence[str]) -> list[RetailOrder]:
        """Generate orders for one step, each from a random user.

        Returns:
            List of orders (may be empty if no arrivals)
        """
        if not usernames:
            return []
        n_arrivals = self._rng.poisson(self.arrival_rate)

        orders = []
        for _ in range(n_arrivals):
            username = usernames[int(self._rng.integers(len(usernames)))]
            if self._rng.random() < self.buy_prob:
                # Lognormally distributed sizes with mean = mean_size
                sigma = max(self.size_sigma, 0.01)
                mean = max(self.mean_size, 0.01)
                mu = float(np.log(mean) - 0.5 * sigma * sigma)
                size = Decimal(str(round(self._rng.lognormal(mu, sigma), 8)))
                orders.append(RetailOrder(username=username, side=TradeSide.BUY, size=size))
            else:
                fraction = Decimal(str(round(self._rng.uniform(0.05, 1.0), 8)))
                orders.append(RetailOrder(username=username, side=TradeSide.SELL, size=fraction))
        return orders


def submit_order(engine: TradingEngine, order: RetailOrder) -> TradeResult:
    """Submit one order, turning a sell fraction into a token amount."""
    if order.side == TradeSide.BUY:
        return engine.buy(order.username, order.size)
    account = engine.get_account(order.username)
    holdings = account.token_balance if account is not None else Decimal("0")
    return engine.sell(order.username, holdings * order.size)


def run_retail_flow(
    engine: TradingEngine,
    trader: RetailTrader,
    usernames: Sequence[str],
    steps: int,
) -> list[TradeResult]:
    """Log in `usernames` and drive `steps` rounds of random orders.

    Rejections (overspending, selling an empty bag) are kept in the
    returned results like accepted trades.
    """
    for username in usernames:
        engine.login(username)

    results = []
    for _ in range(steps):
        for order in trader.generate_orders(usernames):
            results.append(submit_order(engine, order))

    accepted = sum(1 for r in results if r.ok)
    logger.info(
        "Retail flow finished: %d orders, %d accepted, price=%s",
        len(results), accepted, engine.current_price(),
    )
    return results
