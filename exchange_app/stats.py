"""Statistics calculator for the exchange's market and holders."""

from decimal import Decimal
from typing import Dict, List, Optional

from token_exchange.core.engine import TradingEngine


def format_relative_time(timestamp: int, now: int) -> str:
    """Describe how long ago `timestamp` was, coarsest unit first."""
    diff = now - timestamp
    if diff < 60_000:
        return "Just now"
    if diff < 3_600_000:
        return f"{diff // 60_000}m ago"
    if diff < 86_400_000:
        return f"{diff // 3_600_000}h ago"
    return f"{diff // 86_400_000}d ago"


class StatsCalculator:
    """Calculate display statistics from a trading engine."""

    def __init__(self, engine: TradingEngine):
        self.engine = engine

    def get_market_summary(self) -> Dict:
        """Headline market figures.

        The 24h change is reported as 0.0 when there is not enough price
        history to compute it.
        """
        market = self.engine.market_snapshot()
        change = market.change_24h_pct

        return {
            'price': market.price,
            'change_24h_pct': change if change is not None else Decimal("0"),
            'change_available': change is not None,
            'market_cap': market.price * self.engine.settings.total_supply,
            'liquidity': market.fiat_reserve,
            'volume_24h': market.volume_24h,
        }

    def get_leaderboard(self, limit: Optional[int] = None) -> List[Dict]:
        """
        Get leaderboard of token holders.

        Args:
            limit: Max number of holders to return (default from settings)

        Returns:
            List of dicts with rank, username and holdings
        """
        price = self.engine.current_price()
        leaderboard = []
        for rank, account in enumerate(self.engine.leaderboard(limit), start=1):
            leaderboard.append({
                'rank': rank,
                'username': account.username,
                'token_balance': account.token_balance,
                'holdings_value': account.token_balance * price,
                'total_traded': account.total_traded,
            })
        return leaderboard

    def get_account_summary(self, username: str) -> Optional[Dict]:
        """Balances and portfolio value for one account, or None if unknown."""
        account = self.engine.get_account(username)
        if account is None:
            return None

        price = self.engine.current_price()
        return {
            'username': account.username,
            'fiat_balance': account.fiat_balance,
            'token_balance': account.token_balance,
            'total_traded': account.total_traded,
            'portfolio_value': account.portfolio_value(price),
            'joined_at': account.joined_at,
        }

    def get_recent_trades(self, limit: Optional[int] = None) -> List[Dict]:
        """Recent trades, most recent first, with a relative age label."""
        now = self.engine.clock()
        return [
            {
                'side': trade.side.value,
                'username': trade.username,
                'fiat_amount': trade.fiat_amount,
                'token_amount': trade.token_amount,
                'effective_price': trade.effective_price,
                'price_after': trade.price_after,
                'timestamp': trade.timestamp,
                'age': format_relative_time(trade.timestamp, now),
            }
            for trade in self.engine.recent_trades(limit)
        ]
