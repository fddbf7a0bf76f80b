"""Trading engine: validates, prices and settles trades against the pool."""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
import logging
import threading
import time
from typing import Any, Callable, Optional

from token_exchange.config import DEFAULT_SETTINGS, ExchangeSettings, timeframe_ms
from token_exchange.core.account import Account, AccountBook, normalize_username
from token_exchange.core.errors import (
    ExchangeError,
    InsufficientBalance,
    InvalidAmount,
    InvalidUsername,
    PoolIntegrityError,
)
from token_exchange.core.interfaces import Store
from token_exchange.core.ledger import Ledger
from token_exchange.core.pool import LiquidityPool, Quote
from token_exchange.core.price_series import PriceSeries
from token_exchange.core.state import (
    ACCOUNTS_KEY,
    ExchangeState,
    decode_state,
    encode_accounts,
    encode_state,
)
from token_exchange.core.trade import Amount, PriceSample, TradeRecord, TradeSide, to_decimal

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def now_ms() -> int:
    """Wall clock in epoch milliseconds."""
    return int(time.time() * 1000)


class RequestState(Enum):
    """Stage of the trade request currently being processed."""
    IDLE = "idle"
    VALIDATING = "validating"
    QUOTING = "quoting"
    APPLYING = "applying"
    RECORDED = "recorded"


@dataclass(frozen=True)
class TradeResult:
    """Outcome of a buy or sell request.

    Rejections carry the typed error instead of raising it, and a rejected
    request never changes engine state.
    """
    ok: bool
    side: TradeSide
    username: str
    amount_in: Optional[Decimal] = None
    amount_out: Decimal = ZERO
    new_price: Optional[Decimal] = None
    price_impact_pct: Optional[Decimal] = None
    trade: Optional[TradeRecord] = None
    error: Optional[ExchangeError] = None

    @classmethod
    def rejected(
        cls,
        side: TradeSide,
        username: str,
        error: ExchangeError,
        amount_in: Optional[Decimal] = None,
    ) -> "TradeResult":
        return cls(ok=False, side=side, username=username, amount_in=amount_in, error=error)


@dataclass(frozen=True)
class MarketSnapshot:
    """Market figures taken at one instant, consistent with each other."""
    price: Decimal
    change_24h_pct: Optional[Decimal]  # None without enough price history
    fiat_reserve: Decimal
    token_reserve: Decimal
    volume_24h: Decimal
    timestamp: int


class TradingEngine:
    """Owns the pool, accounts, ledger and price history of one market.

    Each buy/sell runs validate -> quote -> apply -> record under a single
    lock, so requests against the pool never interleave. Persistence is a
    second step: when a store is attached, a snapshot taken inside the
    lock is written after the lock is released.

    Thread safety:
        - All public methods are safe to call from several threads
        - Store writes happen outside the lock and may land out of order
    """

    def __init__(
        self,
        pool: Optional[LiquidityPool] = None,
        accounts: Optional[AccountBook] = None,
        ledger: Optional[Ledger] = None,
        price_series: Optional[PriceSeries] = None,
        store: Optional[Store] = None,
        settings: ExchangeSettings = DEFAULT_SETTINGS,
        clock: Callable[[], int] = now_ms,
    ):
        self.settings = settings
        self.clock = clock
        self.store = store
        if pool is None:
            pool = LiquidityPool.seeded(settings)
        if accounts is None:
            accounts = AccountBook(starting_grant=settings.starting_grant)
        if ledger is None:
            ledger = Ledger(capacity=settings.ledger_capacity)
        if price_series is None:
            price_series = PriceSeries.seeded(
                clock(), seed_price=settings.seed_price, retention_ms=settings.price_retention_ms
            )
        self.pool = pool
        self.accounts = accounts
        self.ledger = ledger
        self.price_series = price_series
        self.state = RequestState.IDLE
        self._lock = threading.Lock()

    @classmethod
    def from_store(
        cls,
        store: Store,
        settings: ExchangeSettings = DEFAULT_SETTINGS,
        clock: Callable[[], int] = now_ms,
    ) -> "TradingEngine":
        """Build an engine from stored state, using defaults for absent keys."""
        state = decode_state(store, now=clock(), settings=settings)
        logger.info(
            "Loaded exchange state: %d accounts, %d trades, %d price samples, price=%s",
            len(state.accounts), len(state.ledger), len(state.price_series),
            state.pool.current_price(),
        )
        return cls(
            pool=state.pool,
            accounts=state.accounts,
            ledger=state.ledger,
            price_series=state.price_series,
            store=store,
            settings=settings,
            clock=clock,
        )

    # ==================== Accounts ====================

    def login(self, username: str) -> Account:
        """Open or resume the account for `username`.

        Raises:
            InvalidUsername: If the username is empty after trimming
        """
        with self._lock:
            account, created = self.accounts.get_or_create(username, now=self.clock())
            snapshot = {ACCOUNTS_KEY: encode_accounts(self.accounts)} if created else None

        if created:
            logger.info(
                "New account %s granted %s fiat", account.username, self.settings.starting_grant
            )
            self._persist(snapshot)
        else:
            logger.info("Welcome back %s", account.username)
        return account

    def get_account(self, username: str) -> Optional[Account]:
        with self._lock:
            return self.accounts.get(username)

    # ==================== Trading ====================

    def buy(self, username: str, fiat_in: Amount) -> TradeResult:
        """Spend `fiat_in` fiat on tokens."""
        return self._submit(TradeSide.BUY, username, fiat_in)

    def sell(self, username: str, tokens_in: Amount) -> TradeResult:
        """Sell `tokens_in` tokens for fiat."""
        return self._submit(TradeSide.SELL, username, tokens_in)

    def _submit(self, side: TradeSide, username: str, amount: Amount) -> TradeResult:
        with self._lock:
            result = self._execute(side, username, amount)
            snapshot = self._snapshot() if result.ok and self.store is not None else None

        if result.ok:
            logger.info(
                "%s %s: in=%s out=%s price=%s impact=%.4f%%",
                result.username, side.value, result.amount_in, result.amount_out,
                result.new_price, result.price_impact_pct,
            )
            self._persist(snapshot)
        else:
            logger.info("Rejected %s for %r: %s", side.value, username, result.error)
        return result

    def _execute(self, side: TradeSide, username: str, amount: Amount) -> TradeResult:
        """Run one request through the state machine. Caller holds the lock."""
        try:
            self.state = RequestState.VALIDATING
            try:
                account, amount_in = self._validate(side, username, amount)
            except (InvalidUsername, InvalidAmount, InsufficientBalance) as e:
                return TradeResult.rejected(side, str(username), e)

            self.state = RequestState.QUOTING
            if side == TradeSide.BUY:
                quote = self.pool.quote_buy(amount_in)
            else:
                quote = self.pool.quote_sell(amount_in)
            if quote.amount_out <= 0:
                return TradeResult.rejected(
                    side, account.username,
                    InvalidAmount(f"Amount {amount_in} is too small to trade"),
                    amount_in=amount_in,
                )

            self.state = RequestState.APPLYING
            now = self.clock()
            trade = self._settle(side, account, quote, now)

            self.state = RequestState.RECORDED
            self.ledger.append(trade)
            self.price_series.append(quote.new_price, now)

            return TradeResult(
                ok=True,
                side=side,
                username=account.username,
                amount_in=amount_in,
                amount_out=quote.amount_out,
                new_price=quote.new_price,
                price_impact_pct=quote.price_impact_pct,
                trade=trade,
            )
        finally:
            self.state = RequestState.IDLE

    def _validate(self, side: TradeSide, username: str, amount: Amount) -> tuple[Account, Decimal]:
        name = normalize_username(username)
        account = self.accounts.get(name)
        if account is None:
            raise InvalidUsername(f"Unknown user {name!r}; log in first")

        amount_in = to_decimal(amount)
        if amount_in <= 0:
            raise InvalidAmount(f"Amount must be > 0, got {amount_in}")

        if side == TradeSide.BUY and amount_in > account.fiat_balance:
            raise InsufficientBalance("fiat", amount_in, account.fiat_balance)
        if side == TradeSide.SELL and amount_in > account.token_balance:
            raise InsufficientBalance("tokens", amount_in, account.token_balance)
        return account, amount_in

    def _settle(self, side: TradeSide, account: Account, quote: Quote, now: int) -> TradeRecord:
        """Move balances and reserves by the quoted amounts.

        The trade record is built and the pool updated before any account
        is touched, so a failure here leaves everything as it was.
        """
        if side == TradeSide.BUY:
            fiat_amount, token_amount = quote.amount_in, quote.amount_out
        else:
            fiat_amount, token_amount = quote.amount_out, quote.amount_in

        trade = TradeRecord(
            side=side,
            username=account.username,
            fiat_amount=fiat_amount,
            token_amount=token_amount,
            price_after=quote.new_price,
            timestamp=now,
        )

        try:
            if side == TradeSide.BUY:
                self.pool.apply_buy(quote.amount_in, quote.amount_out)
            else:
                self.pool.apply_sell(quote.amount_in, quote.amount_out)
        except PoolIntegrityError:
            logger.error(
                "Pool integrity violated by %s %s of %s; trade aborted",
                account.username, side.value, quote.amount_in,
            )
            raise

        if side == TradeSide.BUY:
            account.debit_fiat(quote.amount_in)
            account.credit_tokens(quote.amount_out)
        else:
            account.debit_tokens(quote.amount_in)
            account.credit_fiat(quote.amount_out)
        account.record_volume(fiat_amount)
        return trade

    # ==================== Market data ====================

    def current_price(self) -> Decimal:
        with self._lock:
            return self.pool.current_price()

    def quote_buy(self, fiat_in: Amount) -> Optional[Quote]:
        """Estimate a buy without committing it; None for unusable amounts."""
        return self._preview(TradeSide.BUY, fiat_in)

    def quote_sell(self, tokens_in: Amount) -> Optional[Quote]:
        """Estimate a sell without committing it; None for unusable amounts."""
        return self._preview(TradeSide.SELL, tokens_in)

    def _preview(self, side: TradeSide, amount: Amount) -> Optional[Quote]:
        try:
            value = to_decimal(amount)
        except InvalidAmount:
            return None
        if value <= 0:
            return None
        with self._lock:
            quote = self.pool.quote_buy if side == TradeSide.BUY else self.pool.quote_sell
            try:
                return quote(value)
            except ArithmeticError:
                # Amounts beyond the Decimal context range overflow the price
                return None

    def recent_trades(self, limit: Optional[int] = None) -> list[TradeRecord]:
        if limit is None:
            limit = self.settings.recent_trades_limit
        with self._lock:
            return self.ledger.recent(limit)

    def leaderboard(self, limit: Optional[int] = None) -> list[Account]:
        if limit is None:
            limit = self.settings.leaderboard_limit
        with self._lock:
            return self.accounts.leaderboard(limit)

    def chart_series(self, timeframe: str = "1h") -> list[PriceSample]:
        """Price samples for a chart lookback window ("1h", "4h", "1d", "7d")."""
        now = self.clock()
        with self._lock:
            return self.price_series.windowed(
                now - timeframe_ms(timeframe), now=now, current_price=self.pool.current_price()
            )

    def price_change_24h(self) -> Optional[Decimal]:
        now = self.clock()
        with self._lock:
            return self._change_since_lookback(now)

    def volume_24h(self) -> Decimal:
        now = self.clock()
        with self._lock:
            return self.ledger.volume_since(now - self.settings.change_lookback_ms)

    def market_snapshot(self) -> MarketSnapshot:
        """Headline market figures read under a single lock acquisition."""
        now = self.clock()
        with self._lock:
            return MarketSnapshot(
                price=self.pool.current_price(),
                change_24h_pct=self._change_since_lookback(now),
                fiat_reserve=self.pool.fiat_reserve,
                token_reserve=self.pool.token_reserve,
                volume_24h=self.ledger.volume_since(now - self.settings.change_lookback_ms),
                timestamp=now,
            )

    def _change_since_lookback(self, now: int) -> Optional[Decimal]:
        return self.price_series.change_since(
            now - self.settings.change_lookback_ms, self.pool.current_price()
        )

    # ==================== Persistence ====================

    def _snapshot(self) -> dict[str, Any]:
        return encode_state(
            ExchangeState(
                pool=self.pool,
                accounts=self.accounts,
                ledger=self.ledger,
                price_series=self.price_series,
            )
        )

    def snapshot(self) -> dict[str, Any]:
        """JSON-ready copy of all engine state, keyed like the store."""
        with self._lock:
            return self._snapshot()

    def save(self) -> None:
        """Write all engine state to the attached store."""
        self._persist(self.snapshot())

    def _persist(self, snapshot: Optional[dict[str, Any]]) -> None:
        if self.store is None or snapshot is None:
            return
        try:
            self.store.set_many(snapshot)
        except Exception:
            logger.exception("Failed to persist keys %s", sorted(snapshot))
            raise
