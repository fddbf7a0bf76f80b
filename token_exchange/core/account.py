"""Per-user balances and the account registry."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Iterator, Optional

from token_exchange.core.errors import InsufficientBalance, InvalidUsername
from token_exchange.core.trade import decimal_field

ZERO = Decimal("0")


@dataclass
class Account:
    """Balances of one trader.

    Balances never go negative: the debit methods refuse an amount larger
    than the balance before touching state. Only the trading engine calls
    the mutators.
    """
    username: str
    fiat_balance: Decimal
    token_balance: Decimal = ZERO
    joined_at: int = 0
    total_traded: Decimal = ZERO  # Cumulative fiat notional

    def __post_init__(self) -> None:
        if self.fiat_balance < 0:
            raise ValueError(f"fiat_balance must be >= 0, got {self.fiat_balance}")
        if self.token_balance < 0:
            raise ValueError(f"token_balance must be >= 0, got {self.token_balance}")

    def debit_fiat(self, amount: Decimal) -> None:
        if amount > self.fiat_balance:
            raise InsufficientBalance("fiat", amount, self.fiat_balance)
        self.fiat_balance -= amount

    def credit_fiat(self, amount: Decimal) -> None:
        self.fiat_balance += amount

    def debit_tokens(self, amount: Decimal) -> None:
        if amount > self.token_balance:
            raise InsufficientBalance("tokens", amount, self.token_balance)
        self.token_balance -= amount

    def credit_tokens(self, amount: Decimal) -> None:
        self.token_balance += amount

    def record_volume(self, fiat_notional: Decimal) -> None:
        self.total_traded += fiat_notional

    def portfolio_value(self, price: Decimal) -> Decimal:
        """Fiat balance plus token holdings marked at `price`."""
        return self.fiat_balance + self.token_balance * price

    def to_dict(self) -> dict[str, Any]:
        return {
            "username": self.username,
            "fiatBalance": str(self.fiat_balance),
            "tokenBalance": str(self.token_balance),
            "joinedAt": self.joined_at,
            "totalTraded": str(self.total_traded),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Account":
        return cls(
            username=data["username"],
            fiat_balance=decimal_field(data, "fiatBalance"),
            token_balance=decimal_field(data, "tokenBalance"),
            joined_at=int(data.get("joinedAt", 0)),
            total_traded=decimal_field(data, "totalTraded") if "totalTraded" in data else ZERO,
        )


def normalize_username(username: str) -> str:
    """Trim a username; identity stays case-sensitive."""
    if not isinstance(username, str):
        raise InvalidUsername(f"Username must be a string, got {type(username).__name__}")
    name = username.strip()
    if not name:
        raise InvalidUsername("Username cannot be empty")
    return name


@dataclass
class AccountBook:
    """All accounts keyed by username, in creation order."""
    starting_grant: Decimal = Decimal("100")
    _accounts: dict[str, Account] = field(default_factory=dict, init=False, repr=False)

    def get_or_create(self, username: str, now: int) -> tuple[Account, bool]:
        """Return the account for `username`, opening it if needed.

        New accounts receive the starting fiat grant and no tokens.
        Existing accounts are returned untouched.

        Returns:
            Tuple of (account, created)

        Raises:
            InvalidUsername: If the username is empty after trimming
        """
        name = normalize_username(username)
        account = self._accounts.get(name)
        if account is not None:
            return account, False

        account = Account(
            username=name,
            fiat_balance=self.starting_grant,
            joined_at=now,
        )
        self._accounts[name] = account
        return account, True

    def get(self, username: str) -> Optional[Account]:
        if not isinstance(username, str):
            return None
        return self._accounts.get(username.strip())

    def add(self, account: Account) -> None:
        """Register a restored account."""
        self._accounts[account.username] = account

    def leaderboard(self, limit: int = 10) -> list[Account]:
        """Top token holders, largest first; ties keep creation order."""
        ranked = sorted(self._accounts.values(), key=lambda a: a.token_balance, reverse=True)
        return ranked[:limit]

    def __len__(self) -> int:
        return len(self._accounts)

    def __iter__(self) -> Iterator[Account]:
        return iter(self._accounts.values())

    def __contains__(self, username: object) -> bool:
        return username in self._accounts
