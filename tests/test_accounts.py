"""Accounts: creation, grants, balance guards and leaderboard ordering."""

from decimal import Decimal

import pytest

from token_exchange.core.account import Account, AccountBook, normalize_username
from token_exchange.core.errors import InsufficientBalance, InvalidUsername

T0 = 1_704_067_200_000


class TestGetOrCreate:

    def test_new_account_gets_grant(self):
        book = AccountBook()
        account, created = book.get_or_create("alice", now=T0)

        assert created
        assert account.fiat_balance == Decimal("100")
        assert account.token_balance == Decimal("0")
        assert account.total_traded == Decimal("0")
        assert account.joined_at == T0

    def test_second_login_does_not_regrant(self):
        book = AccountBook()
        account, _ = book.get_or_create("alice", now=T0)
        account.debit_fiat(Decimal("40"))

        again, created = book.get_or_create("alice", now=T0 + 1)

        assert not created
        assert again is account
        assert again.fiat_balance == Decimal("60")
        assert again.joined_at == T0

    def test_username_is_trimmed(self):
        book = AccountBook()
        account, _ = book.get_or_create("  alice\t", now=T0)
        assert account.username == "alice"
        assert book.get_or_create("alice", now=T0)[1] is False

    def test_username_is_case_sensitive(self):
        book = AccountBook()
        book.get_or_create("alice", now=T0)
        _, created = book.get_or_create("Alice", now=T0)
        assert created
        assert len(book) == 2

    @pytest.mark.parametrize("username", ["", "   ", "\n"])
    def test_empty_username_rejected(self, username):
        book = AccountBook()
        with pytest.raises(InvalidUsername):
            book.get_or_create(username, now=T0)
        assert len(book) == 0

    def test_non_string_username_rejected(self):
        with pytest.raises(InvalidUsername):
            normalize_username(None)

    def test_custom_grant(self):
        book = AccountBook(starting_grant=Decimal("250"))
        account, _ = book.get_or_create("alice", now=T0)
        assert account.fiat_balance == Decimal("250")


class TestBalanceGuards:

    def test_debit_more_than_balance_leaves_account_unchanged(self):
        account = Account(username="alice", fiat_balance=Decimal("10"))

        with pytest.raises(InsufficientBalance) as exc_info:
            account.debit_fiat(Decimal("10.01"))

        assert exc_info.value.asset == "fiat"
        assert exc_info.value.available == Decimal("10")
        assert account.fiat_balance == Decimal("10")

    def test_debit_entire_balance(self):
        account = Account(username="alice", fiat_balance=Decimal("0"), token_balance=Decimal("5"))
        account.debit_tokens(Decimal("5"))
        assert account.token_balance == Decimal("0")

    def test_negative_balance_rejected_at_construction(self):
        with pytest.raises(ValueError):
            Account(username="alice", fiat_balance=Decimal("-1"))

    def test_portfolio_value(self):
        account = Account(username="alice", fiat_balance=Decimal("50"), token_balance=Decimal("200"))
        assert account.portfolio_value(Decimal("0.25")) == Decimal("100")

    def test_dict_round_trip(self):
        account = Account(
            username="alice",
            fiat_balance=Decimal("12.5"),
            token_balance=Decimal("3.25"),
            joined_at=T0,
            total_traded=Decimal("87.5"),
        )
        assert Account.from_dict(account.to_dict()) == account


class TestLeaderboard:

    def test_sorted_by_tokens_descending(self):
        book = AccountBook()
        for name, tokens in [("a", "5"), ("b", "50"), ("c", "20")]:
            account, _ = book.get_or_create(name, now=T0)
            account.credit_tokens(Decimal(tokens))

        assert [a.username for a in book.leaderboard()] == ["b", "c", "a"]

    def test_ties_keep_creation_order(self):
        book = AccountBook()
        for name in ["zed", "amy", "kim"]:
            book.get_or_create(name, now=T0)
        book.get("kim").credit_tokens(Decimal("1"))

        assert [a.username for a in book.leaderboard()] == ["kim", "zed", "amy"]

    def test_limit(self):
        book = AccountBook()
        for i in range(15):
            book.get_or_create(f"user{i}", now=T0)
        assert len(book.leaderboard()) == 10
        assert len(book.leaderboard(3)) == 3
