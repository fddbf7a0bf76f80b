"""Pytest configuration and shared fixtures for exchange tests.

This module provides:
- Shared fixtures for common engine setups
- Pytest markers for test categorization
- Custom assertions for pool and balance invariants
"""

from decimal import Decimal

import pytest

from exchange_app.database import MemoryStore
from token_exchange.core.engine import TradingEngine
from token_exchange.core.pool import LiquidityPool
from tests.fixtures.exchange_fixtures import FakeClock, create_engine, relative_error


# ============================================================================
# Pytest Hooks
# ============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "invariant: Pool and balance invariant tests"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests spanning engine and storage"
    )
    config.addinivalue_line(
        "markers", "slow: Tests taking more than 5 seconds to run"
    )


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on location and name."""
    for item in items:
        if "invariant" in item.nodeid or "atomic" in item.name:
            item.add_marker(pytest.mark.invariant)

        if any(keyword in item.nodeid for keyword in ["persistence", "database", "session"]):
            item.add_marker(pytest.mark.integration)


# ============================================================================
# Engine Fixtures
# ============================================================================


@pytest.fixture
def clock() -> FakeClock:
    """Deterministic clock starting at 2024-01-01T00:00:00Z."""
    return FakeClock()


@pytest.fixture
def seed_pool() -> LiquidityPool:
    """Pool with launch reserves (10000 tokens, 1000 fiat)."""
    return LiquidityPool.seeded()


@pytest.fixture
def engine(clock) -> TradingEngine:
    """Seed engine with two logged-in traders, alice and bob."""
    return create_engine(["alice", "bob"], clock=clock)


@pytest.fixture
def store() -> MemoryStore:
    """Empty in-memory store."""
    return MemoryStore()


@pytest.fixture
def trade_sizes() -> list[Decimal]:
    """Increasing trade sizes for slippage tests."""
    return [
        Decimal("0.001"),
        Decimal("1"),
        Decimal("10"),
        Decimal("100"),
        Decimal("1000"),
        Decimal("10000"),
    ]


# ============================================================================
# Custom Assertions
# ============================================================================


class InvariantAssertions:
    """Assertion helpers for exchange invariants."""

    @staticmethod
    def assert_k_preserved(
        engine: TradingEngine,
        k: Decimal,
        tolerance: Decimal = Decimal("1e-9"),
    ) -> None:
        """Assert reserves multiply back to `k` within relative tolerance."""
        product = engine.pool.token_reserve * engine.pool.fiat_reserve
        error = relative_error(product, k)
        assert error <= tolerance, (
            f"k drifted: expected {k}, got {product}, relative error {error}"
        )

    @staticmethod
    def assert_balances_non_negative(engine: TradingEngine) -> None:
        """Assert no account holds a negative balance."""
        for account in engine.accounts:
            assert account.fiat_balance >= 0, f"{account.username} fiat {account.fiat_balance}"
            assert account.token_balance >= 0, f"{account.username} tokens {account.token_balance}"


@pytest.fixture
def invariant_assert() -> InvariantAssertions:
    """Fixture providing invariant assertions."""
    return InvariantAssertions()
