"""Test fixtures for exchange correctness testing."""

from tests.fixtures.exchange_fixtures import (
    BASE_TIME_MS,
    EngineStateSnapshot,
    FakeClock,
    create_engine,
    relative_error,
    snapshot_engine_state,
)

__all__ = [
    "BASE_TIME_MS",
    "EngineStateSnapshot",
    "FakeClock",
    "create_engine",
    "relative_error",
    "snapshot_engine_state",
]
