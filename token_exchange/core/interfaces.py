"""Storage interface the exchange persists through."""

from abc import ABC, abstractmethod
from typing import Any, Optional


class Store(ABC):
    """Abstract string-keyed store of JSON-serializable values.

    The exchange reads its state from a store at startup and writes it
    back after each mutation. Durability is whatever the backend offers;
    writes are not transactional with the in-memory state.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the value stored under `key`, or None if absent."""
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store a JSON-serializable value under `key`, replacing any old one."""
        pass

    def set_many(self, items: dict[str, Any]) -> None:
        """Store several keys; backends may override to batch the writes."""
        for key, value in items.items():
            self.set(key, value)
