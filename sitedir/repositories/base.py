from abc import ABC, abstractmethod


class AbstractKeyValueStore(ABC):
    """A flat string store. Each call is atomic for its own key only."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored value, or None if the key is absent."""

    @abstractmethod
    def put(self, key: str, value: str) -> None:
        """Write a value, replacing any previous one."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove a key. Deleting an absent key is a no-op."""

    @abstractmethod
    def list_keys(self, prefix: str = "") -> list[str]:
        """Return all keys starting with prefix, sorted. Used by maintenance only."""
