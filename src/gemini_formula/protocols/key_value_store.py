"""Durable key-value store protocol.

Holds the serialized state snapshot. No transactional guarantees are
assumed: concurrent writers are last-writer-wins.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class KeyValueStore(Protocol):
    """Protocol for the durable string store behind the state snapshot."""

    def get(self, key: str) -> str | None:
        """Read a value.

        Args:
            key: The storage key

        Returns:
            The stored string, or None if absent
        """
        ...

    def set(self, key: str, value: str) -> None:
        """Write a value, replacing any previous one.

        Args:
            key: The storage key
            value: The serialized value
        """
        ...

    def delete(self, key: str) -> bool:
        """Delete a value.

        Args:
            key: The storage key

        Returns:
            True if a value was deleted, False otherwise
        """
        ...

    def health_check(self) -> bool:
        """Check if the store is reachable.

        Returns:
            True if healthy, False otherwise
        """
        ...
