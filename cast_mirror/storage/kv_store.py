"""Defines the KVStore protocol for storage backends."""

from typing import List, Optional, Protocol


class KVStore(Protocol):
    """
    A protocol that defines the interface for all key-value store backends.

    Implementations offer per-key atomic ``get``/``put`` and a key listing. They
    offer no cross-key transactions and no compare-and-swap. Backend-specific
    errors must be raised as :class:`cast_mirror.exceptions.StoreFailure`.
    """

    def get(self, key: str) -> Optional[str]:
        """
        Read the raw value stored under a key.

        Args:
            key: Key to read.

        Returns:
            The stored string, or None if the key does not exist.
        """
        ...

    def put(self, key: str, value: str) -> None:
        """
        Store a raw value under a key, replacing any previous value.

        Args:
            key: Key to write.
            value: String value (JSON-encoded by the callers).
        """
        ...

    def list_keys(self) -> List[str]:
        """
        List every key currently present in the store.

        Returns:
            Keys in a stable (sorted) order.
        """
        ...
