from abc import ABC, abstractmethod
from typing import Optional


class KeyValueStorePort(ABC):
    """A key-value slot store. Each key holds one serialized blob."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the blob stored under key, or None when the slot is empty."""
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Overwrite the slot. Raises StorageError when the backend fails."""
        pass

    def close(self) -> None:
        pass
