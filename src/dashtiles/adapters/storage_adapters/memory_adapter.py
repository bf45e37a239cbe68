from typing import Dict, Optional

from dashtiles.ports.storage_port import KeyValueStorePort


class InMemoryKeyValueAdapter(KeyValueStorePort):
    """Process-local slots; nothing survives a restart."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.slots: Dict[str, str] = dict(initial or {})
        self.writes = 0

    def get(self, key: str) -> Optional[str]:
        return self.slots.get(key)

    def set(self, key: str, value: str) -> None:
        self.slots[key] = value
        self.writes += 1
