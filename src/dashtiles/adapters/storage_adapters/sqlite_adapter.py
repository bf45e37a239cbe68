import os
import sqlite3
from typing import Optional

from dashtiles.ports.storage_port import KeyValueStorePort
from dashtiles.utils.custom_exception import StorageError
from dashtiles.utils.logging_handler import setup_logger


class SqliteKeyValueAdapter(KeyValueStorePort):
    def __init__(self, db_path: str = "dashtiles.db"):
        self.logger = setup_logger(__name__)
        self.db_path = db_path
        try:
            if db_path != ":memory:":
                os.makedirs(os.path.dirname(os.path.abspath(db_path)), exist_ok=True)
            # all access happens on the event loop thread, which need not be the creating one
            self.conn = sqlite3.connect(db_path, check_same_thread=False)
            self._initialize_tables()
        except (sqlite3.Error, OSError) as e:
            raise StorageError(f"Cannot open key-value store at {db_path}: {e}") from e

    def _initialize_tables(self):
        """Private method to ensure schema exists."""
        self.conn.execute("""
        CREATE TABLE IF NOT EXISTS kv(
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_on TEXT
        );""")
        self.conn.commit()

    def get(self, key: str) -> Optional[str]:
        try:
            row = self.conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as e:
            self.logger.exception(f"Database error in get: {e}")
            raise StorageError(f"Cannot read slot '{key}': {e}") from e
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        try:
            self.conn.execute("""
                INSERT INTO kv (key, value, updated_on) VALUES (?, ?, DATETIME('now'))
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_on = excluded.updated_on
            """, (key, value))
            self.conn.commit()
        except sqlite3.Error as e:
            self.logger.exception(f"Database error in set: {e}")
            raise StorageError(f"Cannot write slot '{key}': {e}") from e

    def close(self) -> None:
        self.conn.close()
