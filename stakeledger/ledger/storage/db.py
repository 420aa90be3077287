# MIT License
# Copyright (c) 2025 Hashborn

import sqlite3
import threading
from typing import Optional, Dict

class StorageDB:
    def __init__(self, db_path: str):
        self.conn = sqlite3.connect(db_path, check_same_thread=False, isolation_level=None)
        self.cursor = self.conn.cursor()
        self._lock = threading.Lock()
        self._init_db()

    def _init_db(self):
        with self._lock:
            # State table: Key-Value store for every storage partition
            self.cursor.execute('''
                CREATE TABLE IF NOT EXISTS state (
                    key TEXT PRIMARY KEY,
                    value TEXT
                )
            ''')

    # --- State Methods ---
    def get_state(self, key: str) -> Optional[str]:
        with self._lock:
            self.cursor.execute('SELECT value FROM state WHERE key = ?', (key,))
            row = self.cursor.fetchone()
            return row[0] if row else None

    def set_state(self, key: str, value: str):
        with self._lock:
            self.cursor.execute('INSERT OR REPLACE INTO state (key, value) VALUES (?, ?)', (key, value))

    def write_batch(self, items: Dict[str, str]):
        """Writes all items in one transaction. Either every key lands or none does."""
        if not items:
            return
        with self._lock:
            self.cursor.execute('BEGIN IMMEDIATE')
            try:
                self.cursor.executemany(
                    'INSERT OR REPLACE INTO state (key, value) VALUES (?, ?)',
                    list(items.items())
                )
            except sqlite3.Error:
                self.cursor.execute('ROLLBACK')
                raise
            self.cursor.execute('COMMIT')

    def get_state_by_prefix(self, prefix: str) -> Dict[str, str]:
        with self._lock:
            self.cursor.execute('SELECT key, value FROM state WHERE substr(key, 1, ?) = ?', (len(prefix), prefix))
            return {row[0]: row[1] for row in self.cursor.fetchall()}

    def close(self):
        with self._lock:
            self.conn.close()
