"""
Database connection management.
"""
import sqlite3
import logging
from pathlib import Path
from typing import Optional

from ..exceptions import DatabaseError
from .schema import init_schema


class DBManager:
    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._conn: Optional[sqlite3.Connection] = None

    def connect(self) -> sqlite3.Connection:
        """
        Connects to the SQLite database and configures performance pragmas.
        The connection belongs to the calling thread (the single writer).
        """
        if self._conn:
            return self._conn

        logging.debug(f"Connecting to database: {self.db_path}")
        try:
            if str(self.db_path) != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self.db_path)

            # Safe for single-writer, multi-reader
            self._conn.execute("PRAGMA journal_mode=WAL;")
            self._conn.execute("PRAGMA synchronous=NORMAL;")
            self._conn.execute("PRAGMA temp_store=MEMORY;")

            init_schema(self._conn)
        except (sqlite3.Error, OSError) as e:
            self.close()
            raise DatabaseError(f"Cannot open index database {self.db_path}: {e}") from e

        return self._conn

    def close(self):
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self):
        return self.connect()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
