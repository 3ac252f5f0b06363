"""
Database schema definitions.
"""
import sqlite3
import logging

CURRENT_SCHEMA_VERSION = 1


def init_schema(conn: sqlite3.Connection):
    """
    Applies the core schema to the database.
    Idempotent: safe to run on every startup.
    """
    with conn:
        # 1. Version Tracking (For future migrations)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY
            );
        """)

        cur = conn.cursor()
        cur.execute("SELECT version FROM schema_version")
        if not cur.fetchone():
            conn.execute("INSERT INTO schema_version (version) VALUES (?)", (CURRENT_SCHEMA_VERSION,))

        # 2. Media Index
        # month/day/year are always written from capture_timestamp
        conn.execute("""
        CREATE TABLE IF NOT EXISTS photos (
            id                   INTEGER PRIMARY KEY AUTOINCREMENT,
            file_path            TEXT NOT NULL UNIQUE,
            file_name            TEXT NOT NULL,
            file_hash            TEXT,
            capture_timestamp    TEXT NOT NULL,
            month                INTEGER NOT NULL,
            day                  INTEGER NOT NULL,
            year                 INTEGER NOT NULL,
            date_source          TEXT NOT NULL,
            media_kind           TEXT NOT NULL,
            file_size            INTEGER NOT NULL,
            file_mtime_ns        INTEGER NOT NULL,
            indexed_at           TEXT NOT NULL,
            companion_video_path TEXT
        );
        """)

        # 3. Indices for Performance
        conn.execute("CREATE INDEX IF NOT EXISTS idx_photos_month_day ON photos(month, day);")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_photos_file_hash ON photos(file_hash);")

    logging.debug("Database schema initialized.")
