import sqlite3
from collections import defaultdict
from datetime import datetime
from typing import Optional, List, Dict, Iterable

from ..models import DateSource, IndexRecord, MediaKind

# Stay well under SQLite's bound-parameter limit
_DELETE_CHUNK = 500

_COLUMNS = """
    id, file_path, file_name, file_hash, capture_timestamp, date_source,
    media_kind, file_size, file_mtime_ns, indexed_at, companion_video_path
"""


def _row_to_record(row) -> IndexRecord:
    (rid, file_path, file_name, file_hash, capture_str, source,
     kind, size_bytes, mtime_ns, indexed_str, companion) = row
    return IndexRecord(
        id=rid,
        file_path=file_path,
        file_name=file_name,
        file_hash=file_hash,
        capture_timestamp=datetime.fromisoformat(capture_str),
        date_source=DateSource(source),
        media_kind=MediaKind(kind),
        file_size=size_bytes,
        file_mtime_ns=mtime_ns,
        indexed_at=datetime.fromisoformat(indexed_str),
        companion_video_path=companion,
    )


class PhotoStore:
    """
    Persistent index of IndexRecords. Writes are left uncommitted until
    commit() so callers control batching.
    """
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def load_all(self) -> Dict[str, IndexRecord]:
        """Returns every record keyed by file_path."""
        cur = self.conn.cursor()
        cur.execute(f"SELECT {_COLUMNS} FROM photos")
        return {rec.file_path: rec for rec in map(_row_to_record, cur.fetchall())}

    def upsert(self, rec: IndexRecord) -> int:
        """
        Inserts a new record or updates an existing one in place.
        Sets rec.id on insert and returns it.
        """
        cap = rec.capture_timestamp
        values = (
            rec.file_path, rec.file_name, rec.file_hash, cap.isoformat(),
            cap.month, cap.day, cap.year,
            DateSource(rec.date_source).value, MediaKind(rec.media_kind).value,
            rec.file_size, rec.file_mtime_ns, rec.indexed_at.isoformat(),
            rec.companion_video_path,
        )
        cur = self.conn.cursor()

        if rec.id is None:
            cur.execute("""
                INSERT INTO photos (
                    file_path, file_name, file_hash, capture_timestamp,
                    month, day, year, date_source, media_kind,
                    file_size, file_mtime_ns, indexed_at, companion_video_path
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, values)

            if cur.lastrowid is None:
                raise RuntimeError("Database INSERT failed to return a row ID.")
            rec.id = cur.lastrowid
            return rec.id

        cur.execute("""
            UPDATE photos
            SET file_path = ?, file_name = ?, file_hash = ?, capture_timestamp = ?,
                month = ?, day = ?, year = ?, date_source = ?, media_kind = ?,
                file_size = ?, file_mtime_ns = ?, indexed_at = ?, companion_video_path = ?
            WHERE id = ?
        """, values + (rec.id,))
        return rec.id

    def delete_paths(self, paths: Iterable[str]) -> int:
        """Deletes every record whose file_path is in `paths`."""
        path_list = list(paths)
        deleted = 0
        cur = self.conn.cursor()
        for start in range(0, len(path_list), _DELETE_CHUNK):
            chunk = path_list[start:start + _DELETE_CHUNK]
            placeholders = ",".join("?" for _ in chunk)
            cur.execute(f"DELETE FROM photos WHERE file_path IN ({placeholders})", chunk)
            deleted += cur.rowcount
        return deleted

    def count(self) -> int:
        cur = self.conn.cursor()
        cur.execute("SELECT COUNT(*) FROM photos")
        return cur.fetchone()[0]

    def commit(self):
        self.conn.commit()

    # --- Lookups ---

    def photos_for_day(self, month: int, day: int) -> Dict[int, List[IndexRecord]]:
        """Returns {year: [records]} with the newest year first, earliest capture first."""
        cur = self.conn.cursor()
        cur.execute(f"""
            SELECT {_COLUMNS} FROM photos
            WHERE month = ? AND day = ?
            ORDER BY year DESC, capture_timestamp ASC
        """, (month, day))

        by_year: Dict[int, List[IndexRecord]] = defaultdict(list)
        for row in cur.fetchall():
            rec = _row_to_record(row)
            by_year[rec.year].append(rec)
        return dict(by_year)

    def get_by_id(self, record_id: int) -> Optional[IndexRecord]:
        cur = self.conn.cursor()
        cur.execute(f"SELECT {_COLUMNS} FROM photos WHERE id = ?", (record_id,))
        row = cur.fetchone()
        return _row_to_record(row) if row else None

    def get_by_hash(self, file_hash: str) -> Optional[IndexRecord]:
        cur = self.conn.cursor()
        cur.execute(f"SELECT {_COLUMNS} FROM photos WHERE file_hash = ? ORDER BY id LIMIT 1", (file_hash,))
        row = cur.fetchone()
        return _row_to_record(row) if row else None
