import os
import sqlite3
from datetime import datetime, UTC
from pathlib import Path

import pytest

from onthisday.database.schema import init_schema
from onthisday.database.ops import PhotoStore
from onthisday.models import DateSource, IndexRecord, MediaKind


@pytest.fixture
def conn():
    """Returns an in-memory SQLite connection with the schema initialized."""
    c = sqlite3.connect(":memory:")
    init_schema(c)
    try:
        yield c
    finally:
        c.close()


@pytest.fixture
def store(conn):
    """Returns a PhotoStore attached to the in-memory DB."""
    return PhotoStore(conn)


@pytest.fixture
def make_record():
    def _make(path, when=datetime(2019, 3, 14, 10, 0, 0), **overrides):
        path = Path(path)
        fields = dict(
            file_path=str(path),
            file_name=path.name,
            capture_timestamp=when,
            date_source=DateSource.EXIF_ORIGINAL,
            media_kind=MediaKind.PHOTO,
            file_size=100,
            file_mtime_ns=1_000_000_000,
            indexed_at=datetime(2024, 1, 1, tzinfo=UTC),
        )
        fields.update(overrides)
        return IndexRecord(**fields)
    return _make


def set_mtime(path: Path, when: datetime):
    ts = when.timestamp()
    os.utime(path, (ts, ts))
