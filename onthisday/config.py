"""
Configuration constants and runtime settings for the media indexer.
"""
import logging
import os
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import List, Mapping, Optional

# --- File Type Definitions ---
PHOTO_EXTS = {'.jpg', '.jpeg', '.png', '.heic', '.heif', '.tiff', '.tif'}
VIDEO_EXTS = {'.mp4', '.mov', '.avi', '.mkv', '.webm'}
SUPPORTED_EXTS = PHOTO_EXTS | VIDEO_EXTS

# Only this container is treated as a Live Photo companion
LIVE_PHOTO_EXT = '.mov'

# --- Metadata Parsing ---
ORIGINAL_DATE_TAG = 'EXIF DateTimeOriginal'
FALLBACK_DATE_TAG = 'Image DateTime'

EXIF_DATE_FORMATS = [
    "%Y:%m:%d %H:%M:%S",
    "%Y:%m:%d %H:%M:%S.%f",
    "%Y-%m-%d %H:%M:%S",
    "%Y/%m/%d %H:%M:%S",
]

# --- Hashing ---
# Files smaller than this are hashed fully. Larger ones get a sparse fingerprint.
SPARSE_HASH_THRESHOLD = 5 * 1024 * 1024  # 5 MB
HASH_CHUNK_SIZE = 64 * 1024  # 64 KB chunks for reading

# --- Indexing ---
BATCH_SIZE = 100
WARMUP_SECONDS = 2.0
DEFAULT_RESCAN_HOURS = 6.0
DEFAULT_DB_PATH = Path("onthisday.db")
DIRECTORY_DELIMITER = ";"


def parse_directory_list(value: Optional[str]) -> List[Path]:
    """Splits a delimited directory list, dropping blank entries."""
    if not value:
        return []
    return [Path(part.strip()) for part in value.split(DIRECTORY_DELIMITER) if part.strip()]


def parse_interval_hours(value: Optional[str]) -> float:
    if value is None or not str(value).strip():
        return DEFAULT_RESCAN_HOURS
    try:
        hours = float(value)
    except ValueError:
        logging.warning(f"Invalid RESCAN_INTERVAL_HOURS {value!r}; using {DEFAULT_RESCAN_HOURS}")
        return DEFAULT_RESCAN_HOURS
    if hours <= 0:
        logging.warning(f"RESCAN_INTERVAL_HOURS must be positive (got {hours}); using {DEFAULT_RESCAN_HOURS}")
        return DEFAULT_RESCAN_HOURS
    return hours


def _parse_flag(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() not in ('0', 'false', 'no', 'off')


def _parse_workers(value: Optional[str]) -> int:
    default = os.cpu_count() or 1
    if not value:
        return default
    try:
        return max(1, int(value))
    except ValueError:
        logging.warning(f"Invalid INDEX_WORKERS {value!r}; using {default}")
        return default


@dataclass
class Settings:
    photo_directories: List[Path] = field(default_factory=list)
    rescan_interval: timedelta = timedelta(hours=DEFAULT_RESCAN_HOURS)
    database_path: Path = DEFAULT_DB_PATH
    max_workers: int = field(default_factory=lambda: os.cpu_count() or 1)
    hash_files: bool = True
    batch_size: int = BATCH_SIZE
    warmup_seconds: float = WARMUP_SECONDS

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Builds settings from PHOTO_DIRECTORIES, RESCAN_INTERVAL_HOURS,
        DATABASE_PATH, INDEX_WORKERS and INDEX_HASH_FILES.
        """
        env = os.environ if environ is None else environ
        return cls(
            photo_directories=parse_directory_list(env.get("PHOTO_DIRECTORIES")),
            rescan_interval=timedelta(hours=parse_interval_hours(env.get("RESCAN_INTERVAL_HOURS"))),
            database_path=Path(env.get("DATABASE_PATH") or DEFAULT_DB_PATH),
            max_workers=_parse_workers(env.get("INDEX_WORKERS")),
            hash_files=_parse_flag(env.get("INDEX_HASH_FILES"), True),
        )
