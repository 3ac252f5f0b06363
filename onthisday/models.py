from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional


class DateSource(str, Enum):
    # Ordered by trust
    EXIF_ORIGINAL = 'exif-original'
    EXIF_FALLBACK = 'exif-fallback'
    FILESYSTEM = 'filesystem'


class MediaKind(str, Enum):
    PHOTO = 'photo'
    VIDEO = 'video'


@dataclass
class IndexRecord:
    """
    One indexed media file, keyed by its absolute path.
    """
    file_path: str
    file_name: str
    capture_timestamp: datetime
    date_source: DateSource
    media_kind: MediaKind

    # Change-detection fingerprint
    file_size: int
    file_mtime_ns: int

    indexed_at: datetime
    file_hash: Optional[str] = None
    companion_video_path: Optional[str] = None
    id: Optional[int] = None  # assigned by the store

    @property
    def year(self) -> int:
        return self.capture_timestamp.year

    @property
    def month(self) -> int:
        return self.capture_timestamp.month

    @property
    def day(self) -> int:
        return self.capture_timestamp.day


class ResultStatus(str, Enum):
    EXTRACTED = 'extracted'
    UNCHANGED = 'unchanged'
    FAILED = 'failed'


@dataclass
class ExtractionResult:
    """Outcome of processing one candidate file. Never carries an exception."""
    path: Path
    status: ResultStatus
    record: Optional[IndexRecord] = None
    error: Optional[str] = None

    @classmethod
    def extracted(cls, path: Path, record: IndexRecord) -> "ExtractionResult":
        return cls(path, ResultStatus.EXTRACTED, record=record)

    @classmethod
    def unchanged(cls, path: Path) -> "ExtractionResult":
        return cls(path, ResultStatus.UNCHANGED)

    @classmethod
    def failed(cls, path: Path, error: str) -> "ExtractionResult":
        return cls(path, ResultStatus.FAILED, error=error)


@dataclass
class ScanSummary:
    inserted: int = 0
    updated: int = 0
    unchanged: int = 0
    failed: int = 0
    pruned: int = 0
    total: int = 0
    duration_sec: float = 0.0
    cancelled: bool = False

    def describe(self) -> str:
        return (
            f"{self.inserted} new, {self.updated} updated, {self.unchanged} unchanged, "
            f"{self.failed} failed, {self.pruned} pruned. Total: {self.total}"
        )
