import logging
from pathlib import Path
from datetime import datetime
from typing import Optional, Tuple, Mapping, Any

import exifread

from .. import config
from ..exceptions import MetadataExtractionError
from ..models import DateSource, MediaKind


def media_kind(path: Path) -> MediaKind:
    """Classifies by extension only (case-insensitive)."""
    if path.suffix.lower() in config.VIDEO_EXTS:
        return MediaKind.VIDEO
    return MediaKind.PHOTO


def parse_exif_datetime(value: Any) -> Optional[datetime]:
    """Parses an embedded date string against the accepted formats."""
    if value is None:
        return None
    dt_str = str(value).strip().rstrip('\x00')
    if not dt_str:
        return None
    for fmt in config.EXIF_DATE_FORMATS:
        try:
            return datetime.strptime(dt_str, fmt)
        except ValueError:
            continue
    return None


class MetadataExtractor:
    """
    Best-effort capture date lookup.

    Strategies:
      - Photos: 'exifread' DateTimeOriginal -> IFD0 DateTime -> file mtime.
      - Video: file mtime (containers are not inspected).
    """

    def extract(self, path: Path, mtime: Optional[float] = None) -> Tuple[datetime, DateSource]:
        """
        Returns (capture_datetime, source). Never raises for metadata problems;
        only the mtime fallback touches the filesystem, and only when `mtime`
        is not supplied.
        """
        if media_kind(path) == MediaKind.PHOTO:
            try:
                tags = self._read_tags(path)
            except MetadataExtractionError as e:
                logging.warning(f"Failed to read EXIF from {path}: {e}")
                tags = {}

            dt = parse_exif_datetime(tags.get(config.ORIGINAL_DATE_TAG))
            if dt:
                logging.debug(f"EXIF DateTimeOriginal for {path}: {dt}")
                return dt, DateSource.EXIF_ORIGINAL

            dt = parse_exif_datetime(tags.get(config.FALLBACK_DATE_TAG))
            if dt:
                logging.debug(f"EXIF DateTime for {path}: {dt}")
                return dt, DateSource.EXIF_FALLBACK

        dt = self._fallback_file_datetime(path, mtime)
        logging.debug(f"Using file modified time for {path}: {dt}")
        return dt, DateSource.FILESYSTEM

    def _read_tags(self, path: Path) -> Mapping[str, Any]:
        try:
            with path.open('rb') as f:
                # details=False skips MakerNotes and thumbnails
                tags = exifread.process_file(f, details=False)
        except Exception as e:
            raise MetadataExtractionError(str(e)) from e

        if not tags:
            logging.debug(f"No EXIF tags found for {path}")
            return {}
        return tags

    def _fallback_file_datetime(self, path: Path, mtime: Optional[float] = None) -> datetime:
        ts = mtime if mtime is not None else path.stat().st_mtime
        return datetime.fromtimestamp(ts)
