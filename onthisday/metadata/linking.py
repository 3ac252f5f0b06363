import logging
import os
import threading
from pathlib import Path
from typing import Dict, Optional

from .. import config
from ..models import MediaKind
from .extract import media_kind


class CompanionResolver:
    """
    Pairs Live Photo videos with their still image (same directory, same stem).

    Directory listings are cached for the lifetime of the instance; build a new
    resolver for every scan so added or removed files are seen.
    """
    def __init__(self):
        # directory -> {lowercased file name: actual file name}
        self._listings: Dict[Path, Dict[str, str]] = {}
        self._lock = threading.Lock()

    def has_photo_sibling(self, video_path: Path) -> bool:
        listing = self._listing(video_path.parent)
        stem = video_path.stem.lower()
        return any(f"{stem}{ext}" in listing for ext in config.PHOTO_EXTS)

    def find_video_companion(self, photo_path: Path) -> Optional[Path]:
        listing = self._listing(photo_path.parent)
        name = listing.get(f"{photo_path.stem.lower()}{config.LIVE_PHOTO_EXT}")
        if name is None:
            return None
        return photo_path.parent / name

    def is_live_companion(self, path: Path) -> bool:
        """True for a `.mov` that sits next to a photo with the same stem."""
        if media_kind(path) != MediaKind.VIDEO:
            return False
        if path.suffix.lower() != config.LIVE_PHOTO_EXT:
            return False
        return self.has_photo_sibling(path)

    def _listing(self, directory: Path) -> Dict[str, str]:
        with self._lock:
            cached = self._listings.get(directory)
            if cached is not None:
                return cached

            listing: Dict[str, str] = {}
            try:
                with os.scandir(directory) as it:
                    for entry in it:
                        if entry.is_file(follow_symlinks=False):
                            listing[entry.name.lower()] = entry.name
            except OSError as e:
                logging.debug(f"Cannot list {directory}: {e}")

            self._listings[directory] = listing
            return listing
