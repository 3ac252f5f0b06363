import os
import logging
import queue
import threading
from dataclasses import replace
from datetime import datetime, UTC
from pathlib import Path
from typing import Iterator, Iterable, List, Mapping, Optional
from concurrent.futures import ThreadPoolExecutor

from .. import config
from ..models import ExtractionResult, IndexRecord, MediaKind
from ..metadata.extract import MetadataExtractor, media_kind
from ..metadata.linking import CompanionResolver
from .hasher import FileHasher

# Put on the queue once every producer has finished
DONE = object()


def needs_reindex(existing: Optional[IndexRecord], file_size: int, file_mtime_ns: int) -> bool:
    """False only when the stored fingerprint matches the file on disk."""
    if existing is None:
        return True
    return existing.file_size != file_size or existing.file_mtime_ns != file_mtime_ns


def iter_media_files(root: Path, cancel_event: Optional[threading.Event] = None) -> Iterator[Path]:
    """Depth-first walker using os.scandir; yields supported files in stable order."""
    stack = [root]
    while stack:
        if cancel_event is not None and cancel_event.is_set():
            return
        current = stack.pop()

        try:
            with os.scandir(current) as it:
                entries = list(it)
        except OSError as e:
            logging.warning(f"Cannot read directory {current}: {e}")
            continue

        entries.sort(key=lambda e: e.name.lower())

        dirs = []
        files = []
        for e in entries:
            try:
                if e.is_dir(follow_symlinks=False):
                    dirs.append(Path(e.path))
                elif e.is_file(follow_symlinks=False):
                    files.append(Path(e.path))
            except OSError as err:
                logging.warning(f"Cannot stat {e.path}: {err}")

        # Push dirs to stack (reversed so we process A before Z)
        for d in reversed(dirs):
            stack.append(d)

        for f in files:
            # AppleDouble resource forks share the media extension
            if f.name.startswith("._"):
                continue
            if f.suffix.lower() in config.SUPPORTED_EXTS:
                yield f


class ExtractionPipeline:
    """
    Producer side of a scan: discovers candidates, then extracts them on a
    bounded worker pool and pushes ExtractionResults onto a queue.
    """
    def __init__(self,
                 extractor: Optional[MetadataExtractor] = None,
                 hasher: Optional[FileHasher] = None,
                 max_workers: Optional[int] = None,
                 hash_files: bool = True,
                 cancel_event: Optional[threading.Event] = None):
        self.extractor = extractor or MetadataExtractor()
        self.hasher = hasher or FileHasher()
        self.max_workers = max(1, max_workers or os.cpu_count() or 1)
        self.hash_files = hash_files
        self.cancel_event = cancel_event
        self._abort = threading.Event()

    @property
    def cancelled(self) -> bool:
        if self._abort.is_set():
            return True
        return self.cancel_event is not None and self.cancel_event.is_set()

    def abort(self):
        """Stops scheduling new files for this pipeline."""
        self._abort.set()

    def discover(self, roots: Iterable[Path], resolver: CompanionResolver) -> List[Path]:
        """
        Walks every root and returns the candidate files: supported media,
        minus videos that belong to a Live Photo.
        """
        candidates = []
        seen = set()
        suppressed = 0
        for root in roots:
            if self.cancelled:
                break
            if not root.is_dir():
                logging.warning(f"Photo directory not found: {root}")
                continue

            logging.info(f"Scanning directory: {root}")
            for path in iter_media_files(root, self.cancel_event):
                if path in seen:
                    # Overlapping roots list the same file twice
                    continue
                seen.add(path)
                if resolver.is_live_companion(path):
                    suppressed += 1
                    continue
                candidates.append(path)

        if suppressed:
            logging.info(f"Skipped {suppressed} Live Photo companion videos")
        return candidates

    def produce(self,
                candidates: List[Path],
                previous: Mapping[str, IndexRecord],
                resolver: CompanionResolver,
                out_queue: queue.Queue):
        """
        Blocks until every submitted file is processed. Always finishes by
        putting DONE on the queue, even when interrupted.
        """
        try:
            logging.info(f"Extracting {len(candidates)} files with {self.max_workers} workers")
            with ThreadPoolExecutor(max_workers=self.max_workers,
                                    thread_name_prefix="onthisday-extract") as pool:
                for path in candidates:
                    if self.cancelled:
                        logging.info("Cancellation requested; no new files will be extracted")
                        pool.shutdown(wait=True, cancel_futures=True)
                        break
                    pool.submit(self._produce_one, path, previous, resolver, out_queue)
        finally:
            out_queue.put(DONE)

    def _produce_one(self,
                     path: Path,
                     previous: Mapping[str, IndexRecord],
                     resolver: CompanionResolver,
                     out_queue: queue.Queue):
        if self.cancelled:
            return
        out_queue.put(self.process_file(path, previous.get(str(path)), resolver))

    def process_file(self,
                     path: Path,
                     existing: Optional[IndexRecord],
                     resolver: CompanionResolver) -> ExtractionResult:
        """Processes one file; every failure is returned, never raised."""
        try:
            stat_result = path.stat()
            size_bytes = stat_result.st_size
            mtime_ns = stat_result.st_mtime_ns

            kind = media_kind(path)
            companion = None
            if kind == MediaKind.PHOTO:
                found = resolver.find_video_companion(path)
                companion = str(found) if found else None

            if existing is not None and not needs_reindex(existing, size_bytes, mtime_ns):
                if existing.companion_video_path == companion:
                    return ExtractionResult.unchanged(path)
                # A companion appeared or vanished next to an unchanged photo
                record = replace(existing,
                                 companion_video_path=companion,
                                 indexed_at=datetime.now(UTC))
                return ExtractionResult.extracted(path, record)

            capture_dt, source = self.extractor.extract(path, stat_result.st_mtime)
            file_hash = self.hasher.fingerprint(path, size_bytes) if self.hash_files else None

            return ExtractionResult.extracted(path, IndexRecord(
                file_path=str(path),
                file_name=path.name,
                capture_timestamp=capture_dt,
                date_source=source,
                media_kind=kind,
                file_size=size_bytes,
                file_mtime_ns=mtime_ns,
                indexed_at=datetime.now(UTC),
                file_hash=file_hash,
                companion_video_path=companion,
                id=existing.id if existing else None,
            ))

        except Exception as e:
            logging.debug(f"Extraction failed for {path}", exc_info=True)
            return ExtractionResult.failed(path, f"{type(e).__name__}: {e}")
