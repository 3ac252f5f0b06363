import logging
import os
import queue
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional

from .config import Settings, parse_directory_list
from .database.db import DBManager
from .database.ops import PhotoStore
from .exceptions import ScanError
from .indexing.reconciler import Reconciler
from .indexing.scheduler import ScanScheduler
from .metadata.extract import MetadataExtractor
from .metadata.linking import CompanionResolver
from .models import ScanSummary
from .scanning.filesystem import ExtractionPipeline
from .scanning.hasher import FileHasher


class OnThisDayApp:
    """
    Process-wide indexing service. Construct once at startup, call start()
    for background rescans and shutdown() on exit.
    """
    def __init__(self,
                 settings: Settings,
                 extractor: Optional[MetadataExtractor] = None,
                 reload_directories_from_env: bool = False,
                 show_progress: bool = False):
        self.settings = settings
        self.db_manager = DBManager(settings.database_path)
        self.extractor = extractor or MetadataExtractor()
        self.hasher = FileHasher()
        self.reload_directories_from_env = reload_directories_from_env
        self.show_progress = show_progress
        self.scheduler = ScanScheduler(
            self.scan_once,
            interval=settings.rescan_interval,
            warmup_seconds=settings.warmup_seconds,
        )

    def start(self):
        logging.info(f"Starting indexer (rescan every {self.settings.rescan_interval})")
        self.scheduler.start()

    def shutdown(self, timeout: Optional[float] = None):
        logging.info("Stopping indexer...")
        self.scheduler.stop(timeout)

    def _directories(self) -> List[Path]:
        if self.reload_directories_from_env:
            self.settings.photo_directories = parse_directory_list(os.environ.get("PHOTO_DIRECTORIES"))
        return [p.expanduser().resolve() for p in self.settings.photo_directories]

    def scan_once(self, cancel_event: Optional[threading.Event] = None) -> Optional[ScanSummary]:
        """
        Executes one full scan:
        1. Discover candidates (walk + Live Photo suppression)
        2. Extract changed files in parallel (producers)
        3. Reconcile results into the store (single consumer)
        4. Prune records whose files are gone
        """
        roots = self._directories()
        if not roots:
            logging.warning("No photo directories configured. Set PHOTO_DIRECTORIES env var.")
            return None

        started = time.perf_counter()

        with self.db_manager as conn:
            store = PhotoStore(conn)
            previous = store.load_all()

            # Listing cache lives for this scan only
            resolver = CompanionResolver()
            pipeline = ExtractionPipeline(
                extractor=self.extractor,
                hasher=self.hasher,
                max_workers=self.settings.max_workers,
                hash_files=self.settings.hash_files,
                cancel_event=cancel_event,
            )

            # --- Step 1: Discovery ---
            candidates = pipeline.discover(roots, resolver)
            candidate_paths = {str(p) for p in candidates}

            # --- Steps 2-3: Extraction & Reconciliation ---
            reconciler = Reconciler(store, batch_size=self.settings.batch_size, show_progress=self.show_progress)
            results: queue.Queue = queue.Queue()

            with ThreadPoolExecutor(max_workers=1, thread_name_prefix="onthisday-producer") as runner:
                producing = runner.submit(pipeline.produce, candidates, previous, resolver, results)
                try:
                    summary = reconciler.consume(results, previous, total=len(candidates))
                except BaseException:
                    pipeline.abort()
                    raise

            error = producing.exception()
            if error is not None:
                raise ScanError(f"Extraction aborted: {error}") from error

            # --- Step 4: Pruning ---
            summary.cancelled = pipeline.cancelled
            if summary.cancelled:
                logging.warning("Scan cancelled; skipping prune of missing files")
            else:
                summary.pruned = reconciler.prune(previous.keys(), candidate_paths)

            summary.total = store.count()

        summary.duration_sec = time.perf_counter() - started
        logging.info(f"Indexing complete: {summary.describe()} ({summary.duration_sec:.1f}s)")
        return summary
