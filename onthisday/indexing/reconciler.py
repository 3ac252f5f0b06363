import logging
import queue
import sqlite3
from typing import Dict, Iterable, Mapping, Optional, Set

from tqdm import tqdm

from .. import config
from ..database.ops import PhotoStore
from ..models import IndexRecord, ResultStatus, ScanSummary
from ..scanning.filesystem import DONE


class Reconciler:
    """
    Single consumer of extraction results. It is the only code that writes to
    the store during a scan.
    """
    def __init__(self, store: PhotoStore, batch_size: int = config.BATCH_SIZE, show_progress: bool = False):
        self.store = store
        self.batch_size = max(1, batch_size)
        self.show_progress = show_progress

    def consume(self,
                results: queue.Queue,
                previous: Mapping[str, IndexRecord],
                total: Optional[int] = None,
                summary: Optional[ScanSummary] = None) -> ScanSummary:
        """
        Drains the queue until DONE, applying upserts and committing every
        `batch_size` processed items, then once more at the end.

        `previous` is never mutated; records written during this scan are
        tracked in a consumer-owned copy so a path seen twice is updated,
        not inserted again. A record the store rejects counts as a failure
        and the scan carries on.
        """
        summary = summary or ScanSummary()
        known: Dict[str, IndexRecord] = dict(previous)
        processed = 0

        with tqdm(total=total, desc="Indexing", unit="file", disable=not self.show_progress) as bar:
            while True:
                item = results.get()
                if item is DONE:
                    break

                bar.update(1)
                if item.status == ResultStatus.UNCHANGED:
                    summary.unchanged += 1
                    continue

                if item.status == ResultStatus.FAILED:
                    # Existing record (if any) stays as-is; retried next scan
                    logging.warning(f"Failed to index file: {item.path}: {item.error}")
                    summary.failed += 1
                    continue

                try:
                    self._apply(item.record, known, summary)
                except (sqlite3.Error, UnicodeError) as e:
                    logging.warning(f"Failed to index file: {item.path!r}: {type(e).__name__}: {e}")
                    summary.failed += 1
                    continue

                processed += 1
                if processed % self.batch_size == 0:
                    self.store.commit()
                    logging.info(f"Progress: {summary.inserted} new, {summary.updated} updated so far...")

        self.store.commit()
        return summary

    def _apply(self, rec: IndexRecord, known: Dict[str, IndexRecord], summary: ScanSummary):
        existing = known.get(rec.file_path)
        if existing is not None:
            # Same path keeps the same id
            rec.id = existing.id
            self.store.upsert(rec)
            summary.updated += 1
        else:
            rec.id = None
            self.store.upsert(rec)
            summary.inserted += 1
        known[rec.file_path] = rec

    def prune(self, previous_paths: Iterable[str], candidate_paths: Set[str]) -> int:
        """Deletes records whose files were not observed by this scan's walk."""
        stale = set(previous_paths) - candidate_paths
        if not stale:
            return 0

        deleted = self.store.delete_paths(stale)
        self.store.commit()
        logging.info(f"Pruned {deleted} records for files no longer on disk")
        return deleted
