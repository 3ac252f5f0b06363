"""Background rescans on a fixed interval."""
import logging
import threading
from datetime import timedelta
from enum import Enum
from typing import Callable, Optional

from ..models import ScanSummary

ScanFunction = Callable[[threading.Event], Optional[ScanSummary]]


class SchedulerState(str, Enum):
    IDLE = 'idle'
    SCANNING = 'scanning'
    SHUTDOWN = 'shutdown'


class ScanScheduler:
    """
    Runs `scan_fn` once after a warm-up delay and then every `interval`.

    A failing scan is logged and the loop waits for the next interval; there
    is no immediate retry. Cancellation is observed at every wait and passed to
    `scan_fn` as the stop event so an in-progress scan stops starting new work.
    """
    def __init__(self,
                 scan_fn: ScanFunction,
                 interval: timedelta,
                 warmup_seconds: float = 2.0):
        self._scan_fn = scan_fn
        self.interval = interval
        self.warmup_seconds = warmup_seconds
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._state = SchedulerState.IDLE
        self._lock = threading.Lock()
        self._scans_completed = 0
        self._last_summary: Optional[ScanSummary] = None

    @property
    def state(self) -> SchedulerState:
        with self._lock:
            return self._state

    @property
    def scans_completed(self) -> int:
        with self._lock:
            return self._scans_completed

    @property
    def last_summary(self) -> Optional[ScanSummary]:
        with self._lock:
            return self._last_summary

    @property
    def stop_event(self) -> threading.Event:
        return self._stop_event

    def _set_state(self, state: SchedulerState):
        with self._lock:
            self._state = state

    def start(self):
        if self._thread and self._thread.is_alive():
            return
        self._thread = threading.Thread(target=self.run, name="onthisday-scheduler", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None):
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout)

    def run(self):
        """Blocks until stop() is called."""
        try:
            if self._stop_event.wait(self.warmup_seconds):
                return

            while not self._stop_event.is_set():
                self._run_one_scan()

                logging.info(f"Next rescan in {self.interval}")
                if self._stop_event.wait(self.interval.total_seconds()):
                    break
        finally:
            self._set_state(SchedulerState.SHUTDOWN)

    def _run_one_scan(self):
        self._set_state(SchedulerState.SCANNING)
        summary = None
        try:
            summary = self._scan_fn(self._stop_event)
        except Exception:
            logging.exception("Error during photo indexing scan")
        finally:
            with self._lock:
                if summary is not None:
                    self._last_summary = summary
                self._scans_completed += 1
                self._state = SchedulerState.IDLE
