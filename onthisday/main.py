import argparse
import logging
import sys
import threading
from datetime import timedelta
from pathlib import Path
from typing import Optional

from .config import Settings, parse_directory_list
from .core import OnThisDayApp
from .database.db import DBManager
from .database.ops import PhotoStore
from .exceptions import OnThisDayError
from .reporting import DayReport, resolve_day


def setup_logging(verbose: bool, log_file: Optional[Path] = None):
    """Sets up logging to the console and, optionally, a file."""
    log_level = logging.DEBUG if verbose else logging.INFO

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=handlers,
    )

    # Silence chatty libraries
    logging.getLogger("exifread").setLevel(logging.ERROR)
    logging.getLogger("PIL").setLevel(logging.WARNING)


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="On This Day: index photos and videos by capture date")

    p.add_argument("--db", type=Path, default=None, help="SQLite index path (default: $DATABASE_PATH or onthisday.db)")
    p.add_argument("--dirs", default=None, help="';'-separated media roots (default: $PHOTO_DIRECTORIES)")
    p.add_argument("--interval-hours", type=float, default=None, help="Hours between rescans (default: $RESCAN_INTERVAL_HOURS or 6)")
    p.add_argument("--workers", type=int, default=None, help="Extraction workers (default: CPU count)")
    p.add_argument("--no-hash", action="store_true", help="Skip computing content fingerprints")
    p.add_argument("--log-file", type=Path, default=None, help="Also write logs to this file")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    sub = p.add_subparsers(dest="command", required=True)
    sub.add_parser("scan", help="Run one full scan in the foreground")
    sub.add_parser("serve", help="Scan on startup and then on every interval until interrupted")

    day = sub.add_parser("day", help="List media captured on a calendar day")
    day.add_argument("--month", type=int, default=None)
    day.add_argument("--day", type=int, default=None)

    return p.parse_args(argv)


def build_settings(args) -> Settings:
    """Environment first, command-line flags override."""
    settings = Settings.from_env()
    if args.dirs is not None:
        settings.photo_directories = parse_directory_list(args.dirs)
    if args.db is not None:
        settings.database_path = args.db
    if args.interval_hours is not None:
        if args.interval_hours <= 0:
            logging.warning(f"--interval-hours must be positive; keeping {settings.rescan_interval}")
        else:
            settings.rescan_interval = timedelta(hours=args.interval_hours)
    if args.workers is not None:
        settings.max_workers = max(1, args.workers)
    if args.no_hash:
        settings.hash_files = False
    return settings


def run_serve(app: OnThisDayApp) -> int:
    app.start()
    try:
        # Wait in short slices so Ctrl+C is delivered promptly
        while not app.scheduler.stop_event.wait(1.0):
            pass
    except KeyboardInterrupt:
        logging.warning("Interrupted; shutting down.")
    finally:
        app.shutdown()
    return 0


def run_day(settings: Settings, month: Optional[int], day: Optional[int]) -> int:
    month, day = resolve_day(month, day)
    with DBManager(settings.database_path) as conn:
        DayReport(PhotoStore(conn)).render(month, day)
    return 0


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(args.verbose, args.log_file)
    settings = build_settings(args)

    try:
        if args.command == "day":
            return run_day(settings, args.month, args.day)

        logging.info("=== On This Day Indexer Started ===")
        logging.info(f"Database: {settings.database_path}")
        logging.info(f"Roots:    {', '.join(str(d) for d in settings.photo_directories) or '(none)'}")

        app = OnThisDayApp(
            settings,
            reload_directories_from_env=args.dirs is None,
            show_progress=args.command == "scan",
        )

        if args.command == "serve":
            return run_serve(app)

        cancel = threading.Event()
        try:
            summary = app.scan_once(cancel)
        except KeyboardInterrupt:
            cancel.set()
            logging.warning("Operation cancelled by user.")
            return 1
        if summary:
            print(summary.describe())
        return 0

    except OnThisDayError as e:
        logging.error(str(e))
        return 1
    except Exception:
        logging.exception("Fatal error.")
        return 1


if __name__ == "__main__":
    sys.exit(main())
