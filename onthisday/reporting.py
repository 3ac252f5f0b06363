import calendar
import sys
from datetime import date
from typing import Dict, List, Optional, TextIO

from .database.ops import PhotoStore
from .exceptions import ConfigurationError
from .models import IndexRecord


def resolve_day(month: Optional[int], day: Optional[int], today: Optional[date] = None) -> tuple[int, int]:
    """
    Defaults to today and clamps the day to the month's length in a leap
    year, so Feb 29 is always reachable.
    """
    today = today or date.today()
    month = today.month if month is None else month
    day = today.day if day is None else day

    if not 1 <= month <= 12:
        raise ConfigurationError(f"Month must be between 1 and 12 (got {month})")
    max_day = calendar.monthrange(2000, month)[1]
    return month, max(1, min(day, max_day))


class DayReport:
    """Renders everything captured on a calendar day, grouped by year."""
    def __init__(self, store: PhotoStore):
        self.store = store

    def collect(self, month: int, day: int) -> Dict[int, List[IndexRecord]]:
        return self.store.photos_for_day(month, day)

    def render(self, month: int, day: int, out: TextIO = sys.stdout) -> int:
        by_year = self.collect(month, day)
        label = f"{calendar.month_name[month]} {day}"

        if not by_year:
            print(f"Nothing indexed for {label}.", file=out)
            return 0

        total = 0
        print(f"On this day: {label}", file=out)
        for year, records in by_year.items():
            print(f"\n{year} ({len(records)} item{'s' if len(records) != 1 else ''})", file=out)
            print("  id    | time     | kind  | source        | path", file=out)
            print("  ------+----------+-------+---------------+----------", file=out)
            for rec in records:
                live = " [live]" if rec.companion_video_path else ""
                print(
                    f"  {rec.id:5d} | {rec.capture_timestamp:%H:%M:%S} | {rec.media_kind.value.ljust(5)} | "
                    f"{rec.date_source.value.ljust(13)} | {rec.file_path}{live}",
                    file=out,
                )
            total += len(records)
        return total
