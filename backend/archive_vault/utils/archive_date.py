"""
Archive date derivation - Pure functions.

An archive's nominal date is read from its filename when a YYYYMMDD or
YYYY-MM-DD run is present, otherwise it is the import day. Dates are
stored as epoch seconds of local midnight in the library timezone.
"""
import re
from datetime import date, datetime, timezone
from pathlib import PurePath
from typing import Optional

# Whole digit runs only: "202403151" is not read as 2024-03-15
_DATE_RUN = re.compile(r"(?<![0-9])([0-9]{4}-[0-9]{2}-[0-9]{2}|[0-9]{8})(?![0-9])")


def _parse_candidate(candidate: str) -> Optional[date]:
    try:
        if len(candidate) == 8:
            return date(int(candidate[0:4]), int(candidate[4:6]), int(candidate[6:8]))
        return date(int(candidate[0:4]), int(candidate[5:7]), int(candidate[8:10]))
    except ValueError:
        return None


def local_midnight(day: date, tz: timezone) -> int:
    """Epoch seconds of 00:00 on day in tz."""
    return int(datetime(day.year, day.month, day.day, tzinfo=tz).timestamp())


def parse_date_from_name(filename: str, tz: timezone) -> Optional[int]:
    """
    Find the first valid date run in a filename stem.

    Args:
        filename: Archive filename, e.g. "指令-20240315-final.zip"
        tz: Library timezone

    Returns:
        Epoch seconds of local midnight, or None if no run is a valid date
    """
    stem = PurePath(filename).stem or filename
    for match in _DATE_RUN.finditer(stem):
        day = _parse_candidate(match.group(1))
        if day is not None:
            return local_midnight(day, tz)
    return None


def derive_archive_date(filename: str, imported_at: int, tz: timezone) -> int:
    """Archive date from the filename, falling back to the local day of imported_at."""
    parsed = parse_date_from_name(filename, tz)
    if parsed is not None:
        return parsed
    import_day = datetime.fromtimestamp(imported_at, tz).date()
    return local_midnight(import_day, tz)
