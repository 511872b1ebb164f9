"""Calendar helpers for proposing appointment dates.

Weekdays use the Sunday = 0 convention throughout.
"""

from datetime import date, timedelta
from typing import List, Optional

WEEKDAY_NAMES = ["sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday"]


def _sunday_based_weekday(day: date) -> int:
    # date.weekday() is Monday = 0
    return (day.weekday() + 1) % 7


def next_n_dates(n: int, from_date: Optional[date] = None) -> List[str]:
    """Return ``n`` consecutive ISO dates starting with ``from_date`` (today by default)."""
    start = from_date or date.today()
    return [(start + timedelta(days=offset)).isoformat() for offset in range(max(n, 0))]


def next_weekday_date(weekday: int, from_date: Optional[date] = None) -> str:
    """Next occurrence of ``weekday`` strictly after ``from_date``."""
    if weekday < 0 or weekday > 6:
        raise ValueError(f"weekday out of range: {weekday}")
    start = from_date or date.today()
    days_ahead = (weekday - _sunday_based_weekday(start) + 7) % 7
    if days_ahead == 0:
        days_ahead = 7
    return (start + timedelta(days=days_ahead)).isoformat()


def parse_weekday_name(name: Optional[str]) -> Optional[int]:
    """Map 'Wednesday', 'wed' or 'WEDS' to its weekday index, or None."""
    if not name:
        return None
    lowered = name.strip().lower()
    if len(lowered) < 3:
        return None
    for index, day in enumerate(WEEKDAY_NAMES):
        if lowered == day or lowered[:3] == day[:3]:
            return index
    return None
