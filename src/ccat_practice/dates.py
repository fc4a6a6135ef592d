"""Calendar helpers for streaks, cache freshness and the daily puzzle."""
from datetime import date, timedelta
from typing import Optional


def today_iso(today: Optional[date] = None) -> str:
    return (today or date.today()).isoformat()


def is_today(date_str: Optional[str], today: Optional[date] = None) -> bool:
    if not date_str:
        return False
    return date_str == today_iso(today)


def is_yesterday(date_str: Optional[str], today: Optional[date] = None) -> bool:
    if not date_str:
        return False
    yesterday = (today or date.today()) - timedelta(days=1)
    return date_str == yesterday.isoformat()


def day_of_year(today: Optional[date] = None) -> int:
    """Day number within the year (Jan 1st is 1, Feb 1st is 32)."""
    return (today or date.today()).timetuple().tm_yday
