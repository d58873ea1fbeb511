"""
Local time helpers.

Timestamps are stored naive, in the configured exam timezone, so that every
comparison between stored and current times uses the same clock.
"""
from datetime import datetime
import pytz

from ..core.config import settings


LOCAL_TZ = pytz.timezone(settings.default_timezone)


def get_local_now() -> datetime:
    """Current aware time in the exam timezone."""
    return datetime.now(LOCAL_TZ)


def get_naive_now() -> datetime:
    """Current exam-timezone time without tzinfo, as stored in the database."""
    return get_local_now().replace(tzinfo=None)


def format_local_time(dt: datetime, format_str: str = None) -> str:
    format_str = format_str or settings.timezone_display_format
    if dt.tzinfo is None:
        dt = LOCAL_TZ.localize(dt)
    return dt.astimezone(LOCAL_TZ).strftime(format_str)


def seconds_since(dt: datetime, now: datetime = None) -> float:
    """Elapsed seconds between a stored naive timestamp and now."""
    now = now or get_naive_now()
    if dt.tzinfo is not None:
        dt = dt.astimezone(LOCAL_TZ).replace(tzinfo=None)
    return (now - dt).total_seconds()


def get_timezone_info() -> dict:
    now = get_local_now()
    return {
        "timezone": settings.default_timezone,
        "offset": now.strftime("%z"),
        "current_time": format_local_time(now)
    }
