"""
Timezone helpers.

Timestamps are stored as naive UTC; display uses the configured zone.
"""
from datetime import datetime
import pytz

from ..core.config import settings


def get_display_tz():
    return pytz.timezone(settings.default_timezone)


def to_display_tz(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=pytz.UTC)
    return dt.astimezone(get_display_tz())


def format_display_time(dt: datetime, format_str: str = None) -> str:
    return to_display_tz(dt).strftime(format_str or settings.timezone_display_format)


def to_naive_utc(dt: datetime) -> datetime:
    """Aware datetimes are converted; naive ones are assumed to be UTC already."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(pytz.UTC).replace(tzinfo=None)


def get_timezone_info() -> dict:
    now = datetime.now(get_display_tz())
    return {
        "timezone": settings.default_timezone,
        "offset": now.strftime("%z"),
        "current_time": now.strftime(settings.timezone_display_format)
    }
