from datetime import date, datetime, timedelta

import pytz

from adapters.base import DateWindow
from errors import ConfigurationError


def today_in(timezone_str: str, now: datetime = None) -> date:
    """Returns the current calendar date in the given timezone."""
    try:
        tz = pytz.timezone(timezone_str)
    except pytz.UnknownTimeZoneError as e:
        raise ConfigurationError(f"unknown timezone: {timezone_str}") from e
    if now is None:
        now = datetime.now(tz)
    elif now.tzinfo is None:
        now = pytz.utc.localize(now).astimezone(tz)
    else:
        now = now.astimezone(tz)
    return now.date()


def plan_windows(horizon_days: int, max_range_days: int, today: date) -> list[DateWindow]:
    """
    Split [today, today + horizon_days) into contiguous windows no wider
    than max_range_days. The final window takes whatever is left over.
    """
    for name, value in (("horizon_days", horizon_days), ("max_range_days", max_range_days)):
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ConfigurationError(f"{name} must be a positive integer, got {value!r}")

    horizon_end = today + timedelta(days=horizon_days)
    windows = []
    start = today
    while start < horizon_end:
        end = min(start + timedelta(days=max_range_days), horizon_end)
        windows.append(DateWindow(start=start, end=end))
        start = end
    return windows
