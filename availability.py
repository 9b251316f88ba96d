import logging
from datetime import date

from adapters.base import DailyAvailability, Shift
from errors import MalformedDataError

logger = logging.getLogger(__name__)


def _flag(raw: dict, name: str, default: bool) -> bool:
    value = raw.get(name, default)
    if not isinstance(value, bool):
        raise MalformedDataError(f"{name} must be a boolean, got {value!r}")
    return value


def parse_shift(raw: dict) -> Shift:
    if not isinstance(raw, dict):
        raise MalformedDataError(f"shift must be an object, got {type(raw).__name__}")
    if "possibleGuestCounts" not in raw:
        raise MalformedDataError(f"shift {raw.get('id')!r} has no possibleGuestCounts field")
    counts = raw["possibleGuestCounts"]
    if counts is None:
        counts = []
    if not isinstance(counts, list):
        raise MalformedDataError(f"shift {raw.get('id')!r} possibleGuestCounts is not a list")
    if any(isinstance(c, bool) or not isinstance(c, int) for c in counts):
        raise MalformedDataError(f"shift {raw.get('id')!r} has a non-integer guest count")
    return Shift(
        id=str(raw.get("id", "")),
        name=raw.get("name", ""),
        possible_guest_counts=frozenset(counts),
        closed=_flag(raw, "closed", False),
    )


def parse_day(raw: dict) -> DailyAvailability:
    if not isinstance(raw, dict):
        raise MalformedDataError(f"availability record must be an object, got {type(raw).__name__}")
    if "date" not in raw:
        raise MalformedDataError("availability record has no date field")
    try:
        day = date.fromisoformat(str(raw["date"])[:10])
    except ValueError as e:
        raise MalformedDataError(f"unparseable date {raw['date']!r}") from e
    if "shifts" not in raw:
        raise MalformedDataError(f"record for {day} has no shifts field")
    if not isinstance(raw["shifts"], list):
        raise MalformedDataError(f"shifts for {day} is not a list")
    return DailyAvailability(
        date=day,
        is_open=_flag(raw, "isOpen", True),
        shifts=tuple(parse_shift(s) for s in raw["shifts"]),
    )


def free_dates(window_records: list[list[dict]]) -> list[date]:
    """
    Merge the per-window records and return the dates with at least one
    bookable shift, ascending and de-duplicated.

    A date counts as free on shift guest counts alone; the provider's
    closed and isOpen flags are not consulted.
    """
    found = set()
    for records in window_records:
        for raw in records:
            day = parse_day(raw)
            if not day.has_bookable_shift:
                continue
            if not day.is_open:
                logger.debug("%s is flagged closed but has a bookable shift", day.date)
            found.add(day.date)
    return sorted(found)


def format_dates(dates: list[date]) -> str:
    return ", ".join(d.isoformat() for d in sorted(dates))
