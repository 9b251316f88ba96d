from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date


@dataclass(frozen=True)
class DateWindow:
    start: date
    end: date  # exclusive

    @property
    def days(self) -> int:
        return (self.end - self.start).days


@dataclass(frozen=True)
class Shift:
    id: str
    name: str
    possible_guest_counts: frozenset = field(default_factory=frozenset)
    closed: bool = False

    @property
    def bookable(self) -> bool:
        return bool(self.possible_guest_counts)


@dataclass(frozen=True)
class DailyAvailability:
    date: date
    is_open: bool
    shifts: tuple

    @property
    def has_bookable_shift(self) -> bool:
        return any(shift.bookable for shift in self.shifts)


class BaseAdapter(ABC):
    @abstractmethod
    def get_availability(self, venue_id: str, windows: list[DateWindow]) -> list[list[dict]]:
        """
        Returns the raw per-date records for every window, in window order.

        Args:
            venue_id: Provider's identifier for the venue
            windows: list of DateWindow, each within the provider's range cap

        Returns:
            one list of record dicts per window

        Raises:
            FetchError: if any window could not be fetched
        """
        raise NotImplementedError
