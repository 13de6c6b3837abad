"""Day-local time range arithmetic.

Pure calculation module: no database, no async, no FastAPI dependencies.
Ranges are half-open [start, end) within a single day, at minute resolution.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import TypeVar
from zoneinfo import ZoneInfo

from sportbook.core.errors import InvalidGranularity, InvalidRange

T = TypeVar("T")


def parse_time(value: str | time) -> time:
    """Parse "HH:MM" or "HH:MM:SS" (seconds are dropped)."""
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(value, fmt).time().replace(second=0)
        except ValueError:
            continue
    raise InvalidRange(f"Invalid time {value!r}, expected HH:MM")


def to_minutes(t: time) -> int:
    return t.hour * 60 + t.minute


def from_minutes(minutes: int) -> time:
    return time(minutes // 60, minutes % 60)


def at_local(day: date, t: time, tz: ZoneInfo) -> datetime:
    return datetime.combine(day, t, tzinfo=tz)


@dataclass(frozen=True, order=True)
class TimeRange:
    start: time
    end: time

    @classmethod
    def parse(cls, start: str | time, end: str | time) -> "TimeRange":
        return cls(parse_time(start), parse_time(end))

    @property
    def minutes(self) -> int:
        """Length in minutes. Zero or negative for empty/inverted ranges."""
        return to_minutes(self.end) - to_minutes(self.start)

    def overlaps(self, other: "TimeRange") -> bool:
        return self.start < other.end and self.end > other.start

    def contains(self, other: "TimeRange") -> bool:
        return self.start <= other.start and other.end <= self.end

    def split(self, step_minutes: int) -> list["TimeRange"]:
        """Cut into consecutive step-sized pieces. The range must be a multiple of step."""
        start = to_minutes(self.start)
        return [
            TimeRange(from_minutes(m), from_minutes(m + step_minutes))
            for m in range(start, to_minutes(self.end), step_minutes)
        ]

    def __str__(self) -> str:
        return f"{self.start.strftime('%H:%M')} - {self.end.strftime('%H:%M')}"


def ensure_positive(slot: TimeRange) -> None:
    if slot.minutes <= 0:
        raise InvalidRange(f"Start time {slot.start.strftime('%H:%M')} must be before end time {slot.end.strftime('%H:%M')}")


def check_rental_conditions(slot: TimeRange, min_rental: int, boundary: TimeRange) -> None:
    """Duration and both leftover gaps inside the boundary must be whole min_rental units.

    Otherwise the booking would leave a fragment before or after it that nobody
    could ever reserve.
    """
    if slot.minutes % min_rental != 0:
        raise InvalidGranularity(f"Duration {slot.minutes} minutes is not divisible by min_rental {min_rental}")

    gap_to_start = to_minutes(slot.start) - to_minutes(boundary.start)
    if gap_to_start % min_rental != 0:
        raise InvalidGranularity(
            f"Gap from {boundary.start.strftime('%H:%M')} to {slot.start.strftime('%H:%M')} "
            f"is not divisible by min_rental {min_rental}"
        )

    gap_to_end = to_minutes(boundary.end) - to_minutes(slot.end)
    if gap_to_end % min_rental != 0:
        raise InvalidGranularity(
            f"Remaining gap from {slot.end.strftime('%H:%M')} to {boundary.end.strftime('%H:%M')} "
            f"is not divisible by min_rental {min_rental}"
        )


def ends_too_soon(day: date, slot: TimeRange, now: datetime, tz: ZoneInfo, lead_minutes: int) -> bool:
    """True if the slot ends before now + lead_minutes (venue local time)."""
    return at_local(day, slot.end, tz) < now.astimezone(tz) + timedelta(minutes=lead_minutes)


def group_by_court(items: Iterable[T], court_of: Callable[[T], int]) -> dict[int, list[T]]:
    """Ordered multimap: courts in first-seen order, items in input order."""
    grouped: dict[int, list[T]] = {}
    for item in items:
        grouped.setdefault(court_of(item), []).append(item)
    return grouped
