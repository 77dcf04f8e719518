"""
Day-granular calendar.

All scheduling math works on day deltas; there is no time-of-day component.
Day 0 is 0001-01-01 in the proleptic Gregorian calendar.
"""

import datetime as dt
from dataclasses import dataclass

from .constants import DAY_ROLLOVER_HOURS, MAX_DAY, MIN_DAY
from .errors import DateOverflowError


@dataclass(frozen=True, order=True)
class Date:
    """A signed day count relative to 0001-01-01."""

    day: int

    def is_after(self, other: "Date") -> bool:
        """True when this date is on or after ``other``."""
        return self.day >= other.day

    def add_days(self, days: int) -> "Date":
        new_day = self.day + days
        if not MIN_DAY <= new_day <= MAX_DAY:
            raise DateOverflowError(f"day {self.day} + {days} is out of range")
        return Date(new_day)

    def days_until(self, other: "Date") -> int:
        return other.day - self.day

    @classmethod
    def from_date(cls, value: dt.date) -> "Date":
        return cls(value.toordinal() - 1)

    @classmethod
    def from_ymd(cls, year: int, month: int, day: int) -> "Date":
        return cls.from_date(dt.date(year, month, day))

    @classmethod
    def from_yo(cls, year: int, ordinal: int) -> "Date":
        return cls.from_date(dt.date(year, 1, 1) + dt.timedelta(days=ordinal - 1))

    @classmethod
    def today(cls, rollover_hours: int = DAY_ROLLOVER_HOURS) -> "Date":
        """Current local day; the day changes ``rollover_hours`` after midnight."""
        now = dt.datetime.now() - dt.timedelta(hours=rollover_hours)
        return cls.from_date(now.date())

    def to_date(self) -> dt.date:
        try:
            return dt.date.fromordinal(self.day + 1)
        except (ValueError, OverflowError) as e:
            raise DateOverflowError(f"day {self.day} has no calendar date") from e

    def __str__(self) -> str:
        try:
            return self.to_date().isoformat()
        except DateOverflowError:
            return f"day {self.day}"
