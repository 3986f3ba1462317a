from __future__ import annotations

import datetime as dt
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class InvalidRule(ValueError):
    """Raised when a recurrence rule is missing a field its frequency needs."""


class Frequency(str, Enum):
    ONCE = "once"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"

    @classmethod
    def parse(cls, value: Any) -> "Frequency":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise InvalidRule(f"Unknown frequency: {value!r}") from exc


_TIME_24H = re.compile(r"^(\d{1,2}):(\d{2})$")
_TIME_12H = re.compile(r"^(\d{1,2}):(\d{2})\s*(AM|PM)$", re.IGNORECASE)


@dataclass(frozen=True)
class TimeOfDay:
    hour: int
    minute: int

    def __post_init__(self) -> None:
        if not 0 <= self.hour <= 23:
            raise InvalidRule(f"hour must be 0-23, got {self.hour}")
        if not 0 <= self.minute <= 59:
            raise InvalidRule(f"minute must be 0-59, got {self.minute}")

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"

    def to_12_hour(self) -> str:
        return format_12_hour(self.hour, self.minute)


def format_12_hour(hour: int, minute: int) -> str:
    period = "AM" if hour < 12 else "PM"
    display = hour % 12 or 12
    return f"{display}:{minute:02d} {period}"


def parse_time_of_day(text: str) -> TimeOfDay:
    """Parse "14:30" or "2:30 PM" into a TimeOfDay."""
    value = (text or "").strip()
    match = _TIME_24H.match(value)
    if match:
        return TimeOfDay(int(match.group(1)), int(match.group(2)))

    match = _TIME_12H.match(value)
    if not match:
        raise InvalidRule(f"Unrecognized time of day: {text!r}")
    hour = int(match.group(1))
    minute = int(match.group(2))
    if not 1 <= hour <= 12:
        raise InvalidRule(f"12-hour clock hour must be 1-12, got {hour}")
    period = match.group(3).upper()
    if period == "PM" and hour != 12:
        hour += 12
    elif period == "AM" and hour == 12:
        hour = 0
    return TimeOfDay(hour, minute)


@dataclass(frozen=True)
class RecurrenceRule:
    time_of_day: TimeOfDay
    frequency: Frequency
    day_of_week: Optional[int] = None
    day_of_month: Optional[int] = None
    month: Optional[int] = None
    target_date: Optional[dt.date] = None

    @classmethod
    def from_fields(
        cls,
        time: str,
        frequency: Any,
        day_of_week: Optional[int] = None,
        day_of_month: Optional[int] = None,
        month: Optional[int] = None,
        target_date: Optional[Any] = None,
    ) -> "RecurrenceRule":
        if isinstance(target_date, str):
            target_date = dt.date.fromisoformat(target_date)
        elif isinstance(target_date, dt.datetime):
            target_date = target_date.date()
        rule = cls(
            time_of_day=parse_time_of_day(time),
            frequency=Frequency.parse(frequency),
            day_of_week=day_of_week,
            day_of_month=day_of_month,
            month=month,
            target_date=target_date,
        )
        rule.validate()
        return rule

    def validate(self) -> "RecurrenceRule":
        frequency = self.frequency
        if not isinstance(frequency, Frequency):
            raise InvalidRule(f"Unknown frequency: {frequency!r}")
        if frequency is Frequency.WEEKLY:
            if self.day_of_week is None:
                raise InvalidRule("weekly rules require day_of_week")
            if not 0 <= self.day_of_week <= 6:
                raise InvalidRule(f"day_of_week must be 0-6, got {self.day_of_week}")
        if frequency in (Frequency.MONTHLY, Frequency.YEARLY):
            if self.day_of_month is None:
                raise InvalidRule(f"{frequency.value} rules require day_of_month")
            if not 1 <= self.day_of_month <= 31:
                raise InvalidRule(f"day_of_month must be 1-31, got {self.day_of_month}")
        if frequency is Frequency.YEARLY:
            if self.month is None:
                raise InvalidRule("yearly rules require month")
            if not 1 <= self.month <= 12:
                raise InvalidRule(f"month must be 1-12, got {self.month}")
        return self
