from __future__ import annotations

import datetime as dt
from dataclasses import dataclass

from .calculator import (
    TimezoneLike,
    as_local,
    has_passed,
    resolve_timezone,
    to_utc,
    weekday_delta,
)
from .rules import InvalidRule, format_12_hour

DAY_NAMES = [
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
]


@dataclass(frozen=True)
class WeeklySchedule:
    """A single weekly slot, weekday counted Sunday=0."""

    weekday: int
    hour: int
    minute: int
    timezone: str = "America/Los_Angeles"

    def __post_init__(self) -> None:
        if not 0 <= self.weekday <= 6:
            raise InvalidRule(f"weekday must be 0-6, got {self.weekday}")
        if not 0 <= self.hour <= 23:
            raise InvalidRule(f"hour must be 0-23, got {self.hour}")
        if not 0 <= self.minute <= 59:
            raise InvalidRule(f"minute must be 0-59, got {self.minute}")

    def next_run(self, now: dt.datetime) -> dt.datetime:
        return next_run(self.weekday, self.hour, self.minute, self.timezone, now)

    def describe(self) -> str:
        return f"every {DAY_NAMES[self.weekday]} at {format_12_hour(self.hour, self.minute)}"

    def to_cron_string(self) -> str:
        return f"{self.minute} {self.hour} * * {self.weekday}"


def next_run(
    weekday: int, hour: int, minute: int, timezone: TimezoneLike, now: dt.datetime
) -> dt.datetime:
    tz = resolve_timezone(timezone)
    local_now = as_local(now, tz)
    slot = dt.datetime(
        local_now.year, local_now.month, local_now.day, hour, minute, tzinfo=tz
    )
    current = local_now.isoweekday() % 7

    if current == weekday and not has_passed(slot, local_now):
        return to_utc(slot)

    delta = weekday_delta(weekday, current, slot_passed=True)
    day = local_now.date() + dt.timedelta(days=delta)
    return to_utc(dt.datetime(day.year, day.month, day.day, hour, minute, tzinfo=tz))
