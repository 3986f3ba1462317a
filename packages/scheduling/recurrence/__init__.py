from .calculator import clamp_day, iso_weekday, next_trigger, resolve_timezone
from .rules import Frequency, InvalidRule, RecurrenceRule, TimeOfDay, parse_time_of_day
from .weekly import WeeklySchedule, next_run

__all__ = [
    "Frequency",
    "InvalidRule",
    "RecurrenceRule",
    "TimeOfDay",
    "WeeklySchedule",
    "clamp_day",
    "iso_weekday",
    "next_run",
    "next_trigger",
    "parse_time_of_day",
    "resolve_timezone",
]
