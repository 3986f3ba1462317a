"""Next-fire computation for reminder recurrence rules.

Candidates are built on the local wall clock of the supplied timezone, so
daylight-saving gaps and folds are resolved by ``zoneinfo`` rather than by
the arithmetic here. Whether a candidate has already passed is decided on
UTC instants.
"""

from __future__ import annotations

import calendar
import datetime as dt
from typing import Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .rules import Frequency, InvalidRule, RecurrenceRule

TimezoneLike = Union[str, dt.tzinfo]


def resolve_timezone(timezone: TimezoneLike) -> dt.tzinfo:
    if isinstance(timezone, dt.tzinfo):
        return timezone
    try:
        return ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown timezone: {timezone!r}") from exc


def as_local(now: dt.datetime, tz: dt.tzinfo) -> dt.datetime:
    if now.tzinfo is None:
        now = now.replace(tzinfo=dt.timezone.utc)
    return now.astimezone(tz)


def to_utc(local: dt.datetime) -> dt.datetime:
    return local.astimezone(dt.timezone.utc)


def has_passed(candidate: dt.datetime, now: dt.datetime) -> bool:
    # Same-tzinfo comparison ignores fold, so compare instants.
    return to_utc(candidate) <= to_utc(now)


def clamp_day(year: int, month: int, day: int) -> int:
    return min(day, calendar.monthrange(year, month)[1])


def iso_weekday(day_of_week: int) -> int:
    """Convert Sunday=0..Saturday=6 into ISO Monday=1..Sunday=7."""
    return 7 if day_of_week == 0 else day_of_week


def _at(day: dt.date, rule: RecurrenceRule, tz: dt.tzinfo) -> dt.datetime:
    return dt.datetime(
        day.year,
        day.month,
        day.day,
        rule.time_of_day.hour,
        rule.time_of_day.minute,
        tzinfo=tz,
    )


def _once(rule: RecurrenceRule, now: dt.datetime, tz: dt.tzinfo) -> dt.datetime:
    # A pinned date is taken as-is even when already past; it fires as overdue.
    if rule.target_date is not None:
        return _at(rule.target_date, rule, tz)
    return _daily(rule, now, tz)


def _daily(rule: RecurrenceRule, now: dt.datetime, tz: dt.tzinfo) -> dt.datetime:
    candidate = _at(now.date(), rule, tz)
    if has_passed(candidate, now):
        candidate = _at(now.date() + dt.timedelta(days=1), rule, tz)
    return candidate


def weekday_delta(target_iso: int, current_iso: int, slot_passed: bool) -> int:
    delta = (target_iso - current_iso + 7) % 7
    if delta == 0 and slot_passed:
        delta = 7
    return delta


def _weekly(rule: RecurrenceRule, now: dt.datetime, tz: dt.tzinfo) -> dt.datetime:
    today = _at(now.date(), rule, tz)
    delta = weekday_delta(
        iso_weekday(rule.day_of_week), now.isoweekday(), slot_passed=has_passed(today, now)
    )
    return _at(now.date() + dt.timedelta(days=delta), rule, tz)


def _monthly(rule: RecurrenceRule, now: dt.datetime, tz: dt.tzinfo) -> dt.datetime:
    year, month = now.year, now.month
    candidate = _at(
        dt.date(year, month, clamp_day(year, month, rule.day_of_month)), rule, tz
    )
    if has_passed(candidate, now):
        year, month = (year + 1, 1) if month == 12 else (year, month + 1)
        candidate = _at(
            dt.date(year, month, clamp_day(year, month, rule.day_of_month)), rule, tz
        )
    return candidate


def _yearly(rule: RecurrenceRule, now: dt.datetime, tz: dt.tzinfo) -> dt.datetime:
    year = now.year
    candidate = _at(
        dt.date(year, rule.month, clamp_day(year, rule.month, rule.day_of_month)),
        rule,
        tz,
    )
    if has_passed(candidate, now):
        year += 1
        candidate = _at(
            dt.date(year, rule.month, clamp_day(year, rule.month, rule.day_of_month)),
            rule,
            tz,
        )
    return candidate


_HANDLERS = {
    Frequency.ONCE: _once,
    Frequency.DAILY: _daily,
    Frequency.WEEKLY: _weekly,
    Frequency.MONTHLY: _monthly,
    Frequency.YEARLY: _yearly,
}


def next_trigger(
    rule: RecurrenceRule, now: dt.datetime, timezone: TimezoneLike
) -> dt.datetime:
    """Return the next UTC instant at which ``rule`` fires after ``now``.

    ``now`` counts as already passed: a slot scheduled for exactly ``now`` is
    pushed to its next occurrence (except a pinned ``ONCE`` date, which is
    returned unchanged). Raises ``InvalidRule`` for malformed rules.
    """
    rule.validate()
    handler = _HANDLERS.get(rule.frequency)
    if handler is None:
        raise InvalidRule(f"Unsupported frequency: {rule.frequency!r}")
    tz = resolve_timezone(timezone)
    return to_utc(handler(rule, as_local(now, tz), tz))
