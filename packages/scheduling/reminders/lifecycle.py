from __future__ import annotations

import dataclasses
import datetime as dt

from ..clock import to_iso
from ..recurrence.calculator import TimezoneLike, next_trigger
from ..recurrence.rules import Frequency, RecurrenceRule
from ..storage.base import ReminderState


def fire(
    reminder: ReminderState,
    rule: RecurrenceRule,
    now: dt.datetime,
    timezone: TimezoneLike,
) -> ReminderState:
    """Advance a due reminder past its current trigger.

    One-time reminders are deactivated; recurring ones get their next
    trigger recomputed from ``now``. An already inactive reminder is
    returned unchanged. Nothing is persisted here.
    """
    if not reminder.active:
        return reminder

    fired_at = to_iso(now)
    if rule.frequency is Frequency.ONCE:
        return dataclasses.replace(
            reminder,
            active=False,
            last_fired_at=fired_at,
            updated_at=fired_at,
        )
    return dataclasses.replace(
        reminder,
        next_trigger=to_iso(next_trigger(rule, now, timezone)),
        last_fired_at=fired_at,
        updated_at=fired_at,
    )
