from __future__ import annotations

import dataclasses
import datetime as dt
import logging
import uuid
from typing import List, Optional

from ..clock import to_iso, utc_now
from ..destination import Destination
from ..recurrence.calculator import TimezoneLike, next_trigger
from ..recurrence.rules import RecurrenceRule
from ..storage.base import ReminderState, ReminderStore


logger = logging.getLogger("household.reminders")


def _strip(value: Optional[str]) -> Optional[str]:
    return value.strip() if value else None


def create_reminder(
    store: ReminderStore,
    guild_id: str,
    message: str,
    rule: RecurrenceRule,
    timezone: TimezoneLike,
    user_id: Optional[str] = None,
    email: Optional[str] = None,
    sms_phone: Optional[str] = None,
    sms_gateway_domain: Optional[str] = None,
    webhook_url: Optional[str] = None,
    now: Optional[dt.datetime] = None,
) -> ReminderState:
    now = now or utc_now()
    first_trigger = next_trigger(rule, now, timezone)
    destination = Destination(
        email=_strip(email),
        sms_phone=_strip(sms_phone),
        sms_gateway_domain=_strip(sms_gateway_domain),
        webhook_url=_strip(webhook_url),
    ).require()
    reminder = ReminderState(
        id=str(uuid.uuid4()),
        guild_id=guild_id,
        user_id=user_id or "system",
        message=message.strip(),
        time=str(rule.time_of_day),
        frequency=rule.frequency.value,
        day_of_week=rule.day_of_week,
        day_of_month=rule.day_of_month,
        month=rule.month,
        target_date=rule.target_date.isoformat() if rule.target_date else None,
        email=destination.email,
        sms_phone=destination.sms_phone,
        sms_gateway_domain=destination.sms_gateway_domain,
        webhook_url=destination.webhook_url,
        active=True,
        next_trigger=to_iso(first_trigger),
        last_fired_at=None,
        created_at=to_iso(now),
        updated_at=to_iso(now),
    )
    store.create_reminder(reminder)
    logger.info(
        "reminder_created id=%s guild=%s frequency=%s next_trigger=%s",
        reminder.id,
        guild_id,
        reminder.frequency,
        reminder.next_trigger,
    )
    return reminder


def cancel_reminder(
    store: ReminderStore, reminder: ReminderState, now: Optional[dt.datetime] = None
) -> ReminderState:
    updated = dataclasses.replace(
        reminder, active=False, updated_at=to_iso(now or utc_now())
    )
    store.update_reminder(updated)
    logger.info("reminder_cancelled id=%s guild=%s", reminder.id, reminder.guild_id)
    return updated


def list_reminders(
    store: ReminderStore, guild_id: Optional[str] = None, active_only: bool = False
) -> List[ReminderState]:
    return store.list_reminders(guild_id=guild_id, active_only=active_only)
