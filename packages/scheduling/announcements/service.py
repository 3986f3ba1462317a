from __future__ import annotations

import dataclasses
import datetime as dt
import logging
from typing import Optional

from ..clock import from_iso, to_iso, utc_now
from ..destination import Destination
from ..recurrence.weekly import WeeklySchedule
from ..storage.base import WeeklyScheduleState, WeeklyScheduleStore


logger = logging.getLogger("household.announcements")

DEFAULT_WEEKDAY = 1
DEFAULT_HOUR = 12
DEFAULT_MINUTE = 0
DEFAULT_TIMEZONE = "America/Los_Angeles"


def to_weekly_schedule(schedule: WeeklyScheduleState) -> WeeklySchedule:
    return WeeklySchedule(
        weekday=schedule.weekday,
        hour=schedule.hour,
        minute=schedule.minute,
        timezone=schedule.timezone,
    )


def upsert_weekly_schedule(
    store: WeeklyScheduleStore,
    guild_id: str,
    user_id: str,
    message: str,
    weekday: Optional[int] = None,
    hour: Optional[int] = None,
    minute: Optional[int] = None,
    timezone: Optional[str] = None,
    enabled: Optional[bool] = None,
    email: Optional[str] = None,
    sms_phone: Optional[str] = None,
    sms_gateway_domain: Optional[str] = None,
    webhook_url: Optional[str] = None,
    now: Optional[dt.datetime] = None,
) -> WeeklyScheduleState:
    """Create a guild's weekly announcement or update the given fields.

    Missing fields keep their stored value, or fall back to Monday at noon
    Pacific for a new guild. The slot and the delivery destination are
    validated before anything is saved.
    """
    stamp = to_iso(now or utc_now())
    existing = store.get_weekly_schedule(guild_id)
    if existing is None:
        schedule = WeeklyScheduleState(
            guild_id=guild_id,
            user_id=user_id,
            message=message.strip(),
            weekday=DEFAULT_WEEKDAY if weekday is None else weekday,
            hour=DEFAULT_HOUR if hour is None else hour,
            minute=DEFAULT_MINUTE if minute is None else minute,
            timezone=timezone or DEFAULT_TIMEZONE,
            enabled=True if enabled is None else enabled,
            email=email,
            sms_phone=sms_phone,
            sms_gateway_domain=sms_gateway_domain,
            webhook_url=webhook_url,
            last_fired=None,
            created_at=stamp,
            updated_at=stamp,
        )
    else:
        schedule = dataclasses.replace(
            existing,
            user_id=user_id,
            message=message.strip(),
            weekday=existing.weekday if weekday is None else weekday,
            hour=existing.hour if hour is None else hour,
            minute=existing.minute if minute is None else minute,
            timezone=timezone or existing.timezone,
            enabled=existing.enabled if enabled is None else enabled,
            email=email if email is not None else existing.email,
            sms_phone=sms_phone if sms_phone is not None else existing.sms_phone,
            sms_gateway_domain=(
                sms_gateway_domain
                if sms_gateway_domain is not None
                else existing.sms_gateway_domain
            ),
            webhook_url=webhook_url if webhook_url is not None else existing.webhook_url,
            updated_at=stamp,
        )

    # Raises InvalidRule / ValueError for a bad slot or timezone.
    to_weekly_schedule(schedule).next_run(now or utc_now())
    Destination.of(schedule).require()
    store.upsert_weekly_schedule(schedule)
    logger.info(
        "weekly_schedule_saved guild=%s cron=%s enabled=%s",
        guild_id,
        to_weekly_schedule(schedule).to_cron_string(),
        schedule.enabled,
    )
    return schedule


def set_enabled(
    store: WeeklyScheduleStore,
    guild_id: str,
    enabled: bool,
    now: Optional[dt.datetime] = None,
) -> Optional[WeeklyScheduleState]:
    existing = store.get_weekly_schedule(guild_id)
    if existing is None:
        return None
    updated = dataclasses.replace(
        existing, enabled=enabled, updated_at=to_iso(now or utc_now())
    )
    store.upsert_weekly_schedule(updated)
    return updated


def is_due(schedule: WeeklyScheduleState, now: dt.datetime) -> bool:
    """True when a slot has come up since the schedule last fired or changed."""
    if not schedule.enabled:
        return False
    anchor = from_iso(schedule.last_fired) or from_iso(schedule.updated_at)
    if anchor is None:
        return False
    return to_weekly_schedule(schedule).next_run(anchor) <= now


def mark_fired(
    store: WeeklyScheduleStore, schedule: WeeklyScheduleState, now: dt.datetime
) -> WeeklyScheduleState:
    stamp = to_iso(now)
    updated = dataclasses.replace(schedule, last_fired=stamp, updated_at=stamp)
    store.upsert_weekly_schedule(updated)
    return updated
