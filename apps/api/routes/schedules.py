from __future__ import annotations

from fastapi import APIRouter, HTTPException

from apps.api.schemas.schedules import WeeklyScheduleRequest, WeeklyScheduleResponse
from packages.scheduling.announcements.service import (
    set_enabled,
    to_weekly_schedule,
    upsert_weekly_schedule,
)
from packages.scheduling.clock import to_iso, utc_now
from packages.scheduling.config import load_settings
from packages.scheduling.storage.base import WeeklyScheduleState
from packages.scheduling.storage.sqlite import SQLiteReminderStore


router = APIRouter(prefix="/schedules", tags=["schedules"])


def _store() -> SQLiteReminderStore:
    return SQLiteReminderStore(db_path=load_settings().db_path)


def _to_response(schedule: WeeklyScheduleState) -> WeeklyScheduleResponse:
    weekly = to_weekly_schedule(schedule)
    return WeeklyScheduleResponse(
        guild_id=schedule.guild_id,
        user_id=schedule.user_id,
        message=schedule.message,
        weekday=schedule.weekday,
        hour=schedule.hour,
        minute=schedule.minute,
        timezone=schedule.timezone,
        enabled=schedule.enabled,
        last_fired=schedule.last_fired,
        next_run=to_iso(weekly.next_run(utc_now())),
        description=weekly.describe(),
        cron=weekly.to_cron_string(),
        created_at=schedule.created_at,
        updated_at=schedule.updated_at,
    )


@router.put("/{guild_id}", response_model=WeeklyScheduleResponse)
def upsert(guild_id: str, payload: WeeklyScheduleRequest) -> WeeklyScheduleResponse:
    try:
        schedule = upsert_weekly_schedule(
            _store(),
            guild_id=guild_id,
            user_id=payload.user_id,
            message=payload.message,
            weekday=payload.weekday,
            hour=payload.hour,
            minute=payload.minute,
            timezone=payload.timezone,
            enabled=payload.enabled,
            email=payload.email,
            sms_phone=payload.sms_phone,
            sms_gateway_domain=payload.sms_gateway_domain,
            webhook_url=payload.webhook_url,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _to_response(schedule)


@router.get("/{guild_id}", response_model=WeeklyScheduleResponse)
def get(guild_id: str) -> WeeklyScheduleResponse:
    schedule = _store().get_weekly_schedule(guild_id)
    if schedule is None:
        raise HTTPException(status_code=404, detail="Schedule not found")
    return _to_response(schedule)


def _toggle(guild_id: str, enabled: bool) -> WeeklyScheduleResponse:
    schedule = set_enabled(_store(), guild_id, enabled)
    if schedule is None:
        raise HTTPException(status_code=404, detail="Schedule not found")
    return _to_response(schedule)


@router.post("/{guild_id}/enable", response_model=WeeklyScheduleResponse)
def enable(guild_id: str) -> WeeklyScheduleResponse:
    return _toggle(guild_id, True)


@router.post("/{guild_id}/disable", response_model=WeeklyScheduleResponse)
def disable(guild_id: str) -> WeeklyScheduleResponse:
    return _toggle(guild_id, False)
