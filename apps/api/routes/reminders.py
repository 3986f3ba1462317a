from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException

from apps.api.schemas.reminders import (
    ReminderCreateRequest,
    ReminderPreviewResponse,
    ReminderResponse,
    ReminderRuleRequest,
)
from packages.scheduling.clock import to_iso, utc_now
from packages.scheduling.config import Settings, load_settings
from packages.scheduling.recurrence.calculator import next_trigger
from packages.scheduling.recurrence.rules import InvalidRule, RecurrenceRule
from packages.scheduling.reminders.service import (
    cancel_reminder,
    create_reminder,
    list_reminders,
)
from packages.scheduling.storage.sqlite import SQLiteReminderStore


router = APIRouter(prefix="/reminders", tags=["reminders"])


def _settings() -> Settings:
    return load_settings()


def _store() -> SQLiteReminderStore:
    return SQLiteReminderStore(db_path=_settings().db_path)


def _rule(payload: ReminderRuleRequest) -> RecurrenceRule:
    try:
        return RecurrenceRule.from_fields(
            time=payload.time,
            frequency=payload.frequency,
            day_of_week=payload.day_of_week,
            day_of_month=payload.day_of_month,
            month=payload.month,
            target_date=payload.target_date,
        )
    except InvalidRule as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def _to_response(reminder) -> ReminderResponse:
    return ReminderResponse(**reminder.__dict__)


@router.post("", response_model=ReminderResponse)
def create(payload: ReminderCreateRequest) -> ReminderResponse:
    rule = _rule(payload)
    try:
        reminder = create_reminder(
            _store(),
            guild_id=payload.guild_id,
            message=payload.message,
            rule=rule,
            timezone=_settings().timezone,
            user_id=payload.user_id,
            email=payload.email,
            sms_phone=payload.sms_phone,
            sms_gateway_domain=payload.sms_gateway_domain,
            webhook_url=payload.webhook_url,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _to_response(reminder)


@router.post("/preview", response_model=ReminderPreviewResponse)
def preview(payload: ReminderRuleRequest) -> ReminderPreviewResponse:
    rule = _rule(payload)
    timezone = _settings().timezone
    return ReminderPreviewResponse(
        timezone=timezone,
        next_trigger=to_iso(next_trigger(rule, utc_now(), timezone)),
    )


@router.get("", response_model=List[ReminderResponse])
def list_all(guild_id: Optional[str] = None, active_only: bool = False) -> List[ReminderResponse]:
    reminders = list_reminders(_store(), guild_id=guild_id, active_only=active_only)
    return [_to_response(reminder) for reminder in reminders]


@router.get("/{reminder_id}", response_model=ReminderResponse)
def get(reminder_id: str) -> ReminderResponse:
    reminder = _store().get_reminder(reminder_id)
    if reminder is None:
        raise HTTPException(status_code=404, detail="Reminder not found")
    return _to_response(reminder)


@router.post("/{reminder_id}/cancel", response_model=ReminderResponse)
def cancel(reminder_id: str) -> ReminderResponse:
    store = _store()
    reminder = store.get_reminder(reminder_id)
    if reminder is None:
        raise HTTPException(status_code=404, detail="Reminder not found")
    updated = cancel_reminder(store, reminder)
    return _to_response(updated)


@router.delete("/{reminder_id}")
def delete(reminder_id: str) -> Dict[str, Any]:
    store = _store()
    reminder = store.get_reminder(reminder_id)
    if reminder is None:
        raise HTTPException(status_code=404, detail="Reminder not found")
    store.delete_reminder(reminder_id)
    return {"status": "deleted", "id": reminder_id}
