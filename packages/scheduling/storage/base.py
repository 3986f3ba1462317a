from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Protocol, runtime_checkable

from ..recurrence.rules import RecurrenceRule


class PersistError(RuntimeError):
    """Raised when a reminder or schedule write cannot be committed."""


@dataclass(frozen=True)
class ReminderState:
    id: str
    guild_id: str
    user_id: str
    message: str
    time: str
    frequency: str
    day_of_week: Optional[int]
    day_of_month: Optional[int]
    month: Optional[int]
    target_date: Optional[str]
    email: Optional[str]
    sms_phone: Optional[str]
    sms_gateway_domain: Optional[str]
    webhook_url: Optional[str]
    active: bool
    next_trigger: Optional[str]
    last_fired_at: Optional[str]
    created_at: str
    updated_at: str

    def rule(self) -> RecurrenceRule:
        return RecurrenceRule.from_fields(
            time=self.time,
            frequency=self.frequency,
            day_of_week=self.day_of_week,
            day_of_month=self.day_of_month,
            month=self.month,
            target_date=self.target_date,
        )


@runtime_checkable
class ReminderStore(Protocol):
    def create_reminder(self, reminder: ReminderState) -> None:
        """Persist a new reminder."""

    def update_reminder(self, reminder: ReminderState) -> None:
        """Update an existing reminder. Raises PersistError on failure."""

    def get_reminder(self, reminder_id: str) -> Optional[ReminderState]:
        """Return reminder by id."""

    def list_reminders(
        self, guild_id: Optional[str] = None, active_only: bool = False
    ) -> List[ReminderState]:
        """List reminders ordered by next trigger."""

    def delete_reminder(self, reminder_id: str) -> None:
        """Delete a reminder."""

    def list_due_reminders(self, now_iso: str) -> List[ReminderState]:
        """List active reminders whose next trigger is at or before now."""


@dataclass(frozen=True)
class WeeklyScheduleState:
    guild_id: str
    user_id: str
    message: str
    weekday: int
    hour: int
    minute: int
    timezone: str
    enabled: bool
    email: Optional[str]
    sms_phone: Optional[str]
    sms_gateway_domain: Optional[str]
    webhook_url: Optional[str]
    last_fired: Optional[str]
    created_at: str
    updated_at: str


@runtime_checkable
class WeeklyScheduleStore(Protocol):
    def upsert_weekly_schedule(self, schedule: WeeklyScheduleState) -> None:
        """Insert or replace the schedule for a guild."""

    def get_weekly_schedule(self, guild_id: str) -> Optional[WeeklyScheduleState]:
        """Return the schedule for a guild."""

    def list_weekly_schedules(
        self, enabled: Optional[bool] = None
    ) -> List[WeeklyScheduleState]:
        """List schedules, optionally filtered by enabled flag."""
