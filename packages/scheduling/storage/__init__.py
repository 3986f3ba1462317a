from .base import (
    PersistError,
    ReminderState,
    ReminderStore,
    WeeklyScheduleState,
    WeeklyScheduleStore,
)
from .sqlite import SQLiteReminderStore

__all__ = [
    "PersistError",
    "ReminderState",
    "ReminderStore",
    "WeeklyScheduleState",
    "WeeklyScheduleStore",
    "SQLiteReminderStore",
]
