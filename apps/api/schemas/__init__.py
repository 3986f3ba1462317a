from .reminders import (
    ReminderCreateRequest,
    ReminderPreviewResponse,
    ReminderResponse,
    ReminderRuleRequest,
)
from .schedules import WeeklyScheduleRequest, WeeklyScheduleResponse

__all__ = [
    "ReminderCreateRequest",
    "ReminderPreviewResponse",
    "ReminderResponse",
    "ReminderRuleRequest",
    "WeeklyScheduleRequest",
    "WeeklyScheduleResponse",
]
