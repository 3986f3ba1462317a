from .reminders import router as reminders_router
from .schedules import router as schedules_router

__all__ = [
    "reminders_router",
    "schedules_router",
]
