from .lifecycle import fire
from .service import cancel_reminder, create_reminder, list_reminders

__all__ = [
    "cancel_reminder",
    "create_reminder",
    "fire",
    "list_reminders",
]
