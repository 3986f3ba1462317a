from .service import (
    is_due,
    mark_fired,
    set_enabled,
    to_weekly_schedule,
    upsert_weekly_schedule,
)

__all__ = [
    "is_due",
    "mark_fired",
    "set_enabled",
    "to_weekly_schedule",
    "upsert_weekly_schedule",
]
