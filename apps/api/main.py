from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI

try:
    from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
except Exception:  # pragma: no cover - optional dependency resolution
    FastAPIInstrumentor = None

from apps.api.observability import init_observability
from apps.api.reminders_scheduler import ReminderPoller, start_scheduler
from apps.api.routes.reminders import router as reminders_router
from apps.api.routes.schedules import router as schedules_router
from packages.scheduling.config import load_settings
from packages.scheduling.logging_config import configure_logging
from packages.scheduling.storage.sqlite import SQLiteReminderStore


configure_logging()

init_observability()
app = FastAPI(title="Household Reminders API")
if FastAPIInstrumentor is not None:
    FastAPIInstrumentor.instrument_app(app)
else:
    logging.getLogger("household.api").warning(
        "OpenTelemetry instrumentation not available. "
        "Install observability dependencies to enable tracing."
    )
app.include_router(reminders_router)
app.include_router(schedules_router)

_POLLER: Optional[ReminderPoller] = None


@app.on_event("startup")
def _start_reminder_poller() -> None:
    global _POLLER
    settings = load_settings()
    if not settings.scheduler_enabled:
        return
    if _POLLER is not None:
        return
    store = SQLiteReminderStore(db_path=settings.db_path)
    _POLLER = start_scheduler(store, settings)


@app.on_event("shutdown")
def _stop_reminder_poller() -> None:
    global _POLLER
    if _POLLER is None:
        return
    _POLLER.shutdown()
    _POLLER = None
