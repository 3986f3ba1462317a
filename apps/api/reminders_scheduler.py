from __future__ import annotations

import datetime as dt
import logging
import threading
from dataclasses import asdict, dataclass
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler

from apps.api.notifications import Destination, deliver
from apps.api.observability import annotate, get_tracer, span
from packages.scheduling.announcements.service import is_due, mark_fired
from packages.scheduling.clock import to_iso, utc_now
from packages.scheduling.config import Settings
from packages.scheduling.reminders.lifecycle import fire
from packages.scheduling.storage.base import (
    ReminderState,
    ReminderStore,
    WeeklyScheduleState,
    WeeklyScheduleStore,
)


logger = logging.getLogger("household.poller")

Deliver = Callable[[Destination, str, str], None]


@dataclass
class TickResult:
    fired: int = 0
    deactivated: int = 0
    persist_failures: int = 0
    delivery_failures: int = 0
    announcements: int = 0
    skipped: bool = False


def _reminder_subject(reminder: ReminderState) -> str:
    return f"Reminder: {reminder.message}"


def _reminder_body(reminder: ReminderState) -> str:
    if reminder.user_id and reminder.user_id != "system":
        return f"<@{reminder.user_id}> {reminder.message}"
    return reminder.message


class ReminderPoller:
    """Interval-driven loop that fires due reminders and weekly announcements.

    Only one tick runs at a time; a tick that starts while the previous one
    is still working is skipped. Each record is handled in isolation, so one
    failing write or delivery never stops the rest of the batch. A reminder
    whose write fails keeps its past ``next_trigger`` and is picked up again
    on the next tick.
    """

    def __init__(
        self,
        store,
        settings: Settings,
        deliver: Deliver = deliver,
        clock: Callable[[], dt.datetime] = utc_now,
    ) -> None:
        self._store = store
        self._settings = settings
        self._deliver = deliver
        self._clock = clock
        self._tick_lock = threading.Lock()
        self._stopping = threading.Event()
        self._scheduler: Optional[BackgroundScheduler] = None
        self._tracer = get_tracer("household.poller")

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def tick(self, now: Optional[dt.datetime] = None) -> TickResult:
        if self._stopping.is_set():
            return TickResult(skipped=True)
        if not self._tick_lock.acquire(blocking=False):
            logger.warning("poller_tick_skipped reason=previous_tick_running")
            return TickResult(skipped=True)
        try:
            now = now or self._clock()
            result = TickResult()
            with span(self._tracer, "reminders.tick", {"reminders.now": to_iso(now)}) as current:
                self._process_due_reminders(now, result)
                self._process_weekly_schedules(now, result)
                annotate(current, {f"reminders.{k}": v for k, v in asdict(result).items()})
            if result.fired or result.announcements or result.persist_failures:
                logger.info(
                    "poller_tick fired=%s deactivated=%s announcements=%s "
                    "persist_failures=%s delivery_failures=%s",
                    result.fired,
                    result.deactivated,
                    result.announcements,
                    result.persist_failures,
                    result.delivery_failures,
                )
            return result
        finally:
            self._tick_lock.release()

    def _process_due_reminders(self, now: dt.datetime, result: TickResult) -> None:
        store: ReminderStore = self._store
        try:
            due = store.list_due_reminders(to_iso(now))
        except Exception as exc:
            logger.exception("reminder_query_failed error=%s", exc)
            return

        seen = set()
        for reminder in due:
            if reminder.id in seen:
                continue
            seen.add(reminder.id)
            self._process_reminder(reminder, now, result)

    def _process_reminder(
        self, reminder: ReminderState, now: dt.datetime, result: TickResult
    ) -> None:
        try:
            updated = fire(reminder, reminder.rule(), now, self._settings.timezone)
        except ValueError as exc:
            logger.exception("reminder_fire_failed id=%s error=%s", reminder.id, exc)
            return
        if updated is reminder:
            return

        try:
            self._store.update_reminder(updated)
        except Exception as exc:
            result.persist_failures += 1
            logger.exception("reminder_persist_failed id=%s error=%s", reminder.id, exc)
            return

        result.fired += 1
        if not updated.active:
            result.deactivated += 1

        try:
            self._deliver(
                Destination.of(reminder),
                _reminder_subject(reminder),
                _reminder_body(reminder),
            )
        except Exception as exc:
            result.delivery_failures += 1
            logger.exception("reminder_send_failed id=%s error=%s", reminder.id, exc)

    def _process_weekly_schedules(self, now: dt.datetime, result: TickResult) -> None:
        store: WeeklyScheduleStore = self._store
        try:
            schedules = store.list_weekly_schedules(enabled=True)
        except Exception as exc:
            logger.exception("weekly_schedule_query_failed error=%s", exc)
            return

        for schedule in schedules:
            self._process_schedule(schedule, now, result)

    def _process_schedule(
        self, schedule: WeeklyScheduleState, now: dt.datetime, result: TickResult
    ) -> None:
        try:
            if not is_due(schedule, now):
                return
        except ValueError as exc:
            logger.exception(
                "weekly_schedule_invalid guild=%s error=%s", schedule.guild_id, exc
            )
            return

        try:
            self._deliver(
                Destination.of(schedule), "Weekly announcement", schedule.message
            )
        except Exception as exc:
            result.delivery_failures += 1
            logger.exception(
                "announcement_send_failed guild=%s error=%s", schedule.guild_id, exc
            )

        try:
            mark_fired(self._store, schedule, now)
        except Exception as exc:
            result.persist_failures += 1
            logger.exception(
                "announcement_persist_failed guild=%s error=%s", schedule.guild_id, exc
            )
            return
        result.announcements += 1

    def start(self) -> BackgroundScheduler:
        scheduler = BackgroundScheduler(timezone=self._settings.timezone)
        scheduler.add_job(
            self.tick,
            "interval",
            seconds=self._settings.poll_seconds,
            id="reminders",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.info(
            "poller_started interval_seconds=%s timezone=%s",
            self._settings.poll_seconds,
            self._settings.timezone,
        )
        return scheduler

    def shutdown(self) -> None:
        """Stop polling; a tick already in progress is allowed to finish."""
        self._stopping.set()
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=True)
        self._scheduler = None
        logger.info("poller_stopped")


def start_scheduler(
    store, settings: Settings, deliver: Deliver = deliver
) -> ReminderPoller:
    poller = ReminderPoller(store, settings, deliver=deliver)
    poller.start()
    return poller
