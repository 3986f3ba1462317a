import dataclasses
import datetime as dt
from zoneinfo import ZoneInfo

from apps.api.notifications import DeliveryError
from apps.api.reminders_scheduler import ReminderPoller
from packages.scheduling.announcements.service import upsert_weekly_schedule
from packages.scheduling.config import Settings
from packages.scheduling.recurrence.rules import Frequency, RecurrenceRule, TimeOfDay
from packages.scheduling.reminders.service import create_reminder
from packages.scheduling.storage.base import PersistError
from packages.scheduling.storage.sqlite import SQLiteReminderStore


TZ = "America/Los_Angeles"
LA = ZoneInfo(TZ)
CREATED = dt.datetime(2024, 1, 10, 10, 0, tzinfo=LA)
DUE = dt.datetime(2024, 1, 10, 14, 30, tzinfo=LA)


def _settings(tmp_path):
    return Settings(
        timezone=TZ,
        poll_seconds=60,
        scheduler_enabled=False,
        db_path=str(tmp_path / "reminders.db"),
    )


class RecordingDelivery:
    def __init__(self, fail_for=()):
        self.sent = []
        self._fail_for = set(fail_for)

    def __call__(self, destination, subject, body):
        if any(marker in subject for marker in self._fail_for):
            raise DeliveryError("channel unavailable")
        self.sent.append((destination, subject, body))


def _create(store, message, frequency=Frequency.DAILY, hour=14, minute=30, **kwargs):
    rule = RecurrenceRule(time_of_day=TimeOfDay(hour, minute), frequency=frequency, **kwargs)
    return create_reminder(
        store,
        guild_id="house",
        message=message,
        rule=rule,
        timezone=TZ,
        user_id="alex",
        webhook_url="https://hooks.example.com/abc",
        now=CREATED,
    )


def test_tick_fires_due_reminders(tmp_path):
    settings = _settings(tmp_path)
    store = SQLiteReminderStore(db_path=settings.db_path)
    daily = _create(store, "Water plants")
    once = _create(store, "Call plumber", frequency=Frequency.ONCE)
    later = _create(store, "Dinner", hour=18, minute=0)
    delivery = RecordingDelivery()

    result = ReminderPoller(store, settings, deliver=delivery).tick(now=DUE)

    assert result.fired == 2
    assert result.deactivated == 1
    assert sorted(subject for _, subject, _ in delivery.sent) == [
        "Reminder: Call plumber",
        "Reminder: Water plants",
    ]
    assert delivery.sent[0][0].webhook_url == "https://hooks.example.com/abc"
    assert delivery.sent[0][2].startswith("<@alex> ")

    assert store.get_reminder(daily.id).next_trigger == "2024-01-11T22:30:00+00:00"
    assert store.get_reminder(daily.id).last_fired_at == "2024-01-10T22:30:00+00:00"
    assert store.get_reminder(once.id).active is False
    assert store.get_reminder(later.id) == later


def test_second_tick_does_not_refire(tmp_path):
    settings = _settings(tmp_path)
    store = SQLiteReminderStore(db_path=settings.db_path)
    _create(store, "Water plants")
    delivery = RecordingDelivery()
    poller = ReminderPoller(store, settings, deliver=delivery)

    poller.tick(now=DUE)
    result = poller.tick(now=DUE + dt.timedelta(minutes=1))

    assert result.fired == 0
    assert len(delivery.sent) == 1


def test_delivery_failure_does_not_block_batch_or_rescheduling(tmp_path):
    settings = _settings(tmp_path)
    store = SQLiteReminderStore(db_path=settings.db_path)
    failing = _create(store, "Broken channel")
    working = _create(store, "Water plants")
    delivery = RecordingDelivery(fail_for=["Broken channel"])

    result = ReminderPoller(store, settings, deliver=delivery).tick(now=DUE)

    assert result.fired == 2
    assert result.delivery_failures == 1
    assert [subject for _, subject, _ in delivery.sent] == ["Reminder: Water plants"]
    assert store.get_reminder(failing.id).next_trigger == "2024-01-11T22:30:00+00:00"
    assert store.get_reminder(working.id).next_trigger == "2024-01-11T22:30:00+00:00"


class FlakyStore(SQLiteReminderStore):
    def __init__(self, db_path, fail_ids):
        super().__init__(db_path)
        self.fail_ids = set(fail_ids)

    def update_reminder(self, reminder):
        if reminder.id in self.fail_ids:
            raise PersistError("disk full")
        super().update_reminder(reminder)


def test_persist_failure_is_retried_next_tick(tmp_path):
    settings = _settings(tmp_path)
    store = FlakyStore(settings.db_path, fail_ids=())
    stuck = _create(store, "Stuck")
    other = _create(store, "Water plants")
    store.fail_ids.add(stuck.id)
    delivery = RecordingDelivery()
    poller = ReminderPoller(store, settings, deliver=delivery)

    result = poller.tick(now=DUE)

    assert result.persist_failures == 1
    assert result.fired == 1
    assert [subject for _, subject, _ in delivery.sent] == ["Reminder: Water plants"]
    assert store.get_reminder(other.id).next_trigger == "2024-01-11T22:30:00+00:00"
    assert store.get_reminder(stuck.id).next_trigger == "2024-01-10T22:30:00+00:00"

    store.fail_ids.clear()
    retry = poller.tick(now=DUE + dt.timedelta(minutes=1))

    assert retry.fired == 1
    assert store.get_reminder(stuck.id).next_trigger == "2024-01-11T22:30:00+00:00"


class DuplicatingStore(SQLiteReminderStore):
    def list_due_reminders(self, now_iso):
        due = super().list_due_reminders(now_iso)
        return due + due


def test_duplicate_rows_in_snapshot_fire_once(tmp_path):
    settings = _settings(tmp_path)
    store = DuplicatingStore(settings.db_path)
    _create(store, "Water plants")
    delivery = RecordingDelivery()

    result = ReminderPoller(store, settings, deliver=delivery).tick(now=DUE)

    assert result.fired == 1
    assert len(delivery.sent) == 1


def test_overlapping_tick_is_skipped(tmp_path):
    settings = _settings(tmp_path)
    store = SQLiteReminderStore(db_path=settings.db_path)
    _create(store, "Water plants")
    nested = []

    def deliver(destination, subject, body):
        nested.append(poller.tick(now=DUE))

    poller = ReminderPoller(store, settings, deliver=deliver)
    result = poller.tick(now=DUE)

    assert result.fired == 1
    assert len(nested) == 1
    assert nested[0].skipped is True


def test_tick_after_shutdown_is_skipped(tmp_path):
    settings = _settings(tmp_path)
    store = SQLiteReminderStore(db_path=settings.db_path)
    _create(store, "Water plants")
    delivery = RecordingDelivery()
    poller = ReminderPoller(store, settings, deliver=delivery)

    poller.start()
    assert poller.running is True
    poller.shutdown()

    assert poller.running is False
    assert poller.tick(now=DUE).skipped is True
    assert delivery.sent == []


def test_weekly_announcement_fires_once_per_slot(tmp_path):
    settings = _settings(tmp_path)
    store = SQLiteReminderStore(db_path=settings.db_path)
    upsert_weekly_schedule(
        store,
        "house",
        "alex",
        "Weekend plans?",
        weekday=3,
        hour=12,
        minute=0,
        webhook_url="https://hooks.example.com/abc",
        now=CREATED,
    )
    upsert_weekly_schedule(
        store, "cabin", "sam", "Off", weekday=3, hour=12, enabled=False,
        email="cabin@example.com", now=CREATED,
    )
    delivery = RecordingDelivery()
    poller = ReminderPoller(store, settings, deliver=delivery)
    noon = dt.datetime(2024, 1, 10, 12, 0, 20, tzinfo=LA)

    assert poller.tick(now=noon - dt.timedelta(minutes=5)).announcements == 0
    assert poller.tick(now=noon).announcements == 1
    assert poller.tick(now=noon + dt.timedelta(minutes=1)).announcements == 0

    assert [(subject, body) for _, subject, body in delivery.sent] == [
        ("Weekly announcement", "Weekend plans?")
    ]
    assert store.get_weekly_schedule("house").last_fired == "2024-01-10T20:00:20+00:00"
    assert store.get_weekly_schedule("cabin").last_fired is None


def test_broken_rule_does_not_stop_batch(tmp_path):
    settings = _settings(tmp_path)
    store = SQLiteReminderStore(db_path=settings.db_path)
    good = _create(store, "Water plants")
    broken = dataclasses.replace(good, id="broken", frequency="weekly", day_of_week=None)
    store.create_reminder(broken)
    delivery = RecordingDelivery()

    result = ReminderPoller(store, settings, deliver=delivery).tick(now=DUE)

    assert result.fired == 1
    assert store.get_reminder("broken").next_trigger == good.next_trigger


def test_fall_back_hour_delivers_once(tmp_path):
    settings = _settings(tmp_path)
    store = SQLiteReminderStore(db_path=settings.db_path)
    rule = RecurrenceRule(time_of_day=TimeOfDay(1, 30), frequency=Frequency.DAILY)
    start = dt.datetime(2024, 11, 3, 8, 20, tzinfo=dt.timezone.utc)
    reminder = create_reminder(
        store, "house", "Night dose", rule, TZ,
        webhook_url="https://hooks.example.com/abc", now=start,
    )
    assert reminder.next_trigger == "2024-11-03T08:30:00+00:00"
    delivery = RecordingDelivery()
    poller = ReminderPoller(store, settings, deliver=delivery)

    # Every 10 minutes through both passes of 01:00-02:00 local time.
    for step in range(1, 13):
        poller.tick(now=start + dt.timedelta(minutes=10 * step))

    assert len(delivery.sent) == 1
    assert store.get_reminder(reminder.id).next_trigger == "2024-11-04T09:30:00+00:00"
