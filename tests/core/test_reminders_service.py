import datetime as dt
from zoneinfo import ZoneInfo

import pytest

from packages.scheduling.destination import MissingDestination
from packages.scheduling.recurrence.rules import (
    Frequency,
    InvalidRule,
    RecurrenceRule,
    TimeOfDay,
)
from packages.scheduling.reminders.service import (
    cancel_reminder,
    create_reminder,
    list_reminders,
)
from packages.scheduling.storage.sqlite import SQLiteReminderStore


TZ = "America/Los_Angeles"
NOW = dt.datetime(2024, 1, 10, 10, 0, tzinfo=ZoneInfo(TZ))
HOOK = "https://hooks.example.com/abc"


def test_reminder_create_and_cancel(tmp_path):
    store = SQLiteReminderStore(db_path=str(tmp_path / "reminders.db"))

    reminder = create_reminder(
        store=store,
        guild_id="house",
        message=" Trash day ",
        rule=RecurrenceRule(
            time_of_day=TimeOfDay(14, 30), frequency=Frequency.WEEKLY, day_of_week=1
        ),
        timezone=TZ,
        user_id="alex",
        email="test@example.com",
        now=NOW,
    )
    assert reminder.id
    assert reminder.active is True
    assert reminder.message == "Trash day"
    assert reminder.time == "14:30"
    assert reminder.frequency == "weekly"
    assert reminder.next_trigger == "2024-01-15T22:30:00+00:00"
    assert store.get_reminder(reminder.id) == reminder

    cancelled = cancel_reminder(store, reminder, now=NOW)
    assert cancelled.active is False
    assert store.get_reminder(reminder.id).active is False


def test_create_defaults_user_to_system(tmp_path):
    store = SQLiteReminderStore(db_path=str(tmp_path / "reminders.db"))
    reminder = create_reminder(
        store,
        guild_id="house",
        message="Dentist",
        rule=RecurrenceRule(
            time_of_day=TimeOfDay(9, 0),
            frequency=Frequency.ONCE,
            target_date=dt.date(2024, 2, 1),
        ),
        timezone=TZ,
        webhook_url=HOOK,
        now=NOW,
    )
    assert reminder.user_id == "system"
    assert reminder.target_date == "2024-02-01"
    assert reminder.rule().target_date == dt.date(2024, 2, 1)


def test_create_invalid_rule_is_not_saved(tmp_path):
    store = SQLiteReminderStore(db_path=str(tmp_path / "reminders.db"))
    with pytest.raises(InvalidRule):
        create_reminder(
            store,
            guild_id="house",
            message="Broken",
            rule=RecurrenceRule(time_of_day=TimeOfDay(9, 0), frequency=Frequency.WEEKLY),
            timezone=TZ,
            now=NOW,
        )
    assert store.list_reminders() == []


def test_list_reminders_by_guild_in_trigger_order(tmp_path):
    store = SQLiteReminderStore(db_path=str(tmp_path / "reminders.db"))
    daily = RecurrenceRule(time_of_day=TimeOfDay(18, 0), frequency=Frequency.DAILY)
    early = RecurrenceRule(time_of_day=TimeOfDay(11, 0), frequency=Frequency.DAILY)

    late = create_reminder(store, "house", "Dinner", daily, TZ, webhook_url=HOOK, now=NOW)
    first = create_reminder(store, "house", "Lunch", early, TZ, webhook_url=HOOK, now=NOW)
    create_reminder(store, "other", "Elsewhere", early, TZ, webhook_url=HOOK, now=NOW)
    cancel_reminder(store, late, now=NOW)

    assert [r.message for r in list_reminders(store, guild_id="house")] == ["Lunch", "Dinner"]
    active = list_reminders(store, guild_id="house", active_only=True)
    assert [r.id for r in active] == [first.id]


def test_create_requires_a_destination(tmp_path):
    store = SQLiteReminderStore(db_path=str(tmp_path / "reminders.db"))
    daily = RecurrenceRule(time_of_day=TimeOfDay(18, 0), frequency=Frequency.DAILY)

    with pytest.raises(MissingDestination):
        create_reminder(store, "house", "Dinner", daily, TZ, now=NOW)
    # A phone number alone is not deliverable without its carrier gateway.
    with pytest.raises(MissingDestination):
        create_reminder(store, "house", "Dinner", daily, TZ, sms_phone="5551234567", now=NOW)
    with pytest.raises(MissingDestination):
        create_reminder(store, "house", "Dinner", daily, TZ, email="   ", now=NOW)
    assert store.list_reminders() == []

    texted = create_reminder(
        store, "house", "Dinner", daily, TZ,
        sms_phone="5551234567", sms_gateway_domain="vtext.com", now=NOW,
    )
    assert texted.sms_gateway_domain == "vtext.com"
