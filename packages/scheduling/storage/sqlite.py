from __future__ import annotations

import os
import sqlite3
from typing import List, Optional

from .base import (
    PersistError,
    ReminderState,
    ReminderStore,
    WeeklyScheduleState,
    WeeklyScheduleStore,
)


_REMINDER_COLUMNS = (
    "id, guild_id, user_id, message, time, frequency, day_of_week, day_of_month, "
    "month, target_date, email, sms_phone, sms_gateway_domain, webhook_url, "
    "active, next_trigger, last_fired_at, created_at, updated_at"
)

_SCHEDULE_COLUMNS = (
    "guild_id, user_id, message, weekday, hour, minute, timezone, enabled, "
    "email, sms_phone, sms_gateway_domain, webhook_url, last_fired, "
    "created_at, updated_at"
)


class SQLiteReminderStore(ReminderStore, WeeklyScheduleStore):
    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        directory = os.path.dirname(db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self._db_path)

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS reminders (
                    id TEXT PRIMARY KEY,
                    guild_id TEXT NOT NULL,
                    user_id TEXT NOT NULL,
                    message TEXT NOT NULL,
                    time TEXT NOT NULL,
                    frequency TEXT NOT NULL,
                    day_of_week INTEGER,
                    day_of_month INTEGER,
                    month INTEGER,
                    target_date TEXT,
                    email TEXT,
                    sms_phone TEXT,
                    sms_gateway_domain TEXT,
                    webhook_url TEXT,
                    active INTEGER NOT NULL,
                    next_trigger TEXT,
                    last_fired_at TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            self._ensure_column(conn, "reminders", "webhook_url", "TEXT", "NULL")
            conn.execute(
                """
                CREATE INDEX IF NOT EXISTS reminders_active_next_trigger_idx
                ON reminders (active, next_trigger)
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS weekly_schedules (
                    guild_id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    message TEXT NOT NULL,
                    weekday INTEGER NOT NULL,
                    hour INTEGER NOT NULL,
                    minute INTEGER NOT NULL,
                    timezone TEXT NOT NULL,
                    enabled INTEGER NOT NULL,
                    email TEXT,
                    sms_phone TEXT,
                    sms_gateway_domain TEXT,
                    webhook_url TEXT,
                    last_fired TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )

    def _ensure_column(
        self, conn: sqlite3.Connection, table: str, column: str, column_def: str, default_sql: str
    ) -> None:
        columns = {row[1] for row in conn.execute(f"PRAGMA table_info({table})")}
        if column in columns:
            return
        conn.execute(
            f"ALTER TABLE {table} ADD COLUMN {column} {column_def} DEFAULT {default_sql}"
        )

    def _row_to_reminder(self, row: tuple) -> ReminderState:
        return ReminderState(
            id=row[0],
            guild_id=row[1],
            user_id=row[2],
            message=row[3],
            time=row[4],
            frequency=row[5],
            day_of_week=row[6],
            day_of_month=row[7],
            month=row[8],
            target_date=row[9],
            email=row[10],
            sms_phone=row[11],
            sms_gateway_domain=row[12],
            webhook_url=row[13],
            active=bool(row[14]),
            next_trigger=row[15],
            last_fired_at=row[16],
            created_at=row[17],
            updated_at=row[18],
        )

    def _row_to_schedule(self, row: tuple) -> WeeklyScheduleState:
        return WeeklyScheduleState(
            guild_id=row[0],
            user_id=row[1],
            message=row[2],
            weekday=row[3],
            hour=row[4],
            minute=row[5],
            timezone=row[6],
            enabled=bool(row[7]),
            email=row[8],
            sms_phone=row[9],
            sms_gateway_domain=row[10],
            webhook_url=row[11],
            last_fired=row[12],
            created_at=row[13],
            updated_at=row[14],
        )

    def create_reminder(self, reminder: ReminderState) -> None:
        with self._connect() as conn:
            conn.execute(
                f"""
                INSERT INTO reminders ({_REMINDER_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    reminder.id,
                    reminder.guild_id,
                    reminder.user_id,
                    reminder.message,
                    reminder.time,
                    reminder.frequency,
                    reminder.day_of_week,
                    reminder.day_of_month,
                    reminder.month,
                    reminder.target_date,
                    reminder.email,
                    reminder.sms_phone,
                    reminder.sms_gateway_domain,
                    reminder.webhook_url,
                    1 if reminder.active else 0,
                    reminder.next_trigger,
                    reminder.last_fired_at,
                    reminder.created_at,
                    reminder.updated_at,
                ),
            )

    def update_reminder(self, reminder: ReminderState) -> None:
        # Only lifecycle fields change after creation.
        try:
            with self._connect() as conn:
                cursor = conn.execute(
                    """
                    UPDATE reminders
                    SET active = ?, next_trigger = ?, last_fired_at = ?, updated_at = ?
                    WHERE id = ?
                    """,
                    (
                        1 if reminder.active else 0,
                        reminder.next_trigger,
                        reminder.last_fired_at,
                        reminder.updated_at,
                        reminder.id,
                    ),
                )
        except sqlite3.Error as exc:
            raise PersistError(f"Failed to save reminder {reminder.id}: {exc}") from exc
        if cursor.rowcount == 0:
            raise PersistError(f"Reminder {reminder.id} does not exist")

    def get_reminder(self, reminder_id: str) -> Optional[ReminderState]:
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {_REMINDER_COLUMNS} FROM reminders WHERE id = ?",
                (reminder_id,),
            ).fetchone()
        if not row:
            return None
        return self._row_to_reminder(row)

    def list_reminders(
        self, guild_id: Optional[str] = None, active_only: bool = False
    ) -> List[ReminderState]:
        clauses = []
        params: list = []
        if guild_id is not None:
            clauses.append("guild_id = ?")
            params.append(guild_id)
        if active_only:
            clauses.append("active = 1")
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        with self._connect() as conn:
            rows = conn.execute(
                f"""
                SELECT {_REMINDER_COLUMNS}
                FROM reminders
                {where}
                ORDER BY next_trigger ASC
                """,
                params,
            ).fetchall()
        return [self._row_to_reminder(row) for row in rows]

    def delete_reminder(self, reminder_id: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM reminders WHERE id = ?", (reminder_id,))

    def list_due_reminders(self, now_iso: str) -> List[ReminderState]:
        with self._connect() as conn:
            rows = conn.execute(
                f"""
                SELECT {_REMINDER_COLUMNS}
                FROM reminders
                WHERE active = 1 AND next_trigger IS NOT NULL AND next_trigger <= ?
                ORDER BY next_trigger ASC
                """,
                (now_iso,),
            ).fetchall()
        return [self._row_to_reminder(row) for row in rows]

    def upsert_weekly_schedule(self, schedule: WeeklyScheduleState) -> None:
        try:
            with self._connect() as conn:
                conn.execute(
                    f"""
                    INSERT INTO weekly_schedules ({_SCHEDULE_COLUMNS})
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(guild_id) DO UPDATE SET
                        user_id = excluded.user_id,
                        message = excluded.message,
                        weekday = excluded.weekday,
                        hour = excluded.hour,
                        minute = excluded.minute,
                        timezone = excluded.timezone,
                        enabled = excluded.enabled,
                        email = excluded.email,
                        sms_phone = excluded.sms_phone,
                        sms_gateway_domain = excluded.sms_gateway_domain,
                        webhook_url = excluded.webhook_url,
                        last_fired = excluded.last_fired,
                        updated_at = excluded.updated_at
                    """,
                    (
                        schedule.guild_id,
                        schedule.user_id,
                        schedule.message,
                        schedule.weekday,
                        schedule.hour,
                        schedule.minute,
                        schedule.timezone,
                        1 if schedule.enabled else 0,
                        schedule.email,
                        schedule.sms_phone,
                        schedule.sms_gateway_domain,
                        schedule.webhook_url,
                        schedule.last_fired,
                        schedule.created_at,
                        schedule.updated_at,
                    ),
                )
        except sqlite3.Error as exc:
            raise PersistError(
                f"Failed to save weekly schedule {schedule.guild_id}: {exc}"
            ) from exc

    def get_weekly_schedule(self, guild_id: str) -> Optional[WeeklyScheduleState]:
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {_SCHEDULE_COLUMNS} FROM weekly_schedules WHERE guild_id = ?",
                (guild_id,),
            ).fetchone()
        if not row:
            return None
        return self._row_to_schedule(row)

    def list_weekly_schedules(
        self, enabled: Optional[bool] = None
    ) -> List[WeeklyScheduleState]:
        with self._connect() as conn:
            if enabled is None:
                rows = conn.execute(
                    f"SELECT {_SCHEDULE_COLUMNS} FROM weekly_schedules ORDER BY guild_id"
                ).fetchall()
            else:
                rows = conn.execute(
                    f"""
                    SELECT {_SCHEDULE_COLUMNS}
                    FROM weekly_schedules
                    WHERE enabled = ?
                    ORDER BY guild_id
                    """,
                    (1 if enabled else 0,),
                ).fetchall()
        return [self._row_to_schedule(row) for row in rows]
