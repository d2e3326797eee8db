"""
Keep-in-Touch — SQLite storage.

Reminders and contacts persist in SQLite across runs. These classes are
synchronous; keepintouch.adapters.sqlite_store wraps them behind the async
ports the engine depends on.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

from keepintouch.core.time_utils import from_db, to_db, utcnow
from keepintouch.data.models import (
    CLOSED_STATUSES,
    FREQUENCIES,
    REMINDER_STATUSES,
    STATUS_PENDING,
    Contact,
    Reminder,
)

logger = logging.getLogger(__name__)

_SORT_COLUMNS = ("scheduled_for", "created_at")
_UPDATABLE_FIELDS = ("scheduled_for", "message", "status", "sent_at")


def _as_list(value: str | Sequence[str] | None) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return list(value)


def _in_clause(column: str, values: Sequence) -> str:
    return f"{column} IN ({', '.join('?' for _ in values)})"


class ReminderDB:
    """SQLite-backed storage for reminder records."""

    def __init__(self, db_path: str | None = None) -> None:
        if db_path is None:
            from keepintouch.config import settings
            db_path = settings.DATABASE_PATH

        self._db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        """Create the reminders table if it doesn't exist."""
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS reminders (
                    id            INTEGER PRIMARY KEY AUTOINCREMENT,
                    contact_id    INTEGER NOT NULL,
                    type          TEXT    NOT NULL
                        CHECK (type IN ('communication', 'birthday_week', 'birthday_day')),
                    scheduled_for TEXT    NOT NULL,
                    status        TEXT    NOT NULL DEFAULT 'pending'
                        CHECK (status IN ('pending', 'sent', 'dismissed')),
                    message       TEXT    NOT NULL
                        CHECK (length(message) BETWEEN 1 AND 200),
                    sent_at       TEXT,
                    created_at    TEXT    NOT NULL
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_reminders_contact_status
                    ON reminders (contact_id, status)
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_reminders_status_scheduled
                    ON reminders (status, scheduled_for)
            """)
        logger.debug("Reminders table initialized at %s", self._db_path)

    @staticmethod
    def _row_to_reminder(row: sqlite3.Row) -> Reminder:
        return Reminder(
            id=row["id"],
            contact_id=row["contact_id"],
            type=row["type"],
            scheduled_for=from_db(row["scheduled_for"]),
            message=row["message"],
            status=row["status"],
            sent_at=from_db(row["sent_at"]),
            created_at=from_db(row["created_at"]),
        )

    def add_reminder(
        self,
        contact_id: int,
        type: str,
        scheduled_for: datetime,
        message: str,
    ) -> Reminder:
        """Insert a new pending reminder."""
        created_at = utcnow()
        with self._connect() as conn:
            cursor = conn.execute(
                """
                INSERT INTO reminders
                    (contact_id, type, scheduled_for, status, message, sent_at, created_at)
                VALUES (?, ?, ?, 'pending', ?, NULL, ?)
                """,
                (contact_id, type, to_db(scheduled_for), message, to_db(created_at)),
            )
            reminder_id = cursor.lastrowid

        reminder = Reminder(
            id=reminder_id,
            contact_id=contact_id,
            type=type,
            scheduled_for=from_db(to_db(scheduled_for)),
            message=message,
            status=STATUS_PENDING,
            created_at=from_db(to_db(created_at)),
        )
        logger.info(
            "Reminder added: #%d %s for contact #%d at %s",
            reminder_id, type, contact_id, to_db(scheduled_for),
        )
        return reminder

    def get_reminder(self, reminder_id: int) -> Reminder | None:
        """Fetch a single reminder by ID."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM reminders WHERE id = ?", (reminder_id,)
            ).fetchone()
        if row is None:
            return None
        return self._row_to_reminder(row)

    def query(
        self,
        contact_id: int | None = None,
        types: str | Sequence[str] | None = None,
        statuses: str | Sequence[str] | None = None,
        scheduled_from: datetime | None = None,
        scheduled_to: datetime | None = None,
        sort_by: str = "scheduled_for",
        sort_order: str = "asc",
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Reminder]:
        """Filtered, sorted and paginated reminder listing."""
        if sort_by not in _SORT_COLUMNS:
            raise ValueError(f"Cannot sort reminders by {sort_by!r}")
        if sort_order not in ("asc", "desc"):
            raise ValueError(f"Invalid sort order {sort_order!r}")

        conditions: list[str] = []
        params: list = []
        if contact_id is not None:
            conditions.append("contact_id = ?")
            params.append(contact_id)
        type_list = _as_list(types)
        if type_list:
            conditions.append(_in_clause("type", type_list))
            params.extend(type_list)
        status_list = _as_list(statuses)
        if status_list:
            conditions.append(_in_clause("status", status_list))
            params.extend(status_list)
        if scheduled_from is not None:
            conditions.append("scheduled_for >= ?")
            params.append(to_db(scheduled_from))
        if scheduled_to is not None:
            conditions.append("scheduled_for <= ?")
            params.append(to_db(scheduled_to))

        query = "SELECT * FROM reminders"
        if conditions:
            query += " WHERE " + " AND ".join(conditions)
        query += f" ORDER BY {sort_by} {sort_order.upper()}, id"
        if limit is not None or offset:
            query += " LIMIT ? OFFSET ?"
            params.extend([limit if limit is not None else -1, offset])

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_reminder(r) for r in rows]

    def get_due(self, now: datetime) -> list[Reminder]:
        """Return all pending reminders where scheduled_for <= now."""
        return self.query(statuses=STATUS_PENDING, scheduled_to=now)

    def update_reminder(self, reminder_id: int, **fields) -> Reminder:
        """Update the given columns of a reminder and return the new record."""
        unknown = set(fields) - set(_UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update reminder fields: {sorted(unknown)}")
        if "status" in fields and fields["status"] not in REMINDER_STATUSES:
            raise ValueError(f"Invalid reminder status {fields['status']!r}")

        values = {
            key: to_db(value) if isinstance(value, datetime) else value
            for key, value in fields.items()
        }
        with self._connect() as conn:
            if values:
                assignments = ", ".join(f"{key} = ?" for key in values)
                conn.execute(
                    f"UPDATE reminders SET {assignments} WHERE id = ?",
                    (*values.values(), reminder_id),
                )
            row = conn.execute(
                "SELECT * FROM reminders WHERE id = ?", (reminder_id,)
            ).fetchone()

        if row is None:
            raise ValueError(f"Reminder {reminder_id} not found")
        logger.info("Reminder #%d updated: %s", reminder_id, ", ".join(fields) or "-")
        return self._row_to_reminder(row)

    def delete_reminder(self, reminder_id: int) -> bool:
        """Permanently delete a reminder by ID."""
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM reminders WHERE id = ?", (reminder_id,))
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Reminder #%d deleted", reminder_id)
        return deleted

    def delete_pending(
        self, types: Sequence[str], contact_id: int | None = None,
    ) -> int:
        """Delete pending reminders of the given types, optionally for one contact."""
        type_list = _as_list(types)
        if not type_list:
            return 0
        query = f"DELETE FROM reminders WHERE status = 'pending' AND {_in_clause('type', type_list)}"
        params: list = list(type_list)
        if contact_id is not None:
            query += " AND contact_id = ?"
            params.append(contact_id)

        with self._connect() as conn:
            cursor = conn.execute(query, params)
        logger.info(
            "Deleted %d pending %s reminder(s)%s",
            cursor.rowcount, "/".join(type_list),
            f" for contact #{contact_id}" if contact_id is not None else "",
        )
        return cursor.rowcount

    def delete_closed_before(self, cutoff: datetime) -> int:
        """Delete sent/dismissed reminders scheduled before ``cutoff``."""
        with self._connect() as conn:
            cursor = conn.execute(
                f"DELETE FROM reminders WHERE {_in_clause('status', CLOSED_STATUSES)}"
                " AND scheduled_for < ?",
                (*CLOSED_STATUSES, to_db(cutoff)),
            )
        logger.info("Deleted %d closed reminder(s) scheduled before %s", cursor.rowcount, to_db(cutoff))
        return cursor.rowcount

    def close_many(self, ids: Sequence[int], status: str, closed_at: datetime) -> int:
        """Move the pending reminders among ``ids`` to ``status`` in one statement."""
        if status not in CLOSED_STATUSES:
            raise ValueError(f"Cannot close reminders with status {status!r}")
        id_list = list(ids)
        if not id_list:
            return 0

        with self._connect() as conn:
            cursor = conn.execute(
                f"UPDATE reminders SET status = ?, sent_at = ?"
                f" WHERE status = 'pending' AND {_in_clause('id', id_list)}",
                (status, to_db(closed_at), *id_list),
            )
        logger.info("Marked %d/%d reminder(s) as %s", cursor.rowcount, len(id_list), status)
        return cursor.rowcount


class ContactDB:
    """SQLite-backed storage for tracked contacts."""

    def __init__(self, db_path: str | None = None) -> None:
        if db_path is None:
            from keepintouch.config import settings
            db_path = settings.DATABASE_PATH

        self._db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS contacts (
                    id                      INTEGER PRIMARY KEY AUTOINCREMENT,
                    first_name              TEXT    NOT NULL,
                    last_name               TEXT    NOT NULL DEFAULT '',
                    communication_frequency TEXT,
                    last_contacted_at       TEXT,
                    reminders_paused        INTEGER NOT NULL DEFAULT 0,
                    birthday                TEXT
                )
            """)
        logger.debug("Contacts table initialized at %s", self._db_path)

    @staticmethod
    def _row_to_contact(row: sqlite3.Row) -> Contact:
        return Contact(
            id=row["id"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            communication_frequency=row["communication_frequency"],
            last_contacted_at=from_db(row["last_contacted_at"]),
            reminders_paused=bool(row["reminders_paused"]),
            birthday=row["birthday"],
        )

    def add_contact(
        self,
        first_name: str,
        last_name: str = "",
        communication_frequency: str | None = None,
        last_contacted_at: datetime | None = None,
        birthday: str | None = None,
        reminders_paused: bool = False,
    ) -> Contact:
        """Insert a new contact. Frequency and birthday are validated."""
        from keepintouch.core.birthdays import is_valid_birthday

        if communication_frequency is not None and communication_frequency not in FREQUENCIES:
            raise ValueError(f"Unknown communication frequency: {communication_frequency!r}")
        if birthday is not None and not is_valid_birthday(birthday):
            raise ValueError(f"Invalid birthday: {birthday!r} (expected MM-DD)")

        with self._connect() as conn:
            cursor = conn.execute(
                """
                INSERT INTO contacts
                    (first_name, last_name, communication_frequency,
                     last_contacted_at, reminders_paused, birthday)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    first_name.strip(), last_name.strip(), communication_frequency,
                    to_db(last_contacted_at), int(reminders_paused), birthday,
                ),
            )
            contact_id = cursor.lastrowid

        contact = Contact(
            id=contact_id,
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            communication_frequency=communication_frequency,
            last_contacted_at=from_db(to_db(last_contacted_at)),
            reminders_paused=reminders_paused,
            birthday=birthday,
        )
        logger.info("Contact added: #%d '%s'", contact_id, contact.display_name)
        return contact

    def get_contact(self, contact_id: int) -> Contact | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM contacts WHERE id = ?", (contact_id,)
            ).fetchone()
        if row is None:
            return None
        return self._row_to_contact(row)

    def list_all(self) -> list[Contact]:
        """Return all contacts ordered by ID."""
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM contacts ORDER BY id").fetchall()
        return [self._row_to_contact(r) for r in rows]

    def set_last_contacted(self, contact_id: int, when: datetime | None = None) -> None:
        """Record an interaction with a contact (defaults to now)."""
        when = when or utcnow()
        with self._connect() as conn:
            conn.execute(
                "UPDATE contacts SET last_contacted_at = ? WHERE id = ?",
                (to_db(when), contact_id),
            )
        logger.info("Contact #%d last contacted at %s", contact_id, to_db(when))

    def set_reminders_paused(self, contact_id: int, paused: bool) -> None:
        with self._connect() as conn:
            conn.execute(
                "UPDATE contacts SET reminders_paused = ? WHERE id = ?",
                (int(paused), contact_id),
            )
        logger.info("Contact #%d reminders %s", contact_id, "paused" if paused else "resumed")
