"""SQLite adapters — implement ReminderPort and ContactPort.

The sqlite3 module is synchronous; every call runs through asyncio.to_thread
so the engine can await storage like any other I/O. SQLite failures are
re-raised as ReminderStoreError carrying the underlying cause.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from collections.abc import Callable, Sequence
from datetime import datetime
from typing import Any, TypeVar

from keepintouch.data.db import ContactDB, ReminderDB
from keepintouch.data.models import STATUS_DISMISSED, STATUS_SENT, Contact, Reminder
from keepintouch.ports.reminder_port import ReminderStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def _run(action: str, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Run a blocking DB call in a worker thread, translating SQLite errors."""
    try:
        return await asyncio.to_thread(func, *args, **kwargs)
    except sqlite3.Error as exc:
        logger.error("SQLite error (%s): %s", action, exc)
        raise ReminderStoreError(f"Failed to {action}: {exc}") from exc


class SQLiteReminderStore:
    """ReminderPort backed by a local SQLite database."""

    def __init__(self, db: ReminderDB | None = None) -> None:
        self._db = db or ReminderDB()

    async def create(
        self,
        contact_id: int,
        type: str,
        scheduled_for: datetime,
        message: str,
    ) -> Reminder:
        return await _run(
            "create reminder", self._db.add_reminder,
            contact_id, type, scheduled_for, message,
        )

    async def get_by_id(self, reminder_id: int) -> Reminder | None:
        return await _run("get reminder", self._db.get_reminder, reminder_id)

    async def get_by_contact_id(
        self,
        contact_id: int,
        type: str | Sequence[str] | None = None,
        status: str | Sequence[str] | None = None,
        sort_by: str = "scheduled_for",
        sort_order: str = "asc",
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Reminder]:
        return await _run(
            "get reminders", self._db.query,
            contact_id=contact_id, types=type, statuses=status,
            sort_by=sort_by, sort_order=sort_order, limit=limit, offset=offset,
        )

    async def get_all(
        self,
        type: str | Sequence[str] | None = None,
        status: str | Sequence[str] | None = None,
        scheduled_from: datetime | None = None,
        scheduled_to: datetime | None = None,
        sort_by: str = "scheduled_for",
        sort_order: str = "asc",
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Reminder]:
        return await _run(
            "get reminders", self._db.query,
            types=type, statuses=status,
            scheduled_from=scheduled_from, scheduled_to=scheduled_to,
            sort_by=sort_by, sort_order=sort_order, limit=limit, offset=offset,
        )

    async def get_due_reminders(self, now: datetime) -> list[Reminder]:
        return await _run("get due reminders", self._db.get_due, now)

    async def update(self, reminder_id: int, **fields: Any) -> Reminder:
        return await _run("update reminder", self._db.update_reminder, reminder_id, **fields)

    async def delete(self, reminder_id: int) -> None:
        await _run("delete reminder", self._db.delete_reminder, reminder_id)

    async def delete_pending(self, types: Sequence[str], contact_id: int | None = None) -> int:
        return await _run(
            "delete pending reminders", self._db.delete_pending, types, contact_id,
        )

    async def delete_closed_before(self, cutoff: datetime) -> int:
        return await _run("delete old reminders", self._db.delete_closed_before, cutoff)

    async def mark_multiple_as_sent(self, ids: Sequence[int], sent_at: datetime) -> int:
        return await _run(
            "mark reminders as sent", self._db.close_many, ids, STATUS_SENT, sent_at,
        )

    async def dismiss_multiple(self, ids: Sequence[int], closed_at: datetime) -> int:
        return await _run(
            "dismiss reminders", self._db.close_many, ids, STATUS_DISMISSED, closed_at,
        )


class SQLiteContactStore:
    """ContactPort backed by a local SQLite database."""

    def __init__(self, db: ContactDB | None = None) -> None:
        self._db = db or ContactDB()

    async def get_all(self) -> list[Contact]:
        return await _run("list contacts", self._db.list_all)

    async def get_by_id(self, contact_id: int) -> Contact | None:
        return await _run("get contact", self._db.get_contact, contact_id)
