"""Tests for the SQLite adapters behind ReminderPort and ContactPort."""

import sqlite3
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from keepintouch.adapters.sqlite_store import SQLiteContactStore, SQLiteReminderStore
from keepintouch.ports.reminder_port import ReminderStoreError

NOW = datetime(2026, 6, 15, 12, 0, tzinfo=timezone.utc)


class TestSQLiteReminderStore:
    @pytest.mark.asyncio
    async def test_create_and_get(self, reminder_store):
        created = await reminder_store.create(1, "communication", NOW + timedelta(days=1), "Call")
        assert await reminder_store.get_by_id(created.id) == created

    @pytest.mark.asyncio
    async def test_get_by_contact_id_accepts_status_list(self, reminder_store):
        pending = await reminder_store.create(1, "communication", NOW + timedelta(days=1), "A")
        dismissed = await reminder_store.create(1, "communication", NOW + timedelta(days=2), "B")
        sent = await reminder_store.create(1, "communication", NOW + timedelta(days=3), "C")
        await reminder_store.dismiss_multiple([dismissed.id], NOW)
        await reminder_store.mark_multiple_as_sent([sent.id], NOW)

        found = await reminder_store.get_by_contact_id(1, status=["pending", "dismissed"])
        assert [r.id for r in found] == [pending.id, dismissed.id]
        assert [r.id for r in await reminder_store.get_by_contact_id(1, status="sent")] == [sent.id]

    @pytest.mark.asyncio
    async def test_get_all_with_range(self, reminder_store):
        await reminder_store.create(1, "communication", NOW + timedelta(days=1), "A")
        late = await reminder_store.create(2, "birthday_day", NOW + timedelta(days=9), "B")
        found = await reminder_store.get_all(scheduled_from=NOW + timedelta(days=5))
        assert [r.id for r in found] == [late.id]

    @pytest.mark.asyncio
    async def test_delete(self, reminder_store):
        created = await reminder_store.create(1, "communication", NOW + timedelta(days=1), "A")
        await reminder_store.delete(created.id)
        assert await reminder_store.get_by_id(created.id) is None

    @pytest.mark.asyncio
    async def test_sqlite_errors_become_store_errors(self):
        db = MagicMock()
        db.query.side_effect = sqlite3.OperationalError("database is locked")
        store = SQLiteReminderStore(db)

        with pytest.raises(ReminderStoreError, match="Failed to get reminders: database is locked") as exc_info:
            await store.get_by_contact_id(1)
        assert isinstance(exc_info.value.__cause__, sqlite3.OperationalError)

    @pytest.mark.asyncio
    async def test_constraint_violation_becomes_store_error(self, reminder_store):
        with pytest.raises(ReminderStoreError, match="Failed to create reminder"):
            await reminder_store.create(1, "communication", NOW, "x" * 201)

    @pytest.mark.asyncio
    async def test_value_errors_pass_through(self, reminder_store):
        with pytest.raises(ValueError):
            await reminder_store.update(999, message="x")


class TestSQLiteContactStore:
    @pytest.mark.asyncio
    async def test_reads_contacts(self, contact_db, contact_store):
        ana = contact_db.add_contact("Ana", "", "monthly")
        assert await contact_store.get_all() == [ana]
        assert await contact_store.get_by_id(ana.id) == ana
        assert await contact_store.get_by_id(999) is None

    @pytest.mark.asyncio
    async def test_errors_wrapped(self):
        db = MagicMock()
        db.list_all.side_effect = sqlite3.DatabaseError("file is not a database")
        with pytest.raises(ReminderStoreError, match="Failed to list contacts"):
            await SQLiteContactStore(db).get_all()
