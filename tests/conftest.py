"""Shared test fixtures and configuration.

Sets up environment variables before any keepintouch imports so
keepintouch.config loads predictable settings, and provides temp-file
SQLite stores plus an engine wired to a fixed clock.
"""

import os

# Patch env vars BEFORE any keepintouch imports
os.environ.setdefault("DATABASE_PATH", ":memory:")
os.environ.setdefault("TIMEZONE", "UTC")
os.environ.setdefault("GENERATION_INTERVAL_HOURS", "6")
os.environ.setdefault("BIRTHDAY_REFRESH_HOUR", "3")
os.environ.setdefault("CLEANUP_DAYS_OLD", "30")

from datetime import datetime, timezone

import pytest

# Mid-June of a non-leap year, noon UTC (test modules repeat this constant)
NOW = datetime(2026, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def clock():
    """A clock frozen at NOW."""
    return lambda: NOW


@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite DB path."""
    return str(tmp_path / "test_keepintouch.db")


@pytest.fixture
def reminder_db(tmp_db_path):
    """Return a ReminderDB instance backed by a temp file."""
    from keepintouch.data.db import ReminderDB
    return ReminderDB(db_path=tmp_db_path)


@pytest.fixture
def contact_db(tmp_db_path):
    """Return a ContactDB instance sharing the reminders' temp file."""
    from keepintouch.data.db import ContactDB
    return ContactDB(db_path=tmp_db_path)


@pytest.fixture
def reminder_store(reminder_db):
    from keepintouch.adapters.sqlite_store import SQLiteReminderStore
    return SQLiteReminderStore(reminder_db)


@pytest.fixture
def contact_store(contact_db):
    from keepintouch.adapters.sqlite_store import SQLiteContactStore
    return SQLiteContactStore(contact_db)


@pytest.fixture
def lifecycle(reminder_store, clock):
    from keepintouch.core.reminder_lifecycle import ReminderLifecycle
    return ReminderLifecycle(reminder_store, clock=clock)


@pytest.fixture
def orchestrator(contact_store, reminder_store, clock):
    from keepintouch.core.orchestrator import ReminderOrchestrator
    return ReminderOrchestrator(contact_store, reminder_store, clock=clock)
