"""
Keep-in-Touch — Reminder Orchestrator.

Decides, for every tracked contact, whether a reminder should exist right
now, and writes the ones that are missing:

- Communication reminders follow the contact's cadence. A reminder is only
  created inside the 7-day lead-time window before the due date, and never
  when a pending or dismissed reminder already sits within 2 days of it.
- Birthday reminders are recomputed from scratch: pending birthday
  reminders are deleted, then the week-before/day-of reminders for this
  year and next year are written (future ones only).

Batch operations isolate failures per contact and report them in their
result instead of raising. Calls touching the same contact are serialized
with a per-contact lock, so the dedup read and the insert cannot interleave
within this process.

This module is storage-agnostic: it depends on the ContactPort and
ReminderPort protocols, not on SQLite.
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta, tzinfo
from typing import TYPE_CHECKING

from keepintouch.core.birthdays import future_reminders, reminder_window
from keepintouch.core.frequency import build_reminder_message, next_due_date
from keepintouch.core.reminder_lifecycle import ReminderLifecycle
from keepintouch.core.time_utils import Clock, days_between, ensure_aware, utcnow
from keepintouch.data.models import (
    BIRTHDAY_REMINDER_TYPES,
    FREQUENCIES,
    STATUS_DISMISSED,
    STATUS_PENDING,
    BirthdayRegenerationResult,
    Contact,
    ContactFailure,
    Reminder,
    GenerationResult,
    RefreshResult,
)

if TYPE_CHECKING:
    from keepintouch.ports.contact_port import ContactPort
    from keepintouch.ports.reminder_port import ReminderPort

logger = logging.getLogger(__name__)

DEDUP_WINDOW_DAYS = 2
LEAD_TIME_DAYS = 7


@dataclass
class ReminderStats:
    """Snapshot of pending communication reminders."""

    pending: int = 0
    overdue: int = 0
    scheduled: int = 0
    by_frequency: dict[str, int] = field(default_factory=dict)


class ReminderOrchestrator:
    """Generates and maintains reminders for a set of contacts.

    The orchestrator borrows its ports; it never opens or closes storage.
    ``tz`` sets the calendar used for birthdays (defaults to ``clock``'s).
    """

    def __init__(
        self,
        contacts: ContactPort,
        reminders: ReminderPort,
        lifecycle: ReminderLifecycle | None = None,
        clock: Clock | None = None,
        tz: tzinfo | None = None,
    ) -> None:
        self._contacts = contacts
        self._reminders = reminders
        self._clock = clock or utcnow
        self._tz = tz
        self._lifecycle = lifecycle or ReminderLifecycle(reminders, clock=self._clock)
        # contact id -> (lock, number of callers holding or awaiting it)
        self._locks: dict[int, tuple[asyncio.Lock, int]] = {}
        self._background_tasks: set[asyncio.Task] = set()

    def _now(self) -> datetime:
        now = ensure_aware(self._clock())
        return now.astimezone(self._tz) if self._tz is not None else now

    @asynccontextmanager
    async def _contact_lock(self, contact_id: int) -> AsyncIterator[None]:
        """Serialize work on one contact; the lock is dropped once nobody uses it."""
        lock, users = self._locks.get(contact_id, (None, 0))
        if lock is None:
            lock = asyncio.Lock()
        self._locks[contact_id] = (lock, users + 1)
        try:
            async with lock:
                yield
        finally:
            _, users = self._locks[contact_id]
            if users == 1:
                del self._locks[contact_id]
            else:
                self._locks[contact_id] = (lock, users - 1)

    # ------------------------------------------------------------------
    # Communication reminders
    # ------------------------------------------------------------------

    async def generate_for_contact(self, contact: Contact) -> bool:
        """Create the next communication reminder for a contact if one is due.

        Returns True when a reminder was created.
        """
        if contact.reminders_paused or not contact.communication_frequency:
            return False

        async with self._contact_lock(contact.id):
            return await self._generate_locked(contact)

    async def _generate_locked(self, contact: Contact) -> bool:
        now = self._now()
        next_due = next_due_date(
            contact.communication_frequency, contact.last_contacted_at, now=now,
        )

        existing = await self._reminders.get_by_contact_id(
            contact.id, status=[STATUS_PENDING, STATUS_DISMISSED],
        )
        for reminder in existing:
            if abs(days_between(reminder.scheduled_for, next_due)) <= DEDUP_WINDOW_DAYS:
                logger.debug(
                    "Contact #%d already has reminder #%d (%s) near %s",
                    contact.id, reminder.id, reminder.status, next_due.date(),
                )
                return False

        # Overdue contacts are surfaced at read time, not by new reminders.
        if next_due <= now:
            return False
        days_until = math.ceil(days_between(next_due, now))
        if days_until > LEAD_TIME_DAYS:
            return False

        reminder = await self._lifecycle.create(
            contact.id, "communication", next_due, build_reminder_message(contact),
        )
        logger.info(
            "Communication reminder #%d created for contact #%d (due in %d day(s))",
            reminder.id, contact.id, days_until,
        )
        return True

    async def generate_all(self, contacts: list[Contact] | None = None) -> GenerationResult:
        """Run generate_for_contact over every contact.

        A contact that raises is logged, counted as skipped and listed in
        ``errors``; the batch always completes.
        """
        if contacts is None:
            contacts = await self._contacts.get_all()

        result = GenerationResult()
        for contact in contacts:
            try:
                if await self.generate_for_contact(contact):
                    result.created += 1
                else:
                    result.skipped += 1
            except Exception as exc:
                logger.error("Failed to generate reminder for contact #%d: %s", contact.id, exc)
                result.skipped += 1
                result.errors.append(ContactFailure(contact.id, str(exc)))

        logger.info(
            "Reminder generation: %d created, %d skipped, %d error(s)",
            result.created, result.skipped, len(result.errors),
        )
        return result

    async def refresh_all(self) -> RefreshResult:
        """Delete every pending communication reminder, then regenerate.

        Destructive: meant for periodic consistency repair, not routine runs.
        """
        deleted = await self._reminders.delete_pending(["communication"])
        result = await self.generate_all()
        logger.info("Reminder refresh: %d deleted, %d created", deleted, result.created)
        return RefreshResult(
            deleted=deleted,
            created=result.created,
            contacts_processed=result.contacts_processed,
        )

    async def cleanup(self, days_old: int = 30) -> int:
        """Hard-delete sent/dismissed reminders scheduled over ``days_old`` days ago."""
        cutoff = self._now() - timedelta(days=days_old)
        deleted = await self._reminders.delete_closed_before(cutoff)
        logger.info("Cleanup removed %d reminder(s) older than %d days", deleted, days_old)
        return deleted

    async def reminder_stats(self) -> ReminderStats:
        """Pending communication reminders: total, overdue, and per contact cadence."""
        now = self._now()
        reminders = await self._reminders.get_all(type="communication", status=STATUS_PENDING)
        frequencies = {
            contact.id: contact.communication_frequency
            for contact in await self._contacts.get_all()
        }

        stats = ReminderStats(
            pending=len(reminders),
            by_frequency={frequency: 0 for frequency in FREQUENCIES},
        )
        for reminder in reminders:
            if reminder.scheduled_for < now:
                stats.overdue += 1
            frequency = frequencies.get(reminder.contact_id)
            if frequency in stats.by_frequency:
                stats.by_frequency[frequency] += 1
        stats.scheduled = stats.pending - stats.overdue
        return stats

    # ------------------------------------------------------------------
    # Birthday reminders
    # ------------------------------------------------------------------

    async def regenerate_birthday_reminders(self, contact: Contact) -> int:
        """Replace a contact's pending birthday reminders; returns how many were created.

        Contacts without a birthday, or with reminders paused, are left alone.
        A reminder that fails to save is logged and the rest are still written.
        """
        if not contact.birthday or contact.reminders_paused:
            return 0

        async with self._contact_lock(contact.id):
            await self._reminders.delete_pending(BIRTHDAY_REMINDER_TYPES, contact_id=contact.id)

            now = self._now()
            window = reminder_window(contact.birthday, name=contact.first_name, now=now)
            created = 0
            for descriptor in future_reminders(window, now=now):
                try:
                    await self._lifecycle.create(
                        contact.id, descriptor.type, descriptor.scheduled_for, descriptor.message,
                    )
                except Exception as exc:
                    logger.error(
                        "Failed to create %s reminder for contact #%d at %s: %s",
                        descriptor.type, contact.id, descriptor.scheduled_for.date(), exc,
                    )
                    continue
                created += 1

        logger.info("Birthday reminders for contact #%d: %d created", contact.id, created)
        return created

    async def needs_birthday_reminder_generation(self, contact: Contact) -> bool:
        """True for a contact with a birthday, not paused, and no pending birthday reminders."""
        if not contact.birthday or contact.reminders_paused:
            return False
        pending = await self._reminders.get_by_contact_id(
            contact.id, type=BIRTHDAY_REMINDER_TYPES, status=STATUS_PENDING,
        )
        return not pending

    async def todays_birthday_reminders(self) -> list[Reminder]:
        """Pending birthday reminders scheduled during today's local calendar day."""
        now = self._now()
        start = datetime.combine(now.date(), time.min, tzinfo=now.tzinfo)
        return await self._reminders.get_all(
            type=BIRTHDAY_REMINDER_TYPES,
            status=STATUS_PENDING,
            scheduled_from=start,
            scheduled_to=start + timedelta(days=1) - timedelta(microseconds=1),
        )

    async def regenerate_all_birthday_reminders(
        self, contacts: list[Contact] | None = None,
    ) -> BirthdayRegenerationResult:
        """Run regenerate_birthday_reminders over every contact with a birthday."""
        if contacts is None:
            contacts = await self._contacts.get_all()

        result = BirthdayRegenerationResult()
        for contact in contacts:
            if not contact.birthday or contact.reminders_paused:
                continue
            result.processed += 1
            try:
                result.created += await self.regenerate_birthday_reminders(contact)
            except Exception as exc:
                logger.error(
                    "Failed to generate birthday reminders for contact #%d: %s",
                    contact.id, exc,
                )
                result.errors.append(ContactFailure(contact.id, str(exc)))

        logger.info(
            "Birthday regeneration: %d processed, %d created, %d error(s)",
            result.processed, result.created, len(result.errors),
        )
        return result

    # ------------------------------------------------------------------
    # Fire-and-forget
    # ------------------------------------------------------------------

    def start_background_generation(self) -> asyncio.Task:
        """Schedule generate_all without waiting for it.

        Errors are logged and never reach the caller. Must be called from a
        running event loop.
        """
        task = asyncio.create_task(self._generate_in_background())
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        return task

    async def _generate_in_background(self) -> None:
        try:
            await self.generate_all()
        except Exception as exc:
            logger.error("Background reminder generation failed: %s", exc)
