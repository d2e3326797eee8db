"""Reminder lifecycle — validation and status transitions for one reminder.

States:
    pending -> sent        (mark_sent)
    pending -> dismissed   (dismiss)

There is no path back to pending. Both transitions stamp ``sent_at``; a
dismissed reminder's ``sent_at`` is its closure time. Sent and dismissed
records are only ever removed by ``archive`` (or the engine's cleanup).
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from keepintouch.core.time_utils import Clock, ensure_aware, utcnow
from keepintouch.data.models import (
    MAX_MESSAGE_LENGTH,
    REMINDER_STATUSES,
    REMINDER_TYPES,
    STATUS_DISMISSED,
    STATUS_PENDING,
    STATUS_SENT,
    Reminder,
)
from keepintouch.ports.reminder_port import ReminderPort

logger = logging.getLogger(__name__)


class ReminderValidationError(ValueError):
    """Raised when a reminder would violate its creation/update invariants."""


class ReminderNotFoundError(LookupError):
    """Raised when a reminder ID does not exist."""


class InvalidTransitionError(Exception):
    """Raised when a status change is not allowed from the current status."""


@dataclass
class ReminderStatistics:
    total: int = 0
    pending: int = 0
    sent: int = 0
    dismissed: int = 0
    overdue: int = 0
    by_type: dict[str, int] = field(default_factory=dict)


def validate_message(message: str | None) -> str:
    """Return the trimmed message, or raise ReminderValidationError."""
    if message is None or not message.strip():
        raise ReminderValidationError("Message is required and cannot be empty")
    trimmed = message.strip()
    if len(trimmed) > MAX_MESSAGE_LENGTH:
        raise ReminderValidationError(
            f"Message cannot exceed {MAX_MESSAGE_LENGTH} characters"
        )
    return trimmed


class ReminderLifecycle:
    """Creates, edits and closes reminders through a ReminderPort."""

    def __init__(self, store: ReminderPort, clock: Clock | None = None) -> None:
        self._store = store
        self._clock = clock or utcnow

    def _now(self) -> datetime:
        return ensure_aware(self._clock())

    def _require_future(self, scheduled_for: datetime) -> datetime:
        scheduled_for = ensure_aware(scheduled_for)
        if scheduled_for <= self._now():
            raise ReminderValidationError(
                "Scheduled date must be in the future for pending reminders"
            )
        return scheduled_for

    async def create(
        self,
        contact_id: int,
        type: str,
        scheduled_for: datetime,
        message: str,
    ) -> Reminder:
        """Validate and persist a new pending reminder."""
        if type not in REMINDER_TYPES:
            raise ReminderValidationError(f"Unknown reminder type: {type!r}")
        scheduled_for = self._require_future(scheduled_for)
        message = validate_message(message)

        reminder = await self._store.create(contact_id, type, scheduled_for, message)
        logger.debug("Created %s reminder #%d for contact #%d", type, reminder.id, contact_id)
        return reminder

    async def get(self, reminder_id: int) -> Reminder:
        reminder = await self._store.get_by_id(reminder_id)
        if reminder is None:
            raise ReminderNotFoundError(f"Reminder {reminder_id} not found")
        return reminder

    async def update(
        self,
        reminder_id: int,
        scheduled_for: datetime | None = None,
        message: str | None = None,
    ) -> Reminder:
        """Edit the schedule and/or text of a reminder.

        A pending reminder can only be moved to a future time.
        """
        reminder = await self.get(reminder_id)
        fields: dict = {}
        if scheduled_for is not None:
            if reminder.status == STATUS_PENDING:
                scheduled_for = self._require_future(scheduled_for)
            fields["scheduled_for"] = ensure_aware(scheduled_for)
        if message is not None:
            fields["message"] = validate_message(message)
        if not fields:
            return reminder
        return await self._store.update(reminder_id, **fields)

    async def reschedule(
        self,
        reminder_id: int,
        new_scheduled_for: datetime,
        new_message: str | None = None,
    ) -> Reminder:
        return await self.update(reminder_id, scheduled_for=new_scheduled_for, message=new_message)

    async def _close(self, reminder_id: int, status: str) -> Reminder:
        reminder = await self.get(reminder_id)
        if reminder.status != STATUS_PENDING:
            raise InvalidTransitionError(
                f"Reminder {reminder_id} is {reminder.status}; "
                f"only pending reminders can become {status}"
            )
        updated = await self._store.update(reminder_id, status=status, sent_at=self._now())
        logger.info("Reminder #%d %s", reminder_id, status)
        return updated

    async def mark_sent(self, reminder_id: int) -> Reminder:
        return await self._close(reminder_id, STATUS_SENT)

    async def dismiss(self, reminder_id: int) -> Reminder:
        """Dismiss a pending reminder.

        This does not touch the contact's last-contacted timestamp; callers
        record the interaction separately if the contact was reached.
        """
        return await self._close(reminder_id, STATUS_DISMISSED)

    async def mark_multiple_as_sent(self, ids: Sequence[int]) -> int:
        """Mark every pending reminder in ``ids`` as sent; returns how many changed."""
        if not ids:
            return 0
        return await self._store.mark_multiple_as_sent(list(ids), self._now())

    async def dismiss_multiple(self, ids: Sequence[int]) -> int:
        """Dismiss every pending reminder in ``ids``; returns how many changed."""
        if not ids:
            return 0
        return await self._store.dismiss_multiple(list(ids), self._now())

    async def archive(self, days_old: int = 365) -> int:
        """Delete sent/dismissed reminders scheduled more than ``days_old`` days ago."""
        cutoff = self._now() - timedelta(days=days_old)
        deleted = await self._store.delete_closed_before(cutoff)
        logger.info("Archived %d reminder(s) older than %d days", deleted, days_old)
        return deleted

    async def due_reminders(self) -> list[Reminder]:
        """Pending reminders whose time has come."""
        return await self._store.get_due_reminders(self._now())

    async def upcoming(self, days_ahead: int = 7) -> list[Reminder]:
        """Pending reminders scheduled between now and ``days_ahead`` days out."""
        now = self._now()
        return await self._store.get_all(
            status=STATUS_PENDING,
            scheduled_from=now,
            scheduled_to=now + timedelta(days=days_ahead),
        )

    async def statistics(self) -> ReminderStatistics:
        reminders = await self._store.get_all()
        now = self._now()

        stats = ReminderStatistics(
            total=len(reminders),
            by_type={reminder_type: 0 for reminder_type in REMINDER_TYPES},
        )
        counts = {status: 0 for status in REMINDER_STATUSES}
        for reminder in reminders:
            counts[reminder.status] += 1
            stats.by_type[reminder.type] += 1
            if reminder.status == STATUS_PENDING and reminder.scheduled_for < now:
                stats.overdue += 1

        stats.pending = counts[STATUS_PENDING]
        stats.sent = counts[STATUS_SENT]
        stats.dismissed = counts[STATUS_DISMISSED]
        return stats
