"""
Keep-in-Touch — Data Models.

Contacts are owned by the surrounding organizer and are read-only here.
Reminders are produced and mutated by the reminder engine and persisted
through a ReminderPort.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

FREQUENCIES = ("weekly", "monthly", "quarterly", "biannually", "annually")

REMINDER_TYPES = ("communication", "birthday_week", "birthday_day")
BIRTHDAY_REMINDER_TYPES = ("birthday_week", "birthday_day")

STATUS_PENDING = "pending"
STATUS_SENT = "sent"
STATUS_DISMISSED = "dismissed"
REMINDER_STATUSES = (STATUS_PENDING, STATUS_SENT, STATUS_DISMISSED)
CLOSED_STATUSES = (STATUS_SENT, STATUS_DISMISSED)

MAX_MESSAGE_LENGTH = 200


@dataclass
class Contact:
    """A tracked relationship.

    ``birthday`` is stored as "MM-DD" with no year; "02-29" is allowed and
    resolves to Feb 28 in non-leap years.
    """

    id: int
    first_name: str
    last_name: str = ""
    communication_frequency: str | None = None   # one of FREQUENCIES
    last_contacted_at: datetime | None = None
    reminders_paused: bool = False
    birthday: str | None = None                  # "MM-DD"

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_active(self) -> bool:
        """True when the contact takes part in cadence reminders."""
        return bool(self.communication_frequency) and not self.reminders_paused


@dataclass
class Reminder:
    """A persisted reminder record.

    ``sent_at`` is stamped whenever the reminder leaves ``pending``, for both
    the sent and the dismissed transition.
    """

    id: int
    contact_id: int
    type: str                         # one of REMINDER_TYPES
    scheduled_for: datetime
    message: str
    status: str = STATUS_PENDING
    sent_at: datetime | None = None
    created_at: datetime | None = None


@dataclass
class ContactFailure:
    """One contact that raised during a batch run."""

    contact_id: int
    error: str


@dataclass
class GenerationResult:
    """Outcome of a communication-reminder batch."""

    created: int = 0
    skipped: int = 0
    errors: list[ContactFailure] = field(default_factory=list)

    @property
    def contacts_processed(self) -> int:
        return self.created + self.skipped


@dataclass
class RefreshResult:
    deleted: int
    created: int
    contacts_processed: int


@dataclass
class BirthdayRegenerationResult:
    """Outcome of a birthday-reminder batch."""

    processed: int = 0
    created: int = 0
    errors: list[ContactFailure] = field(default_factory=list)
