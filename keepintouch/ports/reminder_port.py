"""Reminder port — abstract interface for reminder storage.

Core modules depend on this protocol, never on a specific backend.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Any, Protocol

from keepintouch.data.models import Reminder


class ReminderStoreError(Exception):
    """Raised when any reminder storage operation fails."""


class ReminderPort(Protocol):
    """Abstract reminder store used by the engine."""

    async def create(
        self,
        contact_id: int,
        type: str,
        scheduled_for: datetime,
        message: str,
    ) -> Reminder: ...

    async def get_by_id(self, reminder_id: int) -> Reminder | None: ...

    async def get_by_contact_id(
        self,
        contact_id: int,
        type: str | Sequence[str] | None = None,
        status: str | Sequence[str] | None = None,
        sort_by: str = "scheduled_for",
        sort_order: str = "asc",
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Reminder]: ...

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
    ) -> list[Reminder]: ...

    async def get_due_reminders(self, now: datetime) -> list[Reminder]: ...

    async def update(self, reminder_id: int, **fields: Any) -> Reminder: ...

    async def delete(self, reminder_id: int) -> None: ...

    async def delete_pending(self, types: Sequence[str], contact_id: int | None = None) -> int: ...

    async def delete_closed_before(self, cutoff: datetime) -> int: ...

    async def mark_multiple_as_sent(self, ids: Sequence[int], sent_at: datetime) -> int: ...

    async def dismiss_multiple(self, ids: Sequence[int], closed_at: datetime) -> int: ...
