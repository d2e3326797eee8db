"""Contact port — read-only access to the organizer's contacts.

The engine never writes contacts; it only reads cadence, last-contact and
birthday fields.
"""

from __future__ import annotations

from typing import Protocol

from keepintouch.data.models import Contact


class ContactPort(Protocol):
    """Abstract contact source used by the engine."""

    async def get_all(self) -> list[Contact]: ...

    async def get_by_id(self, contact_id: int) -> Contact | None: ...
