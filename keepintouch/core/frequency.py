"""Contact cadence calculator — pure business logic.

Maps a contact's communication frequency and last-contact timestamp to due
dates, overdue amounts and a priority, and suggests a frequency from past
interaction dates.

No I/O: this module only transforms data. Every function that depends on
the current time accepts an optional ``now`` (defaults to UTC now).
"""

from __future__ import annotations

import calendar
import logging
import math
import statistics
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from keepintouch.core.time_utils import days_between, ensure_aware, utcnow
from keepintouch.data.models import FREQUENCIES, Contact

logger = logging.getLogger(__name__)

# Fixed table, not calendar-aware: a "month" is always 30 days.
FREQUENCY_DAYS: dict[str, int] = {
    "weekly": 7,
    "monthly": 30,
    "quarterly": 90,
    "biannually": 180,
    "annually": 365,
}

_DISPLAY_TEXT = {
    "weekly": "weekly",
    "monthly": "monthly",
    "quarterly": "quarterly",
    "biannually": "bi-annual",
    "annually": "annual",
}

_OPTION_LABELS = {
    "weekly": "Weekly",
    "monthly": "Monthly",
    "quarterly": "Quarterly",
    "biannually": "Bi-annually",
    "annually": "Annually",
}

PRIORITY_LOW = "low"
PRIORITY_MEDIUM = "medium"
PRIORITY_HIGH = "high"
PRIORITY_URGENT = "urgent"


@dataclass
class FrequencySuggestion:
    """A suggested cadence derived from interaction history."""

    suggested: str
    confidence: float          # 0.3 .. 0.9
    reasoning: str


@dataclass
class CommunicationWorkload:
    """How many check-ins the active contacts add up to."""

    contacts_per_week: float
    contacts_per_month: float
    contacts_per_year: float
    by_frequency: dict[str, int] = field(default_factory=dict)


@dataclass
class ContactSchedule:
    frequency: str
    interval_days: int
    next_contact_date: datetime
    contacts_per_year: int


@dataclass
class FrequencyOption:
    value: str
    label: str
    description: str
    days: int
    contacts_per_year: int


def interval_days(frequency: str) -> int:
    """Return the interval in days for a frequency.

    Raises ValueError for an unknown frequency.
    """
    try:
        return FREQUENCY_DAYS[frequency]
    except KeyError:
        raise ValueError(f"Unknown communication frequency: {frequency!r}") from None


def next_due_date(
    frequency: str,
    last_contacted_at: datetime | None = None,
    now: datetime | None = None,
) -> datetime:
    """When the next check-in is due: last contact (or now) + interval."""
    base = last_contacted_at if last_contacted_at is not None else (now or utcnow())
    return ensure_aware(base) + timedelta(days=interval_days(frequency))


def days_until_due(
    frequency: str,
    last_contacted_at: datetime | None = None,
    now: datetime | None = None,
) -> int:
    """Whole days until the next check-in, rounded up. Negative when overdue."""
    now = now or utcnow()
    due = next_due_date(frequency, last_contacted_at, now=now)
    return math.ceil(days_between(due, now))


def days_overdue(
    frequency: str,
    last_contacted_at: datetime | None = None,
    now: datetime | None = None,
) -> int:
    """Whole days past the due date, 0 when not yet due."""
    return max(0, -days_until_due(frequency, last_contacted_at, now=now))


def priority(
    frequency: str,
    last_contacted_at: datetime | None = None,
    now: datetime | None = None,
) -> str:
    """Priority from the overdue ratio (days overdue / interval).

    urgent >= 2, high >= 1, medium >= 0.5, otherwise low.
    """
    overdue = days_overdue(frequency, last_contacted_at, now=now)
    if overdue == 0:
        return PRIORITY_LOW

    ratio = overdue / interval_days(frequency)
    if ratio >= 2:
        return PRIORITY_URGENT
    if ratio >= 1:
        return PRIORITY_HIGH
    if ratio >= 0.5:
        return PRIORITY_MEDIUM
    return PRIORITY_LOW


def suggest_frequency(interaction_dates: list[datetime]) -> FrequencySuggestion:
    """Suggest the cadence that best matches past interactions.

    The mean gap between consecutive interactions is matched to the closest
    interval in FREQUENCY_DAYS (ties go to the shorter cadence). Confidence
    grows with how regular the gaps are.
    """
    if len(interaction_dates) < 2:
        return FrequencySuggestion(
            suggested="monthly",
            confidence=0.3,
            reasoning=(
                "Insufficient interaction history. "
                "Monthly is a good default starting point."
            ),
        )

    ordered = sorted(ensure_aware(d) for d in interaction_dates)
    intervals = [
        math.floor(days_between(later, earlier))
        for earlier, later in zip(ordered, ordered[1:])
    ]
    mean = sum(intervals) / len(intervals)

    suggested = FREQUENCIES[0]
    smallest_diff = math.inf
    for frequency in FREQUENCIES:
        diff = abs(mean - FREQUENCY_DAYS[frequency])
        if diff < smallest_diff:
            smallest_diff = diff
            suggested = frequency

    if mean > 0:
        consistency = max(0.0, 1 - statistics.pstdev(intervals) / mean)
    else:
        consistency = 0.0
    confidence = min(0.9, 0.5 + 0.4 * consistency)
    logger.debug(
        "Frequency suggestion: mean gap %.1f days -> %s (consistency %.2f)",
        mean, suggested, consistency,
    )

    return FrequencySuggestion(
        suggested=suggested,
        confidence=round(confidence, 2),
        reasoning=(
            f"Based on {len(intervals)} interactions with an average of "
            f"{round(mean)} days between contacts."
        ),
    )


def communication_workload(contacts: list[Contact]) -> CommunicationWorkload:
    """Aggregate check-ins per year/month/week over active contacts."""
    by_frequency = {frequency: 0 for frequency in FREQUENCIES}
    for contact in contacts:
        if contact.is_active and contact.communication_frequency in by_frequency:
            by_frequency[contact.communication_frequency] += 1

    per_year = sum(
        count * 365 / FREQUENCY_DAYS[frequency]
        for frequency, count in by_frequency.items()
    )
    return CommunicationWorkload(
        contacts_per_week=round(per_year / 52, 2),
        contacts_per_month=round(per_year / 12, 2),
        contacts_per_year=round(per_year, 2),
        by_frequency=by_frequency,
    )


@dataclass
class OverdueContact:
    contact: Contact
    days_overdue: int
    priority: str


_PRIORITY_RANK = {PRIORITY_URGENT: 0, PRIORITY_HIGH: 1, PRIORITY_MEDIUM: 2, PRIORITY_LOW: 3}


def overdue_contacts(contacts: list[Contact], now: datetime | None = None) -> list[OverdueContact]:
    """Active contacts past their due date, most urgent first."""
    now = now or utcnow()
    overdue: list[OverdueContact] = []
    for contact in contacts:
        if not contact.is_active:
            continue
        frequency, last = contact.communication_frequency, contact.last_contacted_at
        days = days_overdue(frequency, last, now=now)
        if days > 0:
            overdue.append(OverdueContact(contact, days, priority(frequency, last, now=now)))

    overdue.sort(key=lambda o: (_PRIORITY_RANK[o.priority], -o.days_overdue))
    return overdue


def needs_communication_reminder(contact: Contact, now: datetime | None = None) -> bool:
    """True when an active contact has gone a full interval without contact."""
    if not contact.is_active:
        return False
    if contact.last_contacted_at is None:
        return True

    elapsed = math.floor(days_between(now or utcnow(), contact.last_contacted_at))
    return elapsed >= interval_days(contact.communication_frequency)


def upcoming_due_dates(
    contact: Contact,
    months_ahead: int = 12,
    now: datetime | None = None,
) -> list[datetime]:
    """All due dates for an active contact between now and ``months_ahead``."""
    if not contact.is_active:
        return []

    now = now or utcnow()
    end = _add_months(now, months_ahead)
    step = timedelta(days=interval_days(contact.communication_frequency))

    dates: list[datetime] = []
    current = next_due_date(
        contact.communication_frequency, contact.last_contacted_at, now=now,
    )
    while current <= end:
        dates.append(current)
        current += step
    return dates


def contact_schedule(frequency: str, start: datetime | None = None) -> ContactSchedule:
    """Describe the ideal cadence starting from ``start`` (defaults to now)."""
    days = interval_days(frequency)
    return ContactSchedule(
        frequency=frequency,
        interval_days=days,
        next_contact_date=next_due_date(frequency, start),
        contacts_per_year=365 // days,
    )


def is_good_time_to_contact(
    frequency: str,
    last_contacted_at: datetime | None = None,
    buffer_days: int = 2,
    now: datetime | None = None,
) -> bool:
    """True when the next check-in is at most ``buffer_days`` away."""
    if last_contacted_at is None:
        return True
    return days_until_due(frequency, last_contacted_at, now=now) <= buffer_days


def frequency_display_text(frequency: str) -> str:
    return _DISPLAY_TEXT.get(frequency, frequency)


def frequency_options() -> list[FrequencyOption]:
    """Selectable cadences, shortest first."""
    return [
        FrequencyOption(
            value=frequency,
            label=_OPTION_LABELS[frequency],
            description=f"Every {FREQUENCY_DAYS[frequency]} days",
            days=FREQUENCY_DAYS[frequency],
            contacts_per_year=365 // FREQUENCY_DAYS[frequency],
        )
        for frequency in FREQUENCIES
    ]


def build_reminder_message(contact: Contact, days_overdue: int | None = None) -> str:
    """Human-readable reminder text for a contact's next check-in."""
    name = contact.first_name
    frequency = contact.communication_frequency
    if not frequency:
        return f"Reminder to contact {name}"

    text = frequency_display_text(frequency)
    if days_overdue:
        return (
            f"Time to reach out to {name}! It's been {days_overdue} days "
            f"past your {text} reminder."
        )
    return f"Time for your {text} check-in with {name}!"


def _add_months(value: datetime, months: int) -> datetime:
    """Calendar-month addition, clamping the day to the target month's length."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)
