"""Birthday scheduler — pure business logic.

Birthdays are stored as "MM-DD" without a year. This module resolves them
to concrete occurrence dates (Feb 29 falls back to Feb 28 in non-leap
years), builds the week-before and day-of reminder descriptors, and answers
"who has a birthday soon" questions.

No I/O: this module only transforms data. "Today" is the calendar date of
``now`` in ``now``'s own timezone.
"""

from __future__ import annotations

import calendar
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta

from keepintouch.core.time_utils import ensure_aware, utcnow
from keepintouch.data.models import Contact

logger = logging.getLogger(__name__)

WEEK_BEFORE_DAYS = 7

# February is capped at 29: a leap-day birthday is valid every year.
_DAYS_IN_MONTH = (31, 29, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31)

_BIRTHDAY_RE = re.compile(r"^(0[1-9]|1[0-2])-(0[1-9]|[12]\d|3[01])$")
_DASHED_RE = re.compile(r"^(\d{1,2})-(\d{1,2})$")
_SLASHED_RE = re.compile(r"^(\d{1,2})/(\d{1,2})$")
_MONTH_NAME_RE = re.compile(r"^([a-z]+)\s+(\d{1,2})$")

_MONTH_NAMES = (
    "january", "february", "march", "april", "may", "june",
    "july", "august", "september", "october", "november", "december",
)
_MONTH_ABBREVIATIONS = tuple(name[:3] for name in _MONTH_NAMES)


@dataclass
class BirthdayReminder:
    """A reminder the scheduler would like to exist (not yet persisted)."""

    scheduled_for: datetime
    type: str              # "birthday_week" | "birthday_day"
    message: str


@dataclass
class UpcomingBirthday:
    contact: Contact
    birthday_date: date
    days_until: int


@dataclass
class BirthdayStatistics:
    total_with_birthdays: int = 0
    total_without_birthdays: int = 0
    birthdays_this_month: int = 0
    birthdays_next_month: int = 0
    birthdays_by_month: dict[str, int] = field(default_factory=dict)


def is_valid_birthday(birthday: str) -> bool:
    """Check a zero-padded "MM-DD" string against per-month day bounds."""
    if not isinstance(birthday, str) or not _BIRTHDAY_RE.match(birthday):
        return False
    month, day = (int(part) for part in birthday.split("-"))
    return 1 <= day <= _DAYS_IN_MONTH[month - 1]


def parse_birthday(birthday: str) -> tuple[int, int]:
    """Split a valid "MM-DD" string into (month, day).

    Raises ValueError on malformed input.
    """
    if not is_valid_birthday(birthday):
        raise ValueError(f"Invalid birthday: {birthday!r} (expected MM-DD)")
    month, day = birthday.split("-")
    return int(month), int(day)


def is_leap_year(year: int) -> bool:
    return (year % 4 == 0 and year % 100 != 0) or year % 400 == 0


def occurrence_date(month: int, day: int, year: int) -> date:
    """The date a birthday falls on in ``year``.

    Feb 29 resolves to Feb 28 when ``year`` is not a leap year.
    """
    if month == 2 and day == 29 and not is_leap_year(year):
        return date(year, 2, 28)
    return date(year, month, day)


def format_birthday_for_display(birthday: str) -> str:
    """"03-05" -> "March 5". Invalid input is returned unchanged."""
    if not is_valid_birthday(birthday):
        return birthday
    month, day = parse_birthday(birthday)
    return f"{calendar.month_name[month]} {day}"


def reminder_window(
    birthday: str,
    name: str | None = None,
    now: datetime | None = None,
) -> list[BirthdayReminder]:
    """Week-before and day-of reminders for this year's and next year's birthday.

    Each reminder is scheduled at local midnight (in ``now``'s timezone).
    The list always has four entries, past ones included; persist only what
    ``future_reminders`` keeps.
    """
    month, day = parse_birthday(birthday)
    now = ensure_aware(now or utcnow())
    tz = now.tzinfo
    who = f"{name}'s" if name else f"The {format_birthday_for_display(birthday)}"

    reminders: list[BirthdayReminder] = []
    for year in (now.year, now.year + 1):
        occurrence = occurrence_date(month, day, year)
        week_before = occurrence - timedelta(days=WEEK_BEFORE_DAYS)

        reminders.append(BirthdayReminder(
            scheduled_for=datetime.combine(week_before, time.min, tzinfo=tz),
            type="birthday_week",
            message=f"{who} birthday is coming up in {WEEK_BEFORE_DAYS} days!",
        ))
        reminders.append(BirthdayReminder(
            scheduled_for=datetime.combine(occurrence, time.min, tzinfo=tz),
            type="birthday_day",
            message=f"It's {who} birthday today! 🎉",
        ))
    return reminders


def future_reminders(
    reminders: list[BirthdayReminder], now: datetime | None = None,
) -> list[BirthdayReminder]:
    """Keep only reminders scheduled strictly after ``now``."""
    now = ensure_aware(now or utcnow())
    return [r for r in reminders if r.scheduled_for > now]


def upcoming_birthdays(
    contacts: list[Contact],
    days_ahead: int = 30,
    now: datetime | None = None,
) -> list[UpcomingBirthday]:
    """Contacts whose next birthday is within ``days_ahead`` days, soonest first.

    A birthday today counts as upcoming (0 days).
    """
    today = ensure_aware(now or utcnow()).date()

    upcoming: list[UpcomingBirthday] = []
    for contact in contacts:
        if not contact.birthday:
            continue
        if not is_valid_birthday(contact.birthday):
            logger.warning(
                "Skipping contact #%d with invalid birthday %r",
                contact.id, contact.birthday,
            )
            continue

        month, day = parse_birthday(contact.birthday)
        next_date = occurrence_date(month, day, today.year)
        if next_date < today:
            next_date = occurrence_date(month, day, today.year + 1)

        days_until = (next_date - today).days
        if days_until <= days_ahead:
            upcoming.append(UpcomingBirthday(contact, next_date, days_until))

    upcoming.sort(key=lambda b: b.days_until)
    return upcoming


def todays_birthdays(contacts: list[Contact], now: datetime | None = None) -> list[Contact]:
    """Contacts whose stored "MM-DD" equals today's."""
    today = ensure_aware(now or utcnow()).date()
    today_str = f"{today.month:02d}-{today.day:02d}"
    return [c for c in contacts if c.birthday == today_str]


def parse_birthday_input(text: str) -> str | None:
    """Normalize free-form birthday input to "MM-DD".

    Accepts "3-5", "03/05", "March 5" and "mar 5" (case-insensitive).
    Returns None when the input matches no pattern or names an impossible date.
    """
    cleaned = text.strip().lower()

    match = _DASHED_RE.match(cleaned) or _SLASHED_RE.match(cleaned)
    if match:
        month, day = int(match.group(1)), int(match.group(2))
        return _normalized(month, day)

    match = _MONTH_NAME_RE.match(cleaned)
    if match:
        name, day = match.group(1), int(match.group(2))
        if name in _MONTH_NAMES:
            return _normalized(_MONTH_NAMES.index(name) + 1, day)
        if name in _MONTH_ABBREVIATIONS:
            return _normalized(_MONTH_ABBREVIATIONS.index(name) + 1, day)

    return None


def birthday_statistics(
    contacts: list[Contact], now: datetime | None = None,
) -> BirthdayStatistics:
    """Counts of known birthdays, overall and per month."""
    current_month = ensure_aware(now or utcnow()).month
    next_month = 1 if current_month == 12 else current_month + 1

    stats = BirthdayStatistics(
        birthdays_by_month={calendar.month_name[m]: 0 for m in range(1, 13)},
    )
    for contact in contacts:
        if not contact.birthday or not is_valid_birthday(contact.birthday):
            stats.total_without_birthdays += 1
            continue

        stats.total_with_birthdays += 1
        month, _ = parse_birthday(contact.birthday)
        stats.birthdays_by_month[calendar.month_name[month]] += 1
        if month == current_month:
            stats.birthdays_this_month += 1
        if month == next_month:
            stats.birthdays_next_month += 1

    return stats


def _normalized(month: int, day: int) -> str | None:
    formatted = f"{month:02d}-{day:02d}"
    return formatted if is_valid_birthday(formatted) else None
