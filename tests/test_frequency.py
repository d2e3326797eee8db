"""Tests for keepintouch.core.frequency — pure cadence logic."""

from datetime import datetime, timedelta, timezone

import pytest

from keepintouch.core.frequency import (
    FREQUENCY_DAYS,
    build_reminder_message,
    communication_workload,
    contact_schedule,
    days_overdue,
    days_until_due,
    frequency_options,
    interval_days,
    is_good_time_to_contact,
    needs_communication_reminder,
    next_due_date,
    overdue_contacts,
    priority,
    suggest_frequency,
    upcoming_due_dates,
)
from keepintouch.data.models import Contact

NOW = datetime(2026, 6, 15, 12, 0, tzinfo=timezone.utc)


def _contact(
    contact_id: int = 1,
    frequency: str | None = "monthly",
    days_since_contact: float | None = None,
    paused: bool = False,
    first_name: str = "Ana",
) -> Contact:
    last = None if days_since_contact is None else NOW - timedelta(days=days_since_contact)
    return Contact(
        id=contact_id,
        first_name=first_name,
        communication_frequency=frequency,
        last_contacted_at=last,
        reminders_paused=paused,
    )


class TestIntervalDays:
    def test_fixed_table(self):
        assert [interval_days(f) for f in FREQUENCY_DAYS] == [7, 30, 90, 180, 365]

    def test_unknown_frequency_raises(self):
        with pytest.raises(ValueError):
            interval_days("daily")


class TestNextDueDate:
    @pytest.mark.parametrize("frequency", list(FREQUENCY_DAYS))
    def test_adds_interval_to_last_contact(self, frequency):
        last = NOW - timedelta(days=3, hours=5)
        expected = last + timedelta(days=FREQUENCY_DAYS[frequency])
        assert next_due_date(frequency, last, now=NOW) == expected

    def test_never_contacted_counts_from_now(self):
        assert next_due_date("weekly", None, now=NOW) == NOW + timedelta(days=7)

    def test_naive_last_contact_treated_as_utc(self):
        naive = NOW.replace(tzinfo=None)
        assert next_due_date("weekly", naive, now=NOW) == NOW + timedelta(days=7)


class TestDaysUntilAndOverdue:
    def test_not_yet_due(self):
        last = NOW - timedelta(days=10)
        assert days_until_due("monthly", last, now=NOW) == 20
        assert days_overdue("monthly", last, now=NOW) == 0

    def test_partial_day_rounds_up(self):
        last = NOW - timedelta(days=29, hours=12)
        assert days_until_due("monthly", last, now=NOW) == 1

    def test_due_exactly_now_is_not_overdue(self):
        last = NOW - timedelta(days=30)
        assert days_overdue("monthly", last, now=NOW) == 0

    def test_forty_days_since_monthly_contact(self):
        last = NOW - timedelta(days=40)
        assert days_overdue("monthly", last, now=NOW) == 10

    def test_overdue_counts_whole_days(self):
        last = NOW - timedelta(days=40, hours=20)
        assert days_overdue("monthly", last, now=NOW) == 10


class TestPriority:
    @pytest.mark.parametrize(
        "overdue, expected",
        [
            (0, "low"),
            (12, "low"),       # ratio 0.4
            (15, "medium"),    # ratio 0.5
            (18, "medium"),    # ratio 0.6
            (30, "high"),      # ratio 1.0
            (36, "high"),      # ratio 1.2
            (60, "urgent"),    # ratio 2.0
            (75, "urgent"),    # ratio 2.5
        ],
    )
    def test_ratio_thresholds(self, overdue, expected):
        last = NOW - timedelta(days=30 + overdue)
        assert priority("monthly", last, now=NOW) == expected

    def test_ten_days_overdue_monthly_is_low(self):
        assert priority("monthly", NOW - timedelta(days=40), now=NOW) == "low"

    def test_thirty_five_days_overdue_monthly_is_high(self):
        assert priority("monthly", NOW - timedelta(days=65), now=NOW) == "high"

    def test_not_due_is_low(self):
        assert priority("weekly", NOW - timedelta(days=1), now=NOW) == "low"


class TestSuggestFrequency:
    def test_insufficient_history_defaults_to_monthly(self):
        suggestion = suggest_frequency([NOW])
        assert suggestion.suggested == "monthly"
        assert suggestion.confidence == 0.3

    def test_empty_history(self):
        assert suggest_frequency([]).suggested == "monthly"

    def test_regular_weekly_contact(self):
        dates = [NOW - timedelta(days=7 * i) for i in range(5)]
        suggestion = suggest_frequency(dates)
        assert suggestion.suggested == "weekly"
        assert suggestion.confidence == 0.9
        assert "4 interactions" in suggestion.reasoning

    def test_unsorted_input_is_sorted(self):
        dates = [NOW, NOW - timedelta(days=60), NOW - timedelta(days=30)]
        assert suggest_frequency(dates).suggested == "monthly"

    def test_irregular_gaps_lower_confidence(self):
        start = NOW - timedelta(days=60)
        dates = [start, start + timedelta(days=10), start + timedelta(days=60)]
        suggestion = suggest_frequency(dates)
        assert suggestion.suggested == "monthly"
        assert suggestion.confidence == 0.63

    def test_tie_goes_to_shorter_cadence(self):
        start = NOW - timedelta(days=37)
        dates = [start, start + timedelta(days=18), start + timedelta(days=37)]
        assert suggest_frequency(dates).suggested == "weekly"

    def test_same_day_interactions(self):
        suggestion = suggest_frequency([NOW, NOW])
        assert suggestion.suggested == "weekly"
        assert suggestion.confidence == 0.5

    def test_long_gaps_pick_annually(self):
        dates = [NOW - timedelta(days=365 * i) for i in range(3)]
        assert suggest_frequency(dates).suggested == "annually"


class TestCommunicationWorkload:
    def test_counts_only_active_contacts(self):
        contacts = [
            _contact(1, "weekly"),
            _contact(2, "monthly"),
            _contact(3, "weekly", paused=True),
            _contact(4, None),
        ]
        workload = communication_workload(contacts)
        assert workload.by_frequency == {
            "weekly": 1, "monthly": 1, "quarterly": 0, "biannually": 0, "annually": 0,
        }
        assert workload.contacts_per_year == 64.31
        assert workload.contacts_per_week == 1.24
        assert workload.contacts_per_month == 5.36

    def test_empty(self):
        workload = communication_workload([])
        assert workload.contacts_per_year == 0
        assert workload.contacts_per_week == 0


class TestNeedsCommunicationReminder:
    def test_never_contacted(self):
        assert needs_communication_reminder(_contact(), now=NOW) is True

    def test_paused(self):
        assert needs_communication_reminder(_contact(paused=True), now=NOW) is False

    def test_no_frequency(self):
        assert needs_communication_reminder(_contact(frequency=None), now=NOW) is False

    def test_interval_elapsed(self):
        assert needs_communication_reminder(_contact(days_since_contact=31), now=NOW) is True

    def test_recently_contacted(self):
        assert needs_communication_reminder(_contact(days_since_contact=10), now=NOW) is False


class TestUpcomingDueDates:
    def test_weekly_over_one_month(self):
        contact = _contact(frequency="weekly", days_since_contact=0)
        dates = upcoming_due_dates(contact, months_ahead=1, now=NOW)
        assert dates == [NOW + timedelta(days=7 * i) for i in range(1, 5)]

    def test_inactive_contact_has_none(self):
        assert upcoming_due_dates(_contact(paused=True), now=NOW) == []


class TestScheduleHelpers:
    def test_good_time_when_never_contacted(self):
        assert is_good_time_to_contact("monthly", None, now=NOW) is True

    def test_good_time_within_buffer(self):
        last = NOW - timedelta(days=29)
        assert is_good_time_to_contact("monthly", last, now=NOW) is True

    def test_not_good_time_far_from_due(self):
        last = NOW - timedelta(days=1)
        assert is_good_time_to_contact("monthly", last, now=NOW) is False

    def test_contact_schedule(self):
        schedule = contact_schedule("quarterly", NOW)
        assert schedule.interval_days == 90
        assert schedule.next_contact_date == NOW + timedelta(days=90)
        assert schedule.contacts_per_year == 4

    def test_frequency_options(self):
        options = frequency_options()
        assert [o.value for o in options] == list(FREQUENCY_DAYS)
        assert options[0].label == "Weekly"
        assert options[0].description == "Every 7 days"
        assert options[0].contacts_per_year == 52


class TestBuildReminderMessage:
    def test_check_in_message(self):
        assert build_reminder_message(_contact()) == "Time for your monthly check-in with Ana!"

    def test_overdue_message(self):
        message = build_reminder_message(_contact(frequency="biannually"), days_overdue=5)
        assert "It's been 5 days past your bi-annual reminder" in message

    def test_no_frequency(self):
        assert build_reminder_message(_contact(frequency=None)) == "Reminder to contact Ana"


class TestOverdueContacts:
    def test_most_urgent_first(self):
        contacts = [
            _contact(1, "monthly", days_since_contact=40),    # 10 overdue, low
            _contact(2, "weekly", days_since_contact=30),     # 23 overdue, urgent
            _contact(3, "monthly", days_since_contact=5),     # not due
            _contact(4, "monthly", days_since_contact=65),    # 35 overdue, high
            _contact(5, "weekly", days_since_contact=60, paused=True),
        ]
        overdue = overdue_contacts(contacts, now=NOW)
        assert [o.contact.id for o in overdue] == [2, 4, 1]
        assert [o.priority for o in overdue] == ["urgent", "high", "low"]
        assert overdue[0].days_overdue == 23
