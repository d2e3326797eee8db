"""Tests for data models in keepintouch.data.models."""

from keepintouch.data.models import Contact, ContactFailure, GenerationResult


class TestContact:
    def test_defaults(self):
        contact = Contact(id=1, first_name="Ana")
        assert contact.last_name == ""
        assert contact.communication_frequency is None
        assert contact.reminders_paused is False
        assert contact.birthday is None

    def test_display_name(self):
        assert Contact(id=1, first_name="Ana", last_name="Silva").display_name == "Ana Silva"
        assert Contact(id=1, first_name="Ana").display_name == "Ana"

    def test_is_active(self):
        assert Contact(1, "Ana", communication_frequency="weekly").is_active is True
        assert Contact(1, "Ana").is_active is False
        assert Contact(
            1, "Ana", communication_frequency="weekly", reminders_paused=True,
        ).is_active is False


class TestGenerationResult:
    def test_contacts_processed(self):
        result = GenerationResult(created=2, skipped=3, errors=[ContactFailure(4, "boom")])
        assert result.contacts_processed == 5

    def test_errors_not_shared(self):
        first, second = GenerationResult(), GenerationResult()
        first.errors.append(ContactFailure(1, "x"))
        assert second.errors == []
