"""Tests for parsing Close API payloads into models."""

from close2sheets.models import Contact, Lead, Note, Task


class TestLead:
    def test_from_close_api_parses_nested_records(self, close_lead_payload: dict) -> None:
        lead = Lead.from_close_api(close_lead_payload)

        assert lead.id == "lead_1"
        assert lead.display_name == "Acme Ltd"
        assert lead.created_by_name == "Sam Owner"
        assert [o.id for o in lead.opportunities] == ["oppo_old", "oppo_new"]
        assert lead.opportunities[0].value == 150000
        assert lead.contacts[0].emails == ["jane@acme.test"]
        assert lead.custom["Tags"] == ["A", "B"]
        assert lead.notes == []
        assert lead.tasks == []

    def test_missing_collections_default_to_empty(self) -> None:
        lead = Lead.from_close_api(
            {"id": "lead_2", "opportunities": None, "contacts": None, "custom": None}
        )

        assert lead.opportunities == []
        assert lead.contacts == []
        assert lead.custom == {}
        assert lead.display_name == ""


class TestContact:
    def test_name_falls_back_to_display_name(self) -> None:
        contact = Contact.from_close_api({"display_name": "J. Doe"})
        assert contact.name == "J. Doe"

    def test_skips_blank_emails_and_phones(self) -> None:
        contact = Contact.from_close_api(
            {
                "name": "Jane",
                "emails": [{"email": ""}, {"email": "jane@acme.test"}],
                "phones": [{"type": "mobile"}],
            }
        )
        assert contact.emails == ["jane@acme.test"]
        assert contact.phones == []


class TestNote:
    def test_falls_back_to_html_body(self) -> None:
        note = Note.from_close_api({"id": "acti_1", "note": "", "note_html": "<p>Hi</p>"})
        assert note.note == "<p>Hi</p>"
        assert note.created_by_name == "Unknown"

    def test_plain_body_preferred(self) -> None:
        note = Note.from_close_api({"note": "plain", "note_html": "<p>html</p>"})
        assert note.note == "plain"


class TestTask:
    def test_defaults(self) -> None:
        task = Task.from_close_api({"id": "task_1", "text": "Call"})
        assert task.date == ""
        assert task.is_complete is False
        assert task.assigned_to_name == "Unassigned"

    def test_due_date_mapped(self) -> None:
        task = Task.from_close_api({"due_date": "2024-03-01", "is_complete": True})
        assert task.date == "2024-03-01"
        assert task.is_complete is True
