"""Data models for close2sheets."""

from typing import Any

from pydantic import BaseModel, Field


class Note(BaseModel):
    """Note activity attached to a lead."""

    id: str = ""
    note: str = ""
    date_created: str = ""
    created_by_name: str = "Unknown"

    @classmethod
    def from_close_api(cls, item: dict) -> "Note":
        """Parse a Close note activity, preferring plain text over HTML."""
        return cls(
            id=item.get("id") or "",
            note=item.get("note") or item.get("note_html") or "",
            date_created=item.get("date_created") or "",
            created_by_name=item.get("created_by_name") or "Unknown",
        )


class Task(BaseModel):
    """Task attached to a lead."""

    id: str = ""
    text: str = ""
    date_created: str = ""
    date: str = Field(default="", description="Due date")
    is_complete: bool = False
    assigned_to_name: str = "Unassigned"

    @classmethod
    def from_close_api(cls, item: dict) -> "Task":
        """Parse a Close task."""
        return cls(
            id=item.get("id") or "",
            text=item.get("text") or "",
            date_created=item.get("date_created") or "",
            date=item.get("due_date") or "",
            is_complete=bool(item.get("is_complete")),
            assigned_to_name=item.get("assigned_to_name") or "Unassigned",
        )


class Contact(BaseModel):
    """Lead contact. Only the first email and phone are ever displayed."""

    name: str | None = None
    emails: list[str] = Field(default_factory=list)
    phones: list[str] = Field(default_factory=list)

    @classmethod
    def from_close_api(cls, item: dict) -> "Contact":
        """Parse a contact embedded in a Close lead.

        Expected structure:
        {
            "name": "Jane Doe",
            "display_name": "Jane Doe",
            "emails": [{"email": "jane@example.com", "type": "office"}],
            "phones": [{"phone": "+441234567890", "type": "mobile"}],
        }
        """
        emails = [e.get("email") for e in item.get("emails") or [] if e.get("email")]
        phones = [p.get("phone") for p in item.get("phones") or [] if p.get("phone")]

        return cls(
            name=item.get("name") or item.get("display_name") or None,
            emails=emails,
            phones=phones,
        )


class Opportunity(BaseModel):
    """Sales opportunity, kept as Close returns it."""

    id: str | None = None
    pipeline_name: str | None = None
    status_label: str | None = None
    status_type: str | None = None
    value: int | float | str | None = None
    value_formatted: str | None = None
    value_currency: str | None = None
    contact_name: str | None = None
    created_by_name: str | None = None
    date_created: str | None = None
    date_updated: str | None = None
    date_won: str | None = None
    date_lost: str | None = None
    confidence: int | float | str | None = None
    note: str | None = None


class Lead(BaseModel):
    """Close lead with the notes and tasks attached during enrichment."""

    id: str
    display_name: str = ""
    created_by_name: str = ""
    date_created: str = ""
    date_updated: str = ""
    status_label: str = ""
    html_url: str = ""
    opportunities: list[Opportunity] = Field(default_factory=list)
    contacts: list[Contact] = Field(default_factory=list)
    custom: dict[str, Any] = Field(default_factory=dict, description="Account-specific custom fields")

    # Filled in by LeadEnricher
    notes: list[Note] = Field(default_factory=list)
    tasks: list[Task] = Field(default_factory=list)

    @classmethod
    def from_close_api(cls, item: dict) -> "Lead":
        """Parse a Close lead restricted to the exported field projection.

        Expected structure:
        {
            "id": "lead_abc",
            "display_name": "Acme Ltd",
            "created_by_name": "Sam Owner",
            "date_created": "2024-01-15T10:30:45.123000+00:00",
            "date_updated": "2024-02-01T08:00:00+00:00",
            "status_label": "Qualified",
            "html_url": "https://app.close.com/lead/lead_abc/",
            "opportunities": [{...}],
            "contacts": [{...}],
            "custom": {"Region": "North", "Tags": ["A", "B"]},
        }
        """
        return cls(
            id=item["id"],
            display_name=item.get("display_name") or "",
            created_by_name=item.get("created_by_name") or "",
            date_created=item.get("date_created") or "",
            date_updated=item.get("date_updated") or "",
            status_label=item.get("status_label") or "",
            html_url=item.get("html_url") or "",
            opportunities=[Opportunity.model_validate(o) for o in item.get("opportunities") or []],
            contacts=[Contact.from_close_api(c) for c in item.get("contacts") or []],
            custom=dict(item.get("custom") or {}),
        )


class ExportStats(BaseModel):
    """Statistics from an export run."""

    spreadsheet_id: str | None = None
    leads: int = 0
    opportunities: int = 0
    custom_fields: int = 0
    published: bool = False
