"""Pytest fixtures for close2sheets tests."""

from pathlib import Path

import pytest

from close2sheets.config import Settings
from close2sheets.models import Lead


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings built without reading the environment's .env file."""
    key_file = tmp_path / "service-account.json"
    key_file.write_text("{}")
    return Settings(
        _env_file=None,
        CLOSE_API_KEY="api_test",
        CLOSE_API_BASE="https://close.test/api/v1",
        SOURCE_FIELD_ID="lcf_source",
        SOURCE_TAG="Lead-Maggy",
        GOOGLE_SERVICE_ACCOUNT_PATH=str(key_file),
        GOOGLE_SHEET_ID="sheet123",
        ADMIN_EMAIL="admin@example.com",
    )


@pytest.fixture
def close_lead_payload() -> dict:
    """Lead as returned by GET /lead/ with the exported field projection."""
    return {
        "id": "lead_1",
        "display_name": "Acme Ltd",
        "created_by_name": "Sam Owner",
        "date_created": "2024-01-15T10:30:45.123000+00:00",
        "date_updated": "2024-02-01T08:05:00+00:00",
        "status_label": "Qualified",
        "html_url": "https://app.close.com/lead/lead_1/",
        "opportunities": [
            {
                "id": "oppo_old",
                "pipeline_name": "Sales",
                "status_label": "Active",
                "status_type": "active",
                "value": 150000,
                "value_formatted": "£1,500",
                "value_currency": "GBP",
                "confidence": 40,
                "created_by_name": "Sam Owner",
                "date_created": "2024-01-16T09:00:00+00:00",
                "date_updated": "2024-01-20T09:00:00+00:00",
                "note": "Call back in March",
            },
            {
                "id": "oppo_new",
                "pipeline_name": "Renewals",
                "status_label": "Won",
                "status_type": "won",
                "value": 0,
                "confidence": 90,
                "date_created": "2024-01-25T09:00:00+00:00",
                "date_updated": "2024-02-01T09:00:00+00:00",
                "date_won": "2024-02-01T09:00:00+00:00",
            },
        ],
        "contacts": [
            {
                "name": "Jane Doe",
                "emails": [{"email": "jane@acme.test", "type": "office"}],
                "phones": [{"phone": "+441234567890", "type": "mobile"}],
            },
            {"name": "Second Contact", "emails": [], "phones": []},
        ],
        "custom": {"Region": "North", "Tags": ["A", "B"], "Employees": 12},
    }


@pytest.fixture
def lead(close_lead_payload: dict) -> Lead:
    return Lead.from_close_api(close_lead_payload)


def make_lead(lead_id: str = "lead_x", **fields) -> Lead:
    """Minimal lead for tests that only care about a few fields."""
    return Lead(id=lead_id, display_name=fields.pop("display_name", lead_id), **fields)
