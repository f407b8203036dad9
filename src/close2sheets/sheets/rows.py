"""Flatten enriched leads into worksheet grids."""

import json
import logging
from datetime import datetime, timezone
from typing import Any

from close2sheets.models import Lead, Note, Opportunity, Task
from close2sheets.sheets.schema import (
    BASE_LEAD_HEADERS,
    NA,
    NO_NOTES,
    NO_TASKS,
    OPPORTUNITY_HEADERS,
)

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _parse_iso(value: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp, or None if it isn't one."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, TypeError):
        return None


def format_date(value: str | None) -> str:
    """
    Format an ISO-8601 timestamp as 'YYYY-MM-DD HH:MM'.

    Uses the wall time encoded in the string, no timezone conversion.
    Empty or unparsable input is returned unchanged.
    """
    parsed = _parse_iso(value)
    if parsed is None:
        return value or ""
    return parsed.strftime("%Y-%m-%d %H:%M")


def _number(value: int | float) -> int | float:
    """Drop a trailing '.0' from whole floats."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _scalar(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if _is_number(value):
        return str(_number(value))
    return str(value)


def render_custom_value(value: Any) -> str:
    """Render one custom-field value: absent, sequence, object or scalar."""
    if value is None:
        return NA
    if isinstance(value, (list, tuple)):
        return ", ".join(
            json.dumps(v, separators=(",", ":"), ensure_ascii=False) if isinstance(v, dict) else _scalar(v)
            for v in value
        )
    if isinstance(value, dict):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return _scalar(value)


def custom_field_keys(leads: list[Lead]) -> list[str]:
    """
    Collect custom-field keys across all leads.

    Keys differing only by case are collapsed; the first-seen casing wins.
    """
    seen: set[str] = set()
    keys: list[str] = []

    for lead in leads:
        for key in lead.custom:
            lower = key.lower()
            if lower not in seen:
                seen.add(lower)
                keys.append(key)

    return keys


def _lookup_custom(lead: Lead, key: str) -> Any:
    """Find a custom value by header key, tolerating a different casing."""
    if key in lead.custom:
        return lead.custom[key]
    lower = key.lower()
    for candidate, value in lead.custom.items():
        if candidate.lower() == lower:
            return value
    return None


def format_latest_notes(notes: list[Note]) -> str:
    if not notes:
        return NO_NOTES

    entries = []
    for note in notes:
        date = format_date(note.date_created) if note.date_created else "Unknown date"
        author = note.created_by_name or "Unknown"
        content = note.note or "No content"
        entries.append(f"[{date}] {author}: {content}")
    return "\n\n".join(entries)


def format_tasks(tasks: list[Task]) -> str:
    if not tasks:
        return NO_TASKS

    entries = []
    for task in tasks:
        due = format_date(task.date) if task.date else "No due date"
        status = "✓ COMPLETE" if task.is_complete else "□ OPEN"
        assignee = task.assigned_to_name or "Unassigned"
        text = task.text or "No description"
        entries.append(f"{status} [Due: {due}] {assignee}: {text}")
    return "\n\n".join(entries)


def _confidence(opp: Opportunity) -> str:
    if _is_number(opp.confidence):
        return f"{_number(opp.confidence)}%"
    return NA


def format_opportunity_details(opportunities: list[Opportunity]) -> str:
    """One-line summary per opportunity, joined with '; '."""
    if not opportunities:
        return NA

    summaries = []
    for opp in opportunities:
        pipeline = f"{opp.pipeline_name}: " if opp.pipeline_name else ""
        status = opp.status_label or "Unknown"
        if opp.value_formatted:
            value = opp.value_formatted
        elif opp.value:
            value = f"{_scalar(opp.value)} {opp.value_currency or ''}".strip()
        else:
            value = NA
        date = format_date(opp.date_created).split(" ")[0] if opp.date_created else NA
        summaries.append(f"{pipeline}{status} ({value}) - {_confidence(opp)} - {date}")
    return "; ".join(summaries)


def format_opportunity_notes(opportunities: list[Opportunity]) -> str:
    if not opportunities:
        return NA

    entries = []
    for opp in opportunities:
        pipeline = f"{opp.pipeline_name}: " if opp.pipeline_name else ""
        status = opp.status_label or "Unknown"
        note = opp.note or "No notes"
        entries.append(f"{pipeline}{status}: {note}")
    return "\n\n".join(entries)


def most_recent_opportunity(opportunities: list[Opportunity]) -> Opportunity | None:
    """Latest opportunity by date_updated. Undated ones sort last."""
    if not opportunities:
        return None

    def updated(opp: Opportunity) -> datetime:
        parsed = _parse_iso(opp.date_updated)
        if parsed is None:
            return _EPOCH
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

    return max(opportunities, key=updated)


def select_pipeline_name(opportunities: list[Opportunity]) -> str:
    """
    Pipeline of the most recent opportunity, unless one is a broker
    pipeline, which is shown regardless of recency.
    """
    for opp in opportunities:
        if opp.pipeline_name and "broker" in opp.pipeline_name.lower():
            return opp.pipeline_name

    latest = most_recent_opportunity(opportunities)
    if latest is None:
        return NA
    return latest.pipeline_name or NA


def _contact_cells(lead: Lead) -> list[str]:
    if not lead.contacts:
        return [NA, NA, NA]

    primary = lead.contacts[0]
    return [
        primary.name or NA,
        primary.emails[0] if primary.emails else NA,
        primary.phones[0] if primary.phones else NA,
    ]


def lead_row(lead: Lead, custom_keys: list[str]) -> list[str]:
    """Render one lead under the Leads header built from `custom_keys`."""
    latest = most_recent_opportunity(lead.opportunities)

    row = [
        lead.display_name or NA,
        lead.created_by_name or NA,
        lead.status_label or NA,
        format_date(lead.date_created) or NA,
        format_date(lead.date_updated) or NA,
        select_pipeline_name(lead.opportunities),
        format_opportunity_details(lead.opportunities),
        format_opportunity_notes(lead.opportunities),
        format_latest_notes(lead.notes),
        format_tasks(lead.tasks),
        _confidence(latest) if latest is not None else NA,
        *_contact_cells(lead),
        lead.html_url or NA,
    ]
    row.extend(render_custom_value(_lookup_custom(lead, key)) for key in custom_keys)
    return row


def build_lead_sheet(leads: list[Lead]) -> list[list[str]]:
    """Header row plus one row per lead."""
    # Derived once so every row shares the same columns
    custom_keys = custom_field_keys(leads)
    logger.info(f"Found {len(custom_keys)} unique custom fields")

    rows = [[*BASE_LEAD_HEADERS, *custom_keys]]
    rows.extend(lead_row(lead, custom_keys) for lead in leads)
    return rows


def _count_or_zero(value: int | float | str | None) -> str:
    if not value:
        return "0"
    return _scalar(value)


def opportunity_row(lead: Lead, opp: Opportunity) -> list[str]:
    return [
        lead.display_name or NA,
        opp.id or NA,
        opp.pipeline_name or NA,
        opp.status_label or NA,
        opp.status_type or NA,
        _count_or_zero(opp.value),
        opp.value_formatted or NA,
        opp.contact_name or NA,
        opp.created_by_name or NA,
        format_date(opp.date_created) or NA,
        format_date(opp.date_updated) or NA,
        format_date(opp.date_won) or NA,
        format_date(opp.date_lost) or NA,
        _count_or_zero(opp.confidence),
        opp.note or NA,
    ]


def build_opportunity_sheet(leads: list[Lead]) -> list[list[str]]:
    """Header row plus one row per (lead, opportunity) pair."""
    rows = [list(OPPORTUNITY_HEADERS)]
    for lead in leads:
        rows.extend(opportunity_row(lead, opp) for opp in lead.opportunities)
    return rows
