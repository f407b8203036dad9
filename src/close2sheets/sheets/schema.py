"""Worksheet layout: titles and fixed column headers."""

LEADS_SHEET = "Leads"
OPPORTUNITIES_SHEET = "Opportunities"

# Fixed prefix of the Leads sheet; custom-field columns follow
BASE_LEAD_HEADERS = [
    "Display Name",
    "Lead Owner",
    "Status",
    "Date Created",
    "Date Updated",
    "Pipeline Name",
    "Opportunities",
    "Opportunity Notes",
    "Latest Notes",
    "Tasks",
    "Confidence",
    "Contact Name",
    "Contact Email",
    "Contact Phone",
    "URL",
]

OPPORTUNITY_HEADERS = [
    "Lead Name",
    "Opportunity ID",
    "Pipeline Name",
    "Status Label",
    "Status Type",
    "Value",
    "Value Formatted",
    "Contact Name",
    "Created By",
    "Date Created",
    "Date Updated",
    "Date Won",
    "Date Lost",
    "Confidence",
    "Notes",
]

# Placeholders for absent values
NA = "NA"
NO_NOTES = "No notes available"
NO_TASKS = "No tasks available"
