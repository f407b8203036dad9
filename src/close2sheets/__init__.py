"""Export Close CRM leads to Google Sheets."""

__version__ = "0.1.0"
