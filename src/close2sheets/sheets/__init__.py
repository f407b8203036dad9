"""Google Sheets output."""
