"""Close CRM API access."""
