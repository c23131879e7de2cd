"""Google Gmail and Calendar API integration."""

from daily_brief.integrations.google.client import (
    CalendarClient,
    GmailClient,
    GoogleApiClient,
    GoogleApiError,
)

__all__ = [
    "CalendarClient",
    "GmailClient",
    "GoogleApiClient",
    "GoogleApiError",
]
