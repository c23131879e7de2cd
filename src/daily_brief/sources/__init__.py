"""Email and calendar sources for linked accounts.

This module provides:
- Abstract EmailSource and CalendarSource interfaces
- Google implementations backed by the Gmail and Calendar APIs
- AccountRegistry holding the user's linked accounts

Example:
    from daily_brief.sources import (
        AccountIdentity,
        AccountRegistry,
        GmailEmailSource,
        GoogleCalendarSource,
        LinkedAccount,
    )

    identity = AccountIdentity("acct-1", "me@example.com", is_primary=True)
    registry = AccountRegistry()
    registry.register(
        LinkedAccount(
            identity,
            email_source=GmailEmailSource(token, identity.account_id),
            calendar_source=GoogleCalendarSource(token, identity.account_id),
        )
    )
"""

from daily_brief.sources.base import (
    AccountIdentity,
    CalendarSource,
    EmailSource,
    LinkedAccount,
    SourceKind,
)
from daily_brief.sources.google import GmailEmailSource, GoogleCalendarSource
from daily_brief.sources.registry import AccountNotFoundError, AccountRegistry

__all__ = [
    # Base types
    "AccountIdentity",
    "LinkedAccount",
    "SourceKind",
    # Abstract interfaces
    "EmailSource",
    "CalendarSource",
    # Implementations
    "GmailEmailSource",
    "GoogleCalendarSource",
    # Registry
    "AccountRegistry",
    "AccountNotFoundError",
]
