"""Pydantic schemas for briefs, threads and events."""

from daily_brief.schemas.brief import (
    TOP_EMAIL_COUNT,
    BriefData,
    BriefSettings,
    CalendarEvent,
    EmailThread,
    Importance,
)

__all__ = [
    "TOP_EMAIL_COUNT",
    "BriefData",
    "BriefSettings",
    "CalendarEvent",
    "EmailThread",
    "Importance",
]
