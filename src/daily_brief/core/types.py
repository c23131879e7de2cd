"""Raw provider shapes consumed by the parse step.

These mirror the JSON returned by the Gmail and Google Calendar APIs. Every key
is optional here; the parse step decides which ones are required.
"""

from __future__ import annotations

from typing import TypedDict


class RawHeader(TypedDict, total=False):
    """A single RFC 822 header as returned by Gmail."""

    name: str
    value: str


class RawPayload(TypedDict, total=False):
    """Message payload (headers only, bodies are never fetched)."""

    headers: list[RawHeader]


class RawMessage(TypedDict, total=False):
    """One message inside a Gmail thread."""

    id: str
    threadId: str
    internalDate: str  # epoch milliseconds as a string
    labelIds: list[str]
    snippet: str
    payload: RawPayload


class RawThread(TypedDict, total=False):
    """Gmail thread with its messages in chronological order."""

    id: str
    historyId: str
    messages: list[RawMessage]


class RawEventTime(TypedDict, total=False):
    """Start or end of a calendar event.

    Timed events carry ``dateTime``; all-day events carry ``date``.
    """

    dateTime: str
    date: str
    timeZone: str


class RawEvent(TypedDict, total=False):
    """Google Calendar event."""

    id: str
    status: str
    summary: str
    description: str
    location: str
    start: RawEventTime
    end: RawEventTime
