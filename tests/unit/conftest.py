"""Shared fixtures for unit tests."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from daily_brief.schemas.brief import CalendarEvent, EmailThread, Importance

NOW = datetime(2026, 3, 10, 9, 0, tzinfo=UTC)


class FakeClock:
    """Settable clock for TTL and recency tests."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    """Clock fixed at NOW."""
    return FakeClock()


@pytest.fixture
def make_raw_thread() -> Callable[..., dict[str, Any]]:
    """Factory for Gmail-shaped raw threads."""

    def _make(
        thread_id: str = "t1",
        *,
        subject: str = "Hello",
        sender: str = "Alice <alice@example.com>",
        to: str = "me@example.com",
        sent_at: datetime = NOW,
        labels: Sequence[str] = ("INBOX",),
        snippet: str = "",
    ) -> dict[str, Any]:
        return {
            "id": thread_id,
            "messages": [
                {
                    "id": f"{thread_id}-m1",
                    "threadId": thread_id,
                    "internalDate": str(int(sent_at.timestamp() * 1000)),
                    "labelIds": list(labels),
                    "snippet": snippet,
                    "payload": {
                        "headers": [
                            {"name": "Subject", "value": subject},
                            {"name": "From", "value": sender},
                            {"name": "To", "value": to},
                        ]
                    },
                }
            ],
        }

    return _make


@pytest.fixture
def make_raw_event() -> Callable[..., dict[str, Any]]:
    """Factory for Google Calendar-shaped raw events."""

    def _make(
        event_id: str = "e1",
        *,
        summary: str = "Standup",
        start: datetime = NOW + timedelta(hours=1),
        end: datetime = NOW + timedelta(hours=2),
        status: str = "confirmed",
    ) -> dict[str, Any]:
        return {
            "id": event_id,
            "status": status,
            "summary": summary,
            "start": {"dateTime": start.isoformat()},
            "end": {"dateTime": end.isoformat()},
        }

    return _make


@pytest.fixture
def make_thread() -> Callable[..., EmailThread]:
    """Factory for scored email threads."""

    def _make(thread_id: str = "t1", **overrides: Any) -> EmailThread:
        fields: dict[str, Any] = {
            "id": thread_id,
            "subject": "Hello",
            "participants": ["alice@example.com", "me@example.com"],
            "sender": "alice@example.com",
            "last_message_date": NOW - timedelta(hours=1),
            "urgency_score": 2,
            "importance": Importance.LOW,
            "account_ids": ["me@example.com"],
        }
        fields.update(overrides)
        return EmailThread(**fields)

    return _make


@pytest.fixture
def make_event() -> Callable[..., CalendarEvent]:
    """Factory for calendar events given hour offsets from NOW."""

    def _make(
        event_id: str = "e1",
        start_hour: float = 0,
        end_hour: float = 1,
        **overrides: Any,
    ) -> CalendarEvent:
        fields: dict[str, Any] = {
            "id": event_id,
            "title": "Meeting",
            "start": NOW + timedelta(hours=start_hour),
            "end": NOW + timedelta(hours=end_hour),
            "account_ids": ["me@example.com"],
        }
        fields.update(overrides)
        return CalendarEvent(**fields)

    return _make


@pytest.fixture
def now() -> datetime:
    """The fixed reference time used by the factories."""
    return NOW
