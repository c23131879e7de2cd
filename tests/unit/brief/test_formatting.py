"""Tests for plain-text brief rendering."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from daily_brief.brief.formatting import (
    format_brief_summary,
    format_clock_time,
    format_event_time,
)
from daily_brief.schemas.brief import BriefData, CalendarEvent, EmailThread, Importance

EventFactory = Callable[..., CalendarEvent]
ThreadFactory = Callable[..., EmailThread]


class TestFormatClockTime:
    """Tests for format_clock_time."""

    def test_twelve_hour_clock(self) -> None:
        """Test midnight, morning, noon and evening."""
        day = datetime(2026, 3, 10)
        assert format_clock_time(day.replace(hour=0, minute=5)) == "12:05 AM"
        assert format_clock_time(day.replace(hour=9)) == "9:00 AM"
        assert format_clock_time(day.replace(hour=12, minute=30)) == "12:30 PM"
        assert format_clock_time(day.replace(hour=17, minute=45)) == "5:45 PM"


class TestFormatEventTime:
    """Tests for format_event_time."""

    def test_today(self, make_event: EventFactory, now: datetime) -> None:
        """Test an event later today."""
        event = make_event("e1", 0, 1)
        assert format_event_time(event, now) == "Today 9:00 AM - 10:00 AM"

    def test_tomorrow(self, make_event: EventFactory, now: datetime) -> None:
        """Test an event tomorrow."""
        event = make_event("e1", 24, 24.5)
        assert format_event_time(event, now) == "Tomorrow 9:00 AM - 9:30 AM"

    def test_later_date(self, make_event: EventFactory, now: datetime) -> None:
        """Test an event further out shows its date."""
        event = make_event("e1", 52, 53)
        assert format_event_time(event, now) == "2026-03-12 1:00 PM - 2:00 PM"

    def test_display_timezone(self, make_event: EventFactory, now: datetime) -> None:
        """Test times and day boundaries follow the display zone."""
        event = make_event("e1", 0, 1)
        eastern = timezone(timedelta(hours=-5))

        assert format_event_time(event, now, eastern) == "Today 4:00 AM - 5:00 AM"


class TestFormatBriefSummary:
    """Tests for format_brief_summary."""

    def test_full_summary(
        self, make_event: EventFactory, make_thread: ThreadFactory, now: datetime
    ) -> None:
        """Test events, overflow line and top emails."""
        events = [
            make_event("a", 0, 1, title="Standup", conflicts=True),
            make_event("b", 0.5, 1.5, title="Review", conflicts=True),
            make_event("c", 2, 3, title="Lunch"),
            make_event("d", 4, 5, title="1:1"),
            make_event("e", 6, 7, title="Retro"),
        ]
        threads = [
            make_thread(
                "t1", subject="Contract", importance=Importance.HIGH, rationale="Unread message"
            ),
            make_thread("t2", subject="Lunch?", importance=Importance.LOW),
        ]
        brief = BriefData.assemble("brief_1", now, events, threads)

        summary = format_brief_summary(brief)

        assert summary == (
            "Brief for 2026-03-10\n"
            "\n"
            "Calendar (5 events):\n"
            "- Standup - Today 9:00 AM - 10:00 AM [CONFLICT]\n"
            "- Review - Today 9:30 AM - 10:30 AM [CONFLICT]\n"
            "- Lunch - Today 11:00 AM - 12:00 PM\n"
            "- ... and 2 more events\n"
            "\n"
            "Top Priority Emails (2):\n"
            "[HIGH] Contract\n"
            "   Unread message\n"
            "[LOW] Lunch?\n"
        )

    def test_empty_brief(self, now: datetime) -> None:
        """Test an empty brief."""
        summary = format_brief_summary(BriefData.assemble("brief_1", now, [], []))

        assert "No calendar events scheduled" in summary
        assert "No priority emails found" in summary

    def test_stale_notice(self, now: datetime) -> None:
        """Test a stale brief says so."""
        brief = BriefData.assemble("brief_1", now, [], []).model_copy(update={"is_stale": True})

        assert "showing the last generated brief" in format_brief_summary(brief)

    def test_deterministic(
        self, make_event: EventFactory, make_thread: ThreadFactory, now: datetime
    ) -> None:
        """Test rendering is stable."""
        brief = BriefData.assemble("brief_1", now, [make_event()], [make_thread()])
        assert format_brief_summary(brief) == format_brief_summary(brief)
