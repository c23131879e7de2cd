"""Plain-text rendering of a brief."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, tzinfo

from daily_brief.schemas.brief import BriefData, CalendarEvent

SUMMARY_EVENT_LIMIT = 3


def format_clock_time(value: datetime) -> str:
    """Format a time as ``9:05 AM``."""
    hour = value.hour % 12 or 12
    meridiem = "AM" if value.hour < 12 else "PM"
    return f"{hour}:{value.minute:02d} {meridiem}"


def format_event_time(
    event: CalendarEvent,
    reference: datetime,
    tz: tzinfo | None = None,
) -> str:
    """Format an event's time range relative to a reference day.

    Args:
        event: Event to format.
        reference: Moment that decides what "Today" and "Tomorrow" mean.
        tz: Display time zone. Defaults to UTC.

    Returns:
        Text such as ``Today 9:00 AM - 10:00 AM`` or
        ``2026-03-14 1:30 PM - 2:00 PM``.
    """
    tz = tz or UTC
    start = event.start.astimezone(tz)
    end = event.end.astimezone(tz)
    today = reference.astimezone(tz).date()

    if start.date() == today:
        prefix = "Today"
    elif start.date() == today + timedelta(days=1):
        prefix = "Tomorrow"
    else:
        prefix = start.date().isoformat()

    return f"{prefix} {format_clock_time(start)} - {format_clock_time(end)}"


def format_brief_summary(brief: BriefData, tz: tzinfo | None = None) -> str:
    """Render a brief as deterministic plain text.

    Shows up to three calendar events (with conflict markers) followed by
    the top emails and their rationales.
    """
    tz = tz or UTC
    events = brief.calendar_events
    lines = [f"Brief for {brief.timestamp.astimezone(tz).date().isoformat()}", ""]

    if brief.is_stale:
        lines.extend(["Sources are unavailable; showing the last generated brief.", ""])

    if events:
        lines.append(f"Calendar ({len(events)} events):")
        for event in events[:SUMMARY_EVENT_LIMIT]:
            conflict = " [CONFLICT]" if event.conflicts else ""
            when = format_event_time(event, brief.timestamp, tz)
            lines.append(f"- {event.title} - {when}{conflict}")
        if len(events) > SUMMARY_EVENT_LIMIT:
            lines.append(f"- ... and {len(events) - SUMMARY_EVENT_LIMIT} more events")
    else:
        lines.append("No calendar events scheduled")

    lines.append("")

    if brief.top_emails:
        lines.append(f"Top Priority Emails ({len(brief.top_emails)}):")
        for thread in brief.top_emails:
            lines.append(f"[{thread.importance.value.upper()}] {thread.subject}")
            if thread.rationale:
                lines.append(f"   {thread.rationale}")
    else:
        lines.append("No priority emails found")

    return "\n".join(lines) + "\n"
