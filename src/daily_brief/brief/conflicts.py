"""Calendar conflict detection."""

from __future__ import annotations

from collections.abc import Iterable

from daily_brief.schemas.brief import CalendarEvent


def events_overlap(first: CalendarEvent, second: CalendarEvent) -> bool:
    """Check whether two half-open ``[start, end)`` intervals overlap.

    An event ending exactly when another starts is not a conflict.
    """
    return first.start < second.end and second.start < first.end


class ConflictDetector:
    """Marks every event that overlaps at least one other event."""

    def detect(self, events: Iterable[CalendarEvent]) -> list[CalendarEvent]:
        """Annotate events with their conflict flag.

        Args:
            events: Events for one window (already deduplicated).

        Returns:
            New event objects sorted by start time, each with ``conflicts``
            set; both events of an overlapping pair are marked.
        """
        ordered = sorted(events, key=lambda e: (e.start, e.end, e.id))
        flags = [False] * len(ordered)

        for i, first in enumerate(ordered):
            for j in range(i + 1, len(ordered)):
                second = ordered[j]
                # Sorted by start: no later event can overlap once one starts after first ends
                if second.start >= first.end:
                    break
                if events_overlap(first, second):
                    flags[i] = flags[j] = True

        return [
            event.model_copy(update={"conflicts": flag})
            for event, flag in zip(ordered, flags, strict=True)
        ]
