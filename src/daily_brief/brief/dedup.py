"""Cross-account deduplication of threads and events.

A user with several linked accounts can see the same conversation or meeting
in more than one of them. Items with equal keys are merged into one canonical
item; the first-seen side keeps its id.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import datetime

import structlog

from daily_brief.schemas.brief import CalendarEvent, EmailThread

logger = structlog.get_logger(__name__)

_REPLY_PREFIX = re.compile(r"^\s*(?:(?:re|fwd?)\s*:\s*)+", re.IGNORECASE)

ThreadKey = tuple[str, frozenset[str]]
EventKey = tuple[datetime, datetime, str]


def normalize_subject(subject: str) -> str:
    """Strip leading Re:/Fwd:/Fw: tokens, lower-case and trim."""
    return _REPLY_PREFIX.sub("", subject).strip().lower()


def normalize_title(title: str) -> str:
    return title.strip().lower()


def thread_key(thread: EmailThread) -> ThreadKey:
    """Equality key: normalized subject plus the unordered participant set."""
    return (
        normalize_subject(thread.subject),
        frozenset(p.lower() for p in thread.participants),
    )


def event_key(event: CalendarEvent) -> EventKey:
    return (event.start, event.end, normalize_title(event.title))


def _union(first: Iterable[str], second: Iterable[str]) -> list[str]:
    """Union preserving first-seen order."""
    return list(dict.fromkeys([*first, *second]))


def merge_threads(kept: EmailThread, other: EmailThread) -> EmailThread:
    """Merge a duplicate thread into the first-seen one.

    Urgency takes the max, importance the higher tier, flags are OR-ed and
    participants unioned. Date and snippet follow the most recent side.
    """
    newer = other if other.last_message_date > kept.last_message_date else kept
    importance = max(kept.importance, other.importance, key=lambda tier: tier.weight)
    return kept.model_copy(
        update={
            "participants": _union(kept.participants, other.participants),
            "sender": kept.sender or other.sender,
            "last_message_date": newer.last_message_date,
            "snippet": newer.snippet,
            "is_unread": kept.is_unread or other.is_unread,
            "urgency_score": max(kept.urgency_score, other.urgency_score),
            "importance": importance,
            "action_required": kept.action_required or other.action_required,
            "rationale": None,
            "account_ids": _union(kept.account_ids, other.account_ids),
        }
    )


def merge_events(kept: CalendarEvent, other: CalendarEvent) -> CalendarEvent:
    """Merge a duplicate event into the first-seen one."""
    return kept.model_copy(
        update={
            "description": kept.description or other.description,
            "location": kept.location or other.location,
            "conflicts": False,
            "account_ids": _union(kept.account_ids, other.account_ids),
        }
    )


class Deduplicator:
    """Collapses equivalent threads and events from multiple linked accounts.

    Matching is exact on the normalized keys; near-duplicate subjects are
    not merged.
    """

    def dedupe_threads(self, threads: Iterable[EmailThread]) -> list[EmailThread]:
        """Merge threads sharing a key, keeping first-seen order."""
        merged: dict[ThreadKey, EmailThread] = {}
        total = 0
        for thread in threads:
            total += 1
            key = thread_key(thread)
            existing = merged.get(key)
            merged[key] = thread if existing is None else merge_threads(existing, thread)

        if total != len(merged):
            logger.info("threads_deduplicated", input=total, output=len(merged))
        return list(merged.values())

    def dedupe_events(self, events: Iterable[CalendarEvent]) -> list[CalendarEvent]:
        """Merge events sharing start, end and normalized title."""
        merged: dict[EventKey, CalendarEvent] = {}
        total = 0
        for event in events:
            total += 1
            key = event_key(event)
            existing = merged.get(key)
            merged[key] = event if existing is None else merge_events(existing, event)

        if total != len(merged):
            logger.info("events_deduplicated", input=total, output=len(merged))
        return list(merged.values())
