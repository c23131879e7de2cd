"""Validate raw provider items into engine records.

A malformed item raises ItemParseError from the single-item parsers; the batch
parsers log and drop it so one bad item never fails the brief.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, time
from email.utils import getaddresses
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError

from daily_brief.core.errors import ItemParseError
from daily_brief.schemas.brief import CalendarEvent

if TYPE_CHECKING:
    from daily_brief.core.types import RawEvent, RawMessage, RawThread

logger = structlog.get_logger(__name__)

DEFAULT_SUBJECT = "No Subject"
DEFAULT_TITLE = "No Title"
# Stands in for a missing send time; old enough to earn no recency points
UNKNOWN_DATE = datetime(1970, 1, 1, tzinfo=UTC)
PARTICIPANT_HEADERS = ("From", "To", "Cc")


@dataclass(frozen=True, slots=True)
class ThreadRecord:
    """Validated view of a raw thread, reduced to the signals the engine scores.

    Attributes:
        thread_id: Provider thread id.
        account_id: Linked account the thread came from.
        subject: Subject of the latest message.
        sender: Address of the thread starter, if known.
        participants: Lower-cased addresses on the latest message, first-seen order.
        last_message_date: Send time of the latest message, or UNKNOWN_DATE.
        labels: Provider labels on the latest message.
        snippet: Preview text of the latest message.
    """

    thread_id: str
    account_id: str
    subject: str
    sender: str | None
    participants: tuple[str, ...]
    last_message_date: datetime
    labels: frozenset[str] = field(default_factory=frozenset)
    snippet: str = ""


def _header(message: RawMessage, name: str) -> str:
    """Case-insensitive header lookup; empty string when missing."""
    payload = message.get("payload")
    if not isinstance(payload, dict):
        return ""
    headers = payload.get("headers")
    if not isinstance(headers, list):
        return ""
    for header in headers:
        if isinstance(header, dict) and str(header.get("name", "")).lower() == name.lower():
            return str(header.get("value") or "")
    return ""


def extract_addresses(*header_values: str) -> tuple[str, ...]:
    """Extract unique lower-cased addresses from address header values.

    Args:
        header_values: Raw header values such as ``"Ann <ann@example.com>, bob@x.org"``.

    Returns:
        Addresses in first-seen order.
    """
    seen: dict[str, None] = {}
    for _, address in getaddresses([v for v in header_values if v]):
        address = address.strip().lower()
        if address and "@" in address:
            seen.setdefault(address, None)
    return tuple(seen)


def parse_thread(raw: RawThread | Any, account_id: str) -> ThreadRecord:
    """Parse one Gmail thread.

    Args:
        raw: Raw thread object.
        account_id: Linked account the thread was fetched from.

    Returns:
        Validated thread record.

    Raises:
        ItemParseError: If the id or the messages are missing, or a field has
            an unusable shape.
    """
    if not isinstance(raw, dict):
        raise ItemParseError("thread is not an object")

    thread_id = raw.get("id")
    if not thread_id:
        raise ItemParseError("thread has no id")
    thread_id = str(thread_id)

    messages = raw.get("messages")
    if not isinstance(messages, list) or not messages:
        raise ItemParseError("thread has no messages", item_id=thread_id)
    if not all(isinstance(m, dict) for m in messages):
        raise ItemParseError("thread contains a malformed message", item_id=thread_id)

    first, latest = messages[0], messages[-1]
    for message in (first, latest):
        payload = message.get("payload")
        if isinstance(payload, dict) and payload.get("headers") is not None:
            if not isinstance(payload["headers"], list):
                raise ItemParseError("message headers are not a list", item_id=thread_id)

    subject = _header(latest, "Subject") or _header(first, "Subject") or DEFAULT_SUBJECT
    starter = extract_addresses(_header(first, "From"))
    participants = extract_addresses(*(_header(latest, name) for name in PARTICIPANT_HEADERS))

    label_ids = latest.get("labelIds")
    labels: frozenset[str] = frozenset()
    if isinstance(label_ids, list):
        labels = frozenset(str(label) for label in label_ids)

    return ThreadRecord(
        thread_id=thread_id,
        account_id=account_id,
        subject=subject.strip(),
        sender=starter[0] if starter else None,
        participants=participants,
        last_message_date=_message_date(latest, thread_id),
        labels=labels,
        snippet=str(latest.get("snippet") or ""),
    )


def _message_date(message: RawMessage, thread_id: str) -> datetime:
    """Send time of a message; UNKNOWN_DATE when missing or unparseable."""
    internal_date = message.get("internalDate")
    try:
        return datetime.fromtimestamp(int(str(internal_date)) / 1000, tz=UTC)
    except (ValueError, OverflowError, OSError):
        logger.debug("thread_date_unknown", thread_id=thread_id, internal_date=internal_date)
        return UNKNOWN_DATE


def _parse_event_time(value: Any, field_name: str, item_id: str) -> datetime:
    """Parse a ``{dateTime}`` or ``{date}`` object into an aware datetime.

    All-day dates become midnight UTC; Google reports the end date of an
    all-day event as the following day, so the interval stays half-open.
    """
    if not isinstance(value, dict):
        raise ItemParseError(f"event has no {field_name}", item_id=item_id)
    try:
        if value.get("dateTime"):
            parsed = datetime.fromisoformat(str(value["dateTime"]))
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
        if value.get("date"):
            return datetime.combine(date.fromisoformat(str(value["date"])), time.min, tzinfo=UTC)
    except ValueError as e:
        raise ItemParseError(f"event has invalid {field_name}: {e}", item_id=item_id) from e
    raise ItemParseError(f"event {field_name} has neither dateTime nor date", item_id=item_id)


def parse_event(raw: RawEvent | Any, account_id: str) -> CalendarEvent:
    """Parse one Google Calendar event.

    Args:
        raw: Raw event object.
        account_id: Linked account the event was fetched from.

    Returns:
        Calendar event with ``conflicts`` unset.

    Raises:
        ItemParseError: If the id or times are missing, or start is not before end.
    """
    if not isinstance(raw, dict):
        raise ItemParseError("event is not an object")

    event_id = raw.get("id")
    if not event_id:
        raise ItemParseError("event has no id")
    event_id = str(event_id)

    start = _parse_event_time(raw.get("start"), "start", event_id)
    end = _parse_event_time(raw.get("end"), "end", event_id)

    try:
        return CalendarEvent(
            id=event_id,
            title=str(raw.get("summary") or DEFAULT_TITLE).strip() or DEFAULT_TITLE,
            start=start,
            end=end,
            description=raw.get("description") or None,
            location=raw.get("location") or None,
            account_ids=[account_id],
        )
    except ValidationError as e:
        raise ItemParseError(f"event is invalid: {e.errors()[0]['msg']}", item_id=event_id) from e


def parse_threads(raw_threads: Iterable[RawThread], account_id: str) -> list[ThreadRecord]:
    """Parse a batch of threads, dropping malformed ones."""
    records = []
    for raw in raw_threads:
        try:
            records.append(parse_thread(raw, account_id))
        except ItemParseError as e:
            logger.warning(
                "thread_parse_skipped",
                account_id=account_id,
                thread_id=e.item_id,
                reason=str(e),
            )
    return records


def parse_events(raw_events: Iterable[RawEvent], account_id: str) -> list[CalendarEvent]:
    """Parse a batch of events, dropping malformed and cancelled ones."""
    events = []
    for raw in raw_events:
        if isinstance(raw, dict) and raw.get("status") == "cancelled":
            continue
        try:
            events.append(parse_event(raw, account_id))
        except ItemParseError as e:
            logger.warning(
                "event_parse_skipped",
                account_id=account_id,
                event_id=e.item_id,
                reason=str(e),
            )
    return events
