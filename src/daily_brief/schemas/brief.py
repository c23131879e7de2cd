"""Brief Pydantic schemas."""

from __future__ import annotations

from enum import Enum

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, model_validator

TOP_EMAIL_COUNT = 3
MAX_URGENCY_SCORE = 10
DEFAULT_EMAIL_WINDOW_HOURS = 96
DEFAULT_CALENDAR_WINDOW_HOURS = 24
MAX_WINDOW_HOURS = 168


class Importance(str, Enum):
    """Importance tier of an email thread."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def weight(self) -> int:
        """Ranking weight, higher sorts first."""
        return IMPORTANCE_WEIGHTS[self]


IMPORTANCE_WEIGHTS: dict[Importance, int] = {
    Importance.HIGH: 3,
    Importance.MEDIUM: 2,
    Importance.LOW: 1,
}


class EmailThread(BaseModel):
    """Schema for a scored and classified email thread."""

    id: str
    subject: str
    participants: list[str] = Field(default_factory=list)
    sender: str | None = None
    last_message_date: AwareDatetime
    is_unread: bool = False
    urgency_score: int = Field(default=0, ge=0, le=MAX_URGENCY_SCORE)
    importance: Importance = Importance.LOW
    action_required: bool = False
    rationale: str | None = None
    snippet: str = ""
    # Linked accounts this thread was seen in
    account_ids: list[str] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class CalendarEvent(BaseModel):
    """Schema for a calendar event within the brief window."""

    id: str
    title: str
    start: AwareDatetime
    end: AwareDatetime
    description: str | None = None
    location: str | None = None
    conflicts: bool = False
    account_ids: list[str] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)

    @model_validator(mode="after")
    def _check_interval(self) -> CalendarEvent:
        if self.start >= self.end:
            raise ValueError("event start must be strictly before end")
        return self


class BriefData(BaseModel):
    """Schema for a generated brief."""

    id: str
    timestamp: AwareDatetime
    calendar_events: list[CalendarEvent] = Field(default_factory=list)
    top_emails: list[EmailThread] = Field(default_factory=list)
    all_emails: list[EmailThread] = Field(default_factory=list)
    # Set when a previous brief is served because sources failed
    is_stale: bool = False

    model_config = ConfigDict(from_attributes=True)

    @model_validator(mode="after")
    def _check_top_emails(self) -> BriefData:
        expected = min(TOP_EMAIL_COUNT, len(self.all_emails))
        if len(self.top_emails) != expected or self.top_emails != self.all_emails[:expected]:
            raise ValueError("top_emails must be the leading entries of all_emails")
        return self

    @classmethod
    def assemble(
        cls,
        brief_id: str,
        timestamp: AwareDatetime,
        calendar_events: list[CalendarEvent],
        ranked_emails: list[EmailThread],
    ) -> BriefData:
        """Build a brief from already-ranked emails.

        Args:
            brief_id: Identifier for the brief.
            timestamp: Generation time.
            calendar_events: Conflict-annotated events in chronological order.
            ranked_emails: Emails in final rank order.

        Returns:
            Brief whose top emails are the first entries of the ranked list.
        """
        return cls(
            id=brief_id,
            timestamp=timestamp,
            calendar_events=calendar_events,
            top_emails=ranked_emails[:TOP_EMAIL_COUNT],
            all_emails=ranked_emails,
        )


class BriefSettings(BaseModel):
    """Fetch windows for one brief request.

    Values outside ``(0, 168]`` hours are rejected here, before the engine
    sees them.
    """

    email_window_hours: int = Field(default=DEFAULT_EMAIL_WINDOW_HOURS, gt=0, le=MAX_WINDOW_HOURS)
    calendar_window_hours: int = Field(
        default=DEFAULT_CALENDAR_WINDOW_HOURS, gt=0, le=MAX_WINDOW_HOURS
    )

    model_config = ConfigDict(frozen=True)

    @property
    def cache_key(self) -> str:
        """Cache key covering both windows."""
        return f"brief:{self.email_window_hours}h:{self.calendar_window_hours}h"
