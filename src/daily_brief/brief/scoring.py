"""Thread urgency scoring, importance classification and action detection.

All three are structural/keyword heuristics:
- Urgency: recency, unread and provider-important labels, urgent subject keywords
- Importance: urgency thresholds, with VIP sender domains always promoted to high
- Action: lexical cues in the latest message snippet
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from daily_brief.brief.parsing import ThreadRecord
from daily_brief.core.clock import Clock, utcnow
from daily_brief.schemas.brief import MAX_URGENCY_SCORE, EmailThread, Importance

URGENT_KEYWORDS: tuple[str, ...] = (
    "urgent",
    "asap",
    "immediate",
    "deadline",
    "emergency",
    "critical",
)

ACTION_CUES: tuple[str, ...] = (
    "please",
    "can you",
    "could you",
    "would you",
    "need you to",
    "action required",
    "response needed",
    "reply",
    "confirm",
    "review",
    "approve",
    "sign",
    "meeting",
)

DEFAULT_VIP_DOMAINS: tuple[str, ...] = ("company.com", "client.com")

UNREAD_LABEL = "UNREAD"
IMPORTANT_LABEL = "IMPORTANT"

# (max age in hours, points), checked in order
RECENCY_POINTS: tuple[tuple[float, int], ...] = ((2, 3), (24, 2), (72, 1))
UNREAD_POINTS = 2
IMPORTANT_POINTS = 2
KEYWORD_POINTS = 3

HIGH_URGENCY_THRESHOLD = 7
MEDIUM_URGENCY_THRESHOLD = 4


class UrgencyScorer:
    """Additive 0-10 urgency score for a thread."""

    def __init__(
        self,
        clock: Clock = utcnow,
        keywords: Iterable[str] = URGENT_KEYWORDS,
    ) -> None:
        self._clock = clock
        self._keywords = tuple(k.lower() for k in keywords)

    def recency_points(self, last_message_date: datetime) -> int:
        """Points for how recently the latest message arrived."""
        hours_ago = (self._clock() - last_message_date).total_seconds() / 3600
        for max_hours, points in RECENCY_POINTS:
            if hours_ago < max_hours:
                return points
        return 0

    def has_urgent_keyword(self, subject: str) -> bool:
        """Check the subject for any urgent keyword, case-insensitively."""
        subject_lower = subject.lower()
        return any(keyword in subject_lower for keyword in self._keywords)

    def score(self, record: ThreadRecord) -> int:
        """Score a thread.

        Args:
            record: Parsed thread.

        Returns:
            Sum of the recency, label and keyword signals, capped at 10.
        """
        score = self.recency_points(record.last_message_date)
        if UNREAD_LABEL in record.labels:
            score += UNREAD_POINTS
        if IMPORTANT_LABEL in record.labels:
            score += IMPORTANT_POINTS
        if self.has_urgent_keyword(record.subject):
            score += KEYWORD_POINTS
        return max(0, min(score, MAX_URGENCY_SCORE))


class ImportanceClassifier:
    """Maps urgency and sender domain to an importance tier."""

    def __init__(self, vip_domains: Iterable[str] = DEFAULT_VIP_DOMAINS) -> None:
        self._vip_domains = frozenset(d.strip().lower() for d in vip_domains)

    @property
    def vip_domains(self) -> frozenset[str]:
        return self._vip_domains

    def is_vip(self, sender: str | None) -> bool:
        """Check whether the sender's domain is on the VIP list."""
        if not sender or "@" not in sender:
            return False
        domain = sender.rsplit("@", 1)[1].strip().lower()
        return domain in self._vip_domains

    def classify(self, urgency_score: int, sender: str | None) -> Importance:
        """Classify a thread.

        A VIP sender is high importance regardless of urgency.
        """
        if urgency_score >= HIGH_URGENCY_THRESHOLD or self.is_vip(sender):
            return Importance.HIGH
        if urgency_score >= MEDIUM_URGENCY_THRESHOLD:
            return Importance.MEDIUM
        return Importance.LOW


class ActionDetector:
    """Flags threads that likely need a reply or action."""

    def __init__(self, cues: Iterable[str] = ACTION_CUES) -> None:
        self._cues = tuple(c.lower() for c in cues)

    def requires_action(self, snippet: str | None) -> bool:
        """Check the snippet for any action cue (substring match)."""
        if not snippet:
            return False
        snippet_lower = snippet.lower()
        return any(cue in snippet_lower for cue in self._cues)


class ThreadAnnotator:
    """Turns parsed thread records into scored, classified email threads."""

    def __init__(
        self,
        scorer: UrgencyScorer | None = None,
        classifier: ImportanceClassifier | None = None,
        action_detector: ActionDetector | None = None,
    ) -> None:
        self.scorer = scorer or UrgencyScorer()
        self.classifier = classifier or ImportanceClassifier()
        self.action_detector = action_detector or ActionDetector()

    def annotate(self, record: ThreadRecord) -> EmailThread:
        """Score and classify one thread."""
        urgency = self.scorer.score(record)
        return EmailThread(
            id=record.thread_id,
            subject=record.subject,
            participants=list(record.participants),
            sender=record.sender,
            last_message_date=record.last_message_date,
            is_unread=UNREAD_LABEL in record.labels,
            urgency_score=urgency,
            importance=self.classifier.classify(urgency, record.sender),
            action_required=self.action_detector.requires_action(record.snippet),
            snippet=record.snippet,
            account_ids=[record.account_id],
        )

    def annotate_all(self, records: Iterable[ThreadRecord]) -> list[EmailThread]:
        return [self.annotate(record) for record in records]
