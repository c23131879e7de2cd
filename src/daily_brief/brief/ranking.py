"""Deterministic ranking of email threads and their rationales."""

from __future__ import annotations

from collections.abc import Iterable

from daily_brief.brief.scoring import HIGH_URGENCY_THRESHOLD
from daily_brief.core.clock import Clock, utcnow
from daily_brief.schemas.brief import EmailThread

RECENT_HOURS = 24
STANDARD_PRIORITY = "Standard priority"


def rank_key(thread: EmailThread) -> tuple[int, int, float, str]:
    """Sort key: tier, urgency and recency descending, then id ascending.

    The id tie-break makes the order total, so ranking does not depend on
    input order.
    """
    return (
        -thread.importance.weight,
        -thread.urgency_score,
        -thread.last_message_date.timestamp(),
        thread.id,
    )


class RankingEngine:
    """Orders threads by importance, urgency and recency."""

    def rank(self, threads: Iterable[EmailThread]) -> list[EmailThread]:
        return sorted(threads, key=rank_key)


class RationaleGenerator:
    """Builds a short human-readable reason for a thread's position."""

    def __init__(self, clock: Clock = utcnow) -> None:
        self._clock = clock

    def explain(self, thread: EmailThread) -> str:
        """Explain a thread's ranking.

        Args:
            thread: Scored thread.

        Returns:
            Comma-joined reasons, or "Standard priority" when none apply.
        """
        reasons = []
        if thread.urgency_score >= HIGH_URGENCY_THRESHOLD:
            reasons.append("High urgency score")
        if thread.is_unread:
            reasons.append("Unread message")
        if thread.action_required:
            reasons.append("Action required")
        hours_ago = (self._clock() - thread.last_message_date).total_seconds() / 3600
        if hours_ago < RECENT_HOURS:
            reasons.append("Recent message")
        return ", ".join(reasons) if reasons else STANDARD_PRIORITY

    def annotate(self, threads: Iterable[EmailThread]) -> list[EmailThread]:
        """Return copies of the threads with ``rationale`` set."""
        return [
            thread.model_copy(update={"rationale": self.explain(thread)})
            for thread in threads
        ]
