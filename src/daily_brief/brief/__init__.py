"""Brief aggregation and ranking engine."""

from daily_brief.brief.cache import BriefCache, CacheEntry
from daily_brief.brief.conflicts import ConflictDetector
from daily_brief.brief.dedup import Deduplicator
from daily_brief.brief.formatting import format_brief_summary, format_event_time
from daily_brief.brief.orchestrator import BriefOrchestrator
from daily_brief.brief.ranking import RankingEngine, RationaleGenerator
from daily_brief.brief.scoring import (
    ActionDetector,
    ImportanceClassifier,
    ThreadAnnotator,
    UrgencyScorer,
)

__all__ = [
    "ActionDetector",
    "BriefCache",
    "BriefOrchestrator",
    "CacheEntry",
    "ConflictDetector",
    "Deduplicator",
    "ImportanceClassifier",
    "RankingEngine",
    "RationaleGenerator",
    "ThreadAnnotator",
    "UrgencyScorer",
    "format_brief_summary",
    "format_event_time",
]
