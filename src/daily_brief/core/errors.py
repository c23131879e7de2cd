"""Exception hierarchy for brief generation."""

from __future__ import annotations


class BriefError(Exception):
    """Base exception for all brief engine errors."""


class SourceFetchError(BriefError):
    """An email or calendar source call failed (network, auth, quota)."""

    def __init__(
        self,
        message: str,
        source: str | None = None,
        account_id: str | None = None,
    ) -> None:
        """Initialize source fetch error.

        Args:
            message: Error description.
            source: Kind of source that failed ("email" or "calendar").
            account_id: Linked account the source belongs to.
        """
        super().__init__(message)
        self.source = source
        self.account_id = account_id


class ItemParseError(BriefError):
    """A single raw thread or event is malformed and must be dropped."""

    def __init__(self, message: str, item_id: str | None = None) -> None:
        """Initialize item parse error.

        Args:
            message: What was wrong with the item.
            item_id: Provider id of the item, when it could be read.
        """
        super().__init__(message)
        self.item_id = item_id


class CacheStorageError(BriefError):
    """The persistent key-value store could not be read or written."""
