"""Source interfaces for email and calendar data."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from daily_brief.core.types import RawEvent, RawThread


class SourceKind(str, Enum):
    """Kind of data a source provides."""

    EMAIL = "email"
    CALENDAR = "calendar"


@dataclass(frozen=True, slots=True)
class AccountIdentity:
    """A linked account as known to the authentication layer.

    Attributes:
        account_id: Stable identifier of the linked account.
        email: Address of the account.
        is_primary: Whether this is the user's primary account.
    """

    account_id: str
    email: str
    is_primary: bool = False


class EmailSource(ABC):
    """Abstract base class for email thread sources.

    Implementations wrap a provider API and return provider-shaped threads.
    Parsing and validation happen in the engine, so a source may return
    partially malformed entries without failing the batch.
    """

    @abstractmethod
    async def fetch_threads(self, hours_back: int) -> list[RawThread]:
        """Fetch threads with activity in the last ``hours_back`` hours.

        Args:
            hours_back: Size of the email window in hours.

        Returns:
            Raw provider threads.

        Raises:
            SourceFetchError: If the provider call fails.
        """


class CalendarSource(ABC):
    """Abstract base class for calendar event sources."""

    @abstractmethod
    async def fetch_events(self, hours_ahead: int) -> list[RawEvent]:
        """Fetch events starting within the next ``hours_ahead`` hours.

        Args:
            hours_ahead: Size of the calendar window in hours.

        Returns:
            Raw provider events.

        Raises:
            SourceFetchError: If the provider call fails.
        """


@dataclass(frozen=True)
class LinkedAccount:
    """A linked account together with the sources that read from it."""

    identity: AccountIdentity
    email_source: EmailSource | None = None
    calendar_source: CalendarSource | None = None

    @property
    def account_id(self) -> str:
        """Identifier of the underlying account."""
        return self.identity.account_id
