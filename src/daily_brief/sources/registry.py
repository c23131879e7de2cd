"""Registry of linked accounts feeding the brief."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from daily_brief.core.errors import BriefError

if TYPE_CHECKING:
    from daily_brief.sources.base import LinkedAccount

logger = structlog.get_logger(__name__)


class AccountNotFoundError(BriefError):
    """Raised when a requested account is not registered."""


class AccountRegistry:
    """Registry for linked accounts.

    The registry is constructed once per process and handed to the
    orchestrator; it is not a module-level singleton.

    Example:
        registry = AccountRegistry()
        registry.register(LinkedAccount(identity, gmail_source, calendar_source))

        for account in registry.list_accounts():
            ...
    """

    def __init__(self) -> None:
        """Initialize empty registry."""
        self._accounts: dict[str, LinkedAccount] = {}

    def register(self, account: LinkedAccount) -> None:
        """Register a linked account.

        Args:
            account: Account and its sources.

        Note:
            If an account with the same id is already registered,
            it will be replaced.
        """
        self._accounts[account.account_id] = account

        logger.info(
            "account_registered",
            account_id=account.account_id,
            is_primary=account.identity.is_primary,
            has_email=account.email_source is not None,
            has_calendar=account.calendar_source is not None,
        )

    def unregister(self, account_id: str) -> bool:
        """Unregister an account.

        Args:
            account_id: Account to remove.

        Returns:
            True if the account was removed, False if it was not registered.
        """
        if account_id in self._accounts:
            del self._accounts[account_id]
            logger.info("account_unregistered", account_id=account_id)
            return True
        return False

    def get(self, account_id: str) -> LinkedAccount:
        """Get a registered account.

        Raises:
            AccountNotFoundError: If the account is not registered.
        """
        account = self._accounts.get(account_id)
        if account is None:
            raise AccountNotFoundError(f"Account '{account_id}' is not registered")
        return account

    def has(self, account_id: str) -> bool:
        """Check if an account is registered."""
        return account_id in self._accounts

    def list_accounts(self) -> list[LinkedAccount]:
        """List accounts, primary account first, then registration order.

        Deduplication keeps the first-seen id, so this order decides which
        account's ids survive a merge.
        """
        accounts = list(self._accounts.values())
        return sorted(accounts, key=lambda a: not a.identity.is_primary)

    def clear(self) -> None:
        """Remove all accounts."""
        self._accounts.clear()
        logger.info("account_registry_cleared")

    def __len__(self) -> int:
        return len(self._accounts)
