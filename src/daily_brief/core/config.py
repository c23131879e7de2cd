"""Configuration management."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from dotenv import dotenv_values

from daily_brief.brief.scoring import DEFAULT_VIP_DOMAINS
from daily_brief.schemas.brief import (
    DEFAULT_CALENDAR_WINDOW_HOURS,
    DEFAULT_EMAIL_WINDOW_HOURS,
    MAX_WINDOW_HOURS,
    BriefSettings,
)

DEFAULT_CACHE_TTL_SECONDS = 5 * 60


@dataclass(frozen=True)
class GoogleAccountCredentials:
    """Access token for one linked Google account.

    Token acquisition and refresh happen outside this package; the token is
    taken as-is.
    """

    email: str
    access_token: str


@dataclass
class Config:
    """Application configuration."""

    database_url: str | None = None
    email_window_hours: int = DEFAULT_EMAIL_WINDOW_HOURS
    calendar_window_hours: int = DEFAULT_CALENDAR_WINDOW_HOURS
    cache_ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS
    vip_domains: tuple[str, ...] = DEFAULT_VIP_DOMAINS
    # First entry is the primary account
    google_accounts: list[GoogleAccountCredentials] = field(default_factory=list)
    log_level: str = "INFO"
    log_json: bool = False

    @classmethod
    def from_env(cls, env_file: Path | None = None) -> Config:
        """Load configuration from environment and .env file.

        Args:
            env_file: Path to .env file. If None, only the process environment
                     is consulted.

        Returns:
            Config instance with loaded values.

        Raises:
            ValueError: If a numeric setting or GOOGLE_ACCOUNTS is malformed.
        """
        config: dict[str, Any] = {}
        if env_file and env_file.exists():
            config = dict(dotenv_values(env_file))

        def get(name: str) -> str | None:
            # Environment variables override .env file
            value = os.environ.get(name) or config.get(name)
            return str(value) if value else None

        vip_domains_str = get("BRIEF_VIP_DOMAINS")
        vip_domains = (
            tuple(d.strip().lower() for d in vip_domains_str.split(",") if d.strip())
            if vip_domains_str
            else DEFAULT_VIP_DOMAINS
        )

        return cls(
            database_url=get("DATABASE_URL"),
            email_window_hours=_parse_int(
                "BRIEF_EMAIL_WINDOW_HOURS",
                get("BRIEF_EMAIL_WINDOW_HOURS"),
                DEFAULT_EMAIL_WINDOW_HOURS,
            ),
            calendar_window_hours=_parse_int(
                "BRIEF_CALENDAR_WINDOW_HOURS",
                get("BRIEF_CALENDAR_WINDOW_HOURS"),
                DEFAULT_CALENDAR_WINDOW_HOURS,
            ),
            cache_ttl_seconds=_parse_int(
                "BRIEF_CACHE_TTL_SECONDS",
                get("BRIEF_CACHE_TTL_SECONDS"),
                DEFAULT_CACHE_TTL_SECONDS,
            ),
            vip_domains=vip_domains,
            google_accounts=_parse_accounts(get("GOOGLE_ACCOUNTS")),
            log_level=(get("LOG_LEVEL") or "INFO").upper(),
            log_json=(get("LOG_JSON") or "").lower() in ("1", "true", "yes"),
        )

    def validate(self, require_accounts: bool = True) -> list[str]:
        """Validate configuration.

        Args:
            require_accounts: Whether at least one linked account is needed.

        Returns:
            List of problems, empty when the configuration is usable.
        """
        problems = []
        if not 0 < self.email_window_hours <= MAX_WINDOW_HOURS:
            problems.append(f"BRIEF_EMAIL_WINDOW_HOURS must be in (0, {MAX_WINDOW_HOURS}]")
        if not 0 < self.calendar_window_hours <= MAX_WINDOW_HOURS:
            problems.append(f"BRIEF_CALENDAR_WINDOW_HOURS must be in (0, {MAX_WINDOW_HOURS}]")
        if self.cache_ttl_seconds <= 0:
            problems.append("BRIEF_CACHE_TTL_SECONDS must be positive")
        if require_accounts and not self.google_accounts:
            problems.append("GOOGLE_ACCOUNTS must list at least one email=access_token entry")
        return problems

    def has_database(self) -> bool:
        """Check if a persistent cache database is configured."""
        return bool(self.database_url)

    def default_settings(self) -> BriefSettings:
        """Build the window settings used when a caller passes none.

        Raises:
            pydantic.ValidationError: If a configured window is out of range.
        """
        return BriefSettings(
            email_window_hours=self.email_window_hours,
            calendar_window_hours=self.calendar_window_hours,
        )


def _parse_int(name: str, value: str | None, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {value!r}") from e


def _parse_accounts(value: str | None) -> list[GoogleAccountCredentials]:
    """Parse ``email=token,email=token`` into account credentials."""
    if not value:
        return []
    accounts = []
    for entry in value.split(","):
        entry = entry.strip()
        if not entry:
            continue
        email, sep, token = entry.partition("=")
        if not sep or not email.strip() or not token.strip():
            raise ValueError("GOOGLE_ACCOUNTS entries must look like email=access_token")
        accounts.append(
            GoogleAccountCredentials(email=email.strip().lower(), access_token=token.strip())
        )
    return accounts
