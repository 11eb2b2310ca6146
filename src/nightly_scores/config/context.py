"""Immutable per-run context handed to every pipeline component."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo

from nightly_scores.config_loader import Settings


PROVIDER_BASE_URL = "https://v1.basketball.api-sports.io"
DEFAULT_TIMEOUT = 15.0


@dataclass(frozen=True)
class ResolutionContext:
    api_key: str
    tz: ZoneInfo
    now: datetime
    base_url: str = PROVIDER_BASE_URL
    timeout: float = DEFAULT_TIMEOUT
    lookback_days: int = field(default=30)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        now: Optional[datetime] = None,
        base_url: str = PROVIDER_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> "ResolutionContext":
        tz = ZoneInfo(settings.timezone)
        if now is None:
            now = datetime.now(tz)
        elif now.tzinfo is None:
            now = now.replace(tzinfo=tz)
        else:
            now = now.astimezone(tz)
        return cls(
            api_key=settings.api_key.strip(),
            tz=tz,
            now=now,
            base_url=base_url,
            timeout=timeout,
        )

    @property
    def has_credential(self) -> bool:
        return bool(self.api_key)

    def today(self) -> date:
        return self.now.astimezone(self.tz).date()
