"""Persist and load the nightly run settings."""

from __future__ import annotations

import json
import logging
import os
import secrets
import string
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from nightly_scores.models import AthleteTarget


logger = logging.getLogger(__name__)

API_KEY_ENV = "NIGHTLY_SCORES_API_KEY"
PUSH_SECRET_ENV = "NIGHTLY_SCORES_PUSH_SECRET"
TIMEZONE_ENV = "NIGHTLY_SCORES_TIMEZONE"
SETTINGS_PATH_ENV = "NIGHTLY_SCORES_SETTINGS"

DEFAULT_TIMEZONE = "America/New_York"
PUSH_SECRET_LENGTH = 40


def _parse_players(entries: Any) -> List[AthleteTarget]:
    if not isinstance(entries, list):
        return []
    players: List[AthleteTarget] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        try:
            players.append(AthleteTarget.model_validate(entry))
        except ValidationError as exc:
            logger.warning("Skipping invalid player entry %s: %s", entry, exc)
    return players


@dataclass
class Settings:
    """Key-value settings consumed by a run.

    Values come from a JSON file; the credential, push secret and time zone
    can be overridden through environment variables.
    """

    players: List[AthleteTarget] = field(default_factory=list)
    api_key: str = ""
    recipients: str = ""
    timezone: str = DEFAULT_TIMEZONE
    push_secret: str = ""
    test_email: str = ""
    path: Optional[Path] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], *, path: Optional[Path] = None) -> "Settings":
        settings = cls(
            players=_parse_players(data.get("players", [])),
            api_key=str(data.get("api_key") or "").strip(),
            recipients=str(data.get("recipients") or ""),
            timezone=str(data.get("timezone") or DEFAULT_TIMEZONE).strip(),
            push_secret=str(data.get("push_secret") or "").strip(),
            test_email=str(data.get("test_email") or "").strip(),
            path=path,
        )
        settings.apply_env()
        return settings

    @classmethod
    def load(cls, path: Path | str | None = None) -> "Settings":
        if path is None:
            env_path = os.getenv(SETTINGS_PATH_ENV)
            path = Path(env_path) if env_path else None
        if path is None:
            return cls.from_dict({})
        path = Path(path)
        if not path.exists():
            logger.warning("Settings file %s not found; using defaults", path)
            return cls.from_dict({}, path=path)
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"Settings file {path} must contain a JSON object")
        return cls.from_dict(data, path=path)

    def apply_env(self) -> None:
        api_key = os.getenv(API_KEY_ENV)
        if api_key:
            self.api_key = api_key.strip()
        push_secret = os.getenv(PUSH_SECRET_ENV)
        if push_secret:
            self.push_secret = push_secret.strip()
        tz_name = os.getenv(TIMEZONE_ENV)
        if tz_name:
            self.timezone = tz_name.strip()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "players": [player.model_dump() for player in self.players],
            "api_key": self.api_key,
            "recipients": self.recipients,
            "timezone": self.timezone,
            "push_secret": self.push_secret,
            "test_email": self.test_email,
        }

    def save(self, path: Path | str | None = None) -> None:
        target = Path(path) if path is not None else self.path
        if target is None:
            raise ValueError("No settings path to save to")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")
        self.path = target

    def recipient_list(self) -> List[str]:
        recipients = [item.strip() for item in self.recipients.split(",")]
        recipients = [item for item in recipients if item]
        if not recipients and self.test_email:
            return [self.test_email]
        return recipients

    def ensure_push_secret(self) -> str:
        """Return the push secret, generating and saving one when unset."""

        if self.push_secret:
            return self.push_secret
        alphabet = string.ascii_letters + string.digits
        self.push_secret = "".join(secrets.choice(alphabet) for _ in range(PUSH_SECRET_LENGTH))
        if self.path is not None:
            self.save()
            logger.info("Generated a new push secret and saved it to %s", self.path)
        return self.push_secret
