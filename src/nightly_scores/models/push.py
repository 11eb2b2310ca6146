"""Rows received from the scrape deployment through the push webhook."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, field_validator
from pydantic.config import ConfigDict


def _clean_text(value: Any) -> str:
    if value is None:
        return ""
    return " ".join(str(value).split())


def _clean_int(value: Any) -> int:
    if value is None or isinstance(value, bool):
        return 0
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        try:
            return int(float(value))
        except (TypeError, ValueError, OverflowError):
            return 0


class PushRow(BaseModel):
    """One sanitized scraped game line."""

    player: str
    game_date: str = ""
    game_url: str = ""
    minutes: str = ""
    points: int = 0
    rebounds: int = 0
    assists: int = 0
    steals: int = 0
    turnovers: int = 0

    model_config = ConfigDict(frozen=True)

    @field_validator("player", "game_date", "minutes", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return _clean_text(value)

    @field_validator("game_url", mode="before")
    @classmethod
    def _url(cls, value: Any) -> str:
        text = _clean_text(value)
        if text.lower().startswith(("http://", "https://")):
            return text
        return ""

    @field_validator("points", "rebounds", "assists", "steals", "turnovers", mode="before")
    @classmethod
    def _number(cls, value: Any) -> int:
        return _clean_int(value)
