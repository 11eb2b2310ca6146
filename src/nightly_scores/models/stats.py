"""Canonical statistics records shared by the resolver and report layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Tuple

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict


class ShootingSplit(BaseModel):
    made: str = ""
    attempted: str = ""
    display_line: str = ""
    percentage: str = ""

    model_config = ConfigDict(frozen=True)


class CanonicalStatRow(BaseModel):
    """Normalized box score for one resolved game."""

    player_name: str = ""
    team_name: str = ""
    game_id: int = 0
    points: str = ""
    rebounds: str = ""
    assists: str = ""
    minutes: str = ""
    field_goals: ShootingSplit = Field(default_factory=ShootingSplit)
    three_pointers: ShootingSplit = Field(default_factory=ShootingSplit)
    free_throws: ShootingSplit = Field(default_factory=ShootingSplit)

    model_config = ConfigDict(frozen=True)


class ResolutionError(BaseModel):
    """Record of an athlete that could not be resolved (not an exception)."""

    label: str = ""
    team_id: int = 0
    player_id: int = 0
    messages: List[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


@dataclass(frozen=True)
class ProviderResponse:
    """Decoded provider envelope ``{errors, response, results}``."""

    errors: Tuple[str, ...] = ()
    response: List[Any] = field(default_factory=list)
    results: int | None = None
    payload: dict = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def rows(self) -> List[Any]:
        # A populated error list voids whatever the response list claims.
        if self.errors:
            return []
        return list(self.response)

    @classmethod
    def failure(cls, message: str) -> "ProviderResponse":
        return cls(errors=(message,))


@dataclass
class ReportBatch:
    rows: List[CanonicalStatRow] = field(default_factory=list)
    errors: List[ResolutionError] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.rows and not self.errors
