"""Configured athletes tracked by the nightly run."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict


class AthleteTarget(BaseModel):
    """One configured athlete.

    ``team_id``/``player_id`` drive the API path; ``external_slug``/``external_id``
    identify the public player page used by the scrape path.
    """

    label: str = ""
    team_id: int = Field(default=0, ge=0)
    player_id: int = Field(default=0, ge=0)
    external_slug: Optional[str] = None
    external_id: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @property
    def has_provider_ids(self) -> bool:
        return self.team_id > 0 and self.player_id > 0

    @property
    def has_external_ids(self) -> bool:
        return bool(self.external_slug) and bool(self.external_id)
