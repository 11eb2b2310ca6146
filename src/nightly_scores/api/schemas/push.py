from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from nightly_scores.models import PushRow


class PushResponse(BaseModel):
    ok: bool
    sent: bool = False
    rows: int | None = None
    reason: str | None = None


class LastPushResponse(BaseModel):
    received_at: datetime
    generated_at_utc: str
    source: str = ""
    rows: list[PushRow] = Field(default_factory=list)
