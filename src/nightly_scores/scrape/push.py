"""Push scraped rows to the authenticated report webhook."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Optional, Tuple

import httpx

from nightly_scores.models import AthleteTarget

from .flashscore import ScrapeResult


logger = logging.getLogger(__name__)

PUSH_SECRET_HEADER = "X-Push-Secret"
PUSH_SOURCE = "scheduled-scrape"
PUSH_TIMEOUT = 20.0


class PushError(RuntimeError):
    """Raised when the webhook rejects or cannot receive a push."""


def build_push_payload(
    results: Iterable[Tuple[AthleteTarget, ScrapeResult]],
    *,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    now = now or datetime.now(timezone.utc)
    rows = []
    for athlete, result in results:
        if result.status != "ok" or result.stats is None or result.game is None:
            if result.status == "error":
                logger.warning("Scrape error for %s: %s", athlete.label, result.error)
            continue
        rows.append(
            {
                "player": athlete.label,
                "game_date": result.game.date_iso,
                "game_url": result.game.url,
                "minutes": result.stats.minutes,
                "points": result.stats.points,
                "rebounds": result.stats.rebounds,
                "assists": result.stats.assists,
                "steals": result.stats.steals,
                "turnovers": result.stats.turnovers,
            }
        )
    return {
        "source": PUSH_SOURCE,
        "generated_at_utc": now.astimezone(timezone.utc).isoformat(),
        "rows": rows,
    }


def push_rows(
    url: str,
    secret: str,
    payload: dict[str, Any],
    *,
    transport: httpx.BaseTransport | None = None,
    timeout: float = PUSH_TIMEOUT,
) -> dict[str, Any]:
    if not url or not secret:
        raise PushError("Push URL and secret are required")
    with httpx.Client(timeout=timeout, transport=transport) as client:
        try:
            resp = client.post(url, json=payload, headers={PUSH_SECRET_HEADER: secret})
        except httpx.HTTPError as exc:
            raise PushError(f"Push failed: {exc}") from exc
    if not resp.is_success:
        raise PushError(f"Push failed: {resp.status_code} {resp.text[:500]}")
    logger.info("Push OK: %s", resp.text[:500])
    try:
        return resp.json()
    except ValueError:
        return {"raw": resp.text}
