"""Layered fallback search for an athlete's most recent completed game."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo
from typing import Any, Callable, Iterable, List, Mapping, Optional, Protocol, Tuple

from nightly_scores.config import ResolutionContext
from nightly_scores.models import CanonicalStatRow, ProviderResponse, ResolutionError
from nightly_scores.normalize import (
    extract_game_id,
    extract_player_id,
    extract_team_id,
    normalize,
)
from nightly_scores.provider import MISSING_API_KEY


logger = logging.getLogger(__name__)

NO_RECENT_STATS = "No recent stats found within lookback."

SEASON_ENDPOINT = "/games/statistics/players"
PLAYER_DATE_ENDPOINT = "/statistics/players"
PLAYER_DATE_FALLBACK_ENDPOINT = "/players/statistics"
TEAM_GAMES_ENDPOINT = "/games"

RECENT_DAYS = 3
FINISHED_STATUSES = frozenset({"FT", "AOT"})

_DATE_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
)


class ProviderFetcher(Protocol):
    def fetch(self, endpoint: str, params: Mapping[str, Any] | None = None) -> ProviderResponse:
        ...


@dataclass(frozen=True)
class GameStatsVariant:
    """One way of asking the provider for a player's line in a given game."""

    endpoint: str
    keyed_by_player: bool

    def params(self, game_id: int, player_id: int) -> dict[str, int]:
        if self.keyed_by_player:
            return {"game": game_id, "player": player_id}
        return {"game": game_id}


GAME_STATS_VARIANTS: Tuple[GameStatsVariant, ...] = (
    GameStatsVariant(SEASON_ENDPOINT, keyed_by_player=True),
    GameStatsVariant(PLAYER_DATE_ENDPOINT, keyed_by_player=True),
    GameStatsVariant(SEASON_ENDPOINT, keyed_by_player=False),
    GameStatsVariant(PLAYER_DATE_ENDPOINT, keyed_by_player=False),
)


def season_candidates(now: datetime) -> List[str]:
    """Season identifiers to try, most likely first.

    Seasons run autumn to spring, so January-June belongs to the season that
    started the previous calendar year.
    """

    year = now.year
    if 1 <= now.month <= 6:
        start = year - 1
    else:
        start = year
    return [f"{start}-{start + 1}", str(start), str(start + 1)]


def _positive_int(value: Any) -> int:
    if value is None or isinstance(value, bool):
        return 0
    try:
        number = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0
    return number if number > 0 else 0


def _parse_date_text(text: Any, tz: tzinfo) -> int:
    if not isinstance(text, str) or not text.strip():
        return 0
    raw = text.strip()
    parsed: Optional[datetime] = None
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        for fmt in _DATE_FORMATS:
            try:
                parsed = datetime.strptime(raw, fmt)
                break
            except ValueError:
                continue
    if parsed is None:
        return 0
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return max(int(parsed.timestamp()), 0)


def extract_game_timestamp(row: Any, tz: tzinfo) -> int:
    """Best-effort Unix timestamp for a stat row; 0 when nothing parses."""

    if not isinstance(row, Mapping):
        return 0
    game = row.get("game")
    if isinstance(game, Mapping):
        ts = _positive_int(game.get("timestamp"))
        if ts:
            return ts
        ts = _parse_date_text(game.get("date"), tz)
        if ts:
            return ts
    ts = _positive_int(row.get("timestamp"))
    if ts:
        return ts
    return _parse_date_text(row.get("date"), tz)


def _pick_max(rows: Iterable[Any], key: Callable[[Any], int]) -> Tuple[Optional[Mapping[str, Any]], int]:
    best_row: Optional[Mapping[str, Any]] = None
    best_value = 0
    for row in rows:
        if not isinstance(row, Mapping):
            continue
        value = key(row)
        # Strict comparison keeps the first row on ties; a zero never beats an existing pick.
        if best_row is None or value > best_value:
            best_row = row
            best_value = value
    return best_row, best_value


def _game_status(game: Mapping[str, Any]) -> Optional[str]:
    status = game.get("status")
    if isinstance(status, Mapping):
        short = status.get("short")
        return str(short) if short is not None else None
    return None


class StatsResolver:
    """Resolve one athlete to a canonical row or a resolution error."""

    def __init__(self, client: ProviderFetcher, context: ResolutionContext):
        self.client = client
        self.context = context

    # -- name lookups -----------------------------------------------------

    def _lookup_name(self, endpoint: str, entity_id: int) -> str:
        result = self.client.fetch(endpoint, {"id": entity_id})
        rows = result.rows
        if rows and isinstance(rows[0], Mapping) and rows[0].get("name"):
            return str(rows[0]["name"])
        logger.info("Unable to resolve name via %s for id=%s", endpoint, entity_id)
        return ""

    # -- strategies -------------------------------------------------------

    def season_scan(self, team_id: int, player_id: int) -> Optional[Mapping[str, Any]]:
        for season in season_candidates(self.context.now):
            logger.info("Season scan player=%s season=%s", player_id, season)
            result = self.client.fetch(SEASON_ENDPOINT, {"player": player_id, "season": season})
            rows = result.rows
            # The declared count is unreliable; the row list decides.
            if result.ok and result.results is not None and (result.results > 0) != bool(rows):
                logger.warning(
                    "Season %s declared results=%s but returned %d rows",
                    season,
                    result.results,
                    len(rows),
                )
            if not rows:
                continue

            team_rows = [
                row
                for row in rows
                if isinstance(row, Mapping)
                and extract_team_id(row) in (None, team_id)
            ]
            best_row, best_id = _pick_max(team_rows or rows, extract_game_id)
            if best_row is not None:
                logger.info("Using season %s row game_id=%s", season, best_id)
                return best_row
        return None

    def recent_date_scan(self, player_id: int) -> Optional[Mapping[str, Any]]:
        collected: List[Mapping[str, Any]] = []
        for offset in range(RECENT_DAYS):
            day = (self.context.now - timedelta(days=offset)).strftime("%Y-%m-%d")
            logger.info("Player-date scan player=%s date=%s", player_id, day)
            result = self.client.fetch(PLAYER_DATE_ENDPOINT, {"player": player_id, "date": day})
            if not result.rows:
                logger.info(
                    "Empty or error on %s, trying %s for date=%s",
                    PLAYER_DATE_ENDPOINT,
                    PLAYER_DATE_FALLBACK_ENDPOINT,
                    day,
                )
                result = self.client.fetch(
                    PLAYER_DATE_FALLBACK_ENDPOINT, {"id": player_id, "date": day}
                )
            collected.extend(row for row in result.rows if isinstance(row, Mapping))

        best_row, best_ts = _pick_max(
            collected, lambda row: extract_game_timestamp(row, self.context.tz)
        )
        if best_row is None or best_ts <= 0:
            if collected:
                logger.info("Player-date rows carried no usable game time; ignoring them")
            return None
        logger.info("Using player-date row ts=%s", best_ts)
        return best_row

    def _game_player_row(self, game_id: int, player_id: int) -> Optional[Mapping[str, Any]]:
        for index, variant in enumerate(GAME_STATS_VARIANTS, start=1):
            result = self.client.fetch(variant.endpoint, variant.params(game_id, player_id))
            rows = [row for row in result.rows if isinstance(row, Mapping)]
            if not variant.keyed_by_player:
                rows = [row for row in rows if extract_player_id(row) == player_id]
            if rows:
                logger.info("Game %s stats found via variant %d (%s)", game_id, index, variant.endpoint)
                return rows[0]
        return None

    def team_game_scan(self, team_id: int, player_id: int) -> Tuple[Optional[Mapping[str, Any]], int]:
        logger.info("Falling back to team game scan for the last %d days", self.context.lookback_days)
        for offset in range(self.context.lookback_days):
            day = (self.context.now - timedelta(days=offset)).strftime("%Y-%m-%d")
            games = self.client.fetch(TEAM_GAMES_ENDPOINT, {"team": team_id, "date": day})
            for game in games.rows:
                if not isinstance(game, Mapping):
                    continue
                game_id = _positive_int(game.get("id"))
                if not game_id:
                    continue
                status = _game_status(game)
                if status is not None and status not in FINISHED_STATUSES:
                    logger.debug("Skipping game %s with status %s", game_id, status)
                    continue
                row = self._game_player_row(game_id, player_id)
                if row is not None:
                    return row, game_id
        return None, 0

    # -- entry point ------------------------------------------------------

    def resolve(self, team_id: int, player_id: int, label: str = "") -> CanonicalStatRow | ResolutionError:
        team_id = int(team_id)
        player_id = int(player_id)

        if not self.context.has_credential:
            return ResolutionError(
                label=label,
                team_id=team_id,
                player_id=player_id,
                messages=[MISSING_API_KEY],
            )

        logger.info("Start stats resolution team_id=%s player_id=%s", team_id, player_id)
        player_name = self._lookup_name("/players", player_id)
        team_name = self._lookup_name("/teams", team_id)

        row = self.season_scan(team_id, player_id)
        if row is not None:
            return normalize(row, player_name=player_name, team_name=team_name)

        row = self.recent_date_scan(player_id)
        if row is not None:
            return normalize(row, player_name=player_name, team_name=team_name)

        row, game_id = self.team_game_scan(team_id, player_id)
        if row is not None:
            # The scanned game is authoritative over any id the stat record carries.
            stat_row = normalize(row, player_name=player_name, team_name=team_name)
            return stat_row.model_copy(update={"game_id": game_id})

        logger.warning("No stats found for player_id=%s team_id=%s", player_id, team_id)
        return ResolutionError(
            label=label,
            team_id=team_id,
            player_id=player_id,
            messages=[NO_RECENT_STATS],
        )
