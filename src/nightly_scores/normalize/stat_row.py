"""Shape-agnostic extraction of box-score fields from provider rows.

The provider returns the same logical statistics nested differently depending
on endpoint and plan: a ``statistics`` list, a ``statistics`` object, or flat
fields on the row itself. Every field lookup goes through an ordered list of
candidate keys where the first present key wins.
"""

from __future__ import annotations

import json
from typing import Any, Mapping, Sequence

from nightly_scores.models import CanonicalStatRow, ShootingSplit


_SCALAR_TYPES = (str, int, float)

# (group key, flat made key, flat attempted key)
FIELD_GOALS = ("field_goals", "fgm", "fga")
THREE_POINTERS = ("threepoint_goals", "tpm", "tpa")
FREE_THROWS = ("freethrows_goals", "ftm", "fta")

POINTS_KEYS = ("points", "pts")
ASSISTS_KEYS = ("assists", "ast")
MINUTES_KEYS = ("min", "minutes")
TOP_LEVEL_STAT_KEYS = ("points", "rebounds")


def _is_scalar(value: Any) -> bool:
    return isinstance(value, _SCALAR_TYPES)


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "1" if value else ""
    if _is_scalar(value):
        return str(value)
    return json.dumps(value, separators=(",", ":"), default=str)


def _scalar_or_blank(value: Any) -> str:
    if value is None or isinstance(value, bool) or not _is_scalar(value):
        return ""
    return str(value)


def _nested(row: Mapping[str, Any], *path: str) -> Any:
    current: Any = row
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def pick_stat(stats: Mapping[str, Any] | None, keys: Sequence[str]) -> str:
    """Return the first present candidate stringified, complex values as JSON."""

    if not isinstance(stats, Mapping):
        return ""
    for key in keys:
        value = stats.get(key)
        if value is not None:
            return _stringify(value)
    return ""


def pick_rebounds_total(stats: Mapping[str, Any] | None) -> str:
    if not isinstance(stats, Mapping):
        return ""
    rebounds = stats.get("rebounds")
    if isinstance(rebounds, Mapping):
        if rebounds.get("total") is not None:
            return _scalar_or_blank(rebounds.get("total"))
    elif rebounds is not None and _is_scalar(rebounds):
        return _scalar_or_blank(rebounds)
    return _scalar_or_blank(stats.get("reb"))


def _format_percentage(made: str, attempted: str) -> str:
    try:
        made_value = float(made)
        attempted_value = float(attempted)
    except ValueError:
        return ""
    if attempted_value <= 0:
        return ""
    return format(round(made_value / attempted_value * 100, 1), "g")


def pick_shooting_split(
    stats: Mapping[str, Any] | None,
    group_key: str,
    made_key: str,
    attempted_key: str,
) -> ShootingSplit:
    if not isinstance(stats, Mapping):
        return ShootingSplit()

    made = _scalar_or_blank(stats.get(made_key))
    attempted = _scalar_or_blank(stats.get(attempted_key))
    percentage = ""

    group = stats.get(group_key)
    if isinstance(group, Mapping):
        if made == "":
            made = _scalar_or_blank(group.get("total"))
        if attempted == "":
            attempted = _scalar_or_blank(group.get("attempts"))
        percentage = _scalar_or_blank(group.get("percentage"))

    display_line = f"{made}/{attempted}" if made != "" and attempted != "" else ""

    if percentage == "" and display_line:
        percentage = _format_percentage(made, attempted)
    if percentage != "":
        percentage = percentage.rstrip("%") + "%"

    return ShootingSplit(
        made=made,
        attempted=attempted,
        display_line=display_line,
        percentage=percentage,
    )


def extract_statistics_block(row: Mapping[str, Any] | None) -> Mapping[str, Any]:
    if not isinstance(row, Mapping):
        return {}
    statistics = row.get("statistics")
    if isinstance(statistics, list):
        if statistics and isinstance(statistics[0], Mapping):
            return statistics[0]
        return {}
    if isinstance(statistics, Mapping):
        return statistics
    if any(row.get(key) is not None for key in TOP_LEVEL_STAT_KEYS):
        return row
    return {}


def extract_player_name(row: Mapping[str, Any] | None) -> str:
    player = _nested(row or {}, "player")
    if not isinstance(player, Mapping):
        return ""
    name = player.get("name")
    if name:
        return str(name).strip()
    first = player.get("firstname")
    last = player.get("lastname")
    if first is None and last is None:
        return ""
    return f"{first or ''} {last or ''}".strip()


def extract_team_name(row: Mapping[str, Any] | None) -> str:
    name = _nested(row or {}, "team", "name")
    return str(name).strip() if name else ""


def _as_int(value: Any) -> int:
    if value is None or isinstance(value, bool):
        return 0
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        try:
            return int(float(value))
        except (TypeError, ValueError, OverflowError):
            return 0


def extract_game_id(row: Mapping[str, Any] | None) -> int:
    if not isinstance(row, Mapping):
        return 0
    nested = _nested(row, "game", "id")
    if nested is not None:
        return _as_int(nested)
    return _as_int(row.get("id"))


def extract_player_id(row: Mapping[str, Any] | None) -> int:
    if not isinstance(row, Mapping):
        return 0
    return _as_int(_nested(row, "player", "id"))


def extract_team_id(row: Mapping[str, Any] | None) -> int | None:
    if not isinstance(row, Mapping):
        return None
    value = _nested(row, "team", "id")
    if value is None:
        return None
    return _as_int(value)


def normalize(
    row: Mapping[str, Any] | None,
    *,
    player_name: str = "",
    team_name: str = "",
    game_id: int = 0,
) -> CanonicalStatRow:
    """Build a canonical row; the keyword arguments are fallbacks for missing identity fields."""

    stats = extract_statistics_block(row)
    return CanonicalStatRow(
        player_name=extract_player_name(row) or player_name,
        team_name=extract_team_name(row) or team_name,
        game_id=extract_game_id(row) or game_id,
        points=pick_stat(stats, POINTS_KEYS),
        rebounds=pick_rebounds_total(stats),
        assists=pick_stat(stats, ASSISTS_KEYS),
        minutes=pick_stat(stats, MINUTES_KEYS),
        field_goals=pick_shooting_split(stats, *FIELD_GOALS),
        three_pointers=pick_shooting_split(stats, *THREE_POINTERS),
        free_throws=pick_shooting_split(stats, *FREE_THROWS),
    )
