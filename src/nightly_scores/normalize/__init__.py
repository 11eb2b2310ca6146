"""Normalization of provider rows into canonical statistics."""

from .stat_row import (
    extract_game_id,
    extract_player_id,
    extract_player_name,
    extract_statistics_block,
    extract_team_id,
    extract_team_name,
    normalize,
    pick_rebounds_total,
    pick_shooting_split,
    pick_stat,
)

__all__ = [
    "extract_game_id",
    "extract_player_id",
    "extract_player_name",
    "extract_statistics_block",
    "extract_team_id",
    "extract_team_name",
    "normalize",
    "pick_rebounds_total",
    "pick_shooting_split",
    "pick_stat",
]
