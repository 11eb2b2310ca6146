"""Stats resolution across the provider's fallback strategies."""

from .service import (
    FINISHED_STATUSES,
    GAME_STATS_VARIANTS,
    NO_RECENT_STATS,
    GameStatsVariant,
    StatsResolver,
    extract_game_timestamp,
    season_candidates,
)

__all__ = [
    "FINISHED_STATUSES",
    "GAME_STATS_VARIANTS",
    "NO_RECENT_STATS",
    "GameStatsVariant",
    "StatsResolver",
    "extract_game_timestamp",
    "season_candidates",
]
