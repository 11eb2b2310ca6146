"""Scrape-based alternative to the provider API path."""

from .flashscore import (
    FlashscoreScraper,
    ScrapedGame,
    ScrapedStats,
    ScrapeResult,
    ScrapeUnavailableError,
    StatCell,
    evaluate_match,
    is_within_recency_window,
    map_stat_cells,
    parse_match_date,
    scrape_player,
)
from .push import PUSH_SECRET_HEADER, PushError, build_push_payload, push_rows

__all__ = [
    "FlashscoreScraper",
    "PUSH_SECRET_HEADER",
    "PushError",
    "ScrapedGame",
    "ScrapedStats",
    "ScrapeResult",
    "ScrapeUnavailableError",
    "StatCell",
    "build_push_payload",
    "evaluate_match",
    "is_within_recency_window",
    "map_stat_cells",
    "parse_match_date",
    "push_rows",
    "scrape_player",
]
