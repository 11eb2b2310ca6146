from datetime import date, datetime, timezone

import httpx
import pytest
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from nightly_scores.models import AthleteTarget
from nightly_scores.scrape import (
    PUSH_SECRET_HEADER,
    FlashscoreScraper,
    PushError,
    ScrapeResult,
    ScrapeUnavailableError,
    build_push_payload,
    evaluate_match,
    is_within_recency_window,
    map_stat_cells,
    parse_match_date,
    push_rows,
)

TODAY = date(2025, 1, 15)
POSITIONAL = ["31", "24", "9", "5", "2", "3"]


def _raw(date_text: str, cells=None) -> dict:
    return {
        "href": "https://www.flashscore.com/match/abc/",
        "dateText": date_text,
        "cells": POSITIONAL if cells is None else cells,
    }


class FakePage:
    def __init__(self, raw):
        self.raw = raw
        self.visited: list[str] = []

    def goto(self, url, wait_until=None, timeout=None):
        self.visited.append(url)

    def wait_for_selector(self, selector, timeout=None):
        return None

    def evaluate(self, script, arg=None):
        return self.raw


def test_parse_match_date():
    assert parse_match_date("14.01.25") == date(2025, 1, 14)
    assert parse_match_date(" 01.02.24 ") == date(2024, 2, 1)
    assert parse_match_date("2025-01-14") is None
    assert parse_match_date("32.01.25") is None


def test_recency_window_is_today_or_yesterday():
    assert is_within_recency_window(TODAY, TODAY)
    assert is_within_recency_window(date(2025, 1, 14), TODAY)
    assert not is_within_recency_window(date(2025, 1, 13), TODAY)
    assert not is_within_recency_window(date(2025, 1, 16), TODAY)


def test_map_stat_cells_positional_fallback():
    stats = map_stat_cells(POSITIONAL)
    assert stats is not None
    assert (stats.minutes, stats.points, stats.rebounds) == ("31", 24, 9)
    assert (stats.assists, stats.steals, stats.turnovers) == (5, 2, 3)


def test_map_stat_cells_uses_labels_over_position():
    cells = [
        {"label": "PTS", "value": "24"},
        {"label": "MIN", "value": "31"},
        {"label": "AST", "value": "5"},
        {"label": "REB", "value": "9"},
        {"label": "TO", "value": "3"},
        {"label": "STL", "value": "2"},
    ]
    stats = map_stat_cells(cells)
    assert stats is not None
    assert stats.points == 24
    assert stats.minutes == "31"
    assert stats.turnovers == 3


def test_map_stat_cells_rejects_incomplete_rows():
    assert map_stat_cells(POSITIONAL[:5]) is None
    assert map_stat_cells([{"label": "PTS", "value": "4"}]) is None
    assert map_stat_cells(["31", "x", "9", "5", "2", "3"]) is None


def test_game_three_days_old_is_ignored_not_error():
    result = evaluate_match(_raw("12.01.25"), TODAY)
    assert result.status == "ignored"
    assert result.ok
    assert result.stats is None
    assert result.game.date_iso == "2025-01-12"


def test_invalid_date_is_error():
    result = evaluate_match(_raw("Jan 14"), TODAY)
    assert result.status == "error"
    assert result.error == "Invalid date format."


def test_missing_row_is_error():
    assert evaluate_match(None, TODAY).error == "Could not locate last match row."


def test_recent_game_is_usable():
    result = evaluate_match(_raw("14.01.25"), TODAY)
    assert result.status == "ok"
    assert result.stats.points == 24
    assert result.game.url.endswith("/match/abc/")
    assert result.to_dict()["ignored"] is False


def test_scraper_requires_open_session():
    scraper = FlashscoreScraper(today=lambda: TODAY)
    with pytest.raises(ScrapeUnavailableError):
        scraper.scrape("jackson-jaren", "h8oYS0m9")


def test_scrape_many_skips_athletes_without_page_ids():
    scraper = FlashscoreScraper(today=lambda: TODAY)
    page = FakePage(_raw("15.01.25"))
    scraper._page = page
    athletes = [
        AthleteTarget(label="Jaren", external_slug="jackson-jaren", external_id="h8oYS0m9"),
        AthleteTarget(label="No Page", team_id=1, player_id=2),
    ]

    results = scraper.scrape_many(athletes)

    assert [athlete.label for athlete, _ in results] == ["Jaren"]
    assert results[0][1].status == "ok"
    assert page.visited == ["https://www.flashscore.com/player/jackson-jaren/h8oYS0m9/"]


def test_build_push_payload_keeps_only_usable_results():
    ok = evaluate_match(_raw("15.01.25"), TODAY)
    ignored = evaluate_match(_raw("01.01.25"), TODAY)
    failed = ScrapeResult.failure("Stat columns missing.")
    payload = build_push_payload(
        [
            (AthleteTarget(label="A"), ok),
            (AthleteTarget(label="B"), ignored),
            (AthleteTarget(label="C"), failed),
        ],
        now=datetime(2025, 1, 15, 7, 0, tzinfo=timezone.utc),
    )
    assert payload["generated_at_utc"] == "2025-01-15T07:00:00+00:00"
    assert [row["player"] for row in payload["rows"]] == ["A"]
    assert payload["rows"][0]["game_date"] == "2025-01-15"
    assert payload["rows"][0]["points"] == 24


def test_push_rows_sends_secret_header():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["secret"] = request.headers.get(PUSH_SECRET_HEADER)
        return httpx.Response(200, json={"ok": True, "sent": True, "rows": 1})

    body = push_rows("https://example.test/push", "s3cret", {"rows": []}, transport=httpx.MockTransport(handler))
    assert seen["secret"] == "s3cret"
    assert body["ok"] is True


def test_push_rows_raises_on_rejection():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"ok": False, "error": "Unauthorized"})

    with pytest.raises(PushError):
        push_rows("https://example.test/push", "wrong", {"rows": []}, transport=httpx.MockTransport(handler))


class StalledPage(FakePage):
    def __init__(self, error: Exception):
        super().__init__(None)
        self.error = error

    def wait_for_selector(self, selector, timeout=None):
        raise self.error


def test_selector_timeout_becomes_structured_error():
    scraper = FlashscoreScraper(today=lambda: TODAY, selector_timeout_ms=10)
    scraper._page = StalledPage(PlaywrightTimeoutError("Timeout 10ms exceeded."))

    result = scraper.scrape("jackson-jaren", "h8oYS0m9")

    assert result.status == "error"
    assert result.error == "Could not locate last match row."


def test_browser_error_message_is_reported():
    scraper = FlashscoreScraper(today=lambda: TODAY)
    scraper._page = StalledPage(PlaywrightError("Target page, context or browser has been closed"))

    result = scraper.scrape("jackson-jaren", "h8oYS0m9")

    assert result.status == "error"
    assert result.error == "Target page, context or browser has been closed"


class FakeRoute:
    def __init__(self, resource_type: str):
        self.request = type("FakeRequest", (), {"resource_type": resource_type})()
        self.outcome = None

    def abort(self):
        self.outcome = "abort"

    def continue_(self):
        self.outcome = "continue"


@pytest.mark.parametrize(
    "resource_type, outcome",
    [("image", "abort"), ("font", "abort"), ("script", "continue"), ("document", "continue")],
)
def test_images_and_fonts_are_blocked(resource_type, outcome):
    route = FakeRoute(resource_type)
    FlashscoreScraper._block_heavy_resources(route)
    assert route.outcome == outcome
