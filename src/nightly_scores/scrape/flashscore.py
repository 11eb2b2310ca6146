"""Headless-browser scrape of a public player page's most recent match."""

from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Iterable, List, Literal, Mapping, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

from nightly_scores.models import AthleteTarget


logger = logging.getLogger(__name__)

PLAYER_URL = "https://www.flashscore.com/player/{slug}/{player_id}/"
ROW_SELECTOR = "#last-matches .lmTable a:first-of-type"
USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)
BLOCKED_RESOURCE_TYPES = frozenset({"image", "font"})
NAVIGATION_TIMEOUT_MS = 30_000
SELECTOR_TIMEOUT_MS = 20_000
RECENCY_WINDOW_DAYS = 1

_DATE_PATTERN = re.compile(r"^(\d{2})\.(\d{2})\.(\d{2})$")

_EXTRACT_SCRIPT = """
(selector) => {
  const a = document.querySelector(selector);
  if (!a) return null;
  const dateEl = a.querySelector('.lmTable__date');
  return {
    href: a.href,
    dateText: dateEl ? (dateEl.textContent || '').trim() : '',
    cells: Array.from(a.querySelectorAll('.lmTable__icon'))
      .map(el => ({
        label: (el.getAttribute('title') || el.getAttribute('aria-label') || '').trim(),
        value: (el.textContent || '').trim(),
      }))
      .filter(cell => cell.value),
  };
}
"""

STAT_FIELDS = ("minutes", "points", "rebounds", "assists", "steals", "turnovers")

STAT_LABELS: Mapping[str, str] = {
    "min": "minutes",
    "mins": "minutes",
    "minutes": "minutes",
    "minutes played": "minutes",
    "pts": "points",
    "points": "points",
    "reb": "rebounds",
    "rebounds": "rebounds",
    "total rebounds": "rebounds",
    "ast": "assists",
    "assists": "assists",
    "stl": "steals",
    "steals": "steals",
    "to": "turnovers",
    "tov": "turnovers",
    "turnovers": "turnovers",
}


@dataclass(frozen=True)
class StatCell:
    label: str
    value: str


@dataclass(frozen=True)
class ScrapedStats:
    minutes: str
    points: int
    rebounds: int
    assists: int
    steals: int
    turnovers: int


@dataclass(frozen=True)
class ScrapedGame:
    date_text: str
    url: str
    date_iso: str = ""


@dataclass(frozen=True)
class ScrapeResult:
    status: Literal["ok", "ignored", "error"]
    stats: Optional[ScrapedStats] = None
    game: Optional[ScrapedGame] = None
    reason: str = ""
    error: str = ""
    raw: Mapping[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status != "error"

    @property
    def ignored(self) -> bool:
        return self.status == "ignored"

    @classmethod
    def failure(cls, message: str, raw: Mapping[str, Any] | None = None) -> "ScrapeResult":
        return cls(status="error", error=message, raw=dict(raw or {}))

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["ok"] = self.ok
        payload["ignored"] = self.ignored
        return payload


class ScrapeUnavailableError(RuntimeError):
    """Raised when a scrape is requested outside of an open browser session."""


def parse_match_date(text: str) -> Optional[date]:
    """Parse the ``DD.MM.YY`` match date shown on player pages."""

    match = _DATE_PATTERN.match((text or "").strip())
    if not match:
        return None
    day, month, year = (int(part) for part in match.groups())
    try:
        return date(2000 + year, month, day)
    except ValueError:
        return None


def is_within_recency_window(game_date: date, today: date) -> bool:
    diff = (today - game_date).days
    return 0 <= diff <= RECENCY_WINDOW_DAYS


def _to_int(value: str) -> Optional[int]:
    try:
        return int(str(value).strip())
    except ValueError:
        try:
            return int(float(str(value).strip()))
        except ValueError:
            return None


def _coerce_cells(cells: Iterable[Any]) -> List[StatCell]:
    coerced: List[StatCell] = []
    for cell in cells:
        if isinstance(cell, StatCell):
            coerced.append(cell)
        elif isinstance(cell, Mapping):
            coerced.append(StatCell(str(cell.get("label") or "").strip(), str(cell.get("value") or "").strip()))
        elif cell is not None:
            coerced.append(StatCell("", str(cell).strip()))
    return [cell for cell in coerced if cell.value]


def map_stat_cells(cells: Sequence[Any]) -> Optional[ScrapedStats]:
    """Map the match row's stat cells onto named fields.

    Labeled cells are mapped by label. Unlabeled markup falls back to the
    page's historical column order, which silently breaks if the page reorders
    its columns.
    """

    coerced = _coerce_cells(cells)
    values: dict[str, str] = {}

    if any(cell.label for cell in coerced):
        for cell in coerced:
            name = STAT_LABELS.get(cell.label.lower())
            if name and name not in values:
                values[name] = cell.value
        if any(name not in values for name in STAT_FIELDS):
            logger.warning("Labeled stat cells missing fields: %s", [c.label for c in coerced])
            return None
    else:
        if len(coerced) < len(STAT_FIELDS):
            return None
        logger.warning("Stat cells carry no labels; mapping by position")
        values = dict(zip(STAT_FIELDS, (cell.value for cell in coerced)))

    numbers = {name: _to_int(values[name]) for name in STAT_FIELDS[1:]}
    if any(number is None for number in numbers.values()):
        return None
    return ScrapedStats(minutes=values["minutes"].strip(), **numbers)  # type: ignore[arg-type]


def evaluate_match(raw: Mapping[str, Any] | None, today: date) -> ScrapeResult:
    """Classify one extracted match row as usable, ignored or an error."""

    if not raw:
        return ScrapeResult.failure("Could not locate last match row.")

    date_text = str(raw.get("dateText") or "").strip()
    url = str(raw.get("href") or "")
    game_date = parse_match_date(date_text)
    if game_date is None:
        return ScrapeResult.failure("Invalid date format.", raw)

    if not is_within_recency_window(game_date, today):
        return ScrapeResult(
            status="ignored",
            reason="Game not within last day.",
            game=ScrapedGame(date_text=date_text, url=url, date_iso=game_date.isoformat()),
            raw=dict(raw),
        )

    stats = map_stat_cells(raw.get("cells") or raw.get("icons") or [])
    if stats is None:
        return ScrapeResult.failure("Stat columns missing.", raw)

    return ScrapeResult(
        status="ok",
        stats=stats,
        game=ScrapedGame(date_text=date_text, url=url, date_iso=game_date.isoformat()),
        raw=dict(raw),
    )


class FlashscoreScraper:
    """Chromium session reused across player pages.

    Use as a context manager; images and fonts are blocked and every wait is
    bounded.
    """

    def __init__(
        self,
        *,
        tz: ZoneInfo | str = "America/New_York",
        headless: bool = True,
        navigation_timeout_ms: int = NAVIGATION_TIMEOUT_MS,
        selector_timeout_ms: int = SELECTOR_TIMEOUT_MS,
        today: Callable[[], date] | None = None,
    ):
        self.tz = ZoneInfo(tz) if isinstance(tz, str) else tz
        self.headless = headless
        self.navigation_timeout_ms = navigation_timeout_ms
        self.selector_timeout_ms = selector_timeout_ms
        self._today = today or (lambda: datetime.now(self.tz).date())
        self._playwright = None
        self._browser = None
        self._page = None

    def __enter__(self) -> "FlashscoreScraper":
        self._playwright = sync_playwright().start()
        self._browser = self._playwright.chromium.launch(headless=self.headless)
        context = self._browser.new_context(user_agent=USER_AGENT)
        self._page = context.new_page()
        self._page.route("**/*", self._block_heavy_resources)
        return self

    def __exit__(self, *exc_info: object) -> None:
        if self._browser is not None:
            self._browser.close()
            self._browser = None
        if self._playwright is not None:
            self._playwright.stop()
            self._playwright = None
        self._page = None

    @staticmethod
    def _block_heavy_resources(route: Any) -> None:
        if route.request.resource_type in BLOCKED_RESOURCE_TYPES:
            route.abort()
        else:
            route.continue_()

    def _extract(self, slug: str, player_id: str) -> Optional[Mapping[str, Any]]:
        if self._page is None:
            raise ScrapeUnavailableError("FlashscoreScraper must be used as a context manager")
        url = PLAYER_URL.format(slug=slug, player_id=player_id)
        logger.info("Loading %s", url)
        self._page.goto(url, wait_until="domcontentloaded", timeout=self.navigation_timeout_ms)
        self._page.wait_for_selector(ROW_SELECTOR, timeout=self.selector_timeout_ms)
        return self._page.evaluate(_EXTRACT_SCRIPT, ROW_SELECTOR)

    def scrape(self, slug: str, player_id: str) -> ScrapeResult:
        try:
            raw = self._extract(slug, player_id)
        except PlaywrightTimeoutError as exc:
            logger.warning("Timed out waiting for match row for %s/%s: %s", slug, player_id, exc)
            return ScrapeResult.failure("Could not locate last match row.")
        except PlaywrightError as exc:
            logger.warning("Browser error for %s/%s: %s", slug, player_id, exc)
            return ScrapeResult.failure(str(exc))
        result = evaluate_match(raw, self._today())
        logger.info("Scrape %s/%s -> %s", slug, player_id, result.status)
        return result

    def scrape_many(self, athletes: Iterable[AthleteTarget]) -> List[Tuple[AthleteTarget, ScrapeResult]]:
        results: List[Tuple[AthleteTarget, ScrapeResult]] = []
        for athlete in athletes:
            if not athlete.has_external_ids:
                logger.info("Skipping %s: no external page identifiers", athlete.label)
                continue
            results.append(
                (athlete, self.scrape(str(athlete.external_slug), str(athlete.external_id)))
            )
        return results


def scrape_player(slug: str, player_id: str, *, tz: ZoneInfo | str = "America/New_York") -> ScrapeResult:
    with FlashscoreScraper(tz=tz) as scraper:
        return scraper.scrape(slug, player_id)
