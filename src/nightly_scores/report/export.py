"""CSV report rendering for resolved batches and pushed rows."""

from __future__ import annotations

import csv
from dataclasses import dataclass
from datetime import datetime, timezone
from io import StringIO
from typing import Iterable, Optional, Sequence

from nightly_scores.models import CanonicalStatRow, PushRow, ReportBatch, ResolutionError


REPORT_HEADERS: tuple[str, ...] = (
    "Player",
    "Team",
    "Game ID",
    "Points",
    "Rebounds",
    "Assists",
    "Minutes",
    "Field Goals",
    "Field Goal Percentage",
    "3 Points",
    "3 Point Percentage",
    "Free Throws",
    "Free Throw Percentage",
    "FGM",
    "FGA",
    "3 Points Made",
    "3 Points Attempt",
    "FTM",
    "FTA",
)

ERROR_SECTION_TITLE = "ERRORS"
ERROR_HEADERS: tuple[str, ...] = ("Label", "Team ID", "Player ID", "Error")
ERROR_SEPARATOR = " | "

PUSH_HEADERS: tuple[str, ...] = (
    "Player",
    "Game Date",
    "Game URL",
    "Minutes",
    "Points",
    "Rebounds",
    "Assists",
    "Steals",
    "Turnovers",
)

REPORT_SUBJECT = "Nightly Player Scores (CSV)"


def _row_values(row: CanonicalStatRow) -> list[object]:
    fg, tp, ft = row.field_goals, row.three_pointers, row.free_throws
    return [
        row.player_name,
        row.team_name,
        row.game_id,
        row.points,
        row.rebounds,
        row.assists,
        row.minutes,
        fg.display_line,
        fg.percentage,
        tp.display_line,
        tp.percentage,
        ft.display_line,
        ft.percentage,
        fg.made,
        fg.attempted,
        tp.made,
        tp.attempted,
        ft.made,
        ft.attempted,
    ]


def build_report(
    rows: Sequence[CanonicalStatRow],
    errors: Sequence[ResolutionError] = (),
) -> bytes:
    """Render resolved rows and, when present, an error section."""

    buffer = StringIO()
    writer = csv.writer(buffer)
    writer.writerow(REPORT_HEADERS)
    for row in rows:
        writer.writerow(_row_values(row))

    if errors:
        writer.writerow([])
        writer.writerow([ERROR_SECTION_TITLE])
        writer.writerow(ERROR_HEADERS)
        for error in errors:
            writer.writerow(
                [error.label, error.team_id, error.player_id, ERROR_SEPARATOR.join(error.messages)]
            )

    return buffer.getvalue().encode("utf-8")


def build_batch_report(batch: ReportBatch) -> bytes:
    return build_report(batch.rows, batch.errors)


def build_push_report(rows: Iterable[PushRow]) -> bytes:
    buffer = StringIO()
    writer = csv.writer(buffer)
    writer.writerow(PUSH_HEADERS)
    for row in rows:
        writer.writerow(
            [
                row.player,
                row.game_date,
                row.game_url,
                row.minutes,
                row.points,
                row.rebounds,
                row.assists,
                row.steals,
                row.turnovers,
            ]
        )
    return buffer.getvalue().encode("utf-8")


def report_filename(when: Optional[datetime] = None) -> str:
    when = when or datetime.now(timezone.utc)
    return f"player-scores-{when.astimezone(timezone.utc):%Y-%m-%d}.csv"


@dataclass(frozen=True)
class ReportSummary:
    subject: str
    body: str


def compose_summary(batch: ReportBatch | None = None) -> ReportSummary:
    body = "Attached is the nightly CSV.\n\n"
    if batch is not None and batch.errors:
        body += "Some rows had errors. See the 'Errors' section in the CSV.\n"
    return ReportSummary(subject=REPORT_SUBJECT, body=body)
