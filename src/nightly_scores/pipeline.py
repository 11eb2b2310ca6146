"""Nightly run orchestration: resolve every athlete, render, deliver."""

from __future__ import annotations

import logging
import os
import tempfile
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

from nightly_scores.config import ResolutionContext
from nightly_scores.config_loader import Settings
from nightly_scores.models import AthleteTarget, CanonicalStatRow, ReportBatch, ResolutionError
from nightly_scores.notify import Notifier, ReportMessage
from nightly_scores.persistence import SnapshotStore
from nightly_scores.provider import UpstreamClient
from nightly_scores.report import build_batch_report, compose_summary, report_filename
from nightly_scores.resolver import StatsResolver


logger = logging.getLogger(__name__)

LOCK_STALE_SECONDS = 6 * 60 * 60
DEFAULT_LOCK_PATH = Path(tempfile.gettempdir()) / "nightly-scores.lock"

_RUN_LOCK = threading.Lock()


class RunInProgressError(RuntimeError):
    """Raised when another nightly run already holds the run lock."""


@contextmanager
def single_flight(lock_path: Path | None = None) -> Iterator[None]:
    """Hold both the in-process lock and a lock file for the whole run."""

    if not _RUN_LOCK.acquire(blocking=False):
        raise RunInProgressError("A nightly run is already in progress in this process")
    path = Path(lock_path or DEFAULT_LOCK_PATH)
    fd: Optional[int] = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        except FileExistsError:
            age = time.time() - path.stat().st_mtime
            if age < LOCK_STALE_SECONDS:
                raise RunInProgressError(f"Run lock {path} is held by another process")
            logger.warning("Removing stale run lock %s (age %.0fs)", path, age)
            path.unlink(missing_ok=True)
            fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        os.write(fd, str(os.getpid()).encode("ascii"))
        yield
    finally:
        if fd is not None:
            os.close(fd)
            path.unlink(missing_ok=True)
        _RUN_LOCK.release()


def run_batch(
    athletes: Sequence[AthleteTarget],
    resolver: StatsResolver,
    *,
    workers: int = 1,
) -> ReportBatch:
    """Resolve each configured athlete; failures are collected, never raised."""

    targets: List[AthleteTarget] = []
    for athlete in athletes:
        if not athlete.has_provider_ids:
            logger.info("Skipping %r: team_id and player_id are required", athlete.label)
            continue
        targets.append(athlete)

    def resolve(athlete: AthleteTarget) -> CanonicalStatRow | ResolutionError:
        try:
            return resolver.resolve(athlete.team_id, athlete.player_id, athlete.label)
        except Exception as exc:
            logger.exception("Unexpected failure resolving %r", athlete.label)
            return ResolutionError(
                label=athlete.label,
                team_id=athlete.team_id,
                player_id=athlete.player_id,
                messages=[str(exc) or exc.__class__.__name__],
            )

    if workers > 1 and len(targets) > 1:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            results = list(executor.map(resolve, targets))
    else:
        results = [resolve(athlete) for athlete in targets]

    batch = ReportBatch()
    for result in results:
        if isinstance(result, ResolutionError):
            batch.errors.append(result)
        else:
            batch.rows.append(result)
    logger.info("Batch resolved rows=%d errors=%d", len(batch.rows), len(batch.errors))
    return batch


@dataclass
class NightlyRunResult:
    batch: ReportBatch
    report: Optional[bytes]
    filename: Optional[str]
    sent: bool


def run_nightly(
    settings: Settings,
    *,
    client: Optional[UpstreamClient] = None,
    notifier: Optional[Notifier] = None,
    store: Optional[SnapshotStore] = None,
    now: Optional[datetime] = None,
    workers: int = 1,
    lock_path: Path | None = None,
) -> NightlyRunResult:
    athletes = list(settings.players)
    if not athletes:
        logger.warning("No players configured; aborting")
        return NightlyRunResult(batch=ReportBatch(), report=None, filename=None, sent=False)

    with single_flight(lock_path):
        context = ResolutionContext.from_settings(settings, now=now)
        if not context.has_credential:
            logger.error("Missing API key; every athlete will be reported as failed")

        owns_client = client is None
        client = client or UpstreamClient(context)
        try:
            batch = run_batch(athletes, StatsResolver(client, context), workers=workers)
        finally:
            if owns_client:
                client.close()

        if batch.is_empty():
            return NightlyRunResult(batch=batch, report=None, filename=None, sent=False)

        report = build_batch_report(batch)
        filename = report_filename(context.now)

        if store is not None and batch.rows:
            store.save_batch(batch, created_at=context.now)

        sent = False
        if notifier is not None:
            summary = compose_summary(batch)
            sent = notifier.send(
                ReportMessage(
                    recipients=settings.recipient_list(),
                    subject=summary.subject,
                    body=summary.body,
                    attachment_name=filename,
                    attachment=report,
                )
            )
        return NightlyRunResult(batch=batch, report=report, filename=filename, sent=sent)
