"""Webhook API receiving scraped rows from the scrape deployment."""

from __future__ import annotations

import hmac
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from nightly_scores.api.schemas import LastPushResponse, PushResponse
from nightly_scores.config_loader import Settings
from nightly_scores.models import PushRow
from nightly_scores.notify import Notifier, OutboxNotifier, ReportMessage
from nightly_scores.persistence import SnapshotStore
from nightly_scores.report import build_push_report, compose_summary, report_filename
from nightly_scores.scrape.push import PUSH_SECRET_HEADER


logger = logging.getLogger("uvicorn.error")

OUTBOX_ENV = "NIGHTLY_SCORES_OUTBOX"


def _is_authorized(request: Request, expected: str) -> bool:
    provided = request.headers.get(PUSH_SECRET_HEADER, "")
    if not expected or not provided:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), provided.encode("utf-8"))


def _unauthorized() -> JSONResponse:
    return JSONResponse(status_code=401, content={"ok": False, "error": "Unauthorized"})


def _sanitize_rows(raw_rows: Any) -> list[PushRow]:
    if not isinstance(raw_rows, list):
        return []
    rows: list[PushRow] = []
    for raw in raw_rows:
        if not isinstance(raw, dict):
            continue
        try:
            row = PushRow.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Dropping invalid push row: %s", exc)
            continue
        if row.player:
            rows.append(row)
    return rows


def _default_outbox() -> Path:
    env_dir = os.getenv(OUTBOX_ENV)
    if env_dir:
        return Path(env_dir)
    return Path(tempfile.gettempdir()) / "nightly-scores-outbox"


def create_app(
    settings: Optional[Settings] = None,
    *,
    store: Optional[SnapshotStore] = None,
    notifier: Optional[Notifier] = None,
) -> FastAPI:
    app = FastAPI(title="nightly scores webhook")
    settings = settings or Settings.load()
    if not settings.push_secret:
        settings.ensure_push_secret()
        logger.warning("No push secret was configured; generated a new one")
    store = store or SnapshotStore(Path(__file__).resolve().parent.parent / "nightly_scores.sqlite")
    notifier = notifier or OutboxNotifier(_default_outbox())
    app.state.settings = settings
    app.state.store = store
    app.state.notifier = notifier

    def send_rows(rows: list[PushRow], recipients: list[str]) -> bool:
        summary = compose_summary()
        message = ReportMessage(
            recipients=recipients,
            subject=summary.subject,
            body=summary.body,
            attachment_name=report_filename(),
            attachment=build_push_report(rows),
        )
        return bool(notifier.send(message))

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/push", response_model=PushResponse)
    async def push(request: Request) -> Any:
        if not _is_authorized(request, settings.push_secret):
            logger.warning("Rejected unauthenticated push from %s", request.client.host if request.client else "?")
            return _unauthorized()

        try:
            payload = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            payload = None
        if not isinstance(payload, dict):
            return JSONResponse(status_code=400, content={"ok": False, "error": "Invalid JSON payload"})

        rows = _sanitize_rows(payload.get("rows"))
        generated_at = " ".join(str(payload.get("generated_at_utc") or "").split())
        source = " ".join(str(payload.get("source") or "").split())
        store.save_push(generated_at_utc=generated_at, rows=rows, source=source)

        if not rows:
            logger.info("Push received but contained zero usable rows")
            return PushResponse(ok=True, sent=False, reason="No rows")

        sent = send_rows(rows, settings.recipient_list())
        logger.info("Push accepted rows=%d sent=%s", len(rows), sent)
        return PushResponse(ok=True, sent=sent, rows=len(rows))

    @app.get("/last-push", response_model=LastPushResponse)
    async def last_push(request: Request) -> Any:
        if not _is_authorized(request, settings.push_secret):
            return _unauthorized()
        snapshot = store.get_last_push()
        if snapshot is None:
            raise HTTPException(status_code=404, detail="no push received yet")
        return LastPushResponse(
            received_at=snapshot.received_at,
            generated_at_utc=snapshot.generated_at_utc,
            source=snapshot.source,
            rows=snapshot.rows,
        )

    @app.post("/last-push/resend", response_model=PushResponse)
    async def resend_last_push(request: Request) -> Any:
        if not _is_authorized(request, settings.push_secret):
            return _unauthorized()
        snapshot = store.get_last_push()
        if snapshot is None or not snapshot.rows:
            return PushResponse(ok=False, sent=False, reason="No rows")
        recipients = [settings.test_email] if settings.test_email else settings.recipient_list()
        sent = send_rows(snapshot.rows, recipients)
        return PushResponse(ok=True, sent=sent, rows=len(snapshot.rows))

    return app


__all__ = ["create_app"]
