"""Persistence of the last successful batch and the last webhook push."""

from __future__ import annotations

import json
import os
import sqlite3
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from nightly_scores.models import CanonicalStatRow, PushRow, ReportBatch, ResolutionError


DB_PATH_ENV = "NIGHTLY_SCORES_DB_PATH"


@dataclass
class BatchSnapshot:
    created_at: datetime
    batch: ReportBatch


@dataclass
class PushSnapshot:
    received_at: datetime
    generated_at_utc: str
    source: str
    rows: List[PushRow]


class SnapshotStore:
    """SQLite store holding one snapshot per kind; every save overwrites it."""

    def __init__(self, db_path: Path | str):
        self._use_uri = False
        env_db = os.getenv(DB_PATH_ENV)
        if env_db:
            if env_db.startswith("file:"):
                self.db_path: Path | str = env_db
                self._use_uri = True
            else:
                self.db_path = Path(env_db)
        else:
            self.db_path = Path(db_path)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        if isinstance(self.db_path, Path):
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            try:
                conn = sqlite3.connect(self.db_path)
            except sqlite3.OperationalError:
                fallback_dir = Path(tempfile.gettempdir()) / "nightly-scores-runtime"
                fallback_dir.mkdir(parents=True, exist_ok=True)
                self.db_path = fallback_dir / "nightly_scores.sqlite"
                conn = sqlite3.connect(self.db_path)
                self._create_schema(conn)
        else:
            conn = sqlite3.connect(self.db_path, uri=self._use_uri)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            self._create_schema(conn)

    def _create_schema(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS snapshots (
                kind TEXT PRIMARY KEY,
                created_at TEXT NOT NULL,
                payload_json TEXT NOT NULL
            )
            """
        )
        conn.commit()

    def _save(self, kind: str, payload: dict, created_at: datetime) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO snapshots (kind, created_at, payload_json)
                VALUES (?, ?, ?)
                ON CONFLICT(kind) DO UPDATE SET
                    created_at = excluded.created_at,
                    payload_json = excluded.payload_json
                """,
                (kind, created_at.isoformat(), json.dumps(payload)),
            )
            conn.commit()

    def _load(self, kind: str) -> Optional[sqlite3.Row]:
        with self._connect() as conn:
            cursor = conn.execute(
                "SELECT created_at, payload_json FROM snapshots WHERE kind = ?",
                (kind,),
            )
            return cursor.fetchone()

    def save_batch(self, batch: ReportBatch, *, created_at: Optional[datetime] = None) -> None:
        created_at = created_at or datetime.now(timezone.utc)
        payload = {
            "rows": [row.model_dump() for row in batch.rows],
            "errors": [error.model_dump() for error in batch.errors],
        }
        self._save("batch", payload, created_at)

    def get_last_batch(self) -> Optional[BatchSnapshot]:
        row = self._load("batch")
        if row is None:
            return None
        payload = json.loads(row["payload_json"])
        batch = ReportBatch(
            rows=[CanonicalStatRow.model_validate(item) for item in payload.get("rows", [])],
            errors=[ResolutionError.model_validate(item) for item in payload.get("errors", [])],
        )
        return BatchSnapshot(created_at=datetime.fromisoformat(row["created_at"]), batch=batch)

    def save_push(
        self,
        *,
        generated_at_utc: str,
        rows: List[PushRow],
        source: str = "",
        received_at: Optional[datetime] = None,
    ) -> None:
        received_at = received_at or datetime.now(timezone.utc)
        payload = {
            "generated_at_utc": generated_at_utc,
            "source": source,
            "rows": [row.model_dump() for row in rows],
        }
        self._save("push", payload, received_at)

    def get_last_push(self) -> Optional[PushSnapshot]:
        row = self._load("push")
        if row is None:
            return None
        payload = json.loads(row["payload_json"])
        return PushSnapshot(
            received_at=datetime.fromisoformat(row["created_at"]),
            generated_at_utc=str(payload.get("generated_at_utc", "")),
            source=str(payload.get("source", "")),
            rows=[PushRow.model_validate(item) for item in payload.get("rows", [])],
        )


__all__ = [
    "BatchSnapshot",
    "PushSnapshot",
    "SnapshotStore",
]
