"""SQLite-backed token table used as the database credential backend."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from meli_auth.clients.backends import BackendUnavailableError
from meli_auth.models.token import TokenRecord


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SQLiteTokenBackend:
    """Token table keyed uniquely by service, written with upserts."""

    def __init__(
        self, db_path: str, *, clock: Callable[[], datetime] = _utcnow
    ) -> None:
        self._db_path = Path(db_path)
        self._clock = clock
        self._schema_ready = False

    def _connect(self) -> sqlite3.Connection:
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        if not self._schema_ready:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS oauth_tokens (
                    service TEXT PRIMARY KEY,
                    access_token TEXT NOT NULL,
                    refresh_token TEXT NOT NULL,
                    expires_at TEXT NOT NULL,
                    user_id TEXT NOT NULL,
                    scope TEXT,
                    encrypted INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            self._schema_ready = True
        return conn

    def write(self, record: TokenRecord) -> TokenRecord:
        now = self._clock().isoformat()
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO oauth_tokens (
                        service, access_token, refresh_token, expires_at,
                        user_id, scope, encrypted, created_at, updated_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(service) DO UPDATE SET
                        access_token = excluded.access_token,
                        refresh_token = excluded.refresh_token,
                        expires_at = excluded.expires_at,
                        user_id = excluded.user_id,
                        scope = excluded.scope,
                        encrypted = excluded.encrypted,
                        updated_at = excluded.updated_at
                    """,
                    (
                        record.service,
                        record.access_token,
                        record.refresh_token,
                        record.expires_at.isoformat(),
                        record.user_id,
                        record.scope,
                        int(record.encrypted),
                        now,
                        now,
                    ),
                )
        except (sqlite3.Error, OSError) as exc:
            raise BackendUnavailableError(f"SQLite write failed: {exc}") from exc

        stored = self.read(record.service)
        if stored is None:  # pragma: no cover - row was just upserted
            raise BackendUnavailableError("SQLite upsert did not persist the token.")
        return stored

    def read(self, service: str) -> Optional[TokenRecord]:
        try:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT * FROM oauth_tokens WHERE service = ?",
                    (service,),
                ).fetchone()
        except (sqlite3.Error, OSError) as exc:
            raise BackendUnavailableError(f"SQLite read failed: {exc}") from exc
        if not row:
            return None
        document = dict(row)
        document["encrypted"] = bool(document["encrypted"])
        return TokenRecord.from_document(document)


__all__ = ["SQLiteTokenBackend"]
