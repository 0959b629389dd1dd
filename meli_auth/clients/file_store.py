"""Local JSON file credential backend."""

from __future__ import annotations

import json
import os
import re
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from pydantic import ValidationError

from meli_auth.clients.backends import BackendUnavailableError
from meli_auth.models.token import TokenRecord

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JSONFileTokenBackend:
    """Keep one JSON document per service under ``token_dir``.

    Writes go to a temporary file in the same directory and are moved into
    place with :func:`os.replace`, so readers never see a partial document.
    """

    def __init__(
        self, token_dir: str | Path, *, clock: Callable[[], datetime] = _utcnow
    ) -> None:
        self._token_dir = Path(token_dir)
        self._clock = clock

    def path_for(self, service: str) -> Path:
        """Return the document path for ``service``."""
        safe_name = _UNSAFE_CHARS.sub("_", service) or "default"
        return self._token_dir / f"{safe_name}-token.json"

    def _load(self, path: Path) -> Optional[TokenRecord]:
        if not path.exists():
            return None
        try:
            document = json.loads(path.read_text(encoding="utf-8"))
            return TokenRecord.from_document(document)
        except (OSError, ValueError, ValidationError) as exc:
            raise BackendUnavailableError(
                f"Token file {path} could not be loaded: {exc}"
            ) from exc

    def write(self, record: TokenRecord) -> TokenRecord:
        path = self.path_for(record.service)
        now = self._clock()
        try:
            previous = self._load(path)
        except BackendUnavailableError:
            previous = None

        stored = record.model_copy(
            update={
                "created_at": (previous.created_at if previous else None) or now,
                "updated_at": now,
            }
        )
        payload = json.dumps(stored.to_document(), ensure_ascii=True, indent=2)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(payload)
                    handle.flush()
                    os.fsync(handle.fileno())
                os.chmod(tmp_name, 0o600)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise BackendUnavailableError(f"Token file {path} could not be written: {exc}") from exc
        return stored

    def read(self, service: str) -> Optional[TokenRecord]:
        return self._load(self.path_for(service))


__all__ = ["JSONFileTokenBackend"]
