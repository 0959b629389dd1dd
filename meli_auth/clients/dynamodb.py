"""
DynamoDB table used as an alternative database credential backend.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from meli_auth.clients.backends import BackendUnavailableError
from meli_auth.core.config import StorageSettings
from meli_auth.models.token import TokenRecord

SORT_KEY = "oauth#mercadolibre"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _partition_key(service: str) -> str:
    return f"service#{service}"


class DynamoDBTokenBackend:
    """Store one item per service under ``(service#<name>, oauth#mercadolibre)``."""

    def __init__(
        self,
        settings: StorageSettings,
        *,
        table: Any = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if table is None:
            if not settings.dynamodb_table_name:
                raise ValueError("DYNAMODB_TABLE_NAME is required for the DynamoDB backend.")
            resource = boto3.resource("dynamodb", region_name=settings.aws_region)
            table = resource.Table(settings.dynamodb_table_name)
        self._table = table
        self._clock = clock

    def _get_item(self, service: str) -> Optional[dict[str, Any]]:
        try:
            response = self._table.get_item(
                Key={"pk": _partition_key(service), "sk": SORT_KEY}
            )
        except (BotoCoreError, ClientError) as exc:
            raise BackendUnavailableError(f"DynamoDB read failed: {exc}") from exc
        return response.get("Item")

    def write(self, record: TokenRecord) -> TokenRecord:
        now = self._clock()
        existing = self._get_item(record.service)
        created_at = existing.get("createdAt") if existing else None

        item = record.to_document()
        item.update(
            {
                "pk": _partition_key(record.service),
                "sk": SORT_KEY,
                "createdAt": created_at or now.isoformat(),
                "updatedAt": now.isoformat(),
            }
        )
        try:
            self._table.put_item(Item=item)
        except (BotoCoreError, ClientError) as exc:
            raise BackendUnavailableError(f"DynamoDB write failed: {exc}") from exc
        return TokenRecord.from_document(item)

    def read(self, service: str) -> Optional[TokenRecord]:
        item = self._get_item(service)
        if not item:
            return None
        return TokenRecord.from_document(item)


__all__ = ["DynamoDBTokenBackend"]
