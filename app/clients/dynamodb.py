"""
Utility wrapper for storing OAuth token records in DynamoDB.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import boto3

from app.core.config import StorageSettings


class DynamoDBClient:
    """Key-value access to the token table, keyed by (pk, sk)."""

    def __init__(self, settings: StorageSettings) -> None:
        if not settings.dynamodb_table_name:
            raise ValueError("DYNAMODB_TABLE_NAME is required for the dynamodb backend.")
        self._settings = settings
        self._resource = boto3.resource("dynamodb", region_name=settings.region_name)
        self._table = self._resource.Table(settings.dynamodb_table_name)

    def put_item(self, item: Dict[str, Any]) -> None:
        """Put an item in the DynamoDB table."""
        self._table.put_item(Item=item)

    def get_item(self, *, partition_key: str, sort_key: str) -> Optional[Dict[str, Any]]:
        """Retrieve an item using its key."""
        response = self._table.get_item(Key={"pk": partition_key, "sk": sort_key})
        item = response.get("Item")
        if item is None:
            return None
        # Numbers come back as Decimal.
        return {
            key: int(value) if key in ("expiresAt", "updatedAt") and value is not None else value
            for key, value in item.items()
        }


__all__ = ["DynamoDBClient"]
