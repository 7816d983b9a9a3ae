"""SQLite table with the DynamoDB ``pk``/``sk`` item shape, for single-host deployments."""

from __future__ import annotations

import json
import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Any, Dict, Optional

_SCHEMA = """
CREATE TABLE IF NOT EXISTS oauth_token_items (
    pk TEXT NOT NULL,
    sk TEXT NOT NULL,
    tenant_id TEXT,
    expires_at INTEGER,
    item TEXT NOT NULL,
    PRIMARY KEY (pk, sk)
)
"""

_UPSERT = """
INSERT INTO oauth_token_items (pk, sk, tenant_id, expires_at, item)
VALUES (:pk, :sk, :tenant_id, :expires_at, :item)
ON CONFLICT(pk, sk) DO UPDATE SET
    tenant_id = excluded.tenant_id,
    expires_at = excluded.expires_at,
    item = excluded.item
"""


class SQLiteStore:
    """Token items keyed by (pk, sk). ``tenant_id`` and ``expires_at`` are copied out for inspection."""

    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        with closing(self._connect()) as conn, conn:
            conn.execute(_SCHEMA)

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self._db_path)

    def put_item(self, item: Dict[str, Any]) -> None:
        if not item.get("pk") or not item.get("sk"):
            raise ValueError("Item must include 'pk' and 'sk' keys")

        params = {
            "pk": item["pk"],
            "sk": item["sk"],
            "tenant_id": item.get("tenantId"),
            "expires_at": item.get("expiresAt"),
            "item": json.dumps(item),
        }
        with closing(self._connect()) as conn, conn:
            conn.execute(_UPSERT, params)

    def get_item(self, *, partition_key: str, sort_key: str) -> Optional[Dict[str, Any]]:
        with closing(self._connect()) as conn:
            row = conn.execute(
                "SELECT item FROM oauth_token_items WHERE pk = ? AND sk = ?",
                (partition_key, sort_key),
            ).fetchone()
        return json.loads(row[0]) if row else None


__all__ = ["SQLiteStore"]
