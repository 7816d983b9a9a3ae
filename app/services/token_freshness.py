"""Decide whether a stored token must be refreshed before use."""

from __future__ import annotations

from typing import Optional

from app.models.oauth import TokenRecord, now_ms

# Refresh this long before expiry so the refresh finishes before the token dies mid-request.
REFRESH_MARGIN_MS = 5 * 60 * 1000


def needs_refresh(record: Optional[TokenRecord], now: Optional[int] = None) -> bool:
    """Return True when ``record`` is missing, incomplete, or inside the refresh margin."""
    if record is None or record.expires_at is None or not record.access_token:
        return True
    current = now_ms() if now is None else now
    return current >= record.expires_at - REFRESH_MARGIN_MS


__all__ = ["REFRESH_MARGIN_MS", "needs_refresh"]
