"""
Per-portal storage of HubSpot OAuth token records.

The store writes to one durable backend (memory, SQLite, DynamoDB or S3
blobs) and keeps an optional in-process cache. Reads walk an ordered list of
lookup strategies (cache, backend, environment override); each one answers
with a record or ``None`` and never raises, so ``load`` degrades to "not
found" on any backend failure.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Protocol, Union

from app.core.config import TokenOverrideSettings
from app.core.errors import ValidationError
from app.core.logging import mask_secret
from app.models.oauth import TokenRecord, now_ms
from app.services.token_cipher import TokenCipherService
from app.services.token_freshness import needs_refresh

logger = logging.getLogger(__name__)

DEFAULT_EXPIRES_IN_SECONDS = 21600
OVERRIDE_DEFAULT_LIFETIME_MS = 6 * 60 * 60 * 1000


class TokenBackend(Protocol):
    """Keyed persistence of JSON token payloads."""

    name: str

    def read(self, tenant_id: str) -> Optional[Dict[str, Any]]:
        ...

    def write(self, tenant_id: str, payload: Dict[str, Any]) -> None:
        ...


class RecordClient(Protocol):
    def put_item(self, item: Dict[str, Any]) -> None:
        ...

    def get_item(self, *, partition_key: str, sort_key: str) -> Optional[Dict[str, Any]]:
        ...


class BlobClient(Protocol):
    def put_json(self, name: str, document: Dict[str, Any]) -> None:
        ...

    def get_json(self, name: str) -> Optional[Dict[str, Any]]:
        ...


class MemoryTokenBackend:
    """Process-local map. Contents are lost when the container is recycled."""

    name = "memory"

    def __init__(self) -> None:
        self._records: Dict[str, Dict[str, Any]] = {}

    def read(self, tenant_id: str) -> Optional[Dict[str, Any]]:
        payload = self._records.get(tenant_id)
        return dict(payload) if payload is not None else None

    def write(self, tenant_id: str, payload: Dict[str, Any]) -> None:
        self._records[tenant_id] = dict(payload)


class KeyValueTokenBackend:
    """Stores records through a DynamoDB-style ``put_item``/``get_item`` client."""

    name = "key-value"
    SORT_KEY = "oauth#hubspot"

    def __init__(self, client: RecordClient) -> None:
        self._client = client

    @staticmethod
    def _partition_key(tenant_id: str) -> str:
        return f"tenant#{tenant_id}"

    def read(self, tenant_id: str) -> Optional[Dict[str, Any]]:
        item = self._client.get_item(
            partition_key=self._partition_key(tenant_id), sort_key=self.SORT_KEY
        )
        if not item:
            return None
        return {key: value for key, value in item.items() if key not in ("pk", "sk")}

    def write(self, tenant_id: str, payload: Dict[str, Any]) -> None:
        item = {"pk": self._partition_key(tenant_id), "sk": self.SORT_KEY}
        item.update(payload)
        self._client.put_item(item)


class BlobTokenBackend:
    """Stores each record as a JSON blob named ``tokens:<tenant_id>``."""

    name = "blob"

    def __init__(self, client: BlobClient) -> None:
        self._client = client

    def read(self, tenant_id: str) -> Optional[Dict[str, Any]]:
        return self._client.get_json(f"tokens:{tenant_id}")

    def write(self, tenant_id: str, payload: Dict[str, Any]) -> None:
        self._client.put_json(f"tokens:{tenant_id}", payload)


class BackendLookup:
    """Answer from a backend, treating read errors and foreign records as a miss."""

    def __init__(
        self, backend: TokenBackend, *, cipher: Optional[TokenCipherService] = None
    ) -> None:
        self._backend = backend
        self._cipher = cipher

    def __call__(self, tenant_id: str) -> Optional[TokenRecord]:
        try:
            payload = self._backend.read(tenant_id)
        except Exception as exc:  # backend I/O errors degrade to "not found"
            logger.warning(
                "Error reading tokens from %s backend: %s",
                self._backend.name,
                exc,
                extra={"tenant_id": tenant_id},
            )
            return None
        if not payload:
            return None

        try:
            if self._cipher is not None:
                payload = self._cipher.unseal(payload)
            record = TokenRecord.from_storage(payload)
        except ValueError as exc:
            logger.warning(
                "Discarding unreadable token record from %s backend: %s",
                self._backend.name,
                exc,
                extra={"tenant_id": tenant_id},
            )
            return None

        if record.tenant_id != tenant_id:
            logger.error(
                "Token record under portal %s claims portal %s; ignoring it.",
                tenant_id,
                record.tenant_id,
            )
            return None

        age_seconds = round((now_ms() - record.updated_at) / 1000)
        logger.info(
            "Tokens loaded from %s backend for portal %s (stored %ss ago)",
            self._backend.name,
            tenant_id,
            age_seconds,
        )
        return record


class EnvironmentOverrideLookup:
    """Single-tenant tokens from the environment, bound to a configured portal id."""

    def __init__(self, settings: TokenOverrideSettings) -> None:
        self._settings = settings

    def __call__(self, tenant_id: str) -> Optional[TokenRecord]:
        if not self._settings.is_present:
            return None
        if not self._settings.applies_to(tenant_id):
            logger.info(
                "Environment tokens do not match requested portal %s (env portal: %s)",
                tenant_id,
                self._settings.portal_id or "not set",
            )
            return None

        expires_at = self._settings.expires_at
        if expires_at is None:
            expires_at = now_ms() + OVERRIDE_DEFAULT_LIFETIME_MS
        logger.info("Tokens loaded from environment variables for portal %s", tenant_id)
        return TokenRecord(
            tenant_id=tenant_id,
            access_token=self._settings.access_token,
            refresh_token=self._settings.refresh_token,
            expires_at=expires_at,
        )


TokenData = Union[TokenRecord, Mapping[str, Any]]
TokenLookup = Callable[[str], Optional[TokenRecord]]


class TokenStore:
    """Save and load token records by portal id."""

    def __init__(
        self,
        backend: TokenBackend,
        *,
        cache: Optional[MemoryTokenBackend] = None,
        cipher: Optional[TokenCipherService] = None,
        override: Optional[TokenOverrideSettings] = None,
    ) -> None:
        self._backend = backend
        self._cache = cache
        self._cipher = cipher
        lookups: List[TokenLookup] = []
        if cache is not None:
            lookups.append(BackendLookup(cache))
        lookups.append(BackendLookup(backend, cipher=cipher))
        if override is not None:
            lookups.append(EnvironmentOverrideLookup(override))
        self._lookups = lookups

    @property
    def backend_name(self) -> str:
        return self._backend.name

    def save(self, tenant_id: Optional[str], data: TokenData) -> TokenRecord:
        """Normalize ``data`` into a record for ``tenant_id`` and write it."""
        tenant = require_tenant_id(tenant_id)
        record = _build_record(tenant, data)

        logger.info(
            "Saving tokens for portal %s (access %s, expires %s)",
            tenant,
            mask_secret(record.access_token),
            _iso(record.expires_at),
        )

        payload = record.to_storage()
        if self._cache is not None:
            self._cache.write(tenant, payload)
        try:
            stored = self._cipher.seal(payload) if self._cipher is not None else payload
            self._backend.write(tenant, stored)
        except Exception as exc:  # durable write failure keeps the cached copy
            logger.error(
                "Failed to save tokens to %s backend for portal %s: %s",
                self._backend.name,
                tenant,
                exc,
            )
        return record

    def load(self, tenant_id: Optional[str]) -> Optional[TokenRecord]:
        """Return the record for ``tenant_id`` or None when no lookup answers."""
        tenant = require_tenant_id(tenant_id)
        for lookup in self._lookups:
            record = lookup(tenant)
            if record is not None:
                return record
        logger.warning("No tokens found for portal %s", tenant)
        return None

    @staticmethod
    def needs_refresh(record: Optional[TokenRecord]) -> bool:
        return needs_refresh(record)


def require_tenant_id(tenant_id: Optional[str]) -> str:
    tenant = str(tenant_id).strip() if tenant_id is not None else ""
    if not tenant:
        raise ValidationError("hub_id is required for token storage operations")
    return tenant


def _first(data: Mapping[str, Any], keys: Iterable[str]) -> Any:
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return None


def _build_record(tenant_id: str, data: TokenData) -> TokenRecord:
    if isinstance(data, TokenRecord):
        data = data.to_storage()

    try:
        expires_at = _first(data, ("expiresAt", "expires_at"))
        if expires_at is None:
            expires_in = data.get("expires_in")
            if expires_in is None:
                expires_in = DEFAULT_EXPIRES_IN_SECONDS
            expires_at = now_ms() + int(expires_in) * 1000

        return TokenRecord(
            tenant_id=tenant_id,
            access_token=_first(data, ("accessToken", "access_token")),
            refresh_token=_first(data, ("refreshToken", "refresh_token")),
            expires_at=int(expires_at),
            updated_at=now_ms(),
        )
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Malformed token data for portal {tenant_id}: {exc}") from exc


def _iso(epoch_ms: Optional[int]) -> str:
    if epoch_ms is None:
        return "unknown"
    return datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc).isoformat()


__all__ = [
    "BackendLookup",
    "BlobTokenBackend",
    "DEFAULT_EXPIRES_IN_SECONDS",
    "EnvironmentOverrideLookup",
    "KeyValueTokenBackend",
    "MemoryTokenBackend",
    "TokenBackend",
    "TokenStore",
    "require_tenant_id",
]
