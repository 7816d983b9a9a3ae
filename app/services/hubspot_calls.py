"""
Authenticated calls to the HubSpot API on behalf of a portal.

Every outbound API request goes through :class:`HubSpotCallWrapper`, which
attaches the portal's bearer token, refreshes it when it is about to expire,
and answers a 401 with exactly one forced refresh and retry.

Concurrent calls for the same portal are not serialized: two invocations that
both see a stale token will both refresh, and the last save wins. Each caller
keeps using the access token its own refresh returned, which stays valid
until its own expiry.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from http import HTTPStatus
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlparse

import httpx

from app.core.errors import (
    ConfigurationError,
    MissingCredentialError,
    ProviderError,
    TenantMismatchError,
    ValidationError,
)
from app.models.oauth import TokenRecord
from app.services.token_freshness import needs_refresh
from app.services.token_refresher import TokenRefresher
from app.services.token_store import TokenStore, require_tenant_id

logger = logging.getLogger(__name__)

_BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})
_ALLOWED_API_DOMAIN = "hubapi.com"


class CallOutcome(str, Enum):
    DONE = "done"
    UNAUTHENTICATED = "unauthenticated"
    TENANT_MISMATCH = "tenant_mismatch"
    CONFIGURATION_ERROR = "configuration_error"
    INVALID_REQUEST = "invalid_request"
    PROVIDER_UNAVAILABLE = "provider_unavailable"


@dataclass(frozen=True)
class ProviderCallResult:
    """Status and body handed back to the HTTP layer."""

    status_code: int
    body: Any
    outcome: CallOutcome = CallOutcome.DONE
    refreshed: bool = False
    attempts: int = 0

    @property
    def needs_auth(self) -> bool:
        return self.outcome is CallOutcome.UNAUTHENTICATED

    def encode_body(self) -> Tuple[str, str]:
        """Return ``(text, media_type)`` for relaying the body over HTTP."""
        if self.body is None:
            return "", "application/json"
        if isinstance(self.body, str):
            return self.body, "text/plain"
        return json.dumps(self.body), "application/json"


class HubSpotCallWrapper:
    """Single choke point for outbound HubSpot API calls."""

    def __init__(
        self,
        store: TokenStore,
        refresher: TokenRefresher,
        *,
        default_base_url: str = "https://api.hubapi.com",
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._store = store
        self._refresher = refresher
        self._default_base_url = default_base_url
        self._timeout = timeout_seconds
        self._transport = transport

    async def perform(
        self,
        tenant_id: Optional[str],
        method: str,
        path: Optional[str],
        base_url: Optional[str] = None,
        body: Any = None,
    ) -> ProviderCallResult:
        """Call ``base_url + path`` as ``tenant_id`` and return a structured result."""
        try:
            return await self._perform(tenant_id, method.upper(), path, base_url, body)
        except ValidationError as exc:
            return _failure(HTTPStatus.BAD_REQUEST, CallOutcome.INVALID_REQUEST, str(exc))
        except TenantMismatchError as exc:
            logger.error("Cross-portal token response detected: %s", exc)
            return _failure(
                HTTPStatus.INTERNAL_SERVER_ERROR,
                CallOutcome.TENANT_MISMATCH,
                str(exc),
                expectedPortalId=exc.expected_tenant_id,
                reportedPortalId=exc.reported_tenant_id,
            )
        except ConfigurationError as exc:
            logger.error("OAuth client is not configured: %s", exc)
            return _failure(
                HTTPStatus.INTERNAL_SERVER_ERROR, CallOutcome.CONFIGURATION_ERROR, str(exc)
            )
        except MissingCredentialError as exc:
            return _failure(HTTPStatus.UNAUTHORIZED, CallOutcome.UNAUTHENTICATED, str(exc))
        except ProviderError as exc:
            logger.warning("Token refresh failed (HTTP %s): %s", exc.status_code, exc.message)
            return _failure(
                HTTPStatus.UNAUTHORIZED,
                CallOutcome.UNAUTHENTICATED,
                f"Failed to refresh token: {exc.message}",
                provider=exc.to_dict(),
            )
        except httpx.HTTPError as exc:
            logger.error("HubSpot API request failed: %s", exc)
            return _failure(
                HTTPStatus.BAD_GATEWAY, CallOutcome.PROVIDER_UNAVAILABLE, str(exc)
            )

    async def _perform(
        self,
        tenant_id: Optional[str],
        method: str,
        path: Optional[str],
        base_url: Optional[str],
        body: Any,
    ) -> ProviderCallResult:
        tenant = require_tenant_id(tenant_id)
        url = self._build_url(base_url, path)

        record = self._store.load(tenant)
        if record is None:
            return _failure(
                HTTPStatus.UNAUTHORIZED,
                CallOutcome.UNAUTHENTICATED,
                "No access token available. Please authenticate first.",
            )

        refreshed = False
        if needs_refresh(record):
            logger.info("Token for portal %s expired or expiring soon, refreshing", tenant)
            record = await self._refresher.refresh(tenant, record.refresh_token)
            refreshed = True

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            logger.info("Calling HubSpot %s %s for portal %s", method, url, tenant)
            response = await self._send(client, method, url, record, body)
            attempts = 1

            if response.status_code == HTTPStatus.UNAUTHORIZED and not refreshed:
                logger.info("HubSpot returned 401 for portal %s, refreshing once", tenant)
                record = await self._refresher.refresh(tenant, record.refresh_token)
                refreshed = True
                response = await self._send(client, method, url, record, body)
                attempts = 2

        payload = _parse_body(response)
        if response.status_code == HTTPStatus.UNAUTHORIZED:
            logger.warning("HubSpot still rejects credentials for portal %s", tenant)
            return ProviderCallResult(
                status_code=response.status_code,
                body=payload,
                outcome=CallOutcome.UNAUTHENTICATED,
                refreshed=refreshed,
                attempts=attempts,
            )
        return ProviderCallResult(
            status_code=response.status_code,
            body=payload,
            refreshed=refreshed,
            attempts=attempts,
        )

    def _build_url(self, base_url: Optional[str], path: Optional[str]) -> str:
        if not path:
            raise ValidationError("Missing x-requested-path header or path parameter")
        if not path.startswith("/"):
            raise ValidationError("HubSpot API path must start with '/'")

        base = (base_url or self._default_base_url).rstrip("/")
        parsed = urlparse(base)
        host = parsed.hostname or ""
        on_hubspot = host == _ALLOWED_API_DOMAIN or host.endswith(f".{_ALLOWED_API_DOMAIN}")
        if parsed.scheme != "https" or not on_hubspot:
            raise ValidationError(f"Refusing to send credentials to {base}")
        return f"{base}{path}"

    @staticmethod
    async def _send(
        client: httpx.AsyncClient,
        method: str,
        url: str,
        record: TokenRecord,
        body: Any,
    ) -> httpx.Response:
        headers = {
            "Authorization": f"Bearer {record.access_token}",
            "Content-Type": "application/json",
        }
        kwargs: Dict[str, Any] = {"headers": headers}
        if body is not None and method in _BODY_METHODS:
            if isinstance(body, (str, bytes)):
                kwargs["content"] = body
            else:
                kwargs["json"] = body
        return await client.request(method, url, **kwargs)


def _parse_body(response: httpx.Response) -> Any:
    content_type = response.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            return response.json()
        except ValueError:
            return response.text
    return response.text


def _failure(
    status_code: int, outcome: CallOutcome, message: str, **details: Any
) -> ProviderCallResult:
    body: Dict[str, Any] = {
        "error": message,
        "outcome": outcome.value,
        "needsAuth": outcome is CallOutcome.UNAUTHENTICATED,
    }
    body.update(details)
    return ProviderCallResult(status_code=int(status_code), body=body, outcome=outcome)


__all__ = ["CallOutcome", "HubSpotCallWrapper", "ProviderCallResult"]
