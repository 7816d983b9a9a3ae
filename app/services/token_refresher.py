"""
Mint HubSpot tokens through the token endpoint and commit them to the store.
"""

from __future__ import annotations

import logging
from typing import Optional

from app.clients.hubspot_auth import HubSpotOAuthClient
from app.core.config import TokenOverrideSettings
from app.core.errors import (
    MissingCredentialError,
    ProviderError,
    TenantMismatchError,
    ValidationError,
)
from app.core.logging import mask_secret
from app.models.oauth import TokenGrant, TokenRecord
from app.services.token_store import TokenStore, require_tenant_id

logger = logging.getLogger(__name__)


class TokenRefresher:
    """Run the refresh and authorization-code grants for a portal."""

    def __init__(
        self,
        oauth_client: HubSpotOAuthClient,
        store: TokenStore,
        *,
        override: Optional[TokenOverrideSettings] = None,
    ) -> None:
        self._oauth = oauth_client
        self._store = store
        self._override = override

    async def refresh(
        self, tenant_id: Optional[str], refresh_token: Optional[str] = None
    ) -> TokenRecord:
        """
        Exchange ``refresh_token`` for a new pair and save it under ``tenant_id``.

        The provider's ``hub_id`` must match ``tenant_id``; on a mismatch the
        new tokens are dropped and ``TenantMismatchError`` is raised.
        """
        tenant = require_tenant_id(tenant_id)
        token_to_use = refresh_token or self._override_refresh_token(tenant)
        if not token_to_use:
            raise MissingCredentialError(
                f"No refresh token available for portal {tenant}; re-run the install flow."
            )

        logger.info("Refreshing access token for portal %s", tenant)
        grant = await self._oauth.refresh_token(token_to_use)

        if grant.hub_id is not None and grant.hub_id != tenant:
            logger.error(
                "Refresh for portal %s returned tokens owned by portal %s; discarding them",
                tenant,
                grant.hub_id,
            )
            raise TenantMismatchError(tenant, grant.hub_id)

        record = self._store.save(tenant, _grant_data(grant, fallback_refresh=token_to_use))
        logger.info("Token refreshed successfully for portal %s", tenant)
        return record

    async def exchange_authorization_code(self, code: Optional[str]) -> TokenRecord:
        """Complete the install flow and save the first token pair under its ``hub_id``."""
        if not code:
            raise ValidationError("No authorization code received")

        grant = await self._oauth.exchange_authorization_code(code)
        if not grant.hub_id:
            logger.error("No hub_id in token response")
            raise ProviderError(502, "Missing hub_id in OAuth response")

        logger.info(
            "OAuth tokens received for portal %s (access %s, refresh %s, expires in %ss)",
            grant.hub_id,
            mask_secret(grant.access_token),
            mask_secret(grant.refresh_token),
            grant.expires_in,
        )
        return self._store.save(grant.hub_id, _grant_data(grant))

    def _override_refresh_token(self, tenant_id: str) -> Optional[str]:
        override = self._override
        if override is None or not override.refresh_token:
            return None
        if not override.applies_to(tenant_id):
            return None
        logger.info("Using environment refresh token for portal %s", tenant_id)
        return override.refresh_token


def _grant_data(grant: TokenGrant, *, fallback_refresh: Optional[str] = None) -> dict:
    return {
        "access_token": grant.access_token,
        "refresh_token": grant.refresh_token or fallback_refresh,
        "expires_in": grant.expires_in,
    }


__all__ = ["TokenRefresher"]
