"""
HubSpot OAuth utilities.

These helpers build the install URL and talk to the token endpoint for the
authorization-code and refresh grants.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError as PayloadValidationError

from app.core.config import HubSpotSettings
from app.core.errors import ConfigurationError, ProviderError
from app.models.oauth import TokenGrant

logger = logging.getLogger(__name__)


class HubSpotOAuthClient:
    """Build HubSpot authorization URLs and call the token endpoint."""

    def __init__(
        self,
        settings: HubSpotSettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._transport = transport

    @property
    def token_url(self) -> str:
        return self._settings.token_url

    def build_authorization_url(self) -> str:
        """Construct the HubSpot install (consent) URL."""
        if not self._settings.client_id:
            raise ConfigurationError("Missing CLIENT_ID environment variable")
        if not self._settings.redirect_uri:
            raise ConfigurationError("Missing REDIRECT_URI environment variable")
        params = {
            "client_id": self._settings.client_id,
            "scope": self._settings.scopes,
            "redirect_uri": self._settings.redirect_uri,
        }
        return f"{self._settings.authorize_url}?{urlencode(params)}"

    async def exchange_authorization_code(self, code: str) -> TokenGrant:
        """Exchange a one-time authorization code for the initial token pair."""
        self._require_credentials()
        if not self._settings.redirect_uri:
            raise ConfigurationError("Missing REDIRECT_URI environment variable")
        payload = {
            "grant_type": "authorization_code",
            "client_id": self._settings.client_id,
            "client_secret": self._settings.client_secret,
            "redirect_uri": self._settings.redirect_uri,
            "code": code,
        }
        return await self._post_token_form(payload)

    async def refresh_token(self, refresh_token: str) -> TokenGrant:
        """Mint a new token pair from a refresh token."""
        self._require_credentials()
        payload = {
            "grant_type": "refresh_token",
            "client_id": self._settings.client_id,
            "client_secret": self._settings.client_secret,
            "refresh_token": refresh_token,
        }
        return await self._post_token_form(payload)

    def _require_credentials(self) -> None:
        if not self._settings.is_configured:
            raise ConfigurationError(
                "Missing CLIENT_ID or CLIENT_SECRET environment variables"
            )

    async def _post_token_form(self, form: Dict[str, Any]) -> TokenGrant:
        try:
            async with httpx.AsyncClient(
                timeout=self._settings.http_timeout_seconds, transport=self._transport
            ) as client:
                response = await client.post(
                    self._settings.token_url,
                    data=form,
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                )
        except httpx.HTTPError as exc:
            logger.error("Token endpoint unreachable: %s", exc)
            raise ProviderError(502, f"Token endpoint unreachable: {exc}") from exc

        body = _json_or_empty(response)
        if not response.is_success:
            logger.error(
                "Token endpoint rejected %s grant (HTTP %s): %s",
                form["grant_type"],
                response.status_code,
                body.get("message"),
            )
            raise ProviderError.from_payload(response.status_code, body)

        try:
            return TokenGrant.model_validate(body)
        except PayloadValidationError as exc:
            raise ProviderError(
                502, "Incomplete token payload returned from HubSpot."
            ) from exc


def _json_or_empty(response: httpx.Response) -> Dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {"message": response.text or response.reason_phrase}
    return body if isinstance(body, dict) else {}


__all__ = ["HubSpotOAuthClient"]
