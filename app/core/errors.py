"""
Error taxonomy for the HubSpot token lifecycle.

Every error raised by the token store, the refresher, and the OAuth client
derives from ``TokenLifecycleError`` so callers can recover them at a single
boundary.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class TokenLifecycleError(Exception):
    """Base class for token lifecycle failures."""


class ValidationError(TokenLifecycleError):
    """Raised when the caller omitted required identifying data."""


class ConfigurationError(TokenLifecycleError):
    """Raised when the OAuth client credentials are not configured."""


class MissingCredentialError(TokenLifecycleError):
    """Raised when no refresh token is available for a tenant."""


class TenantMismatchError(TokenLifecycleError):
    """Raised when the provider reports a different owner for a token."""

    def __init__(self, expected_tenant_id: str, reported_tenant_id: str) -> None:
        super().__init__(
            f"Token endpoint reported portal {reported_tenant_id} while refreshing "
            f"portal {expected_tenant_id}; refreshed tokens were discarded."
        )
        self.expected_tenant_id = expected_tenant_id
        self.reported_tenant_id = reported_tenant_id


class ProviderError(TokenLifecycleError):
    """Raised when HubSpot rejects a request. Carries the provider payload verbatim."""

    def __init__(
        self,
        status_code: int,
        message: str,
        *,
        error: Optional[str] = None,
        error_description: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.error = error
        self.error_description = error_description

    @classmethod
    def from_payload(cls, status_code: int, payload: Dict[str, Any]) -> "ProviderError":
        """Build an error from a HubSpot error body (``status``, ``message``, ...)."""
        message = (
            payload.get("message")
            or payload.get("error_description")
            or payload.get("status")
            or f"HubSpot responded with HTTP {status_code}"
        )
        error = payload.get("error") or payload.get("status")
        return cls(
            status_code,
            str(message),
            error=str(error) if error else None,
            error_description=payload.get("error_description"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status_code,
            "message": self.message,
            "error": self.error,
            "error_description": self.error_description,
        }


__all__ = [
    "ConfigurationError",
    "MissingCredentialError",
    "ProviderError",
    "TenantMismatchError",
    "TokenLifecycleError",
    "ValidationError",
]
