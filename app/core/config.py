"""
Application configuration models and helpers.

Centralizes settings management so both the FastAPI app and the serverless
proxy function share a consistent configuration surface.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENV_CONFIG = SettingsConfigDict(
    env_file=".env",
    env_file_encoding="utf-8",
    extra="ignore",
    populate_by_name=True,
)


class HubSpotSettings(BaseSettings):
    """OAuth client credentials and endpoints for the HubSpot app."""

    model_config = _ENV_CONFIG

    client_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("HUBSPOT_CLIENT_ID", "CLIENT_ID")
    )
    client_secret: Optional[str] = Field(
        None, validation_alias=AliasChoices("HUBSPOT_CLIENT_SECRET", "CLIENT_SECRET")
    )
    redirect_uri: Optional[str] = Field(
        None, validation_alias=AliasChoices("HUBSPOT_REDIRECT_URI", "REDIRECT_URI")
    )
    scopes: str = Field(
        "crm.objects.contacts.read",
        validation_alias=AliasChoices("HUBSPOT_SCOPES", "SCOPE"),
        description="Space or comma separated scopes requested at install time.",
    )
    api_base_url: str = Field(
        "https://api.hubapi.com", validation_alias="HUBSPOT_API_BASE_URL"
    )
    token_url: str = Field(
        "https://api.hubapi.com/oauth/v1/token", validation_alias="HUBSPOT_TOKEN_URL"
    )
    authorize_url: str = Field(
        "https://app.hubspot.com/oauth/authorize",
        validation_alias="HUBSPOT_AUTHORIZE_URL",
    )
    http_timeout_seconds: float = Field(10.0, validation_alias="HUBSPOT_HTTP_TIMEOUT")

    @field_validator("scopes")
    @classmethod
    def _normalize_scopes(cls, value: str) -> str:
        """Support providing scopes as a comma-separated string."""
        parts = value.replace(",", " ").split()
        return " ".join(parts)

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)


class TokenOverrideSettings(BaseSettings):
    """Single-tenant token override read from the environment."""

    model_config = _ENV_CONFIG

    access_token: Optional[str] = Field(None, validation_alias="HUBSPOT_ACCESS_TOKEN")
    refresh_token: Optional[str] = Field(None, validation_alias="HUBSPOT_REFRESH_TOKEN")
    portal_id: Optional[str] = Field(None, validation_alias="HUBSPOT_PORTAL_ID")
    expires_at: Optional[int] = Field(
        None,
        validation_alias="HUBSPOT_TOKEN_EXPIRES_AT",
        description="Epoch milliseconds. Defaults to six hours after load when omitted.",
    )
    allow_unscoped: bool = Field(
        False,
        validation_alias="HUBSPOT_ALLOW_UNSCOPED_OVERRIDE",
        description="Let an override without HUBSPOT_PORTAL_ID answer for any portal.",
    )

    @property
    def is_present(self) -> bool:
        return bool(self.access_token and self.refresh_token)

    def applies_to(self, tenant_id: str) -> bool:
        """Return True when the override may answer for ``tenant_id``."""
        if self.portal_id:
            return self.portal_id == str(tenant_id)
        return self.allow_unscoped


class StorageSettings(BaseSettings):
    """Token store backend selection."""

    model_config = _ENV_CONFIG

    backend: Literal["memory", "sqlite", "dynamodb", "s3"] = Field(
        "memory", validation_alias="TOKEN_STORE_BACKEND"
    )
    sqlite_path: str = Field(
        "data/tokens.sqlite3", validation_alias="TOKEN_STORE_SQLITE_PATH"
    )
    region_name: str = Field("us-east-1", validation_alias="AWS_REGION")
    dynamodb_table_name: Optional[str] = Field(
        None, validation_alias="DYNAMODB_TABLE_NAME"
    )
    bucket_name: Optional[str] = Field(None, validation_alias="TOKEN_BUCKET_NAME")
    bucket_prefix: str = Field("oauth-tokens/", validation_alias="TOKEN_BUCKET_PREFIX")
    cache_enabled: bool = Field(
        True,
        validation_alias="TOKEN_STORE_CACHE",
        description="Keep an in-process copy of saved records for the container lifetime.",
    )


class SecuritySettings(BaseSettings):
    """Security-related configuration."""

    model_config = _ENV_CONFIG

    token_encryption_secret: Optional[str] = Field(
        None,
        validation_alias="TOKEN_ENCRYPTION_SECRET",
        description=(
            "Secret used to derive the symmetric key for encrypting stored tokens."
        ),
    )


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = _ENV_CONFIG

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    cors_allow_origins: str = Field("*", validation_alias="CORS_ALLOW_ORIGINS")
    hubspot: HubSpotSettings = Field(default_factory=HubSpotSettings)
    token_override: TokenOverrideSettings = Field(default_factory=TokenOverrideSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.cors_allow_origins.split(",") if origin.strip()]


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()


__all__ = [
    "AppSettings",
    "HubSpotSettings",
    "SecuritySettings",
    "StorageSettings",
    "TokenOverrideSettings",
    "get_settings",
]
