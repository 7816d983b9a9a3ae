"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from functools import lru_cache
from typing import Optional

from app.clients import DynamoDBClient, HubSpotOAuthClient, S3BlobClient, SQLiteStore
from app.core.config import AppSettings, get_settings
from app.services import (
    BlobTokenBackend,
    HubSpotCallWrapper,
    KeyValueTokenBackend,
    MemoryTokenBackend,
    TokenCipherService,
    TokenRefresher,
    TokenStore,
)
from app.services.token_store import TokenBackend


@lru_cache()
def _settings() -> AppSettings:
    """Internal helper to cache settings for client factories."""
    return get_settings()


def build_token_backend(settings: AppSettings) -> TokenBackend:
    """Resolve the configured durable backend."""
    storage = settings.storage
    if storage.backend == "sqlite":
        return KeyValueTokenBackend(SQLiteStore(storage.sqlite_path))
    if storage.backend == "dynamodb":
        return KeyValueTokenBackend(DynamoDBClient(storage))
    if storage.backend == "s3":
        return BlobTokenBackend(S3BlobClient(storage))
    return MemoryTokenBackend()


def build_token_store(
    settings: AppSettings, cipher: Optional[TokenCipherService] = None
) -> TokenStore:
    """Assemble a token store with its cache and environment override."""
    backend = build_token_backend(settings)
    cache = None
    if settings.storage.cache_enabled and not isinstance(backend, MemoryTokenBackend):
        cache = MemoryTokenBackend()
    return TokenStore(
        backend,
        cache=cache,
        cipher=cipher,
        override=settings.token_override,
    )


@lru_cache()
def get_token_cipher_service() -> Optional[TokenCipherService]:
    """Provide symmetric encryption for stored tokens when a secret is configured."""
    secret = _settings().security.token_encryption_secret
    if not secret:
        return None
    return TokenCipherService(secret=secret)


@lru_cache()
def get_hubspot_oauth_client() -> HubSpotOAuthClient:
    """Create a singleton HubSpot OAuth client."""
    return HubSpotOAuthClient(_settings().hubspot)


@lru_cache()
def get_token_store() -> TokenStore:
    """Provide the process-wide token store."""
    return build_token_store(_settings(), get_token_cipher_service())


@lru_cache()
def get_token_refresher() -> TokenRefresher:
    """Provide the refresh/authorization-code grant service."""
    return TokenRefresher(
        get_hubspot_oauth_client(),
        get_token_store(),
        override=_settings().token_override,
    )


@lru_cache()
def get_call_wrapper() -> HubSpotCallWrapper:
    """Provide the authenticated HubSpot call wrapper."""
    settings = _settings()
    return HubSpotCallWrapper(
        get_token_store(),
        get_token_refresher(),
        default_base_url=settings.hubspot.api_base_url,
        timeout_seconds=settings.hubspot.http_timeout_seconds,
    )


__all__ = [
    "build_token_backend",
    "build_token_store",
    "get_call_wrapper",
    "get_hubspot_oauth_client",
    "get_token_cipher_service",
    "get_token_refresher",
    "get_token_store",
]
