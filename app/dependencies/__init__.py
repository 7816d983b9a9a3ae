"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    build_token_backend,
    build_token_store,
    get_call_wrapper,
    get_hubspot_oauth_client,
    get_token_cipher_service,
    get_token_refresher,
    get_token_store,
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
