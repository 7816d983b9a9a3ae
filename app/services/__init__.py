"""Service layer exports."""

from .hubspot_calls import CallOutcome, HubSpotCallWrapper, ProviderCallResult
from .token_cipher import TokenCipherService
from .token_freshness import needs_refresh
from .token_refresher import TokenRefresher
from .token_store import (
    BlobTokenBackend,
    KeyValueTokenBackend,
    MemoryTokenBackend,
    TokenStore,
)

__all__ = [
    "BlobTokenBackend",
    "CallOutcome",
    "HubSpotCallWrapper",
    "KeyValueTokenBackend",
    "MemoryTokenBackend",
    "ProviderCallResult",
    "TokenCipherService",
    "TokenRefresher",
    "TokenStore",
    "needs_refresh",
]
