"""
Domain models for OAuth token persistence.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(datetime.now(timezone.utc).timestamp() * 1000)


class TokenRecord(BaseModel):
    """One portal's OAuth credential set, serialized with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    tenant_id: str = Field(..., min_length=1, description="HubSpot portal (hub) id.")
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = Field(
        None, description="Epoch milliseconds after which the access token is invalid."
    )
    updated_at: int = Field(default_factory=now_ms)

    @field_validator("tenant_id", mode="before")
    @classmethod
    def _coerce_tenant_id(cls, value: Any) -> Any:
        # HubSpot reports hub_id as a number.
        if isinstance(value, int):
            return str(value)
        return value

    def to_storage(self) -> Dict[str, Any]:
        """Return the JSON-serializable persisted layout."""
        return self.model_dump(by_alias=True)

    @classmethod
    def from_storage(cls, payload: Dict[str, Any]) -> "TokenRecord":
        return cls.model_validate(payload)

    def same_credentials(self, other: "TokenRecord") -> bool:
        """Compare every field except ``updated_at``."""
        return self.model_dump(exclude={"updated_at"}) == other.model_dump(
            exclude={"updated_at"}
        )


class TokenGrant(BaseModel):
    """Parsed success body of the HubSpot token endpoint."""

    model_config = ConfigDict(extra="ignore")

    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    hub_id: Optional[str] = None

    @field_validator("hub_id", mode="before")
    @classmethod
    def _coerce_hub_id(cls, value: Any) -> Any:
        if isinstance(value, int):
            return str(value)
        return value


__all__ = ["TokenGrant", "TokenRecord", "now_ms"]
