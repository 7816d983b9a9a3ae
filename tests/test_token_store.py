from __future__ import annotations

from pathlib import Path

import pytest

from app.clients.sqlite_store import SQLiteStore
from app.core.config import TokenOverrideSettings
from app.core.errors import ValidationError
from app.models.oauth import TokenRecord, now_ms
from app.services.token_cipher import TokenCipherService
from app.services.token_store import (
    BlobTokenBackend,
    KeyValueTokenBackend,
    MemoryTokenBackend,
    TokenStore,
)


class FailingBackend:
    name = "failing"

    def __init__(self) -> None:
        self.write_attempts = 0

    def read(self, tenant_id: str) -> dict | None:
        raise ConnectionError("backend unavailable")

    def write(self, tenant_id: str, payload: dict) -> None:
        self.write_attempts += 1
        raise ConnectionError("backend unavailable")


class FakeBlobClient:
    def __init__(self) -> None:
        self.documents: dict[str, dict] = {}

    def put_json(self, name: str, document: dict) -> None:
        self.documents[name] = document

    def get_json(self, name: str) -> dict | None:
        return self.documents.get(name)


def _override(**values) -> TokenOverrideSettings:
    return TokenOverrideSettings.model_validate(values)


def test_save_then_load_returns_record_with_computed_expiry() -> None:
    store = TokenStore(MemoryTokenBackend())
    before = now_ms()

    saved = store.save("111", {"access_token": "a1", "refresh_token": "r1", "expires_in": 3600})
    loaded = store.load("111")

    assert loaded is not None
    assert loaded.tenant_id == "111"
    assert loaded.access_token == "a1"
    assert loaded.refresh_token == "r1"
    assert before + 3_600_000 <= loaded.expires_at <= now_ms() + 3_600_000
    assert loaded == saved


def test_save_accepts_camel_case_fields_and_default_lifetime() -> None:
    store = TokenStore(MemoryTokenBackend())

    record = store.save("42", {"accessToken": "a", "refreshToken": "r"})

    assert record.access_token == "a"
    assert record.refresh_token == "r"
    assert record.expires_at - record.updated_at == pytest.approx(21_600_000, abs=1_000)


def test_save_twice_with_identical_data_differs_only_in_updated_at() -> None:
    store = TokenStore(MemoryTokenBackend())
    data = {"accessToken": "a", "refreshToken": "r", "expiresAt": 1_900_000_000_000}

    first = store.save("7", data)
    second = store.save("7", data)

    assert first.same_credentials(second)
    assert store.load("7").same_credentials(first)


def test_zero_lifetime_is_stored_as_already_expired() -> None:
    store = TokenStore(MemoryTokenBackend())
    before = now_ms()

    record = store.save("111", {"access_token": "a", "refresh_token": "r", "expires_in": 0})

    assert before <= record.expires_at <= now_ms()
    assert store.needs_refresh(store.load("111")) is True


@pytest.mark.parametrize(
    "data",
    [
        {"access_token": "a", "refresh_token": "r", "expires_in": "soon"},
        {"access_token": 12345, "refresh_token": "r", "expires_in": 60},
        {"accessToken": "a", "expiresAt": "tomorrow"},
    ],
)
def test_malformed_token_data_is_rejected_as_validation_error(data) -> None:
    store = TokenStore(MemoryTokenBackend())

    with pytest.raises(ValidationError):
        store.save("111", data)
    assert store.load("111") is None


@pytest.mark.parametrize("tenant_id", [None, "", "   "])
def test_store_operations_require_tenant(tenant_id) -> None:
    store = TokenStore(MemoryTokenBackend())

    with pytest.raises(ValidationError):
        store.save(tenant_id, {"access_token": "a"})
    with pytest.raises(ValidationError):
        store.load(tenant_id)


def test_tenants_are_isolated() -> None:
    store = TokenStore(MemoryTokenBackend(), cache=MemoryTokenBackend())
    store.save("111", {"access_token": "a-111", "refresh_token": "r-111"})
    store.save("222", {"access_token": "a-222", "refresh_token": "r-222"})

    first = store.load("111")
    second = store.load("222")

    assert (first.access_token, first.refresh_token) == ("a-111", "r-111")
    assert (second.access_token, second.refresh_token) == ("a-222", "r-222")
    assert store.load("333") is None


def test_record_stored_under_wrong_key_is_ignored() -> None:
    backend = MemoryTokenBackend()
    foreign = TokenRecord(tenant_id="222", access_token="a", refresh_token="r", expires_at=1)
    backend.write("111", foreign.to_storage())
    store = TokenStore(backend)

    assert store.load("111") is None


def test_backend_write_failure_keeps_cached_copy() -> None:
    backend = FailingBackend()
    store = TokenStore(backend, cache=MemoryTokenBackend())

    record = store.save("111", {"access_token": "a1", "refresh_token": "r1"})

    assert backend.write_attempts == 1
    assert store.load("111") == record


def test_backend_read_failure_degrades_to_not_found() -> None:
    store = TokenStore(FailingBackend())

    assert store.load("111") is None


def test_environment_override_requires_matching_portal() -> None:
    override = _override(
        HUBSPOT_ACCESS_TOKEN="env-access",
        HUBSPOT_REFRESH_TOKEN="env-refresh",
        HUBSPOT_PORTAL_ID="111",
        HUBSPOT_TOKEN_EXPIRES_AT=1_900_000_000_000,
    )
    store = TokenStore(MemoryTokenBackend(), override=override)

    matched = store.load("111")
    assert matched is not None
    assert matched.access_token == "env-access"
    assert matched.expires_at == 1_900_000_000_000
    assert store.load("222") is None


def test_unscoped_environment_override_is_ignored_unless_allowed() -> None:
    values = {"HUBSPOT_ACCESS_TOKEN": "env-access", "HUBSPOT_REFRESH_TOKEN": "env-refresh"}

    strict = TokenStore(MemoryTokenBackend(), override=_override(**values))
    assert strict.load("111") is None

    permissive = TokenStore(
        MemoryTokenBackend(),
        override=_override(HUBSPOT_ALLOW_UNSCOPED_OVERRIDE=True, **values),
    )
    record = permissive.load("111")
    assert record is not None
    assert record.tenant_id == "111"


def test_stored_record_wins_over_environment_override() -> None:
    override = _override(
        HUBSPOT_ACCESS_TOKEN="env-access",
        HUBSPOT_REFRESH_TOKEN="env-refresh",
        HUBSPOT_PORTAL_ID="111",
    )
    store = TokenStore(MemoryTokenBackend(), override=override)
    store.save("111", {"access_token": "stored-access", "refresh_token": "stored-refresh"})

    assert store.load("111").access_token == "stored-access"


def test_cipher_encrypts_credentials_at_rest() -> None:
    backend = MemoryTokenBackend()
    cipher = TokenCipherService(secret="secret-key")
    store = TokenStore(backend, cipher=cipher)

    store.save("111", {"access_token": "plain-access", "refresh_token": "plain-refresh"})

    raw = backend.read("111")
    assert raw["accessToken"] != "plain-access"
    assert cipher.decrypt(raw["refreshToken"]) == "plain-refresh"
    assert store.load("111").access_token == "plain-access"


def test_undecryptable_record_is_treated_as_missing() -> None:
    backend = MemoryTokenBackend()
    TokenStore(backend, cipher=TokenCipherService(secret="one")).save(
        "111", {"access_token": "a", "refresh_token": "r"}
    )

    store = TokenStore(backend, cipher=TokenCipherService(secret="two"))

    assert store.load("111") is None


def test_sqlite_key_value_backend_round_trip(tmp_path: Path) -> None:
    client = SQLiteStore(str(tmp_path / "tokens.sqlite3"))
    store = TokenStore(KeyValueTokenBackend(client))

    store.save("111", {"access_token": "a1", "refresh_token": "r1", "expires_in": 60})
    store.save("111", {"access_token": "a2", "refresh_token": "r2", "expires_in": 60})

    item = client.get_item(partition_key="tenant#111", sort_key="oauth#hubspot")
    assert item["accessToken"] == "a2"
    assert store.load("111").refresh_token == "r2"


def test_blob_backend_writes_one_document_per_portal() -> None:
    client = FakeBlobClient()
    store = TokenStore(BlobTokenBackend(client))

    store.save("111", {"access_token": "a1", "refresh_token": "r1"})

    assert set(client.documents) == {"tokens:111"}
    assert client.documents["tokens:111"]["tenantId"] == "111"
    assert store.load("111").access_token == "a1"
