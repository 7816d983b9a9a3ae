try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover
    import _bootstrap  # type: ignore # noqa: F401

from pathlib import Path

from app.core.config import AppSettings, StorageSettings, TokenOverrideSettings
from app.dependencies import build_token_backend, build_token_store
from app.services import KeyValueTokenBackend, MemoryTokenBackend, TokenCipherService


def _settings(**storage) -> AppSettings:
    return AppSettings(
        storage=StorageSettings.model_validate(storage),
        token_override=TokenOverrideSettings.model_validate({}),
    )


def test_memory_backend_is_default_and_uncached() -> None:
    store = build_token_store(_settings(TOKEN_STORE_BACKEND="memory"))

    assert store.backend_name == "memory"
    assert isinstance(build_token_backend(_settings()), MemoryTokenBackend)


def test_sqlite_backend_round_trips_through_cache_and_cipher(tmp_path: Path) -> None:
    settings = _settings(
        TOKEN_STORE_BACKEND="sqlite",
        TOKEN_STORE_SQLITE_PATH=str(tmp_path / "nested" / "tokens.sqlite3"),
    )
    assert isinstance(build_token_backend(settings), KeyValueTokenBackend)

    store = build_token_store(settings, TokenCipherService(secret="secret"))
    store.save("111", {"access_token": "a1", "refresh_token": "r1"})

    reopened = build_token_store(settings, TokenCipherService(secret="secret"))
    assert reopened.load("111").access_token == "a1"
    assert (tmp_path / "nested" / "tokens.sqlite3").exists()
