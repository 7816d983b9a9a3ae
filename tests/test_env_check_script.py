"""Tests for the environment drift detection script."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from scripts import check_env

SETTINGS_ENV_KEYS = [
    "CLIENT_ID",
    "CLIENT_SECRET",
    "REDIRECT_URI",
    "HUBSPOT_CLIENT_ID",
    "HUBSPOT_CLIENT_SECRET",
    "HUBSPOT_REDIRECT_URI",
    "HUBSPOT_ACCESS_TOKEN",
    "HUBSPOT_REFRESH_TOKEN",
    "HUBSPOT_PORTAL_ID",
    "HUBSPOT_ALLOW_UNSCOPED_OVERRIDE",
    "TOKEN_STORE_BACKEND",
    "DYNAMODB_TABLE_NAME",
    "TOKEN_BUCKET_NAME",
]

VALID_ENV = {
    "CLIENT_ID": "abc",
    "CLIENT_SECRET": "secret",
    "REDIRECT_URI": "https://example.com/api/oauth/callback",
    "TOKEN_STORE_BACKEND": "memory",
}


@pytest.fixture(autouse=True)
def isolated_environ(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """The script copies .env values into os.environ; undo that after each test."""
    snapshot = dict(os.environ)
    for key in SETTINGS_ENV_KEYS:
        os.environ.pop(key, None)
    monkeypatch.chdir(tmp_path)
    yield
    os.environ.clear()
    os.environ.update(snapshot)


def _write_env(env_path: Path, **values: str) -> None:
    contents = "\n".join(f"{key}={value}" for key, value in values.items())
    env_path.write_text(contents + "\n", encoding="utf-8")


def _clear_settings_env() -> None:
    for key in SETTINGS_ENV_KEYS:
        os.environ.pop(key, None)


@pytest.mark.parametrize("command", ["record", "verify", "check"])
def test_main_requires_existing_env_file(tmp_path: Path, command: str) -> None:
    env_file = tmp_path / ".missing-env"
    hash_file = tmp_path / ".env.sha256"

    argv = [command, "--env-file", str(env_file)]
    if command != "check":
        argv.extend(["--hash-file", str(hash_file)])

    exit_code = check_env.main(argv)
    assert exit_code == check_env.EXIT_RUNTIME_ERROR


def test_record_and_verify_detects_mismatched_checksum(tmp_path: Path) -> None:
    env_file = tmp_path / "app.env"
    hash_file = tmp_path / ".env.sha256"
    _write_env(env_file, **VALID_ENV)

    exit_code = check_env.main(
        ["record", "--env-file", str(env_file), "--hash-file", str(hash_file)]
    )
    assert exit_code == check_env.EXIT_OK
    assert hash_file.read_text(encoding="utf-8").strip()

    _clear_settings_env()
    exit_code = check_env.main(
        ["verify", "--env-file", str(env_file), "--hash-file", str(hash_file)]
    )
    assert exit_code == check_env.EXIT_OK

    _write_env(env_file, **{**VALID_ENV, "CLIENT_SECRET": "different"})

    _clear_settings_env()
    exit_code = check_env.main(
        ["verify", "--env-file", str(env_file), "--hash-file", str(hash_file)]
    )
    assert exit_code == check_env.EXIT_CHECKSUM_ERROR


def test_verify_without_baseline_is_runtime_error(tmp_path: Path) -> None:
    env_file = tmp_path / "app.env"
    _write_env(env_file, **VALID_ENV)

    exit_code = check_env.main(
        ["verify", "--env-file", str(env_file), "--hash-file", str(tmp_path / "missing")]
    )
    assert exit_code == check_env.EXIT_RUNTIME_ERROR


def test_validation_failure_for_missing_client_secret(tmp_path: Path) -> None:
    env_file = tmp_path / "app.env"
    hash_file = tmp_path / ".env.sha256"
    values = dict(VALID_ENV)
    values.pop("CLIENT_SECRET")
    _write_env(env_file, **values)

    exit_code = check_env.main(
        ["record", "--env-file", str(env_file), "--hash-file", str(hash_file)]
    )
    assert exit_code == check_env.EXIT_VALIDATION_ERROR
    assert not hash_file.exists()


def test_validation_failure_for_unknown_backend(tmp_path: Path) -> None:
    env_file = tmp_path / "app.env"
    _write_env(env_file, **{**VALID_ENV, "TOKEN_STORE_BACKEND": "redis"})

    assert check_env.main(["check", "--env-file", str(env_file)]) == check_env.EXIT_VALIDATION_ERROR


def test_dynamodb_backend_requires_table_name(tmp_path: Path) -> None:
    env_file = tmp_path / "app.env"
    _write_env(env_file, **{**VALID_ENV, "TOKEN_STORE_BACKEND": "dynamodb"})

    assert check_env.main(["check", "--env-file", str(env_file)]) == check_env.EXIT_VALIDATION_ERROR

    _clear_settings_env()
    _write_env(
        env_file,
        **{**VALID_ENV, "TOKEN_STORE_BACKEND": "dynamodb", "DYNAMODB_TABLE_NAME": "tokens"},
    )
    assert check_env.main(["check", "--env-file", str(env_file)]) == check_env.EXIT_OK


def test_unscoped_token_override_is_flagged(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    env_file = tmp_path / "app.env"
    _write_env(env_file, **{**VALID_ENV, "HUBSPOT_ACCESS_TOKEN": "pat-na1-123"})

    exit_code = check_env.main(["check", "--env-file", str(env_file)])

    assert exit_code == check_env.EXIT_VALIDATION_ERROR
    assert "HUBSPOT_PORTAL_ID" in capsys.readouterr().err
