from __future__ import annotations

import pytest

from scripts.userpool_backup import config as config_module
from scripts.userpool_backup.config import load_config

_ENV_VARS = (
    "AWS_REGION", "AWS_PROFILE", "COGNITO_USER_POOL_ID", "BACKUP_DIRECTORY", "BACKUP_FORMAT",
    "BACKUP_DELAY_MS", "BACKUP_PAGE_SIZE", "BACKUP_WITH_GROUPS", "BACKUP_CONTINUE_ON_ERROR",
    "BACKUP_FOLLOW_POOL_PAGINATION", "RESTORE_TEMP_PASSWORD", "RESTORE_PASSWORD_MODULE",
    "RESTORE_MIN_INTERVAL_MS", "RESTORE_GROUPS", "BACKUP_INTERVAL_HOURS",
    "SCHEDULER_MISFIRE_GRACE_TIME", "SCHEDULER_MAX_RETRIES",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config_module, "load_dotenv", lambda: None)


def test_defaults() -> None:
    config = load_config()

    assert config.backup.user_pool_id == "all"
    assert config.backup.output_format == "json"
    assert config.backup.page_size == 60
    assert config.backup.continue_on_error is False
    assert config.restore.min_interval_ms == 2000
    assert config.restore.temporary_password is None
    assert config.scheduler.backup_interval_hours == 24


def test_values_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("COGNITO_USER_POOL_ID", "eu-west-1_Abc")
    monkeypatch.setenv("BACKUP_FORMAT", "CSV")
    monkeypatch.setenv("BACKUP_DELAY_MS", "500")
    monkeypatch.setenv("BACKUP_WITH_GROUPS", "true")
    monkeypatch.setenv("RESTORE_TEMP_PASSWORD", "Literal#123")
    monkeypatch.setenv("RESTORE_MIN_INTERVAL_MS", "100")

    config = load_config()

    assert config.backup.user_pool_id == "eu-west-1_Abc"
    assert config.backup.output_format == "csv"
    assert config.backup.delay_ms == 500
    assert config.backup.with_groups is True
    assert config.restore.temporary_password == "Literal#123"
    assert config.restore.min_interval_ms == 100


def test_password_secret_reference_kept_unresolved(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RESTORE_TEMP_PASSWORD", "aws-secret://restore#password")

    assert load_config().restore.temporary_password == "aws-secret://restore#password"


@pytest.mark.parametrize(
    "name,value",
    [
        ("BACKUP_FORMAT", "xml"),
        ("BACKUP_PAGE_SIZE", "61"),
        ("BACKUP_DELAY_MS", "soon"),
        ("RESTORE_MIN_INTERVAL_MS", "-5"),
    ],
)
def test_invalid_values(monkeypatch: pytest.MonkeyPatch, name: str, value: str) -> None:
    monkeypatch.setenv(name, value)
    with pytest.raises(ValueError):
        load_config()
