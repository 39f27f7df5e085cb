"""Configuration via environment variables with cloud-native secret support.

Supports:
  - Environment variables (local dev) and .env files
  - Secret references (aws-secret://, gcp-secret://) for the temporary
    password, kept raw here and resolved only by a restore
  - Named AWS profiles, or the default credential chain / IAM role
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

OUTPUT_FORMATS = ("json", "csv")

# Cognito rejects ListUsers limits above 60
MAX_PAGE_SIZE = 60


@dataclass(frozen=True)
class AwsConfig:
    region: Optional[str] = None
    profile: Optional[str] = None  # None = default credential chain


@dataclass(frozen=True)
class BackupConfig:
    user_pool_id: str = "all"
    directory: str = "backups"
    output_format: str = "json"
    delay_ms: int = 0
    page_size: int = MAX_PAGE_SIZE
    with_groups: bool = False
    continue_on_error: bool = False
    follow_pool_pagination: bool = False


@dataclass(frozen=True)
class RestoreConfig:
    temporary_password: Optional[str] = None
    password_module: Optional[str] = None
    min_interval_ms: int = 2000
    replicate_groups: bool = False


@dataclass(frozen=True)
class SchedulerConfig:
    backup_interval_hours: int = 24
    misfire_grace_time: int = 300
    max_retries: int = 3


@dataclass(frozen=True)
class UserPoolBackupConfig:
    aws: AwsConfig = field(default_factory=AwsConfig)
    backup: BackupConfig = field(default_factory=BackupConfig)
    restore: RestoreConfig = field(default_factory=RestoreConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int, minimum: int = 0) -> int:
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


def load_config() -> UserPoolBackupConfig:
    """Load configuration from environment variables.

    Every setting has a default; CLI flags are layered on top by the caller.
    The temporary password is kept as given; it may be a secret reference,
    which only a restore resolves.
    """
    load_dotenv()

    aws = AwsConfig(
        region=os.environ.get("AWS_REGION") or None,
        profile=os.environ.get("AWS_PROFILE") or None,
    )

    output_format = os.environ.get("BACKUP_FORMAT", "json").lower()
    if output_format not in OUTPUT_FORMATS:
        raise ValueError(
            f"BACKUP_FORMAT must be one of {', '.join(OUTPUT_FORMATS)}, got {output_format!r}"
        )

    page_size = _env_int("BACKUP_PAGE_SIZE", MAX_PAGE_SIZE, minimum=1)
    if page_size > MAX_PAGE_SIZE:
        raise ValueError(f"BACKUP_PAGE_SIZE must be <= {MAX_PAGE_SIZE}, got {page_size}")

    backup = BackupConfig(
        user_pool_id=os.environ.get("COGNITO_USER_POOL_ID", "all"),
        directory=os.environ.get("BACKUP_DIRECTORY", "backups"),
        output_format=output_format,
        delay_ms=_env_int("BACKUP_DELAY_MS", 0),
        page_size=page_size,
        with_groups=_env_bool("BACKUP_WITH_GROUPS"),
        continue_on_error=_env_bool("BACKUP_CONTINUE_ON_ERROR"),
        follow_pool_pagination=_env_bool("BACKUP_FOLLOW_POOL_PAGINATION"),
    )

    restore = RestoreConfig(
        temporary_password=os.environ.get("RESTORE_TEMP_PASSWORD") or None,
        password_module=os.environ.get("RESTORE_PASSWORD_MODULE") or None,
        min_interval_ms=_env_int("RESTORE_MIN_INTERVAL_MS", 2000),
        replicate_groups=_env_bool("RESTORE_GROUPS"),
    )

    scheduler = SchedulerConfig(
        backup_interval_hours=_env_int("BACKUP_INTERVAL_HOURS", 24, minimum=1),
        misfire_grace_time=_env_int("SCHEDULER_MISFIRE_GRACE_TIME", 300),
        max_retries=_env_int("SCHEDULER_MAX_RETRIES", 3),
    )

    return UserPoolBackupConfig(aws=aws, backup=backup, restore=restore, scheduler=scheduler)
