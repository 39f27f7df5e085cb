"""Exception hierarchy for backup and restore runs."""

from __future__ import annotations


class UserPoolBackupError(Exception):
    """Base class for every error raised by this package."""


class InvalidTarget(UserPoolBackupError, ValueError):
    """A pool target that cannot be used for the requested operation."""


class ModuleLoadError(UserPoolBackupError):
    """A password module that cannot be imported or has no usable lookup."""


class MissingRequiredAttribute(UserPoolBackupError):
    """A user lacks the attribute the pool requires as its username."""

    def __init__(self, username: str, attribute: str) -> None:
        super().__init__(
            f"User {username!r} has no {attribute!r} attribute, "
            f"which the target pool uses as username"
        )
        self.username = username
        self.attribute = attribute


class UpstreamError(UserPoolBackupError):
    """A Cognito call failed while exporting a pool."""

    def __init__(self, user_pool_id: str, message: str) -> None:
        super().__init__(f"{user_pool_id}: {message}")
        self.user_pool_id = user_pool_id


class UnsupportedFormatError(UserPoolBackupError, ValueError):
    """Output or input format other than json/csv."""


class InvalidBackupFile(UserPoolBackupError):
    """A backup file that cannot be decoded."""


class WriterClosedError(UserPoolBackupError, RuntimeError):
    """A record was written after the writer was ended."""


class BackupIncompleteError(UserPoolBackupError):
    """One or more pools failed during a best-effort multi-pool backup."""

    def __init__(self, failures: dict[str, str]) -> None:
        pools = ", ".join(sorted(failures))
        super().__init__(f"Backup failed for {len(failures)} pool(s): {pools}")
        self.failures = failures
