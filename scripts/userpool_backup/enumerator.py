"""Pool enumeration and the multi-pool backup run."""

from __future__ import annotations

import functools
import logging
import os
import re
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError

from scripts.userpool_backup.base_writer import BaseWriter
from scripts.userpool_backup.config import MAX_PAGE_SIZE, OUTPUT_FORMATS
from scripts.userpool_backup.errors import (
    BackupIncompleteError,
    InvalidTarget,
    UnsupportedFormatError,
    UpstreamError,
    UserPoolBackupError,
)
from scripts.userpool_backup.exporter import PaginationExporter
from scripts.userpool_backup.writers.csv_writer import CsvWriter
from scripts.userpool_backup.writers.json_writer import JsonWriter

logger = logging.getLogger("userpool_backup.enumerator")

ALL_POOLS = "all"

# Same shape Cognito validates, e.g. "eu-west-1_AbC123xyz"
_POOL_ID_RE = re.compile(r"^[\w-]+_[0-9a-zA-Z]+$")

# Upper bound ListUserPools accepts for MaxResults
POOL_LIST_PAGE_SIZE = 60


class PoolEnumerator:
    """Turns a backup target into the ordered list of pool ids to export.

    For ``"all"`` only the first ListUserPools page is read unless
    ``follow_pagination`` is set; ``truncated`` records whether pools were
    left out that way.
    """

    def __init__(self, client, follow_pagination: bool = False) -> None:
        self._client = client
        self._follow_pagination = follow_pagination
        self.truncated = False

    def resolve(self, target: str) -> list[str]:
        if target == ALL_POOLS:
            return self._list_pool_ids()
        if not target or not _POOL_ID_RE.match(target):
            raise InvalidTarget(f"Invalid user pool id: {target!r}")
        return [target]

    def _list_pool_ids(self) -> list[str]:
        pool_ids: list[str] = []
        params = {"MaxResults": POOL_LIST_PAGE_SIZE}
        self.truncated = False
        while True:
            try:
                resp = self._client.list_user_pools(**params)
            except (ClientError, BotoCoreError) as exc:
                raise UpstreamError(ALL_POOLS, f"ListUserPools failed: {exc}") from exc
            pool_ids.extend(pool["Id"] for pool in resp.get("UserPools", []))
            next_token = resp.get("NextToken")
            if not next_token:
                break
            if not self._follow_pagination:
                self.truncated = True
                logger.warning(
                    "More than %d user pools found; only the first page is backed up",
                    POOL_LIST_PAGE_SIZE,
                    extra={"records": len(pool_ids)},
                )
                break
            params["NextToken"] = next_token
        return pool_ids


def output_path(directory: str, user_pool_id: str, output_format: str) -> str:
    return os.path.join(directory, f"{user_pool_id}.{output_format}")


def open_writer(client, user_pool_id: str, directory: str, output_format: str) -> BaseWriter:
    """Open the writer for one pool's backup file."""
    path = output_path(directory, user_pool_id, output_format)
    if output_format == "json":
        return JsonWriter.open(path)
    if output_format == "csv":
        try:
            return CsvWriter.for_pool(client, user_pool_id, path)
        except (ClientError, BotoCoreError) as exc:
            raise UpstreamError(user_pool_id, f"DescribeUserPool failed: {exc}") from exc
    raise UnsupportedFormatError(
        f"Unsupported output format {output_format!r}; supported: {', '.join(OUTPUT_FORMATS)}"
    )


def backup_users(
    client,
    user_pool_id: str,
    directory: str,
    output_format: str = "json",
    delay_ms: int = 0,
    with_groups: bool = False,
    page_size: int = MAX_PAGE_SIZE,
    continue_on_error: bool = False,
    follow_pool_pagination: bool = False,
    exporter: Optional[PaginationExporter] = None,
) -> dict[str, int]:
    """Back up one pool, or every pool for ``"all"``, one file per pool.

    Pools are exported one after another. By default the first failing pool
    aborts the run; with ``continue_on_error`` the remaining pools are still
    exported and ``BackupIncompleteError`` is raised at the end.

    Returns {user_pool_id: users_written}.
    """
    if output_format not in OUTPUT_FORMATS:
        raise UnsupportedFormatError(
            f"Unsupported output format {output_format!r}; supported: {', '.join(OUTPUT_FORMATS)}"
        )

    enumerator = PoolEnumerator(client, follow_pagination=follow_pool_pagination)
    pool_ids = enumerator.resolve(user_pool_id)
    exporter = exporter or PaginationExporter(client, page_size=page_size)
    os.makedirs(directory, exist_ok=True)

    results: dict[str, int] = {}
    completed: set[str] = set()
    failures: dict[str, str] = {}

    for pool_id in pool_ids:
        logger.info("Backing up %s", pool_id,
                    extra={"user_pool_id": pool_id, "output_format": output_format})
        try:
            writer = open_writer(client, pool_id, directory, output_format)
            writer.on_end(functools.partial(completed.add, pool_id))
            results[pool_id] = exporter.export(pool_id, writer, delay_ms, with_groups)
        except UpstreamError as exc:
            if not continue_on_error:
                raise
            failures[pool_id] = str(exc)
            logger.error("Backup of %s failed: %s", pool_id, exc,
                         extra={"user_pool_id": pool_id})

    pending = [p for p in pool_ids if p not in completed and p not in failures]
    if pending:
        raise UserPoolBackupError(f"Backup files never completed for: {', '.join(pending)}")
    if failures:
        raise BackupIncompleteError(failures)
    return results
