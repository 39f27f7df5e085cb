"""Pagination exporter: streams every user of one pool into a writer."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional

from botocore.exceptions import BotoCoreError, ClientError

from scripts.userpool_backup.base_writer import BaseWriter
from scripts.userpool_backup.config import MAX_PAGE_SIZE
from scripts.userpool_backup.errors import UpstreamError

logger = logging.getLogger("userpool_backup.exporter")


class PaginationExporter:
    """Drives ListUsers for one pool until the pagination token runs out."""

    def __init__(
        self,
        client,
        page_size: int = MAX_PAGE_SIZE,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._client = client
        self._page_size = page_size
        self._sleep = sleep

    def export(
        self,
        user_pool_id: str,
        writer: BaseWriter,
        delay_ms: int = 0,
        with_groups: bool = False,
    ) -> int:
        """Write every user of ``user_pool_id`` and end the writer.

        Returns the number of users written. A listing failure aborts the
        writer, leaving the partial file, and raises ``UpstreamError``.
        """
        started = time.monotonic()
        token: Optional[str] = None
        pages = 0
        try:
            while True:
                users, token = self._list_page(user_pool_id, token)
                pages += 1
                for user in users:
                    if with_groups:
                        user["Groups"] = self._groups_for_user(user_pool_id, user["Username"])
                    writer.write(user)
                logger.debug(
                    "Exported page %d of %s", pages, user_pool_id,
                    extra={"user_pool_id": user_pool_id, "page": pages, "records": len(users)},
                )
                # An empty page with a token still means more data
                if not token:
                    break
                if delay_ms > 0:
                    self._sleep(delay_ms / 1000.0)
        except Exception:
            writer.abort()
            raise

        writer.end()
        logger.info(
            "Exported %d users from %s", writer.records_written, user_pool_id,
            extra={
                "user_pool_id": user_pool_id,
                "records": writer.records_written,
                "duration_s": round(time.monotonic() - started, 3),
                "output_format": writer.FORMAT,
            },
        )
        return writer.records_written

    def _list_page(self, user_pool_id: str, token: Optional[str]) -> tuple[list[dict], Optional[str]]:
        params: dict[str, Any] = {"UserPoolId": user_pool_id, "Limit": self._page_size}
        if token:
            params["PaginationToken"] = token
        try:
            resp = self._client.list_users(**params)
        except (ClientError, BotoCoreError) as exc:
            raise UpstreamError(user_pool_id, f"ListUsers failed: {exc}") from exc
        return resp.get("Users", []), resp.get("PaginationToken")

    def _groups_for_user(self, user_pool_id: str, username: str) -> list[dict[str, str]]:
        """Group memberships of one user, reduced to their names."""
        groups: list[dict[str, str]] = []
        try:
            paginator = self._client.get_paginator("admin_list_groups_for_user")
            for page in paginator.paginate(UserPoolId=user_pool_id, Username=username):
                groups.extend({"GroupName": g["GroupName"]} for g in page.get("Groups", []))
        except (ClientError, BotoCoreError) as exc:
            raise UpstreamError(
                user_pool_id, f"AdminListGroupsForUser failed for {username}: {exc}"
            ) from exc
        return groups
