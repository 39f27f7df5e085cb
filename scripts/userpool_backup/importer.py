"""Rate-limited importer: recreates users from a backup file in one pool."""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from botocore.exceptions import BotoCoreError, ClientError

from scripts.userpool_backup.enumerator import ALL_POOLS
from scripts.userpool_backup.errors import InvalidTarget, MissingRequiredAttribute
from scripts.userpool_backup.rate_limiter import RateLimiter
from scripts.userpool_backup.readers import detect_format, iter_users
from scripts.userpool_backup.records import attribute_value, group_names, mutable_attributes

logger = logging.getLogger("userpool_backup.importer")

# Cognito reports this when a phone-username pool has no SMS role set up,
# even though the user itself is fine to skip.
_SMS_CONFIG_DEFECT_MARKERS = ("sms configuration", "sms role")


@dataclass
class CreateUserRequest:
    """Keyword arguments for one AdminCreateUser call."""

    user_pool_id: str
    username: str
    attributes: list[dict[str, str]]
    delivery_mediums: list[str] = field(default_factory=list)
    temporary_password: Optional[str] = None

    def to_params(self) -> dict[str, Any]:
        params: dict[str, Any] = {
            "UserPoolId": self.user_pool_id,
            "Username": self.username,
            "UserAttributes": self.attributes,
        }
        if self.delivery_mediums:
            params["DesiredDeliveryMediums"] = self.delivery_mediums
        if self.temporary_password:
            params["TemporaryPassword"] = self.temporary_password
            params["MessageAction"] = "SUPPRESS"
        return params


def build_create_request(
    user_pool_id: str,
    user: dict[str, Any],
    username_attributes: list[str],
) -> CreateUserRequest:
    """Apply the pool's username rule to a backed-up user.

    Email-username pools use the email and deliver by email; phone-username
    pools use the phone number and deliver by email and SMS; other pools keep
    the stored username and deliver nothing.
    """
    stored_username = user.get("Username") or ""
    request = CreateUserRequest(
        user_pool_id=user_pool_id,
        username=stored_username,
        attributes=mutable_attributes(user),
    )

    if "email" in username_attributes:
        required, mediums = "email", ["EMAIL"]
    elif "phone_number" in username_attributes:
        required, mediums = "phone_number", ["EMAIL", "SMS"]
    else:
        return request

    value = attribute_value(user, required)
    if not value:
        raise MissingRequiredAttribute(stored_username, required)
    request.username = value
    request.delivery_mediums = mediums
    return request


def _is_sms_config_defect(exc: ClientError) -> bool:
    error = exc.response.get("Error", {})
    if error.get("Code") != "InvalidParameterException":
        return False
    message = (error.get("Message") or "").lower()
    return any(marker in message for marker in _SMS_CONFIG_DEFECT_MARKERS)


class UserImporter:
    """Restores users into exactly one pool.

    Every AdminCreateUser goes through ``limiter``. Group replication for a
    user starts only after its creation succeeded and never fails the run.
    """

    def __init__(
        self,
        client,
        user_pool_id: str,
        limiter: Optional[RateLimiter] = None,
        password: Optional[str] = None,
        password_resolver: Optional[Callable[[str], Any]] = None,
        replicate_groups: bool = False,
    ) -> None:
        if user_pool_id == ALL_POOLS:
            raise InvalidTarget("Restoring into all pools is not supported; pick a single pool")
        if not user_pool_id:
            raise InvalidTarget("A target user pool id is required")
        self._client = client
        self.user_pool_id = user_pool_id
        self._limiter = limiter or RateLimiter()
        self._password = password
        self._password_resolver = password_resolver
        self._replicate_groups = replicate_groups
        self.stats = {
            "created": 0,
            "existing": 0,
            "sms_skipped": 0,
            "groups_added": 0,
            "group_failures": 0,
        }

    def restore(self, path: str) -> dict[str, int]:
        started = time.monotonic()
        username_attributes = self._username_attributes()
        output_format = detect_format(path)
        logger.info("Restoring %s into %s", path, self.user_pool_id,
                    extra={"user_pool_id": self.user_pool_id, "output_format": output_format})

        for user in iter_users(path):
            self.restore_user(user, username_attributes)

        logger.info(
            "Restore complete: %s", self.stats,
            extra={
                "user_pool_id": self.user_pool_id,
                "records": self.stats["created"],
                "duration_s": round(time.monotonic() - started, 3),
            },
        )
        return dict(self.stats)

    def restore_user(self, user: dict[str, Any], username_attributes: list[str]) -> bool:
        """Create one user. Returns False when it was skipped."""
        request = build_create_request(self.user_pool_id, user, username_attributes)
        request.temporary_password = self._resolve_password(request.username)

        try:
            self._limiter.call(self._client.admin_create_user, **request.to_params())
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code", "")
            if code == "UsernameExistsException":
                logger.warning("User %s already exists, skipping", request.username,
                               extra={"user_pool_id": self.user_pool_id, "username": request.username})
                self.stats["existing"] += 1
                return False
            if _is_sms_config_defect(exc):
                logger.debug("Ignoring SMS configuration error for %s", request.username,
                             extra={"user_pool_id": self.user_pool_id, "username": request.username})
                self.stats["sms_skipped"] += 1
                return False
            raise

        self.stats["created"] += 1
        logger.debug("Created user %s", request.username,
                     extra={"user_pool_id": self.user_pool_id, "username": request.username})

        if self._replicate_groups:
            self._add_to_groups(request.username, group_names(user))
        return True

    def _username_attributes(self) -> list[str]:
        resp = self._client.describe_user_pool(UserPoolId=self.user_pool_id)
        return list(resp["UserPool"].get("UsernameAttributes") or [])

    def _resolve_password(self, username: str) -> Optional[str]:
        if self._password_resolver is not None:
            try:
                result = self._password_resolver(username)
                if inspect.isawaitable(result):
                    result = asyncio.run(_await(result))
            except Exception as exc:
                logger.debug("Password resolver failed for %s: %s", username, exc,
                             extra={"username": username})
            else:
                if result:
                    return str(result)
        return self._password or None

    def _add_to_groups(self, username: str, groups: list[str]) -> None:
        for group in groups:
            try:
                self._client.admin_add_user_to_group(
                    UserPoolId=self.user_pool_id, Username=username, GroupName=group,
                )
            except (ClientError, BotoCoreError) as exc:
                self.stats["group_failures"] += 1
                logger.warning(
                    "Could not add %s to group %s: %s", username, group, exc,
                    extra={"user_pool_id": self.user_pool_id, "username": username, "group": group},
                )
            else:
                self.stats["groups_added"] += 1


async def _await(awaitable):
    return await awaitable


def restore_users(
    client,
    user_pool_id: str,
    path: str,
    password: Optional[str] = None,
    password_resolver: Optional[Callable[[str], Any]] = None,
    replicate_groups: bool = False,
    limiter: Optional[RateLimiter] = None,
) -> dict[str, int]:
    """Restore every user in ``path`` into ``user_pool_id``.

    Returns the importer stats. Any creation error other than an existing
    username or the SMS configuration defect aborts the restore.
    """
    importer = UserImporter(
        client,
        user_pool_id,
        limiter=limiter,
        password=password,
        password_resolver=password_resolver,
        replicate_groups=replicate_groups,
    )
    return importer.restore(path)
