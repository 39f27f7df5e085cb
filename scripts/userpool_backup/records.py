"""Shape of a user record as stored in backup files.

Records keep the ListUsers response shape verbatim: ``Username``,
``Attributes`` as ``[{"Name": ..., "Value": ...}]``, the user dates,
``Enabled``, ``UserStatus`` and, when groups were exported, ``Groups`` as
``[{"GroupName": ...}]``.
"""

from __future__ import annotations

from typing import Any, Optional

# Non-attribute columns of the CSV format, in header order
FIXED_COLUMNS = (
    "Username",
    "UserCreateDate",
    "UserLastModifiedDate",
    "Enabled",
    "UserStatus",
)

# Generated by Cognito, rejected by AdminCreateUser
IMMUTABLE_ATTRIBUTES = frozenset({"sub"})


def attribute_value(user: dict[str, Any], name: str) -> Optional[str]:
    """Return the value of attribute ``name`` or None when the user lacks it."""
    for attr in user.get("Attributes") or []:
        if attr.get("Name") == name:
            return attr.get("Value")
    return None


def mutable_attributes(user: dict[str, Any]) -> list[dict[str, str]]:
    return [
        {"Name": attr["Name"], "Value": attr.get("Value", "")}
        for attr in user.get("Attributes") or []
        if attr.get("Name") not in IMMUTABLE_ATTRIBUTES
    ]


def group_names(user: dict[str, Any]) -> list[str]:
    return [g["GroupName"] for g in user.get("Groups") or [] if g.get("GroupName")]
