from __future__ import annotations

from typing import Any, Optional

import pytest
from botocore.exceptions import ClientError

POOL_ID = "eu-west-1_TestPool1"


def client_error(code: str, message: str = "", operation: str = "AdminCreateUser") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


def make_user(username: str, **attributes: str) -> dict[str, Any]:
    return {
        "Username": username,
        "Attributes": [{"Name": k, "Value": v} for k, v in attributes.items()],
        "UserCreateDate": "2024-01-01 10:00:00+00:00",
        "UserLastModifiedDate": "2024-01-02 10:00:00+00:00",
        "Enabled": True,
        "UserStatus": "CONFIRMED",
    }


class _GroupsPaginator:
    def __init__(self, client: "FakeCognitoClient") -> None:
        self._client = client

    def paginate(self, UserPoolId: str, Username: str):
        self._client.calls.append(("admin_list_groups_for_user", Username))
        groups = self._client.user_groups.get(Username, [])
        # Two pages so callers must follow the paginator
        yield {"Groups": [{"GroupName": g, "UserPoolId": UserPoolId} for g in groups[:1]]}
        yield {"Groups": [{"GroupName": g, "UserPoolId": UserPoolId} for g in groups[1:]]}


class FakeCognitoClient:
    """In-memory stand-in for a boto3 cognito-idp client."""

    def __init__(
        self,
        pages: Optional[list[tuple[list[dict], Optional[str]]]] = None,
        pools: Optional[list[str]] = None,
        pool_next_token: Optional[str] = None,
        username_attributes: Optional[list[str]] = None,
        schema: Optional[list[str]] = None,
    ) -> None:
        self.pages = pages or [([], None)]
        self.pools = pools or [POOL_ID]
        self.pool_next_token = pool_next_token
        self.username_attributes = username_attributes or []
        self.schema = schema or ["sub", "email", "phone_number", "name", "locale"]
        self.user_groups: dict[str, list[str]] = {}
        self.created: dict[str, dict[str, Any]] = {}
        self.group_adds: list[tuple[str, str]] = []
        self.calls: list[tuple] = []
        self.create_errors: dict[str, ClientError] = {}
        self.group_errors: dict[str, ClientError] = {}
        self.list_error: Optional[ClientError] = None

    def list_user_pools(self, MaxResults: int, NextToken: Optional[str] = None):
        self.calls.append(("list_user_pools", MaxResults, NextToken))
        if NextToken:
            return {"UserPools": [{"Id": "eu-west-1_Extra1", "Name": "extra"}]}
        resp: dict[str, Any] = {"UserPools": [{"Id": p, "Name": p} for p in self.pools]}
        if self.pool_next_token:
            resp["NextToken"] = self.pool_next_token
        return resp

    def list_users(self, UserPoolId: str, Limit: int, PaginationToken: Optional[str] = None):
        self.calls.append(("list_users", UserPoolId, PaginationToken))
        if self.list_error is not None:
            raise self.list_error
        index = sum(1 for c in self.calls if c[0] == "list_users" and c[1] == UserPoolId) - 1
        users, token = self.pages[index]
        resp: dict[str, Any] = {"Users": [dict(u) for u in users]}
        if token:
            resp["PaginationToken"] = token
        return resp

    def describe_user_pool(self, UserPoolId: str):
        self.calls.append(("describe_user_pool", UserPoolId))
        return {
            "UserPool": {
                "Id": UserPoolId,
                "UsernameAttributes": self.username_attributes,
                "SchemaAttributes": [{"Name": n} for n in self.schema],
            }
        }

    def get_paginator(self, operation: str):
        assert operation == "admin_list_groups_for_user"
        return _GroupsPaginator(self)

    def admin_create_user(self, **params: Any):
        username = params["Username"]
        self.calls.append(("admin_create_user", username))
        if username in self.create_errors:
            raise self.create_errors[username]
        if username in self.created:
            raise client_error("UsernameExistsException", "User account already exists")
        self.created[username] = params
        return {"User": {"Username": username}}

    def admin_add_user_to_group(self, UserPoolId: str, Username: str, GroupName: str):
        self.calls.append(("admin_add_user_to_group", Username, GroupName))
        if GroupName in self.group_errors:
            raise self.group_errors[GroupName]
        self.group_adds.append((Username, GroupName))
        return {}


@pytest.fixture()
def fake_client() -> FakeCognitoClient:
    return FakeCognitoClient()
