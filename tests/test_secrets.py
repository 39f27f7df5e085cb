from __future__ import annotations

import json

import boto3
import pytest
import requests

from scripts.userpool_backup.secrets import is_secret_reference, resolve_secret


class _SecretsClient:
    def __init__(self, value: str) -> None:
        self.value = value
        self.requested: list[str] = []

    def get_secret_value(self, SecretId: str):
        self.requested.append(SecretId)
        return {"SecretString": self.value}


def test_literal_values_pass_through() -> None:
    assert resolve_secret("Plain#Password1") == "Plain#Password1"
    assert not is_secret_reference("Plain#Password1")


def test_aws_secret_json_key(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _SecretsClient(json.dumps({"password": "Sup3r#Secret"}))
    monkeypatch.setattr(boto3, "client", lambda service, region_name: client)

    assert resolve_secret("aws-secret://restore-creds#password", "eu-west-1") == "Sup3r#Secret"
    assert client.requested == ["restore-creds"]


def test_aws_secret_whole_string(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(boto3, "client", lambda service, region_name: _SecretsClient("raw"))
    assert resolve_secret("aws-secret://restore-password") == "raw"


def test_aws_secret_missing_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(boto3, "client", lambda service, region_name: _SecretsClient("{}"))
    with pytest.raises(KeyError):
        resolve_secret("aws-secret://restore-creds#password")


class _Payload:
    def __init__(self, data: bytes) -> None:
        self.data = data


class _Version:
    def __init__(self, data: bytes) -> None:
        self.payload = _Payload(data)


class _GcpSecretClient:
    requested: list[str] = []

    def access_secret_version(self, request: dict):
        _GcpSecretClient.requested.append(request["name"])
        return _Version(b"Gcp#Secret1")


@pytest.fixture()
def gcp_client(monkeypatch: pytest.MonkeyPatch) -> type[_GcpSecretClient]:
    from google.cloud import secretmanager

    _GcpSecretClient.requested = []
    monkeypatch.setattr(secretmanager, "SecretManagerServiceClient", _GcpSecretClient)
    monkeypatch.delenv("GCP_PROJECT_ID", raising=False)
    return _GcpSecretClient


def test_gcp_secret_full_resource_name(gcp_client) -> None:
    name = "projects/acme/secrets/restore-password/versions/3"

    assert resolve_secret(f"gcp-secret://{name}") == "Gcp#Secret1"
    assert gcp_client.requested == [name]
    assert is_secret_reference(f"gcp-secret://{name}")


def test_gcp_secret_name_uses_project_env(gcp_client, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GCP_PROJECT_ID", "acme")

    assert resolve_secret("gcp-secret://restore-password") == "Gcp#Secret1"
    assert gcp_client.requested == ["projects/acme/secrets/restore-password/versions/latest"]


class _MetadataResponse:
    text = "metadata-project"

    def raise_for_status(self) -> None:
        pass


def test_gcp_secret_name_falls_back_to_metadata_server(gcp_client, monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[dict] = []

    def fake_get(url, headers, timeout):
        calls.append(headers)
        return _MetadataResponse()

    monkeypatch.setattr(requests, "get", fake_get)

    resolve_secret("gcp-secret://restore-password")

    assert calls == [{"Metadata-Flavor": "Google"}]
    assert gcp_client.requested == [
        "projects/metadata-project/secrets/restore-password/versions/latest"
    ]


def test_gcp_project_unknown_outside_gcp(gcp_client, monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_get(url, headers, timeout):
        raise requests.ConnectionError("metadata.google.internal unreachable")

    monkeypatch.setattr(requests, "get", fake_get)

    with pytest.raises(RuntimeError, match="GCP_PROJECT_ID"):
        resolve_secret("gcp-secret://restore-password")
    assert gcp_client.requested == []
