"""Cognito client construction from already-chosen credentials."""

from __future__ import annotations

import logging
from typing import Optional

import boto3

logger = logging.getLogger("userpool_backup.client")


def create_cognito_client(
    region: Optional[str] = None,
    profile: Optional[str] = None,
    access_key: Optional[str] = None,
    secret_key: Optional[str] = None,
):
    """Build a ``cognito-idp`` client.

    A named profile wins over explicit keys; with neither, boto3's default
    chain applies (env vars, shared config, IAM role).
    """
    if profile:
        session = boto3.Session(profile_name=profile, region_name=region)
    elif access_key and secret_key:
        session = boto3.Session(
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name=region,
        )
    else:
        session = boto3.Session(region_name=region)
    logger.debug("Using region %s", session.region_name)
    return session.client("cognito-idp")
