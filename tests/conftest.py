"""Shared pytest fixtures for iamtrust tests."""
import json
from urllib.parse import quote

import boto3
import pytest

from iamtrust.models import RoleRecord

# moto is imported lazily inside fixtures so the import error surface is clear.

ACCOUNT = "123456789012"


@pytest.fixture(autouse=True)
def aws_credentials(monkeypatch):
    """Prevent accidental real AWS calls by setting fake credentials."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture
def moto_iam():
    """Yield a real boto3 IAM client inside a moto mock_aws context."""
    from moto import mock_aws

    with mock_aws():
        yield boto3.client("iam", region_name="us-east-1")


def encode_policy(document) -> str:
    """URL-encode a trust policy the way IAM returns it on the wire."""
    if not isinstance(document, str):
        document = json.dumps(document)
    return quote(document, safe="")


def trust_policy(*principals: dict) -> dict:
    return {
        "Version": "2012-10-17",
        "Statement": [
            {"Effect": "Allow", "Principal": p, "Action": "sts:AssumeRole"}
            for p in principals
        ],
    }


def make_role(name: str, *principals: dict) -> RoleRecord:
    return RoleRecord(
        arn=f"arn:aws:iam::{ACCOUNT}:role/{name}",
        trust_document_raw=encode_policy(trust_policy(*principals)),
        role_name=name,
    )
