"""Build the boto3 IAM client used for role enumeration."""
from __future__ import annotations

from typing import Callable, Optional

import boto3


def new_iam_client(
    region: str,
    profile: Optional[str] = None,
    session_factory: Optional[Callable[..., boto3.Session]] = None,
):
    """
    Return an IAM client for *region* using the default credential chain
    (or *profile*).

    Raises:
        ValueError: *region* is empty.
        botocore.exceptions.ProfileNotFound: *profile* does not exist.
    """
    if not region:
        raise ValueError("region cannot be empty")
    factory = session_factory or boto3.Session
    session = factory(profile_name=profile, region_name=region)
    return session.client("iam")
