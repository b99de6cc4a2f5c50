"""Pure data models for iamtrust. No I/O, no AWS calls."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from .errors import DecodeError

# A decoded Principal/Action value. None means absent or JSON null,
# which is distinct from an empty array.
StringList = tuple[str, ...]

# RoleTrustMap: role ARN -> sorted principals.
# PrincipalRoleMap: principal -> role ARNs.
RoleTrustMap = dict[str, list[str]]
PrincipalRoleMap = dict[str, list[str]]


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


def decode_string_list(value: Any, name: str = "value") -> Optional[StringList]:
    """
    Decode an already-parsed JSON value into a StringList.

    ``MISSING`` and ``None`` give ``None``; a string ``s`` gives ``(s,)``;
    a list of strings gives the same items as a tuple.

    Raises:
        DecodeError: *value* is neither a string nor an array of strings.
    """
    if value is MISSING or value is None:
        return None
    if isinstance(value, str):
        return (value,)
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return tuple(value)
    raise DecodeError(
        f"failed to parse {name}: not a string or array of strings "
        f"(got {type(value).__name__})"
    )


@dataclass(frozen=True)
class Principal:
    """The five principal categories of a trust policy statement."""

    service: Optional[StringList] = None
    aws: Optional[StringList] = None
    federated: Optional[StringList] = None
    canonical_user: Optional[StringList] = None
    anonymous: Optional[StringList] = None

    def identifiers(self) -> list[str]:
        """All identifiers across categories, unsorted, duplicates kept."""
        out: list[str] = []
        for items in (
            self.service,
            self.aws,
            self.federated,
            self.canonical_user,
            self.anonymous,
        ):
            if items:
                out.extend(items)
        return out


@dataclass(frozen=True)
class Statement:
    """One statement of a trust document."""

    effect: str = ""
    principal: Principal = field(default_factory=Principal)
    action: Optional[StringList] = None


@dataclass(frozen=True)
class TrustDocument:
    """Decoded AssumeRolePolicyDocument."""

    version: str = ""
    statements: tuple[Statement, ...] = ()


@dataclass(frozen=True)
class RoleRecord:
    """A role as returned by ListRoles, with its trust document still encoded."""

    arn: str
    trust_document_raw: str
    role_name: str = ""
    path: str = "/"
