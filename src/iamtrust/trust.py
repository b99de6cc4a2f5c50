"""Decode a role's URL-encoded AssumeRolePolicyDocument into a TrustDocument."""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional
from urllib.parse import unquote_plus

from .errors import DecodeError
from .models import MISSING, Principal, Statement, TrustDocument, decode_string_list

logger = logging.getLogger(__name__)

# Any '%' not followed by two hex digits is a malformed escape.
_BAD_ESCAPE_RE = re.compile(r"%(?![0-9A-Fa-f]{2})")

# JSON key -> Principal field. Keys match case-sensitively at every level;
# "statement" or "service" in another case is ignored as an unknown key.
_PRINCIPAL_KEYS = {
    "Service": "service",
    "AWS": "aws",
    "Federated": "federated",
    "CanonicalUser": "canonical_user",
    "*": "anonymous",
}


def decode_trust_document(raw: str, role_arn: Optional[str] = None) -> TrustDocument:
    """
    Unescape and parse *raw* into a TrustDocument.

    ``{}`` (and JSON ``null``) decode to an empty document. Unknown keys are
    ignored; ``Condition``, ``Resource`` and ``NotPrincipal`` are not
    evaluated.

    Raises:
        DecodeError: invalid percent-encoding, invalid JSON, or a field with
            the wrong shape. ``role_arn`` is attached to the error.
    """
    logger.debug("decoding trust policy for %s", role_arn)

    data = unescape_document(raw, role_arn)
    try:
        parsed = json.loads(data)
    except json.JSONDecodeError as exc:
        raise DecodeError(f"failed to unmarshal JSON: {exc}", role_arn) from exc

    try:
        return _build_document(parsed)
    except DecodeError as exc:
        raise DecodeError(str(exc), role_arn) from exc


def unescape_document(raw: str, role_arn: Optional[str] = None) -> str:
    """Query-unescape *raw*: ``+`` becomes a space, ``%XX`` a byte (UTF-8)."""
    m = _BAD_ESCAPE_RE.search(raw)
    if m:
        bad = raw[m.start():m.start() + 3]
        raise DecodeError(
            f"failed to unescape URL: invalid URL escape {bad!r}", role_arn
        )
    try:
        return unquote_plus(raw, errors="strict")
    except UnicodeDecodeError as exc:
        raise DecodeError(f"failed to unescape URL: {exc}", role_arn) from exc


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _build_document(parsed: Any) -> TrustDocument:
    if parsed is None:
        return TrustDocument()
    if not isinstance(parsed, dict):
        raise DecodeError(
            f"trust policy must be a JSON object, got {type(parsed).__name__}"
        )

    version = _string_field(parsed, "Version")

    raw_statements = parsed.get("Statement")
    if raw_statements is None:
        raw_statements = []
    elif isinstance(raw_statements, dict):
        # IAM accepts a lone statement object in place of an array.
        raw_statements = [raw_statements]
    elif not isinstance(raw_statements, list):
        raise DecodeError(
            f"Statement must be an object or array, got {type(raw_statements).__name__}"
        )

    statements = tuple(_build_statement(s, i) for i, s in enumerate(raw_statements))
    return TrustDocument(version=version, statements=statements)


def _build_statement(raw: Any, index: int) -> Statement:
    if raw is None:
        return Statement()
    if not isinstance(raw, dict):
        raise DecodeError(
            f"Statement[{index}] must be an object, got {type(raw).__name__}"
        )
    return Statement(
        effect=_string_field(raw, "Effect"),
        principal=_build_principal(raw.get("Principal"), index),
        action=decode_string_list(
            raw.get("Action", MISSING), name=f"Statement[{index}].Action"
        ),
    )


def _build_principal(raw: Any, index: int) -> Principal:
    if raw is None:
        return Principal()
    if raw == "*":
        # "Principal": "*" is shorthand for everyone.
        return Principal(anonymous=("*",))
    if not isinstance(raw, dict):
        raise DecodeError(
            f"Statement[{index}].Principal must be an object, got {raw!r}"
        )
    kwargs = {
        attr: decode_string_list(
            raw.get(key, MISSING), name=f"Statement[{index}].Principal.{key}"
        )
        for key, attr in _PRINCIPAL_KEYS.items()
    }
    return Principal(**kwargs)


def _string_field(obj: dict, key: str) -> str:
    value = obj.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise DecodeError(f"{key} must be a string, got {type(value).__name__}")
    return value
