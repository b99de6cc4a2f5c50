"""Collapse trust documents into principal lists and invert role/principal maps."""
from __future__ import annotations

import logging
from typing import Iterable, Optional

from .models import PrincipalRoleMap, RoleTrustMap, TrustDocument

logger = logging.getLogger(__name__)


def uniq_sorted(items: Iterable[str]) -> list[str]:
    """Return *items* deduplicated and sorted by code point."""
    items = list(items)
    output = sorted(set(items))
    logger.debug("uniq input=%d output=%d", len(items), len(output))
    return output


def collect_principals(document: TrustDocument) -> list[str]:
    """
    Every principal named by *document*, across all five categories of all
    statements, deduplicated and sorted. Always a list, possibly empty.
    """
    identifiers: list[str] = []
    for statement in document.statements:
        identifiers.extend(statement.principal.identifiers())
    return uniq_sorted(identifiers)


def invert_trust_map(role_trust: Optional[RoleTrustMap]) -> PrincipalRoleMap:
    """
    Flip role -> principals into principal -> roles.

    Role lists follow the iteration order of *role_trust*; sort downstream
    if a stable order is needed.
    """
    output: PrincipalRoleMap = {}
    for role_arn, principals in (role_trust or {}).items():
        for principal in principals:
            output.setdefault(principal, []).append(role_arn)
    return output
