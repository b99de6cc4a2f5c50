"""Enumerate every IAM role, one ListRoles page at a time."""
from __future__ import annotations

import json
import logging
from typing import Optional, Protocol
from urllib.parse import quote

from .context import RunContext
from .errors import EnumerationError, TrustAuditError
from .models import RoleRecord

logger = logging.getLogger(__name__)


class RolePager(Protocol):
    """Stateful source of RoleRecord pages."""

    def has_more_pages(self) -> bool:
        ...

    def next_page(self, ctx: RunContext) -> list[RoleRecord]:
        ...


class IAMRolePager:
    """
    RolePager over the boto3 ``list_roles`` paginator.

    Each call to :meth:`next_page` pulls one page from the paginator, which
    carries the ``Marker`` forward and rejects a repeated one.
    """

    def __init__(
        self,
        iam_client,
        path_prefix: Optional[str] = None,
        page_size: Optional[int] = None,
    ) -> None:
        self._path_prefix = path_prefix
        self._page_size = page_size

        kwargs: dict = {}
        if path_prefix:
            kwargs["PathPrefix"] = path_prefix
        if page_size:
            kwargs["PaginationConfig"] = {"PageSize": page_size}
        paginator = iam_client.get_paginator("list_roles")
        self._pages = iter(paginator.paginate(**kwargs))
        self._done = False

    def has_more_pages(self) -> bool:
        return not self._done

    def next_page(self, ctx: RunContext) -> list[RoleRecord]:
        try:
            page = next(self._pages)
        except StopIteration:
            self._done = True
            return []
        if not page.get("IsTruncated"):
            self._done = True
        return [_role_record(r) for r in page.get("Roles", [])]


def enumerate_roles(pager: RolePager, ctx: RunContext) -> list[RoleRecord]:
    """
    Drain *pager* and return every RoleRecord, in page order.

    Pages are requested strictly one after another. Nothing is returned on
    failure.

    Raises:
        CancellationError: *ctx* was done before a page request.
        EnumerationError: the pager failed to fetch a page.
    """
    roles: list[RoleRecord] = []
    page_no = 0
    while pager.has_more_pages():
        ctx.check()
        try:
            page = pager.next_page(ctx)
        except TrustAuditError:
            raise
        except Exception as exc:
            raise EnumerationError(f"failed to list roles: {exc}") from exc
        page_no += 1
        logger.debug("fetched roles page=%d roles=%d", page_no, len(page))
        roles.extend(page)
    return roles


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _role_record(role: dict) -> RoleRecord:
    doc = role.get("AssumeRolePolicyDocument", "")
    if isinstance(doc, dict):
        # botocore has already decoded the document; restore the wire form.
        doc = quote(json.dumps(doc), safe="")
    return RoleRecord(
        arn=role["Arn"],
        trust_document_raw=doc or "",
        role_name=role.get("RoleName", ""),
        path=role.get("Path", "/"),
    )
