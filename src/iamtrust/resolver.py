"""
Resolve every role's trust document concurrently into a role -> principals map.

Also runs the full enumerate / resolve / invert pipeline.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Optional, Sequence

from .aggregator import collect_principals, invert_trust_map
from .context import RunContext
from .enumerator import RolePager, enumerate_roles
from .models import PrincipalRoleMap, RoleRecord, RoleTrustMap
from .trust import decode_trust_document

logger = logging.getLogger(__name__)


def resolve_role_trust(roles: Sequence[RoleRecord], ctx: RunContext) -> RoleTrustMap:
    """
    Decode and aggregate the trust document of every role in *roles*.

    One task per role, no worker cap. Each task checks a group context at
    its entry point and skips all work once it is cancelled. The first
    failing task cancels the group; tasks already past the check still run
    to completion. The call returns only after every task has finished.

    Returns an empty dict for no roles.

    Raises:
        DecodeError: a role's trust document is malformed (first error wins).
        CancellationError: *ctx* was cancelled or expired.
    """
    output: RoleTrustMap = {}
    if not roles:
        return output

    group = _TaskGroup(ctx)
    mutex = threading.Lock()

    def resolve_one(role: RoleRecord) -> None:
        group.ctx.check()
        policy = decode_trust_document(role.trust_document_raw, role_arn=role.arn)
        principals = collect_principals(policy)
        with mutex:
            output[role.arn] = principals

    with ThreadPoolExecutor(
        max_workers=len(roles), thread_name_prefix="iamtrust"
    ) as pool:
        for role in roles:
            group.go(pool, resolve_one, role)
        group.wait()

    if group.error is not None:
        raise group.error
    return output


def scan_trust(pager: RolePager, ctx: RunContext) -> PrincipalRoleMap:
    """Enumerate roles from *pager*, resolve their trust and invert the result."""
    roles = enumerate_roles(pager, ctx)
    role_trust = resolve_role_trust(roles, ctx)
    flip = invert_trust_map(role_trust)
    logger.debug(
        "found IAM roles and principals roles=%d principals=%d",
        len(role_trust),
        len(flip),
    )
    return flip


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

class _TaskGroup:
    """Join-all task group that keeps the first error and cancels its context."""

    def __init__(self, parent: RunContext) -> None:
        self.ctx = parent.child()
        self.error: Optional[BaseException] = None
        self._lock = threading.Lock()
        self._futures: list = []

    def go(self, pool: ThreadPoolExecutor, fn, *args) -> None:
        self._futures.append(pool.submit(self._run, fn, *args))

    def wait(self) -> None:
        wait(self._futures)

    def _run(self, fn, *args) -> None:
        try:
            fn(*args)
        except Exception as exc:
            with self._lock:
                if self.error is None:
                    self.error = exc
                    self.ctx.cancel()
                    return
            logger.debug("discarding error after first failure: %s", exc)
