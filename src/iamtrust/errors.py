"""Error taxonomy for a trust audit run."""
from __future__ import annotations

from typing import Optional


class TrustAuditError(Exception):
    """Base class for every error that aborts a trust audit run."""


class EnumerationError(TrustAuditError):
    """Raised when a ListRoles page could not be fetched."""


class DecodeError(TrustAuditError):
    """Raised when a role's trust document cannot be unescaped or parsed."""

    def __init__(self, message: str, role_arn: Optional[str] = None) -> None:
        if role_arn:
            message = f"{role_arn}: {message}"
        super().__init__(message)
        self.role_arn = role_arn


class CancellationError(TrustAuditError):
    """Raised when the run context was cancelled or its deadline passed."""
