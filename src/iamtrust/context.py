"""Cooperative cancellation for a trust audit run."""
from __future__ import annotations

import threading
import time
from typing import Optional

from .errors import CancellationError


class RunContext:
    """
    A cancellable execution context with an optional deadline.

    Cancellation is advisory: work checks :meth:`cancelled` (or calls
    :meth:`check`) at its entry point and is never interrupted afterwards.
    A child context is cancelled whenever its parent is, but cancelling a
    child leaves the parent untouched.
    """

    def __init__(
        self,
        deadline: Optional[float] = None,
        parent: Optional["RunContext"] = None,
    ) -> None:
        self._event = threading.Event()
        self._deadline = deadline
        self._parent = parent

    @classmethod
    def with_timeout(
        cls, seconds: float, parent: Optional["RunContext"] = None
    ) -> "RunContext":
        """Context whose deadline is *seconds* from now (negative = already expired)."""
        return cls(deadline=time.monotonic() + seconds, parent=parent)

    def child(self) -> "RunContext":
        return RunContext(parent=self)

    def cancel(self) -> None:
        self._event.set()

    def cancelled(self) -> bool:
        return self.reason() is not None

    def reason(self) -> Optional[str]:
        """``None`` while live, otherwise why the context is done."""
        if self._event.is_set():
            return "context canceled"
        if self._deadline is not None and time.monotonic() >= self._deadline:
            return "context deadline exceeded"
        if self._parent is not None:
            return self._parent.reason()
        return None

    def check(self) -> None:
        """Raise CancellationError if the context is done."""
        reason = self.reason()
        if reason is not None:
            raise CancellationError(reason)
