"""Process-wide logging setup for the CLI."""
from __future__ import annotations

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

_HANDLER_NAME = "iamtrust"


def configure_logging(verbose: bool = False, console: Optional[Console] = None) -> logging.Logger:
    """
    Route log records to a Rich handler on stderr.

    DEBUG when *verbose*, INFO otherwise. Calling this again replaces the
    handler installed by a previous call.
    """
    level = logging.DEBUG if verbose else logging.INFO
    root = logging.getLogger()
    for handler in list(root.handlers):
        if handler.get_name() == _HANDLER_NAME:
            root.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True, highlight=False),
        show_path=False,
        rich_tracebacks=False,
    )
    handler.set_name(_HANDLER_NAME)
    handler.setLevel(level)
    root.addHandler(handler)
    root.setLevel(level)
    for noisy in ("boto3", "botocore", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
    return root
