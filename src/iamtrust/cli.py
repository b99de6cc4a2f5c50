"""iamtrust CLI entry point."""

from __future__ import annotations

import logging
import sys
from importlib.metadata import PackageNotFoundError, version as _dist_version

import botocore.exceptions
import click
from rich.console import Console
from rich.markup import escape

from .context import RunContext
from .enumerator import IAMRolePager
from .errors import CancellationError, DecodeError, EnumerationError
from .formatters import get_formatter
from .log import configure_logging
from .resolver import scan_trust
from .session import new_iam_client

logger = logging.getLogger(__name__)


def _version() -> str:
    try:
        return _dist_version("iamtrust")
    except PackageNotFoundError:
        return "dev"


@click.command()
@click.option(
    "--region",
    default="eu-west-1",
    show_default=True,
    envvar="AWS_DEFAULT_REGION",
    help="AWS region used for IAM communication.",
)
@click.option(
    "--profile",
    default=None,
    envvar="AWS_PROFILE",
    help="AWS credentials profile name.",
)
@click.option(
    "--path-prefix",
    default=None,
    help="Only audit roles whose path starts with this prefix (e.g. /service-role/).",
)
@click.option(
    "--page-size",
    type=click.IntRange(1, 1000),
    default=None,
    help="Roles requested per ListRoles call.",
)
@click.option(
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Abort the scan after this many seconds.",
)
@click.option(
    "--output",
    type=click.Choice(["json", "text"]),
    default="json",
    show_default=True,
    help="Output format.",
)
@click.option("--verbose", is_flag=True, help="Verbose log output.")
@click.option("--version", "show_version", is_flag=True, help="Show version and exit.")
def main(
    region: str,
    profile: str | None,
    path_prefix: str | None,
    page_size: int | None,
    timeout: float | None,
    output: str,
    verbose: bool,
    show_version: bool,
) -> None:
    """Map every principal to the IAM roles whose trust policy names it.

    Lists all roles in the account, decodes each trust policy and prints a
    principal -> roles index. Exit code is 0 on success, 2 on any error.
    """
    configure_logging(verbose)
    # Diagnostics (errors) go to stderr; the trust map goes to stdout.
    err = Console(stderr=True, highlight=False)

    if show_version:
        logger.info("iamtrust version=%s", _version())
        return

    # 1. Build IAM client
    try:
        iam = new_iam_client(region, profile=profile)
    except ValueError as exc:
        err.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
        sys.exit(2)
    except botocore.exceptions.ProfileNotFound as exc:
        err.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
        sys.exit(2)

    # 2. Enumerate, resolve and invert
    ctx = RunContext.with_timeout(timeout) if timeout else RunContext()
    pager = IAMRolePager(iam, path_prefix=path_prefix, page_size=page_size)
    try:
        principal_roles = scan_trust(pager, ctx)
    except EnumerationError as exc:
        _handle_enumeration_error(exc, err)
        sys.exit(2)
    except DecodeError as exc:
        err.print(f"[bold red]Invalid trust policy:[/bold red] {escape(str(exc))}")
        sys.exit(2)
    except CancellationError as exc:
        err.print(f"[bold red]Scan aborted:[/bold red] {escape(str(exc))}")
        sys.exit(2)

    # 3. Format and output
    out_console = Console(highlight=False)
    formatter = get_formatter(output, console=out_console)
    formatter.render(principal_roles)


def _handle_enumeration_error(exc: EnumerationError, console: Console) -> None:
    cause = exc.__cause__
    if isinstance(cause, botocore.exceptions.ClientError):
        code = cause.response["Error"]["Code"]
        msg = cause.response["Error"]["Message"]
        if code == "AccessDenied":
            console.print(f"[bold red]Access denied:[/bold red] {escape(msg)}")
            console.print("[dim]iamtrust requires the iam:ListRoles permission.[/dim]")
        else:
            console.print(f"[bold red]AWS error ({escape(code)}):[/bold red] {escape(msg)}")
        return
    console.print(f"[bold red]Failed to list roles:[/bold red] {escape(str(exc))}")
