"""Render a principal -> roles map to the terminal (Rich) or as JSON."""
from __future__ import annotations

import json
import re
import sys
from typing import Optional, TextIO

from rich.console import Console
from rich.table import Table
from rich.text import Text

from .models import PrincipalRoleMap

# Characters escaped in the JSON artifact so output stays byte-compatible
# with earlier releases of the tool.
_JSON_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}
_JSON_ESCAPE_RE = re.compile("[<>&\u2028\u2029]")

_ACCOUNT_RE = re.compile(r"^(\d{12}|arn:aws[\w-]*:iam::\d{12}:.+)$")


# ---------------------------------------------------------------------------
# Public interface
# ---------------------------------------------------------------------------

class TextFormatter:
    """Renders a principal -> roles map as a Rich table."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console(highlight=False)

    def render(self, principal_roles: PrincipalRoleMap) -> None:
        c = self.console
        if not principal_roles:
            c.print("[dim](no trust relationships found)[/dim]")
            return

        table = Table(
            title="Trust relationships",
            show_header=True,
            header_style="bold",
            box=None,
            padding=(0, 2),
        )
        table.add_column("Principal")
        table.add_column("Type", style="dim")
        table.add_column("Roles")
        for principal in sorted(principal_roles):
            roles = principal_roles[principal]
            table.add_row(
                Text(principal), classify_principal(principal), Text("\n".join(roles))
            )
        c.print(table)

        role_count = len({r for roles in principal_roles.values() for r in roles})
        c.print()
        c.print(
            f"[bold]{len(principal_roles)}[/bold] principal(s) trusted by "
            f"[bold]{role_count}[/bold] role(s)"
        )


class JsonFormatter:
    """Writes a principal -> roles map as an indented JSON document."""

    def __init__(self, indent: int = 2, stream: Optional[TextIO] = None) -> None:
        self.indent = indent
        self.stream = stream

    def render(self, principal_roles: PrincipalRoleMap) -> None:
        stream = self.stream or sys.stdout
        stream.write(to_json(principal_roles, indent=self.indent))
        stream.flush()


def get_formatter(
    output: str, console: Optional[Console] = None
) -> TextFormatter | JsonFormatter:
    """Factory: ``'text'`` → TextFormatter, ``'json'`` → JsonFormatter."""
    if output == "text":
        return TextFormatter(console=console)
    return JsonFormatter()


def to_json(principal_roles: PrincipalRoleMap, indent: int = 2) -> str:
    """
    Serialise with sorted keys, role lists in insertion order, HTML-sensitive
    characters escaped and no trailing newline.
    """
    text = json.dumps(
        principal_roles, indent=indent, sort_keys=True, ensure_ascii=False
    )
    return _JSON_ESCAPE_RE.sub(lambda m: _JSON_ESCAPES[m.group(0)], text)


def classify_principal(identifier: str) -> str:
    """Best-effort category of a principal identifier, for display only."""
    if identifier == "*":
        return "anonymous"
    if identifier.endswith(".amazonaws.com") or identifier.endswith(".amazonaws.com.cn"):
        return "service"
    if ":saml-provider/" in identifier:
        return "saml-provider"
    if ":oidc-provider/" in identifier:
        return "oidc-provider"
    if _ACCOUNT_RE.match(identifier):
        return "account"
    return "other"
