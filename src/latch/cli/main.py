"""CLI entry point for latch.

Invoked as::

    latch [OPTIONS] COMMAND [ARGS]...

or during development::

    python -m latch.cli.main

Commands
--------
- expand   Print the brace expansion of a pattern
- list     Show the members of a latch set config
- check    Test membership against a latch set config
- mask     Show a latch set config masked by a pattern or request
- version  Show version information
"""
from __future__ import annotations

import logging
import sys

import click
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from latch.errors import LatchError
from latch.expansion import expand_braces
from latch.latch_set import LatchSet
from latch.loader import LatchSetLoader

console = Console()
err_console = Console(stderr=True)


def _load(config_path: str, strict: bool) -> LatchSet:
    try:
        return LatchSetLoader(strict=strict).load(config_path)
    except LatchError as exc:
        err_console.print(f"[red]Config error:[/red] {escape(str(exc))}", highlight=False)
        sys.exit(2)


def _members_table(latches: LatchSet, title: str) -> Table:
    table = Table(title=title, box=box.SIMPLE)
    table.add_column("Latch", style="cyan", no_wrap=True)
    table.add_column("Parts", style="magenta")
    for member in latches:
        parts = ", ".join(f"{key}={value}" for key, value in member.to_object().items())
        table.add_row(escape(member.to_string()), escape(parts))
    return table


_config_argument = click.argument("config_path", type=click.Path(exists=True, dir_okay=False))
_strict_option = click.option(
    "--strict",
    is_flag=True,
    default=False,
    help="Reject unknown top-level keys in the config.",
)


# ---------------------------------------------------------------------------
# Root command group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="latch-permissions")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """Latch CLI: inspect and query structured permission sets."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


# ---------------------------------------------------------------------------
# version
# ---------------------------------------------------------------------------


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from latch import __version__

    console.print(
        Panel(
            f"[bold]latch[/bold]  v[cyan]{__version__}[/cyan]\n"
            "Structured permission tokens and sets.",
            title="Version",
            border_style="blue",
        )
    )


# ---------------------------------------------------------------------------
# expand
# ---------------------------------------------------------------------------


@cli.command(name="expand")
@click.argument("pattern")
def expand_command(pattern: str) -> None:
    """Print each string PATTERN expands to, one per line."""
    for expanded in expand_braces(pattern):
        console.print(expanded, markup=False, highlight=False, soft_wrap=True)


# ---------------------------------------------------------------------------
# list
# ---------------------------------------------------------------------------


@cli.command(name="list")
@_config_argument
@_strict_option
def list_command(config_path: str, strict: bool) -> None:
    """Show every member of the latch set in CONFIG_PATH."""
    latches = _load(config_path, strict)
    if not len(latches):
        console.print("[yellow]No latches defined.[/yellow]")
        return
    console.print(_members_table(latches, f"{len(latches)} Latch(es)"))


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------


@cli.command(name="check")
@_config_argument
@click.argument("members", nargs=-1, required=True)
@click.option("--any", "match_any", is_flag=True, default=False, help="Pass if any member is held.")
@_strict_option
def check_command(config_path: str, members: tuple[str, ...], match_any: bool, strict: bool) -> None:
    """Exit 0 if the latch set in CONFIG_PATH holds MEMBERS, 1 otherwise."""
    latches = _load(config_path, strict)
    held = latches.has_any(*members) if match_any else latches.has_all(*members)

    table = Table(title="Membership", box=box.SIMPLE)
    table.add_column("Latch", style="cyan", no_wrap=True)
    table.add_column("Held")
    for member in members:
        table.add_row(escape(member), "[green]yes[/green]" if latches.has(member) else "[red]no[/red]")
    console.print(table)

    status = "[green]GRANTED[/green]" if held else "[red]DENIED[/red]"
    console.print(Panel(status, title="Check Result", border_style="blue"))
    sys.exit(0 if held else 1)


# ---------------------------------------------------------------------------
# mask
# ---------------------------------------------------------------------------


@cli.command(name="mask")
@_config_argument
@click.argument("mask", required=False)
@click.option("--method", help="Request method to derive the verb mask from.")
@click.option("--id", "request_id", help="Request id used with --method.")
@_strict_option
def mask_command(
    config_path: str,
    mask: str | None,
    method: str | None,
    request_id: str | None,
    strict: bool,
) -> None:
    """Show the latch set in CONFIG_PATH masked by MASK or a request."""
    if (mask is None) == (method is None):
        err_console.print("[red]Provide exactly one of MASK or --method.[/red]")
        sys.exit(2)

    latches = _load(config_path, strict)
    try:
        if method is not None:
            params = {"id": request_id} if request_id is not None else None
            masked = latches.mask_from_request({"method": method, "params": params})
        else:
            masked = latches.mask(mask)
    except LatchError as exc:
        err_console.print(f"[red]Mask error:[/red] {escape(str(exc))}", highlight=False)
        sys.exit(1)

    console.print(_members_table(masked, "Masked Latches"))


if __name__ == "__main__":
    cli()
