"""Command: show link state per package."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from dotctl.commands._base import DotCommand

if TYPE_CHECKING:
    from dotctl.commands._context import AppContext


@click.command(
    cls=DotCommand,
    examples="""\
  dotctl status
  dotctl status shell/zsh
  dotctl --json status --all""",
)
@click.argument("packages", nargs=-1)
@click.option("--all", "all_packages", is_flag=True, help="Every package, ignoring platform.")
@click.pass_obj
def status(app: AppContext, packages: tuple[str, ...], all_packages: bool) -> None:
    """Show which package files are linked, missing, stale, or conflicting."""
    from dotctl.services.link import LinkService

    app.emit(LinkService(app.repo).status(packages, all_packages=all_packages))
