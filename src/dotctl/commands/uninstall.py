"""Command: remove package links."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from dotctl.commands._base import DotCommand

if TYPE_CHECKING:
    from dotctl.commands._context import AppContext


@click.command(
    cls=DotCommand,
    examples="""\
  dotctl uninstall config/tmux
  dotctl uninstall --all
  dotctl --dry-run uninstall shell/zsh""",
)
@click.argument("packages", nargs=-1)
@click.option("--all", "all_packages", is_flag=True, help="Every package, ignoring platform.")
@click.pass_obj
def uninstall(app: AppContext, packages: tuple[str, ...], all_packages: bool) -> None:
    """Remove links owned by packages. Files dotctl did not create are left alone."""
    from dotctl.services.link import LinkService

    app.emit(LinkService(app.repo).uninstall(packages, all_packages=all_packages))
