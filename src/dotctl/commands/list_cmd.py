"""Command: list discovered packages."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from dotctl.commands._base import DotCommand

if TYPE_CHECKING:
    from dotctl.commands._context import AppContext


@click.command(
    "list",
    cls=DotCommand,
    examples="""\
  dotctl list
  dotctl --json list
  dotctl --repo ~/dotfiles list""",
)
@click.pass_obj
def list_cmd(app: AppContext) -> None:
    """List packages with their target roots and platform selection."""
    from dotctl.services.link import LinkService

    app.emit(LinkService(app.repo).list_packages())
