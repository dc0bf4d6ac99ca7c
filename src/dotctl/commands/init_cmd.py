"""Command: scaffold a dotctl.toml."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from dotctl.commands._base import DotCommand

if TYPE_CHECKING:
    from dotctl.commands._context import AppContext


@click.command(
    "init",
    cls=DotCommand,
    examples="""\
  dotctl init
  dotctl init ~/dotfiles
  dotctl init --package home --package shell/zsh
  dotctl init ~/dotfiles --force""",
)
@click.argument(
    "path",
    required=False,
    type=click.Path(file_okay=False, path_type=Path),
)
@click.option(
    "-p",
    "--package",
    "default_packages",
    multiple=True,
    help="Package installed by default (repeatable).",
)
@click.option("--force", is_flag=True, help="Overwrite an existing dotctl.toml.")
@click.pass_obj
def init_cmd(
    app: AppContext,
    path: Path | None,
    default_packages: tuple[str, ...],
    force: bool,
) -> None:
    """Create a dotctl.toml in a dotfiles repository."""
    from dotctl.services.init import InitService

    target = path if path is not None else Path.cwd()
    if not target.is_dir():
        msg = f"Not a directory: {target}"
        raise click.ClickException(msg)
    app.emit(
        InitService.init_repository(
            target,
            default_packages=list(default_packages),
            force=force,
            dry_run=app.settings.dry_run,
        )
    )
