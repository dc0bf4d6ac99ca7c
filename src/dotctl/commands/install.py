"""Command: link packages into the home directory."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from dotctl.commands._base import DotCommand, link_mode

if TYPE_CHECKING:
    from dotctl.commands._context import AppContext


@click.command(
    cls=DotCommand,
    examples="""\
  dotctl install
  dotctl install shell/zsh config/git
  dotctl install --all
  dotctl install config/nvim --force
  dotctl --backup install config/nvim --adopt
  dotctl --dry-run install --all""",
)
@click.argument("packages", nargs=-1)
@click.option("--all", "all_packages", is_flag=True, help="Every package, ignoring platform.")
@click.option("--force", is_flag=True, help="Replace conflicting files.")
@click.option("--adopt", is_flag=True, help="Move conflicting files into the repository.")
@click.pass_obj
def install(
    app: AppContext,
    packages: tuple[str, ...],
    all_packages: bool,
    force: bool,
    adopt: bool,
) -> None:
    """Symlink package files into their target directories."""
    from dotctl.services.link import LinkService

    mode = link_mode(force, adopt)
    app.emit(LinkService(app.repo).install(packages, all_packages=all_packages, mode=mode))
