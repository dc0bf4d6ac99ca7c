"""Command: fix broken links and re-install."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from dotctl.commands._base import DotCommand, link_mode

if TYPE_CHECKING:
    from dotctl.commands._context import AppContext


@click.command(
    cls=DotCommand,
    examples="""\
  dotctl repair
  dotctl repair shell/zsh
  dotctl repair --all --force
  dotctl --dry-run repair""",
)
@click.argument("packages", nargs=-1)
@click.option("--all", "all_packages", is_flag=True, help="Every package, ignoring platform.")
@click.option("--force", is_flag=True, help="Replace conflicting files.")
@click.option("--adopt", is_flag=True, help="Move conflicting files into the repository.")
@click.pass_obj
def repair(
    app: AppContext,
    packages: tuple[str, ...],
    all_packages: bool,
    force: bool,
    adopt: bool,
) -> None:
    """Remove broken links owned by the repository, then re-install packages."""
    from dotctl.services.doctor import DoctorService

    mode = link_mode(force, adopt)
    app.emit(DoctorService(app.repo).repair(packages, all_packages=all_packages, mode=mode))
