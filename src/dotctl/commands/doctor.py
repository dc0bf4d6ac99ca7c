"""Command: deployment health checks."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from dotctl.commands._base import DotCommand

if TYPE_CHECKING:
    from dotctl.commands._context import AppContext


@click.command(
    cls=DotCommand,
    examples="""\
  dotctl doctor
  dotctl doctor config/nvim
  dotctl doctor --if-due
  dotctl --json doctor --all""",
)
@click.argument("packages", nargs=-1)
@click.option("--all", "all_packages", is_flag=True, help="Every package, ignoring platform.")
@click.option("--if-due", is_flag=True, help="Skip unless the check interval has elapsed.")
@click.pass_obj
def doctor(
    app: AppContext,
    packages: tuple[str, ...],
    all_packages: bool,
    if_due: bool,
) -> None:
    """Check links, templates, config syntax, tools, and the secret store."""
    from dotctl.services.doctor import DoctorService

    app.emit(DoctorService(app.repo).doctor(packages, all_packages=all_packages, if_due=if_due))
