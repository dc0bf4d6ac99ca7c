"""Command: render secret templates."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from dotctl.commands._base import DotCommand

if TYPE_CHECKING:
    from dotctl.commands._context import AppContext


@click.command(
    cls=DotCommand,
    examples="""\
  dotctl inject
  dotctl inject home --check
  dotctl inject --all --diff
  dotctl --backup inject config/git
  dotctl --dry-run inject""",
)
@click.argument("packages", nargs=-1)
@click.option("--all", "all_packages", is_flag=True, help="Every package, ignoring platform.")
@click.option("--check", is_flag=True, help="Report variable resolution without writing.")
@click.option("--diff", is_flag=True, help="Show what would change, with secrets masked.")
@click.pass_obj
def inject(
    app: AppContext,
    packages: tuple[str, ...],
    all_packages: bool,
    check: bool,
    diff: bool,
) -> None:
    """Fill {{VARIABLE}} templates from the environment or the secret store."""
    from dotctl.services.inject import InjectService

    if check and diff:
        msg = "--check and --diff are mutually exclusive"
        raise click.UsageError(msg)

    svc = InjectService(app.repo)
    if check:
        app.emit(svc.check(packages, all_packages=all_packages))
    elif diff:
        app.emit(svc.diff(packages, all_packages=all_packages))
    else:
        app.emit(svc.inject(packages, all_packages=all_packages))
