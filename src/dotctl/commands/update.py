"""Command: pull, re-link, re-inject, validate."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from dotctl.commands._base import DotCommand, link_mode

if TYPE_CHECKING:
    from dotctl.commands._context import AppContext


@click.command(
    cls=DotCommand,
    examples="""\
  dotctl update
  dotctl update --offline
  dotctl update --force --skip-inject
  dotctl --json update""",
)
@click.option("--force", is_flag=True, help="Replace conflicting files during install.")
@click.option("--offline", is_flag=True, help="Do not pull from the remote.")
@click.option("--skip-inject", is_flag=True, help="Skip the template injection stage.")
@click.pass_obj
def update(app: AppContext, force: bool, offline: bool, skip_inject: bool) -> None:
    """Sync the repository, then install, inject, and validate in order."""
    from dotctl.services.update import UpdateService

    svc = UpdateService(app.repo)
    app.emit(svc.update(mode=link_mode(force, False), offline=offline, skip_inject=skip_inject))
