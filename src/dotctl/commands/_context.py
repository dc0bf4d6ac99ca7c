"""AppContext — shared Click context for all commands.

Created once by the root CLI group and passed to subcommands via
``@click.pass_obj``. Provides lazy Repository construction and
centralized result emission (stdout/stderr routing + exit codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from dotctl.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from dotctl.config.settings import DotSettings
    from dotctl.infrastructure.repository import Repository
    from dotctl.services.result import ServiceResult


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    The repository is built on first use so ``--help`` and ``--examples``
    never touch the filesystem.
    """

    def __init__(self, settings: DotSettings) -> None:
        self.settings = settings
        self._repo: Repository | None = None

        from dotctl.config.logging import configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

        if settings.verbose:
            from dotctl.services.telemetry import enable_telemetry

            enable_telemetry()

    @property
    def repo(self) -> Repository:
        """The repository (created lazily on first access)."""
        if self._repo is None:
            from dotctl.infrastructure.repository import Repository

            self._repo = Repository(self.settings)
        return self._repo

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success (``result.ok``): writes to stdout, returns normally.
          Warnings go to stderr so they don't pollute piped output.
        * Failure: writes to stderr, exits with code 1.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if not settings.json_output:
            for warning in result.warnings:
                click.echo(f"WARNING: {warning}", err=True)
        if result.ok:
            click.echo(output)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
