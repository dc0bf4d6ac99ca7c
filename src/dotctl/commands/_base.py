"""Custom Click base classes with --examples support.

DotCommand accepts an ``examples`` parameter. Passing
``--examples`` prints them and exits, keeping ``--help`` short.
"""

from __future__ import annotations

from typing import Any

import click

from dotctl.domain.types import LinkMode


def _add_examples_option(cmd: click.Command, examples: str) -> None:
    """Attach an eager ``--examples`` flag to a Click command."""

    def show_examples(ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if not value:
            return
        click.echo(f"Examples for '{ctx.command_path}':\n")
        click.echo(examples)
        ctx.exit(0)

    cmd.params.append(
        click.Option(
            ["--examples"],
            is_flag=True,
            expose_value=False,
            is_eager=True,
            callback=show_examples,
            help="Show usage examples.",
        )
    )


class DotCommand(click.Command):
    """Click Command subclass that supports an ``--examples`` flag."""

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = examples
        if examples:
            _add_examples_option(self, examples)


def link_mode(force: bool, adopt: bool) -> LinkMode:
    """Map ``--force``/``--adopt`` to a LinkMode; both at once is a usage error."""
    if force and adopt:
        msg = "--force and --adopt are mutually exclusive"
        raise click.UsageError(msg)
    if force:
        return LinkMode.FORCE
    if adopt:
        return LinkMode.ADOPT
    return LinkMode.DEFAULT
