"""Subcommand modules for dotctl.

Provides register_commands() which uses deferred imports to keep
``dotctl --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register every standalone command on the root CLI group."""
    from dotctl.commands.doctor import doctor
    from dotctl.commands.init_cmd import init_cmd
    from dotctl.commands.inject import inject
    from dotctl.commands.install import install
    from dotctl.commands.list_cmd import list_cmd
    from dotctl.commands.repair import repair
    from dotctl.commands.status import status
    from dotctl.commands.uninstall import uninstall
    from dotctl.commands.update import update

    cli.add_command(install)
    cli.add_command(uninstall)
    cli.add_command(status)
    cli.add_command(list_cmd)
    cli.add_command(inject)
    cli.add_command(doctor)
    cli.add_command(repair)
    cli.add_command(update)
    cli.add_command(init_cmd)
