"""Locating the ``dotctl.toml`` in effect.

An explicit ``--config`` path wins, then ``DOTCTL_CONFIG``, then a walk-up
from the repository (or working) directory, the way git finds ``.git/``.
"""

from __future__ import annotations

import os
from pathlib import Path

import click

CONFIG_FILENAME = "dotctl.toml"
CONFIG_ENV_VAR = "DOTCTL_CONFIG"


def find_config(start: Path | None = None) -> Path | None:
    """Walk up from *start* (default: cwd) looking for dotctl.toml."""
    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            return None
        current = parent


def resolve_config(explicit: str | Path | None = None, start: Path | None = None) -> Path | None:
    """The config file to load, or None when there is none.

    A file named with ``--config`` or ``DOTCTL_CONFIG`` must exist; a typo
    there raises :class:`click.ClickException` instead of silently falling
    back to whatever directory the command runs in.
    """
    named = explicit or os.environ.get(CONFIG_ENV_VAR)
    if named:
        path = Path(named).expanduser()
        if not path.is_file():
            raise click.ClickException(f"Config file not found: {path}")
        return path
    return find_config(start)
