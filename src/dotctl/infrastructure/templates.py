"""Shared Jinja2 template loading with per-repository override support."""

from __future__ import annotations

from pathlib import Path

from jinja2 import BaseLoader, ChoiceLoader, Environment, FileSystemLoader, PackageLoader


def build_template_environment(group: str, *, repo_root: Path | None = None) -> Environment:
    """Build a Jinja2 environment with user overrides before packaged defaults.

    User overrides are loaded from ``.dotctl/templates/`` inside the
    repository, either namespaced (``.dotctl/templates/config/``) or flat.
    """

    loaders: list[BaseLoader] = []
    if repo_root is not None:
        template_root = repo_root / ".dotctl" / "templates"
        loaders.append(FileSystemLoader([str(template_root / group), str(template_root)]))

    loaders.append(PackageLoader("dotctl", f"templates/{group}"))
    return Environment(loader=ChoiceLoader(loaders), keep_trailing_newline=True)
