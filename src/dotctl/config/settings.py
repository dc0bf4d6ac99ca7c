"""Unified settings — CLI flags, env vars, and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs  — CLI flags passed by Click
  2. Env vars     — ``DOTCTL_*`` prefix
  3. TOML file    — ``dotctl.toml`` discovered via walk-up
  4. Code defaults — baked into the section models

Uses Pydantic Settings v2 with a custom :class:`TomlSettingsSource` that
reuses ``resolve_config`` discovery from
:mod:`dotctl.config.discovery`.
"""

from __future__ import annotations

import threading
import tomllib
from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from dotctl.config.discovery import resolve_config
from dotctl.config.models import (
    DoctorConfig,
    LinkConfig,
    PackagesConfig,
    SecretsConfig,
    TemplatesConfig,
    UpdateConfig,
)


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from a ``dotctl.toml`` file discovered via walk-up."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path and toml_path.is_file():
            raw = toml_path.read_text(encoding="utf-8")
            try:
                self._data = tomllib.loads(raw)
            except tomllib.TOMLDecodeError as exc:
                import click

                msg = f"Invalid TOML in {toml_path}: {exc}"
                raise click.ClickException(msg) from exc

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        """Return ``(value, field_name, value_is_complex)``."""
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        """Return the full TOML data dict for Pydantic to merge."""
        return self._data


# Thread-local storage for TOML path during construction.
_tls = threading.local()


class DotSettings(BaseSettings):
    """Unified settings for the entire dotctl CLI.

    Merges CLI flags, environment variables, TOML config sections,
    and code-baked defaults into a single frozen object.  Stored on the
    :class:`~dotctl.commands._context.AppContext` at the CLI root level.

    Attributes:
        repo_root: Resolved dotfiles repository (parent of ``dotctl.toml``,
            ``--repo``, or CWD if neither).
        config_path: The config file in effect, or None.
        target: Override for the home directory links are created under.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "DOTCTL_",
        "env_nested_delimiter": "__",
    }

    # --- Resolved paths (not in TOML — derived from config location) ---
    repo_root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None
    target: Path | None = None

    # --- CLI flags ---
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False
    backup: bool = False
    dry_run: bool = False

    # --- TOML sections ---
    packages: PackagesConfig = Field(default_factory=PackagesConfig)
    link: LinkConfig = Field(default_factory=LinkConfig)
    templates: TemplatesConfig = Field(default_factory=TemplatesConfig)
    secrets: SecretsConfig = Field(default_factory=SecretsConfig)
    doctor: DoctorConfig = Field(default_factory=DoctorConfig)
    update: UpdateConfig = Field(default_factory=UpdateConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert TOML source between env vars and defaults."""
        toml_path = getattr(_tls, "toml_path", None)
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, toml_path),
        )

    @property
    def backup_enabled(self) -> bool:
        """``--backup`` flag or ``[link] backup = true``."""
        return self.backup or self.link.backup

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        repo_root: Path | None = None,
        **cli_flags: Any,
    ) -> DotSettings:
        """Construct settings from CLI invocation.

        Discovers ``dotctl.toml`` via walk-up from *repo_root* (or an explicit
        *config_path*, which must exist), resolves the repository root from the
        config file's parent directory, and merges CLI flags as the
        highest-priority overrides.
        """
        toml_path = resolve_config(config_path, repo_root)

        resolved_root = repo_root
        if resolved_root is None:
            resolved_root = toml_path.parent if toml_path else Path.cwd()

        _tls.toml_path = toml_path
        try:
            return cls(
                repo_root=resolved_root,
                config_path=toml_path,
                **cli_flags,
            )
        finally:
            _tls.toml_path = None
