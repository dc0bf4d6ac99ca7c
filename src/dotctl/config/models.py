"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, dotctl.toml only contains overrides.
A repository that follows the default layout (``home/``, ``config/*``,
``shell/*``, ``os/*``) needs no config file at all.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

# --- dotctl.toml sections ---


class PackagesConfig(BaseModel):
    """[packages] section.

    Attributes:
        default: Packages installed when none are named. Empty means
            platform auto-selection.
        top_level: Repository directories that are packages themselves.
        groups: Directories whose children are packages, mapped to the
            target root kind (``home`` or ``xdg``).
        targets: Per-package target directory overrides (``~`` expanded).
        ignore: Glob patterns never linked, matched against each path part.
    """

    model_config = {"frozen": True}

    default: list[str] = Field(default_factory=list)
    top_level: list[str] = Field(default_factory=lambda: ["home"])
    groups: dict[str, Literal["home", "xdg"]] = Field(
        default_factory=lambda: {"config": "xdg", "shell": "home", "os": "home"}
    )
    targets: dict[str, str] = Field(default_factory=dict)
    ignore: list[str] = Field(
        default_factory=lambda: [".git", ".DS_Store", "README*", ".stow-local-ignore"]
    )


class LinkConfig(BaseModel):
    """[link] section."""

    model_config = {"frozen": True}

    relative: bool = False
    backup: bool = False
    backup_dir: str = "~/.dotfiles-backup"


class TemplatesConfig(BaseModel):
    """[templates] section."""

    model_config = {"frozen": True}

    suffixes: list[str] = Field(default_factory=lambda: [".template", ".tmpl", ".tpl"])
    extra_dirs: list[str] = Field(default_factory=list)
    file_mode: int = 0o600
    backup_suffix: str = ".backup"


class SecretsConfig(BaseModel):
    """[secrets] section."""

    model_config = {"frozen": True}

    resolvers: list[Literal["env", "op"]] = Field(default_factory=lambda: ["env", "op"])
    op_binary: str = "op"
    op_vault: str = "Employee"
    op_field: str = "credential"
    op_account: str | None = None
    timeout: float = 15.0
    retries: int = 3
    retry_delay: float = 0.5


class DoctorConfig(BaseModel):
    """[doctor] section."""

    model_config = {"frozen": True}

    tools: dict[str, str] = Field(default_factory=lambda: {"git": "2.0.0"})
    syntax_suffixes: list[str] = Field(
        default_factory=lambda: [".toml", ".json", ".yml", ".yaml"]
    )
    interval_hours: float = 24.0
    state_file: str | None = None
    version_timeout: float = 5.0
    stale_link_depth: int = 3


class UpdateConfig(BaseModel):
    """[update] section."""

    model_config = {"frozen": True}

    remote: str = "origin"
    branch: str | None = None
    submodules: bool = True
    timeout: float = 30.0
    retries: int = 3
    retry_delay: float = 1.0


class DotConfig(BaseModel):
    """Root configuration composing all sections."""

    model_config = {"frozen": True}

    packages: PackagesConfig = Field(default_factory=PackagesConfig)
    link: LinkConfig = Field(default_factory=LinkConfig)
    templates: TemplatesConfig = Field(default_factory=TemplatesConfig)
    secrets: SecretsConfig = Field(default_factory=SecretsConfig)
    doctor: DoctorConfig = Field(default_factory=DoctorConfig)
    update: UpdateConfig = Field(default_factory=UpdateConfig)
