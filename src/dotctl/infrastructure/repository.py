"""Repository — the dotfiles tree and the machine it deploys into.

The Repository is the single dependency injected into every service. It
owns package discovery, target-root resolution (home vs XDG config), the
secret resolver chain, and the git work tree. Everything is derived from
:class:`DotSettings`; nothing is persisted.
"""

from __future__ import annotations

import logging
import os
import platform
import re
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from dotctl.domain.packages import (
    IgnoreRules,
    Package,
    TemplateFile,
    package_kind,
    package_target,
    select_packages,
)
from dotctl.domain.templates import strip_template_suffix
from dotctl.infrastructure.filesystem import read_ignore_file, walk_package_files
from dotctl.infrastructure.git import GitRepo
from dotctl.infrastructure.secrets import ChainResolver, build_resolver
from dotctl.infrastructure.state import default_state_file

if TYPE_CHECKING:
    from dotctl.config.settings import DotSettings

logger = logging.getLogger(__name__)


class Repository:
    """A dotfiles repository bound to a target home directory.

    Constructed lazily by :class:`~dotctl.commands._context.AppContext`
    and handed to services through :class:`BaseService`.
    """

    def __init__(
        self,
        settings: DotSettings,
        *,
        resolver: ChainResolver | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._settings = settings
        self._environ = os.environ if environ is None else environ
        self._resolver = resolver
        self._packages: dict[str, Package] | None = None
        self._git: GitRepo | None = None
        self.warnings: list[str] = []

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    @property
    def settings(self) -> DotSettings:
        return self._settings

    @property
    def root(self) -> Path:
        """The repository root directory."""
        return Path(os.path.abspath(self._settings.repo_root))

    @property
    def home(self) -> Path:
        """Target root for ``home`` packages (``--target`` or the user's home)."""
        if self._settings.target is not None:
            return Path(os.path.abspath(self._settings.target.expanduser()))
        return Path.home()

    @property
    def xdg_config(self) -> Path:
        """Target root for ``xdg`` packages.

        With ``--target`` this is ``<target>/.config`` so a scratch target
        never escapes into the real XDG directory.
        """
        if self._settings.target is None:
            configured = self._environ.get("XDG_CONFIG_HOME")
            if configured:
                return Path(configured)
        return self.home / ".config"

    @property
    def state_file(self) -> Path:
        """Where ``doctor`` records its last run."""
        configured = self._settings.doctor.state_file
        if configured:
            return self._expand(configured)
        state_home = None if self._settings.target else self._environ.get("XDG_STATE_HOME")
        return default_state_file(self.home, state_home)

    @property
    def backup_root(self) -> Path:
        """Base directory for conflict backups (``[link] backup_dir``)."""
        return self._expand(self._settings.link.backup_dir)

    def _expand(self, raw: str) -> Path:
        """Expand ``~`` against :attr:`home`, so ``--target`` is honoured."""
        if raw == "~":
            return self.home
        if raw.startswith("~/"):
            return self.home / raw[2:]
        path = Path(raw)
        return path if path.is_absolute() else self.root / path

    # ------------------------------------------------------------------
    # Collaborators
    # ------------------------------------------------------------------

    @property
    def resolver(self) -> ChainResolver:
        """The secret resolver chain (built on first access)."""
        if self._resolver is None:
            self._resolver = build_resolver(self._settings.secrets, self._environ)
        return self._resolver

    @property
    def git(self) -> GitRepo:
        if self._git is None:
            self._git = GitRepo(self.root, timeout=self._settings.update.timeout)
        return self._git

    # ------------------------------------------------------------------
    # Packages
    # ------------------------------------------------------------------

    def packages(self) -> dict[str, Package]:
        """All packages in the repository, keyed by name (cached)."""
        if self._packages is None:
            self._packages = self._discover()
        return self._packages

    def refresh(self) -> None:
        """Forget cached discovery (after the tree changed, e.g. a pull)."""
        self._packages = None
        self.warnings = []

    def select(self, names: Sequence[str] = (), *, all_packages: bool = False) -> list[Package]:
        """Resolve a package selection for this machine.

        Raises:
            UnknownPackageError: when a named package does not exist.
        """
        return select_packages(
            self.packages(),
            names,
            all_packages=all_packages,
            defaults=self._settings.packages.default,
            system=platform.system(),
            shell=self._environ.get("SHELL"),
        )

    def templates(self, packages: Sequence[Package]) -> list[TemplateFile]:
        """Template files of *packages* plus those under ``[templates] extra_dirs``."""
        suffixes = self._settings.templates.suffixes
        result: list[TemplateFile] = []
        for package in packages:
            result.extend(package.template_files(suffixes))
        for raw in self._settings.templates.extra_dirs:
            directory = self._expand(raw)
            if not directory.is_dir():
                logger.debug("Template dir %s does not exist", directory)
                continue
            for rel in walk_package_files(directory, self._base_rules()):
                stripped = strip_template_suffix(rel, suffixes)
                if stripped is None:
                    continue
                result.append(
                    TemplateFile(package=raw, source=directory / rel, output=directory / stripped)
                )
        return result

    def _base_rules(self) -> IgnoreRules:
        return IgnoreRules(globs=tuple(self._settings.packages.ignore))

    def _discover(self) -> dict[str, Package]:
        config = self._settings.packages
        root = self.root
        found: dict[str, Package] = {}

        candidates: list[tuple[str, Path]] = []
        for name in config.top_level:
            candidates.append((name, root / name))
        for group in config.groups:
            group_dir = root / group
            if not group_dir.is_dir():
                continue
            for child in sorted(group_dir.iterdir()):
                if child.is_dir() and not child.is_symlink():
                    candidates.append((f"{group}/{child.name}", child))

        for name, directory in candidates:
            if not directory.is_dir():
                continue
            package = self._load_package(name, directory)
            if package is not None:
                found[name] = package

        logger.debug("Discovered %d package(s) in %s", len(found), root)
        return dict(sorted(found.items()))

    def _load_package(self, name: str, directory: Path) -> Package | None:
        config = self._settings.packages
        try:
            regexes = read_ignore_file(directory)
        except re.error as exc:
            message = f"Invalid pattern in {name}/.stow-local-ignore ignored: {exc}"
            logger.warning(message)
            self.warnings.append(message)
            regexes = ()
        rules = IgnoreRules(globs=tuple(config.ignore), regexes=regexes)

        suffixes = self._settings.templates.suffixes
        files: list[str] = []
        templates: list[str] = []
        for rel in walk_package_files(directory, rules):
            if strip_template_suffix(rel, suffixes) is None:
                files.append(rel)
            else:
                templates.append(rel)
        if not files and not templates:
            return None

        kind = package_kind(name, config.groups)
        target_root = package_target(
            name,
            kind,
            home=self.home,
            xdg_config=self.xdg_config,
            overrides=config.targets,
        )
        return Package(
            name=name,
            source=directory,
            target_root=target_root,
            kind=kind,
            files=tuple(files),
            templates=tuple(templates),
        )
