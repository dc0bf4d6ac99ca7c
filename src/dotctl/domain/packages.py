"""Packages, link pairs, ignore rules, and package selection.

A package is a directory in the dotfiles repository whose file tree mirrors
the layout it should have under its target root. Each file becomes one
:class:`LinkPair` (source file → target link); template files become
:class:`TemplateFile` entries instead and are rendered, never linked.

Everything here is pure: discovery of the files on disk lives in
:mod:`dotctl.infrastructure.filesystem`.
"""

from __future__ import annotations

import fnmatch
import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from dotctl.domain.templates import strip_template_suffix
from dotctl.domain.types import TargetKind

# Map platform.system().lower() to the os/<name> package for that platform.
PLATFORM_DIRS: dict[str, str] = {
    "darwin": "macos",
    "linux": "linux",
}

SHARED_SHELL = "shared"


class UnknownPackageError(ValueError):
    """Raised when a requested package name is not in the repository."""

    def __init__(self, names: Sequence[str], available: Sequence[str]) -> None:
        self.names = list(names)
        self.available = list(available)
        super().__init__(f"Unknown package(s): {', '.join(self.names)}")


# ---------------------------------------------------------------------------
# Value types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LinkPair:
    """One source file and the symlink that should point at it."""

    package: str
    relpath: str
    source: Path
    target: Path


@dataclass(frozen=True)
class TemplateFile:
    """A template inside a package and the concrete file it renders to."""

    package: str
    source: Path
    output: Path


@dataclass(frozen=True)
class Package:
    """A named directory of files deployed under one target root."""

    name: str
    source: Path
    target_root: Path
    kind: TargetKind
    files: tuple[str, ...] = ()
    templates: tuple[str, ...] = ()

    @property
    def pairs(self) -> list[LinkPair]:
        return [
            LinkPair(
                package=self.name,
                relpath=rel,
                source=self.source / rel,
                target=self.target_root / rel,
            )
            for rel in self.files
        ]

    def template_files(self, suffixes: Sequence[str]) -> list[TemplateFile]:
        result: list[TemplateFile] = []
        for rel in self.templates:
            stripped = strip_template_suffix(rel, suffixes)
            if stripped is None:
                continue
            result.append(
                TemplateFile(
                    package=self.name,
                    source=self.source / rel,
                    output=self.target_root / stripped,
                )
            )
        return result

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "source": str(self.source),
            "target_root": str(self.target_root),
            "kind": str(self.kind),
            "files": len(self.files),
            "templates": len(self.templates),
        }


# ---------------------------------------------------------------------------
# Ignore rules
# ---------------------------------------------------------------------------


def parse_ignore_lines(text: str) -> tuple[re.Pattern[str], ...]:
    """Compile a ``.stow-local-ignore`` file into regex patterns.

    Blank lines and ``#`` comments are skipped. Raises :class:`re.error`
    for an invalid pattern.
    """
    patterns: list[re.Pattern[str]] = []
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        patterns.append(re.compile(stripped))
    return tuple(patterns)


@dataclass(frozen=True)
class IgnoreRules:
    """Glob patterns (matched per path part) plus Stow-style regexes.

    A regex containing ``/`` is matched against the package-relative path
    with a leading slash; any other regex is matched against each path part.
    """

    globs: tuple[str, ...] = ()
    regexes: tuple[re.Pattern[str], ...] = field(default=())

    def matches(self, relpath: str) -> bool:
        parts = relpath.split("/")
        for part in parts:
            if any(fnmatch.fnmatchcase(part, g) for g in self.globs):
                return True
        for pattern in self.regexes:
            if "/" in pattern.pattern:
                if pattern.fullmatch("/" + relpath):
                    return True
            elif any(pattern.fullmatch(part) for part in parts):
                return True
        return False


# ---------------------------------------------------------------------------
# Target resolution
# ---------------------------------------------------------------------------


def package_kind(name: str, groups: Mapping[str, str]) -> TargetKind:
    """Target root kind for a package name (``config/git`` → ``xdg``)."""
    group, sep, _leaf = name.partition("/")
    if sep and group in groups:
        return TargetKind(groups[group])
    return TargetKind.HOME


def package_target(
    name: str,
    kind: TargetKind,
    *,
    home: Path,
    xdg_config: Path,
    overrides: Mapping[str, str],
) -> Path:
    """Resolve the directory a package's files are linked into."""
    override = overrides.get(name)
    if override:
        if override == "~" or override.startswith("~/"):
            return home / override[2:]
        path = Path(override)
        return path if path.is_absolute() else home / path
    if kind is TargetKind.XDG:
        return xdg_config / name.rsplit("/", 1)[-1]
    return home


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------


def platform_packages(
    available: Iterable[str],
    *,
    system: str,
    shell: str | None,
) -> list[str]:
    """Packages that apply to this machine.

    Every package outside ``os/`` and ``shell/`` applies. Of ``os/*`` only
    the current platform applies; of ``shell/*`` only ``shared`` and the
    login shell.
    """
    os_name = PLATFORM_DIRS.get(system.lower())
    shell_name = Path(shell).name if shell else None
    selected: list[str] = []
    for name in available:
        group, _, leaf = name.partition("/")
        if group == "os" and leaf:
            if leaf == os_name:
                selected.append(name)
        elif group == "shell" and leaf:
            if leaf in (SHARED_SHELL, shell_name):
                selected.append(name)
        else:
            selected.append(name)
    return selected


def select_packages(
    available: Mapping[str, Package],
    names: Sequence[str] = (),
    *,
    all_packages: bool = False,
    defaults: Sequence[str] = (),
    system: str = "",
    shell: str | None = None,
) -> list[Package]:
    """Choose packages: explicit names, ``--all``, config defaults, or platform.

    Raises:
        UnknownPackageError: when an explicit or default name is not available.
    """
    if all_packages:
        return [available[n] for n in sorted(available)]

    wanted = [n.strip("/") for n in names] or list(defaults)
    if wanted:
        unknown = [n for n in wanted if n not in available]
        if unknown:
            raise UnknownPackageError(unknown, sorted(available))
        seen: dict[str, Package] = {}
        for n in wanted:
            seen.setdefault(n, available[n])
        return list(seen.values())

    return [available[n] for n in platform_packages(sorted(available), system=system, shell=shell)]
