"""Filesystem operations for package deployment.

INVARIANT: A target is *owned* when it is a symlink whose destination lies
inside the repository root. Only owned links are ever removed without an
explicit force/adopt request, and nothing here deletes recursively.

Pure matching rules live in :mod:`dotctl.domain.packages`. This module
handles actual file I/O: walking package trees, inspecting and creating
symlinks, atomic writes, and backups.
"""

from __future__ import annotations

import os
import re
import shutil
import tempfile
from pathlib import Path

from dotctl.domain.packages import IgnoreRules, parse_ignore_lines
from dotctl.domain.types import TargetState

IGNORE_FILENAME = ".stow-local-ignore"


# ---------------------------------------------------------------------------
# Package discovery
# ---------------------------------------------------------------------------


def read_ignore_file(package_dir: Path) -> tuple[re.Pattern[str], ...]:
    """Load a package's ``.stow-local-ignore`` (empty if absent).

    Raises :class:`re.error` for an invalid pattern.
    """
    path = package_dir / IGNORE_FILENAME
    if not path.is_file():
        return ()
    return parse_ignore_lines(path.read_text(encoding="utf-8"))


def walk_package_files(package_dir: Path, rules: IgnoreRules) -> list[str]:
    """List package-relative POSIX paths of every non-ignored file.

    Ignored directories are pruned. Symlinked directories are not followed.
    """
    results: list[str] = []
    for dirpath, dirnames, filenames in os.walk(package_dir):
        rel_dir = Path(dirpath).relative_to(package_dir)
        kept: list[str] = []
        for d in sorted(dirnames):
            rel = (rel_dir / d).as_posix()
            if not rules.matches(rel):
                kept.append(d)
        dirnames[:] = kept
        for name in filenames:
            rel = (rel_dir / name).as_posix()
            if rules.matches(rel):
                continue
            results.append(rel)
    return sorted(results)


# ---------------------------------------------------------------------------
# Link inspection
# ---------------------------------------------------------------------------


def link_destination(link: Path) -> Path:
    """Absolute, normalized destination of a symlink (without resolving it)."""
    dest = Path(os.readlink(link))
    if not dest.is_absolute():
        dest = link.parent / dest
    return Path(os.path.normpath(dest))


def is_within(path: Path, root: Path) -> bool:
    """True if *path* lies inside *root*, lexically or after resolving."""
    norm = Path(os.path.normpath(path))
    if norm.is_relative_to(Path(os.path.normpath(root))):
        return True
    return Path(os.path.realpath(path)).is_relative_to(Path(os.path.realpath(root)))


def same_file_path(a: Path, b: Path) -> bool:
    """True if two paths name the same location, lexically or resolved."""
    if os.path.normpath(a) == os.path.normpath(b):
        return True
    return os.path.realpath(a) == os.path.realpath(b)


def is_owned_link(target: Path, repo_root: Path) -> bool:
    """True if *target* is a symlink pointing into the repository."""
    return target.is_symlink() and is_within(link_destination(target), repo_root)


def inspect_target(target: Path, source: Path, repo_root: Path) -> TargetState:
    """Classify what currently occupies *target*."""
    if not os.path.lexists(target):
        return TargetState.MISSING
    if target.is_symlink():
        dest = link_destination(target)
        if same_file_path(dest, source):
            return TargetState.CORRECT
        if is_within(dest, repo_root):
            return TargetState.OWNED_OTHER
        return TargetState.FOREIGN_LINK
    # Reached through a symlinked parent directory that points into the repo.
    if same_file_path(target, source):
        return TargetState.CORRECT
    if target.is_dir():
        return TargetState.FOREIGN_DIR
    return TargetState.FOREIGN_FILE


def find_broken_owned_links(
    roots: list[Path],
    repo_root: Path,
    *,
    max_depth: int = 3,
) -> list[Path]:
    """Find owned symlinks under *roots* whose destination no longer exists.

    Walks at most *max_depth* directory levels below each root, never
    descends into the repository itself, and never follows symlinks.
    """
    found: set[Path] = set()
    repo_norm = Path(os.path.normpath(repo_root))
    for root in roots:
        if not root.is_dir():
            continue
        base_depth = len(root.parts)
        for dirpath, dirnames, _filenames in os.walk(root):
            current = Path(dirpath)
            depth = len(current.parts) - base_depth
            dirnames[:] = [
                d
                for d in dirnames
                if depth + 1 < max_depth and Path(os.path.normpath(current / d)) != repo_norm
            ]
            # Symlinks to directories show up in dirnames, not filenames.
            for name in os.listdir(current):
                path = current / name
                if not path.is_symlink():
                    continue
                if is_owned_link(path, repo_root) and not path.exists():
                    found.add(path)
    return sorted(found)


# ---------------------------------------------------------------------------
# Mutation
# ---------------------------------------------------------------------------


def create_link(source: Path, target: Path, *, relative: bool = False) -> None:
    """Create *target* as a symlink to *source*, creating parent directories."""
    target.parent.mkdir(parents=True, exist_ok=True)
    dest = os.path.relpath(source, target.parent) if relative else str(source)
    os.symlink(dest, target)


def remove_target(target: Path) -> None:
    """Remove a file or symlink. Directories are refused."""
    if target.is_dir() and not target.is_symlink():
        msg = f"Refusing to remove directory: {target}"
        raise IsADirectoryError(msg)
    target.unlink()


def backup_file(path: Path, backup_root: Path, relpath: str) -> Path:
    """Copy *path* (without following symlinks) to ``backup_root/relpath``."""
    dest = backup_root / relpath
    dest.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(path, dest, follow_symlinks=False)
    return dest


def atomic_write(path: Path, data: bytes, *, mode: int = 0o600) -> None:
    """Write *data* to *path* via a temp file in the same directory + rename.

    Readers see either the old file or the complete new one, never a
    partial write. The final file gets permission bits *mode*.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        os.chmod(tmp, mode)
        os.replace(tmp, path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


def existing_mode(path: Path, default: int) -> int:
    """Permission bits of an existing regular file, else *default*."""
    if path.is_symlink() or not path.is_file():
        return default
    return path.stat().st_mode & 0o7777
