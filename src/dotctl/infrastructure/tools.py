"""Probe external tools on PATH for presence and version."""

from __future__ import annotations

import re
import shutil
import subprocess
from dataclasses import dataclass

_VERSION_PATTERN = re.compile(r"(\d+)\.(\d+)(?:\.(\d+))?")


@dataclass(frozen=True)
class ToolProbe:
    """What ``<tool> --version`` told us."""

    name: str
    path: str | None
    version: str | None

    @property
    def found(self) -> bool:
        return self.path is not None


def version_tuple(text: str) -> tuple[int, ...] | None:
    """Extract the first ``X.Y[.Z]`` version from *text*.

    Examples:
        >>> version_tuple("git version 2.39.3 (Apple Git-145)")
        (2, 39, 3)
        >>> version_tuple("1.2")
        (1, 2, 0)
        >>> version_tuple("unknown") is None
        True
    """
    match = _VERSION_PATTERN.search(text)
    if match is None:
        return None
    major, minor, patch = match.groups()
    return (int(major), int(minor), int(patch or 0))


def probe_version(name: str, *, timeout: float = 5.0) -> ToolProbe:
    """Locate *name* on PATH and read its ``--version`` output.

    A tool that is found but whose version cannot be determined (non-zero
    exit, timeout, unparseable output) is reported with ``version=None``.
    """
    path = shutil.which(name)
    if path is None:
        return ToolProbe(name=name, path=None, version=None)
    try:
        proc = subprocess.run(
            [path, "--version"],
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except (OSError, subprocess.TimeoutExpired):
        return ToolProbe(name=name, path=path, version=None)
    parsed = version_tuple(proc.stdout or proc.stderr)
    version = ".".join(str(p) for p in parsed) if parsed else None
    return ToolProbe(name=name, path=path, version=version)
