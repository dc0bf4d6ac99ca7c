"""Thin subprocess wrapper around the git CLI for repository sync."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from dotctl.infrastructure.retry import retry

logger = logging.getLogger(__name__)


class GitError(Exception):
    """A git command failed, timed out, or git is not installed."""

    def __init__(self, args: list[str], message: str) -> None:
        self.command = " ".join(["git", *args])
        super().__init__(f"{self.command}: {message}")


class TransientGitError(GitError):
    """A git failure worth retrying (network, timeout)."""


_TRANSIENT_MARKERS = (
    "could not resolve host",
    "connection timed out",
    "connection refused",
    "connection reset",
    "unable to access",
    "network is unreachable",
    "the remote end hung up",
)


class GitRepo:
    """Git operations rooted at the dotfiles repository."""

    def __init__(self, root: Path, *, timeout: float = 30.0) -> None:
        self.root = root
        self.timeout = timeout

    def _run(self, *args: str) -> str:
        """Run ``git <args>`` in the repository and return stdout."""
        cmd = list(args)
        try:
            proc = subprocess.run(
                ["git", *cmd],
                cwd=self.root,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError as exc:
            raise GitError(cmd, "git is not installed") from exc
        except subprocess.TimeoutExpired as exc:
            raise TransientGitError(cmd, f"timed out after {self.timeout}s") from exc
        if proc.returncode != 0:
            stderr = proc.stderr.strip() or f"exit status {proc.returncode}"
            if any(marker in stderr.lower() for marker in _TRANSIENT_MARKERS):
                raise TransientGitError(cmd, stderr)
            raise GitError(cmd, stderr)
        return proc.stdout

    def is_repo(self) -> bool:
        """True if the root is a git work tree (``.git`` dir or file)."""
        return (self.root / ".git").exists()

    def is_dirty(self) -> bool:
        """True if the work tree has uncommitted changes."""
        return bool(self._run("status", "--porcelain").strip())

    def head(self) -> str:
        """Current commit hash."""
        return self._run("rev-parse", "HEAD").strip()

    def pull(
        self,
        remote: str = "origin",
        branch: str | None = None,
        *,
        attempts: int = 3,
        delay: float = 1.0,
    ) -> str:
        """Fast-forward pull, retrying transient network failures."""
        args = ["pull", "--ff-only", remote]
        if branch:
            args.append(branch)
        run = retry(attempts=attempts, delay=delay, exceptions=(TransientGitError,))(self._run)
        return run(*args)

    def update_submodules(self, *, attempts: int = 3, delay: float = 1.0) -> str:
        """``git submodule update --init --recursive``."""
        run = retry(attempts=attempts, delay=delay, exceptions=(TransientGitError,))(self._run)
        return run("submodule", "update", "--init", "--recursive")
