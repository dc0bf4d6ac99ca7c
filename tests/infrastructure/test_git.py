"""Tests for the git wrapper (subprocess mocked; real git only where noted)."""

import shutil
import subprocess
from pathlib import Path
from typing import Any

import pytest

from dotctl.infrastructure import git as git_module
from dotctl.infrastructure.git import GitError, GitRepo, TransientGitError


def _fake_run(*responses: tuple[int, str, str]) -> tuple[list[list[str]], Any]:
    calls: list[list[str]] = []
    queue = list(responses)

    def run(cmd: list[str], **kwargs: Any) -> subprocess.CompletedProcess[str]:
        calls.append(cmd)
        code, out, err = queue.pop(0) if len(queue) > 1 else queue[0]
        return subprocess.CompletedProcess(cmd, code, out, err)

    return calls, run


class TestGitRepo:
    def test_is_repo(self, tmp_path: Path) -> None:
        assert not GitRepo(tmp_path).is_repo()
        (tmp_path / ".git").mkdir()
        assert GitRepo(tmp_path).is_repo()

    def test_pull_retries_transient(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        calls, run = _fake_run(
            (1, "", "fatal: unable to access 'https://example.com/': Could not resolve host"),
            (0, "Already up to date.\n", ""),
        )
        monkeypatch.setattr(git_module.subprocess, "run", run)
        GitRepo(tmp_path).pull("origin", "main", attempts=3, delay=0)
        assert calls == [["git", "pull", "--ff-only", "origin", "main"]] * 2

    def test_pull_permanent_failure(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        calls, run = _fake_run((128, "", "fatal: Not possible to fast-forward, aborting."))
        monkeypatch.setattr(git_module.subprocess, "run", run)
        with pytest.raises(GitError) as info:
            GitRepo(tmp_path).pull(attempts=3, delay=0)
        assert not isinstance(info.value, TransientGitError)
        assert info.value.command == "git pull --ff-only origin"
        assert len(calls) == 1

    def test_git_missing(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        def run(cmd: list[str], **kwargs: Any) -> None:
            raise FileNotFoundError("git")

        monkeypatch.setattr(git_module.subprocess, "run", run)
        with pytest.raises(GitError, match="not installed"):
            GitRepo(tmp_path).head()

    @pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
    def test_dirty_detection_with_real_git(self, tmp_path: Path) -> None:
        subprocess.run(["git", "init", "-q", str(tmp_path)], check=True)
        repo = GitRepo(tmp_path)
        assert not repo.is_dirty()
        (tmp_path / "new").write_text("x")
        assert repo.is_dirty()
