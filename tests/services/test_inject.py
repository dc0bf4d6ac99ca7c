"""Tests for InjectService — all-or-nothing rendering of {{NAME}} templates."""

import json
from collections.abc import Callable
from pathlib import Path

import pytest

from dotctl.config.settings import DotSettings
from dotctl.domain.types import ErrorKind
from dotctl.infrastructure.repository import Repository
from dotctl.infrastructure.secrets import ChainResolver, EnvResolver, SecretUnavailable
from dotctl.services.inject import InjectService

RENDERED = "[user]\n\tname = Ada Lovelace\n\temail = ada@example.com\n"


class _Down:
    name = "op"

    def resolve(self, key: str) -> str:
        raise SecretUnavailable(key, "not signed in")


@pytest.fixture
def repo_with(
    make_settings: Callable[..., DotSettings],
) -> Callable[..., Repository]:
    """Repository whose resolver chain is built from the given resolvers."""

    def _make(*resolvers: object, **overrides: object) -> Repository:
        return Repository(
            make_settings(**overrides),
            resolver=ChainResolver(list(resolvers)),  # type: ignore[arg-type]
            environ={"SHELL": "/bin/zsh"},
        )

    return _make


class TestInject:
    def test_writes_rendered_output(self, repo: Repository, dot_home: Path) -> None:
        result = InjectService(repo).inject(["home"])
        assert result.ok, result.error
        output = dot_home / ".gitconfig"
        assert output.read_text() == RENDERED
        assert output.stat().st_mode & 0o777 == 0o600
        assert result.data["changed"] == 1
        [entry] = result.data["templates"]
        assert entry["action"] == "written"
        assert entry["variables"] == ["GIT_EMAIL", "GIT_NAME"]

    def test_rerun_is_byte_identical(self, repo: Repository, dot_home: Path) -> None:
        svc = InjectService(repo)
        svc.inject(["home"])
        first = (dot_home / ".gitconfig").read_bytes()
        result = svc.inject(["home"])
        assert result.data["templates"][0]["action"] == "unchanged"
        assert (dot_home / ".gitconfig").read_bytes() == first

    def test_missing_variable_writes_nothing(
        self, repo_with: Callable[..., Repository], dot_home: Path
    ) -> None:
        output = dot_home / ".gitconfig"
        output.write_text("previous\n")
        repo = repo_with(EnvResolver({"GIT_NAME": "Ada"}))
        result = InjectService(repo).inject(["home"])
        assert not result.ok
        assert result.error is not None
        assert result.error.code == ErrorKind.MISSING_VARIABLE
        assert result.error.detail["missing"] == ["GIT_EMAIL"]
        assert output.read_text() == "previous\n"

    def test_missing_variable_creates_no_file(
        self, repo_with: Callable[..., Repository], dot_home: Path
    ) -> None:
        result = InjectService(repo_with(EnvResolver({}))).inject(["home"])
        assert not result.ok
        assert not (dot_home / ".gitconfig").exists()

    def test_store_unavailable(
        self, repo_with: Callable[..., Repository], dot_home: Path
    ) -> None:
        result = InjectService(repo_with(EnvResolver({}), _Down())).inject(["home"])
        assert not result.ok
        assert result.error is not None
        assert result.error.code == ErrorKind.EXTERNAL_UNAVAILABLE
        assert result.error.detail["unavailable"] == ["GIT_EMAIL", "GIT_NAME"]
        assert any("not signed in" in w for w in result.warnings)
        assert not (dot_home / ".gitconfig").exists()

    def test_backup_and_mode_preserved(
        self, make_repo: Callable[..., Repository], dot_home: Path
    ) -> None:
        output = dot_home / ".gitconfig"
        output.write_text("old\n")
        output.chmod(0o644)
        result = InjectService(make_repo(backup=True)).inject(["home"])
        assert result.ok, result.error
        assert (dot_home / ".gitconfig.backup").read_text() == "old\n"
        assert output.read_text() == RENDERED
        assert output.stat().st_mode & 0o777 == 0o644

    def test_dry_run(self, make_repo: Callable[..., Repository], dot_home: Path) -> None:
        result = InjectService(make_repo(dry_run=True)).inject(["home"])
        assert result.ok
        assert result.data["templates"][0]["action"] == "would_write"
        assert not (dot_home / ".gitconfig").exists()

    def test_crlf_template_preserved(
        self, repo: Repository, dot_repo_root: Path, dot_home: Path
    ) -> None:
        (dot_repo_root / "home" / ".gitconfig.template").write_bytes(b"name={{GIT_NAME}}\r\n")
        repo.refresh()
        assert InjectService(repo).inject(["home"]).ok
        assert (dot_home / ".gitconfig").read_bytes() == b"name=Ada Lovelace\r\n"

    def test_no_templates_warns(self, repo: Repository) -> None:
        result = InjectService(repo).inject(["config/git"])
        assert result.ok
        assert "No templates found" in result.warnings

    def test_secret_values_never_in_result(
        self, repo_with: Callable[..., Repository]
    ) -> None:
        repo = repo_with(EnvResolver({"GIT_NAME": "hunter2-name", "GIT_EMAIL": "hunter2@x"}))
        svc = InjectService(repo)
        for result in (svc.inject(["home"]), svc.check(["home"]), svc.diff(["home"])):
            assert "hunter2" not in result.model_dump_json()


class TestCheckAndDiff:
    def test_check_ready(self, repo: Repository, dot_home: Path) -> None:
        result = InjectService(repo).check(["home"])
        assert result.ok
        assert result.op == "inject_check"
        [entry] = result.data["templates"]
        assert entry["ready"] is True
        assert {v["status"] for v in entry["variables"]} == {"resolved"}
        assert not (dot_home / ".gitconfig").exists()

    def test_check_reports_missing(self, repo_with: Callable[..., Repository]) -> None:
        result = InjectService(repo_with(EnvResolver({"GIT_NAME": "Ada"}))).check(["home"])
        assert not result.ok
        assert result.error is not None
        assert result.error.code == ErrorKind.MISSING_VARIABLE
        statuses = {v["name"]: v["status"] for v in result.data["templates"][0]["variables"]}
        assert statuses == {"GIT_EMAIL": "missing", "GIT_NAME": "resolved"}

    def test_diff_masks_values(self, repo: Repository, dot_home: Path) -> None:
        (dot_home / ".gitconfig").write_text("[user]\n\tname = Someone Else\n")
        result = InjectService(repo).diff(["home"])
        assert result.ok
        assert result.data["changed"] == 1
        patch = result.data["templates"][0]["diff"]
        assert "-\tname = Someone Else" in patch
        assert "+\tname = ****" in patch
        assert "Ada Lovelace" not in json.dumps(result.data)
        assert (dot_home / ".gitconfig").read_text() == "[user]\n\tname = Someone Else\n"

    def test_diff_unchanged_after_inject(self, repo: Repository) -> None:
        svc = InjectService(repo)
        svc.inject(["home"])
        result = svc.diff(["home"])
        assert result.data["changed"] == 0
        assert result.data["templates"][0]["diff"] == ""
