"""Tests for install, uninstall, status, list, and repair commands."""

import json
import os
from collections.abc import Callable
from pathlib import Path

from click.testing import Result

Invoke = Callable[..., Result]


class TestInstallCommand:
    def test_install_json(self, cli_invoke: Invoke, dot_home: Path) -> None:
        result = cli_invoke("--json", "install", "home")
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["ok"] is True
        assert data["op"] == "install"
        assert data["data"]["counts"] == {"linked": 1}
        assert (dot_home / ".a").is_symlink()

    def test_install_human(self, cli_invoke: Invoke) -> None:
        result = cli_invoke("install", "--all")
        assert result.exit_code == 0, result.output
        assert "OK" in result.stdout
        assert "linked" in result.stdout

    def test_conflict_exits_nonzero(self, cli_invoke: Invoke, dot_home: Path) -> None:
        (dot_home / ".a").write_text("mine\n")
        result = cli_invoke("--json", "install", "home")
        assert result.exit_code == 1
        assert result.stdout == ""
        data = json.loads(result.stderr)
        assert data["error"]["code"] == "CONFLICT"
        assert (dot_home / ".a").read_text() == "mine\n"

    def test_adopt(self, cli_invoke: Invoke, cli_repo: Path, dot_home: Path) -> None:
        (dot_home / ".a").write_text("mine\n")
        result = cli_invoke("-q", "install", "home", "--adopt")
        assert result.exit_code == 0, result.output
        assert result.stdout.strip() == "OK: install"
        assert (cli_repo / "home" / ".a").read_text() == "mine\n"

    def test_force_and_adopt_are_exclusive(self, cli_invoke: Invoke) -> None:
        result = cli_invoke("install", "--force", "--adopt")
        assert result.exit_code == 2
        assert "mutually exclusive" in result.output

    def test_unknown_package(self, cli_invoke: Invoke) -> None:
        result = cli_invoke("-q", "install", "nope")
        assert result.exit_code == 1
        assert "Unknown package(s): nope" in result.stderr

    def test_dry_run(self, cli_invoke: Invoke, dot_home: Path) -> None:
        result = cli_invoke("--dry-run", "install", "home")
        assert result.exit_code == 0, result.output
        assert "dry run" in result.stdout
        assert not os.path.lexists(dot_home / ".a")


class TestOtherLinkCommands:
    def test_uninstall(self, cli_invoke: Invoke, dot_home: Path) -> None:
        cli_invoke("install", "home")
        result = cli_invoke("--json", "uninstall", "home")
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["data"]["counts"] == {"removed": 1}
        assert not os.path.lexists(dot_home / ".a")

    def test_status(self, cli_invoke: Invoke) -> None:
        cli_invoke("install", "home")
        result = cli_invoke("--json", "status", "home")
        assert result.exit_code == 0, result.output
        [package] = json.loads(result.stdout)["data"]["packages"]
        assert package["installed"] is True

    def test_list(self, cli_invoke: Invoke) -> None:
        result = cli_invoke("--json", "list")
        assert result.exit_code == 0, result.output
        names = [p["name"] for p in json.loads(result.stdout)["data"]["packages"]]
        assert "config/git" in names

    def test_repair(self, cli_invoke: Invoke, cli_repo: Path, dot_home: Path) -> None:
        os.symlink(cli_repo / "home" / ".gone", dot_home / ".stale")
        result = cli_invoke("--json", "repair", "home")
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)["data"]
        assert data["removed"] == [str(dot_home / ".stale")]
        assert (dot_home / ".a").is_symlink()
