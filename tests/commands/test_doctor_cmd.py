"""Tests for the doctor command."""

import json
from collections.abc import Callable
from pathlib import Path

from click.testing import Result

Invoke = Callable[..., Result]


class TestDoctorCommand:
    def test_healthy_after_install(self, cli_invoke: Invoke) -> None:
        assert cli_invoke("install").exit_code == 0
        assert cli_invoke("inject").exit_code == 0
        result = cli_invoke("--json", "doctor")
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)["data"]
        assert data["healthy"] is True
        assert data["counts"]["fail"] == 0

    def test_broken_symlink_reported(self, cli_invoke: Invoke, dot_home: Path) -> None:
        cli_invoke("install", "home")
        (dot_home / ".a").unlink()
        result = cli_invoke("doctor", "home")
        assert result.exit_code == 0, result.output
        assert "Broken symlink" in result.stdout

    def test_failure_exits_nonzero(self, cli_invoke: Invoke, cli_repo: Path) -> None:
        (cli_repo / "config" / "starship" / "starship.toml").write_text("= broken\n")
        result = cli_invoke("-q", "doctor", "config/starship")
        assert result.exit_code == 1
        assert "ERROR: doctor" in result.stderr

    def test_if_due(self, cli_invoke: Invoke) -> None:
        assert cli_invoke("doctor", "home").exit_code == 0
        result = cli_invoke("--json", "doctor", "home", "--if-due")
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["data"]["skipped"] is True
