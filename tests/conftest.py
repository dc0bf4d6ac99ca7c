"""Shared pytest fixtures for dotctl tests.

The fake dotfiles repository mirrors a typical layout::

    dotfiles/
      home/.a                       -> ~/.a
      home/.gitconfig.template      -> ~/.gitconfig (rendered)
      config/git/config             -> ~/.config/git/config
      config/starship/starship.toml -> ~/.config/starship/starship.toml
      shell/{shared,zsh,bash}/...   -> ~/
      os/{linux,macos}/...          -> ~/
"""

from __future__ import annotations

import os
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner, Result

from dotctl.cli import cli
from dotctl.config.models import DoctorConfig, SecretsConfig
from dotctl.config.settings import DotSettings
from dotctl.infrastructure.repository import Repository
from dotctl.infrastructure.secrets import ChainResolver, EnvResolver
from dotctl.services.telemetry import disable_telemetry

GITCONFIG_TEMPLATE = "[user]\n\tname = {{GIT_NAME}}\n\temail = {{GIT_EMAIL}}\n"

# Keeps CLI runs away from the real secret store and the installed git version.
CLI_CONFIG = """\
[secrets]
resolvers = ["env"]

[doctor]
tools = {}
"""


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Isolate tests from the developer's DOTCTL_* environment and telemetry state."""
    for key in list(os.environ):
        if key.startswith("DOTCTL_"):
            monkeypatch.delenv(key)
    monkeypatch.setenv("SHELL", "/bin/zsh")
    monkeypatch.setattr("platform.system", lambda: "Linux")
    yield
    disable_telemetry()


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def dot_home(tmp_path: Path) -> Path:
    """Empty target home directory."""
    home = tmp_path / "home"
    home.mkdir()
    return home


@pytest.fixture
def dot_repo_root(tmp_path: Path) -> Path:
    """Dotfiles repository with home, XDG, shell, and OS packages."""
    root = tmp_path / "dotfiles"
    files = {
        "home/.a": "alpha\n",
        "home/.gitconfig.template": GITCONFIG_TEMPLATE,
        "home/README.md": "not linked\n",
        "config/git/config": "[core]\n\tautocrlf = input\n",
        "config/starship/starship.toml": 'format = "$all"\n',
        "shell/shared/.aliases": "alias ll='ls -l'\n",
        "shell/zsh/.zshrc": "source ~/.aliases\n",
        "shell/bash/.bashrc": "source ~/.aliases\n",
        "os/linux/.linux-env": "export LINUX=1\n",
        "os/macos/.macos-env": "export MACOS=1\n",
    }
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return root


@pytest.fixture
def secret_values() -> dict[str, str]:
    return {"GIT_NAME": "Ada Lovelace", "GIT_EMAIL": "ada@example.com"}


@pytest.fixture
def make_settings(dot_repo_root: Path, dot_home: Path) -> Callable[..., DotSettings]:
    """Settings factory bound to the fake repository and home.

    Defaults skip tool probes and use only the environment resolver.
    """

    def _make(**overrides: Any) -> DotSettings:
        overrides.setdefault("doctor", DoctorConfig(tools={}))
        overrides.setdefault("secrets", SecretsConfig(resolvers=["env"]))
        overrides.setdefault("target", dot_home)
        return DotSettings.from_cli(repo_root=dot_repo_root, **overrides)

    return _make


@pytest.fixture
def make_repo(
    make_settings: Callable[..., DotSettings],
    secret_values: dict[str, str],
) -> Callable[..., Repository]:
    """Repository factory with a resolver backed by ``secret_values``."""

    def _make(**overrides: Any) -> Repository:
        return Repository(
            make_settings(**overrides),
            resolver=ChainResolver([EnvResolver(secret_values)]),
            environ={"SHELL": "/bin/zsh"},
        )

    return _make


@pytest.fixture
def repo(make_repo: Callable[..., Repository]) -> Repository:
    return make_repo()


@pytest.fixture
def cli_repo(dot_repo_root: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """The fake repository with a dotctl.toml, and secrets exported to the env."""
    (dot_repo_root / "dotctl.toml").write_text(CLI_CONFIG)
    monkeypatch.setenv("GIT_NAME", "Ada Lovelace")
    monkeypatch.setenv("GIT_EMAIL", "ada@example.com")
    return dot_repo_root


@pytest.fixture
def cli_invoke(cli_runner: CliRunner, cli_repo: Path, dot_home: Path) -> Callable[..., Result]:
    """Invoke the CLI against the fake repository, installing into ``dot_home``."""

    def _invoke(*args: str) -> Result:
        return cli_runner.invoke(cli, ["--repo", str(cli_repo), "--target", str(dot_home), *args])

    return _invoke
