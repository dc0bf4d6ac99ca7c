"""Tests for package value types, ignore rules, target resolution, and selection."""

import re
from pathlib import Path

import pytest

from dotctl.domain.packages import (
    IgnoreRules,
    Package,
    UnknownPackageError,
    package_kind,
    package_target,
    parse_ignore_lines,
    platform_packages,
    select_packages,
)
from dotctl.domain.types import TargetKind

GROUPS = {"config": "xdg", "shell": "home", "os": "home"}


def _pkg(name: str, **kwargs: object) -> Package:
    return Package(
        name=name,
        source=Path("/repo") / name,
        target_root=Path("/home/u"),
        kind=TargetKind.HOME,
        **kwargs,  # type: ignore[arg-type]
    )


class TestPackage:
    def test_pairs_mirror_tree(self) -> None:
        pkg = _pkg("home", files=(".zshrc", ".config/foo/bar"))
        pairs = pkg.pairs
        assert [p.relpath for p in pairs] == [".zshrc", ".config/foo/bar"]
        assert pairs[1].source == Path("/repo/home/.config/foo/bar")
        assert pairs[1].target == Path("/home/u/.config/foo/bar")

    def test_template_files_strip_suffix(self) -> None:
        pkg = _pkg("home", templates=(".gitconfig.template", "x.tmpl"))
        outputs = [t.output for t in pkg.template_files([".template", ".tmpl"])]
        assert outputs == [Path("/home/u/.gitconfig"), Path("/home/u/x")]

    def test_to_dict_counts(self) -> None:
        data = _pkg("home", files=("a", "b"), templates=("c.template",)).to_dict()
        assert data["files"] == 2
        assert data["templates"] == 1
        assert data["kind"] == "home"


class TestIgnoreRules:
    def test_glob_matches_any_part(self) -> None:
        rules = IgnoreRules(globs=(".git", "README*"))
        assert rules.matches(".git/config")
        assert rules.matches("docs/README.md")
        assert not rules.matches(".gitconfig")

    def test_regex_without_slash_matches_part(self) -> None:
        rules = IgnoreRules(regexes=(re.compile(r".*\.swp"),))
        assert rules.matches("nvim/.init.lua.swp")
        assert not rules.matches("nvim/init.lua")

    def test_regex_with_slash_matches_path(self) -> None:
        rules = IgnoreRules(regexes=(re.compile(r"/\.config/private/.*"),))
        assert rules.matches(".config/private/token")
        assert not rules.matches("private/token")

    def test_parse_ignore_lines_skips_comments(self) -> None:
        patterns = parse_ignore_lines("# comment\n\n\\.DS_Store\n  tmp.*  \n")
        assert [p.pattern for p in patterns] == [r"\.DS_Store", "tmp.*"]

    def test_parse_ignore_lines_invalid(self) -> None:
        with pytest.raises(re.error):
            parse_ignore_lines("([unclosed\n")


class TestTargets:
    def test_kind_from_group(self) -> None:
        assert package_kind("config/git", GROUPS) is TargetKind.XDG
        assert package_kind("shell/zsh", GROUPS) is TargetKind.HOME
        assert package_kind("home", GROUPS) is TargetKind.HOME

    def test_xdg_target_uses_leaf(self) -> None:
        target = package_target(
            "config/git",
            TargetKind.XDG,
            home=Path("/h"),
            xdg_config=Path("/h/.config"),
            overrides={},
        )
        assert target == Path("/h/.config/git")

    def test_override_relative_to_home(self) -> None:
        target = package_target(
            "config/nvim",
            TargetKind.XDG,
            home=Path("/h"),
            xdg_config=Path("/h/.config"),
            overrides={"config/nvim": ".vim"},
        )
        assert target == Path("/h/.vim")


class TestSelection:
    AVAILABLE = [
        "config/git",
        "home",
        "os/linux",
        "os/macos",
        "shell/bash",
        "shell/shared",
        "shell/zsh",
    ]

    def test_platform_linux_zsh(self) -> None:
        selected = platform_packages(self.AVAILABLE, system="Linux", shell="/usr/bin/zsh")
        assert selected == ["config/git", "home", "os/linux", "shell/shared", "shell/zsh"]

    def test_platform_darwin_without_shell(self) -> None:
        selected = platform_packages(self.AVAILABLE, system="Darwin", shell=None)
        assert selected == ["config/git", "home", "os/macos", "shell/shared"]

    def test_explicit_names_keep_order(self) -> None:
        available = {n: _pkg(n) for n in self.AVAILABLE}
        chosen = select_packages(available, ["shell/zsh", "home/", "shell/zsh"])
        assert [p.name for p in chosen] == ["shell/zsh", "home"]

    def test_all_packages(self) -> None:
        available = {n: _pkg(n) for n in self.AVAILABLE}
        chosen = select_packages(available, all_packages=True, system="Linux")
        assert len(chosen) == len(self.AVAILABLE)

    def test_defaults_used_when_no_names(self) -> None:
        available = {n: _pkg(n) for n in self.AVAILABLE}
        chosen = select_packages(available, defaults=["home"], system="Linux")
        assert [p.name for p in chosen] == ["home"]

    def test_unknown_name(self) -> None:
        available = {"home": _pkg("home")}
        with pytest.raises(UnknownPackageError) as info:
            select_packages(available, ["nope"])
        assert info.value.names == ["nope"]
        assert info.value.available == ["home"]
