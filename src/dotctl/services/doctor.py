"""DoctorService — health checks and repair.

Checks are independent: each runs regardless of what earlier checks found,
and a check that crashes is reported as a failure of that check alone.
Only ``fail`` results make the run unhealthy; ``warn`` results (including
an unreachable secret store) never do.
"""

from __future__ import annotations

import json
import logging
import tomllib
from collections.abc import Callable, Sequence
from pathlib import Path

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from dotctl.domain.outcomes import CheckResult, count_statuses
from dotctl.domain.packages import Package, UnknownPackageError
from dotctl.domain.types import CheckStatus, ErrorKind, LinkMode, TargetState
from dotctl.infrastructure.filesystem import (
    find_broken_owned_links,
    inspect_target,
    is_owned_link,
    is_within,
    link_destination,
    remove_target,
)
from dotctl.infrastructure.secrets import OnePasswordResolver, SecretUnavailable
from dotctl.infrastructure.state import is_due, read_last_check, write_last_check
from dotctl.infrastructure.tools import probe_version, version_tuple
from dotctl.services._helpers import now_iso
from dotctl.services.base import BaseService
from dotctl.services.link import LinkService
from dotctl.services.result import ServiceResult
from dotctl.services.telemetry import trace_span, traced

logger = logging.getLogger(__name__)

CheckFn = Callable[[Sequence[Package]], list[CheckResult]]


def _success(name: str, message: str, target: str | None = None) -> CheckResult:
    return CheckResult(name, CheckStatus.PASS, message, target=target)


def _warning(
    name: str,
    message: str,
    target: str | None = None,
    kind: ErrorKind | None = None,
) -> CheckResult:
    return CheckResult(name, CheckStatus.WARN, message, target=target, kind=kind)


def _failure(
    name: str,
    message: str,
    target: str | None = None,
    kind: ErrorKind | None = None,
) -> CheckResult:
    return CheckResult(name, CheckStatus.FAIL, message, target=target, kind=kind)


def parse_config_file(path: Path) -> None:
    """Parse *path* by suffix. Raises ValueError (or YAMLError) when malformed."""
    text = path.read_text(encoding="utf-8")
    suffix = path.suffix.lower()
    if suffix == ".toml":
        tomllib.loads(text)
    elif suffix == ".json":
        json.loads(text)
    elif suffix in (".yml", ".yaml"):
        list(YAML(typ="safe").load_all(text))


class DoctorService(BaseService):
    """Deployment health report and link repair."""

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @traced
    def doctor(
        self,
        names: Sequence[str] = (),
        *,
        all_packages: bool = False,
        if_due: bool = False,
    ) -> ServiceResult:
        """Run every check over the selected packages."""
        op = "doctor"
        settings = self._repo.settings
        state_file = self._repo.state_file

        if if_due and not is_due(state_file, settings.doctor.interval_hours):
            last = read_last_check(state_file)
            return ServiceResult(
                ok=True,
                op=op,
                data={
                    "skipped": True,
                    "last_check": last.isoformat() if last else None,
                    "interval_hours": settings.doctor.interval_hours,
                    "checks": [],
                    "counts": count_statuses([]),
                    "healthy": True,
                },
            )

        packages: list[Package] = []
        if self._repo.root.is_dir():
            try:
                packages = self._repo.select(names, all_packages=all_packages)
            except UnknownPackageError as exc:
                return self._fail(
                    op,
                    ErrorKind.UNKNOWN_PACKAGE,
                    str(exc),
                    {"unknown": exc.names, "available": exc.available},
                )

        results = self.run_checks(packages)

        warnings: list[str] = []
        if not settings.dry_run:
            try:
                write_last_check(state_file)
            except OSError as exc:
                warnings.append(f"Could not record last check in {state_file}: {exc}")

        return self._report(op, packages, results, warnings)

    def run_checks(self, packages: Sequence[Package]) -> list[CheckResult]:
        """Run all checks in order; a crashing check becomes a single fail."""
        checks: list[tuple[str, CheckFn]] = [
            ("repository", self._check_repository),
            ("symlinks", self._check_symlinks),
            ("templates", self._check_templates),
            ("syntax", self._check_syntax),
            ("tools", self._check_tools),
            ("secrets", self._check_secrets),
        ]
        results: list[CheckResult] = []
        for name, check in checks:
            with trace_span(f"check:{name}") as span:
                try:
                    found = check(packages)
                except Exception as exc:
                    logger.debug("Check %s crashed", name, exc_info=True)
                    found = [_failure(name, f"Check crashed: {exc}")]
                if span is not None:
                    span.annotate("results", len(found))
            results.extend(found)
        return results

    @traced
    def repair(
        self,
        names: Sequence[str] = (),
        *,
        all_packages: bool = False,
        mode: LinkMode = LinkMode.DEFAULT,
    ) -> ServiceResult:
        """Remove broken owned links, then re-install the selected packages."""
        op = "repair"
        selected = self._select(op, names, all_packages)
        if isinstance(selected, ServiceResult):
            return selected

        dry_run = self._repo.settings.dry_run
        removed: list[str] = []
        warnings: list[str] = []
        for link in self._broken_links(selected):
            if not any(is_within(link_destination(link), p.source) for p in selected):
                continue
            if not dry_run:
                try:
                    remove_target(link)
                except OSError as exc:
                    warnings.append(f"Could not remove {link}: {exc}")
                    continue
            logger.debug("Removed broken link %s", link)
            removed.append(str(link))

        installed = LinkService(self._repo).install_packages(selected, mode=mode, op=op)
        return installed.model_copy(
            update={
                "data": {**installed.data, "removed": removed},
                "warnings": [*warnings, *installed.warnings],
            }
        )

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def _check_repository(self, packages: Sequence[Package]) -> list[CheckResult]:
        name = "repository"
        root = self._repo.root
        if not root.is_dir():
            message = f"Repository not found: {root}"
            return [_failure(name, message, str(root), ErrorKind.NO_REPOSITORY)]
        available = self._repo.packages()
        if not available:
            message = f"No packages found in {root}"
            return [_failure(name, message, str(root), ErrorKind.NO_REPOSITORY)]
        results = [_success(name, f"{len(available)} package(s) in {root}")]
        if not self._repo.git.is_repo():
            results.append(_warning(name, f"{root} is not a git work tree"))
        results.extend(_warning(name, w) for w in self._repo.warnings)
        return results

    def _check_symlinks(self, packages: Sequence[Package]) -> list[CheckResult]:
        name = "symlinks"
        root = self._repo.root
        results: list[CheckResult] = []
        reported: set[str] = set()
        total = 0
        for package in packages:
            for pair in package.pairs:
                total += 1
                target = str(pair.target)
                state = inspect_target(pair.target, pair.source, root)
                if state is TargetState.CORRECT:
                    continue
                reported.add(target)
                if state is TargetState.MISSING:
                    results.append(_warning(name, f"Broken symlink: {target} is missing", target))
                elif state is TargetState.OWNED_OTHER:
                    dest = link_destination(pair.target)
                    results.append(
                        _warning(name, f"Stale symlink: {target} points at {dest}", target)
                    )
                else:
                    results.append(
                        _failure(
                            name,
                            f"Conflict: {target} is not linked to the repository ({state})",
                            target,
                            ErrorKind.CONFLICT,
                        )
                    )

        for link in self._broken_links(packages):
            if str(link) in reported:
                continue
            dest = link_destination(link)
            results.append(
                _warning(name, f"Broken symlink: {link} points at missing {dest}", str(link))
            )

        if not results:
            results.append(_success(name, f"{total} link(s) OK"))
        return results

    def _check_templates(self, packages: Sequence[Package]) -> list[CheckResult]:
        name = "templates"
        templates = self._repo.templates(packages)
        if not templates:
            return [_success(name, "No templates")]
        results: list[CheckResult] = []
        for template in templates:
            if not template.source.is_file():
                results.append(
                    _failure(name, f"Template unreadable: {template.source}", str(template.source))
                )
            elif not template.output.is_file():
                results.append(
                    _warning(
                        name,
                        f"Template not rendered: {template.output} (run 'dotctl inject')",
                        str(template.output),
                    )
                )
        if not results:
            results.append(_success(name, f"{len(templates)} template output(s) present"))
        return results

    def _check_syntax(self, packages: Sequence[Package]) -> list[CheckResult]:
        name = "syntax"
        suffixes = {s.lower() for s in self._repo.settings.doctor.syntax_suffixes}
        files: list[Path] = []
        for package in packages:
            files.extend(p.source for p in package.pairs if p.source.suffix.lower() in suffixes)
        for template in self._repo.templates(packages):
            if template.output.suffix.lower() in suffixes and template.output.is_file():
                files.append(template.output)

        results: list[CheckResult] = []
        for path in files:
            try:
                parse_config_file(path)
            except (ValueError, YAMLError) as exc:
                detail = str(exc).strip()
                first_line = detail.splitlines()[0] if detail else type(exc).__name__
                message = f"Invalid syntax in {path}: {first_line}"
                results.append(_failure(name, message, str(path), ErrorKind.SYNTAX_INVALID))
            except OSError as exc:
                message = f"Cannot read {path}: {exc}"
                results.append(_failure(name, message, str(path), ErrorKind.IO_ERROR))
        if not results:
            results.append(_success(name, f"{len(files)} config file(s) parsed"))
        return results

    def _check_tools(self, packages: Sequence[Package]) -> list[CheckResult]:
        name = "tools"
        config = self._repo.settings.doctor
        if not config.tools:
            return [_success(name, "No tools required")]
        results: list[CheckResult] = []
        for tool, minimum in sorted(config.tools.items()):
            probe = probe_version(tool, timeout=config.version_timeout)
            if not probe.found:
                results.append(_failure(name, f"{tool} not found on PATH", tool))
                continue
            if probe.version is None:
                results.append(_warning(name, f"Could not determine {tool} version", tool))
                continue
            have = version_tuple(probe.version)
            want = version_tuple(minimum) if minimum else None
            if have is not None and want is not None and have < want:
                message = f"{tool} {probe.version} is older than {minimum}"
                results.append(_failure(name, message, tool))
            else:
                results.append(_success(name, f"{tool} {probe.version}", tool))
        return results

    def _check_secrets(self, packages: Sequence[Package]) -> list[CheckResult]:
        name = "secrets"
        resolver = self._repo.resolver.get("op")
        if resolver is None:
            return [_success(name, "1Password not in resolver chain; skipped")]
        if not isinstance(resolver, OnePasswordResolver):
            return [_success(name, f"Resolver '{resolver.name}' configured")]
        try:
            identity = resolver.ping()
        except SecretUnavailable as exc:
            return [
                _warning(
                    name,
                    f"1Password unreachable: {exc.reason}",
                    kind=ErrorKind.EXTERNAL_UNAVAILABLE,
                )
            ]
        return [_success(name, f"1Password reachable ({identity})")]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _broken_links(self, packages: Sequence[Package]) -> list[Path]:
        """Owned links whose destination is gone: package targets plus a shallow scan."""
        root = self._repo.root
        found: set[Path] = set()
        for package in packages:
            for pair in package.pairs:
                if is_owned_link(pair.target, root) and not pair.target.exists():
                    found.add(pair.target)
        roots = {self._repo.home, self._repo.xdg_config, *(p.target_root for p in packages)}
        found.update(
            find_broken_owned_links(
                sorted(roots),
                root,
                max_depth=self._repo.settings.doctor.stale_link_depth,
            )
        )
        return sorted(found)

    def _report(
        self,
        op: str,
        packages: Sequence[Package],
        results: list[CheckResult],
        warnings: list[str],
    ) -> ServiceResult:
        counts = count_statuses(results)
        healthy = counts[str(CheckStatus.FAIL)] == 0
        data = {
            "skipped": False,
            "checked_at": now_iso(),
            "packages": [p.name for p in packages],
            "checks": [r.to_dict() for r in results],
            "counts": counts,
            "healthy": healthy,
        }
        if healthy:
            return ServiceResult(ok=True, op=op, data=data, warnings=warnings)
        failed = [r.to_dict() for r in results if r.status is CheckStatus.FAIL]
        return self._fail(
            op,
            ErrorKind.CHECKS_FAILED,
            f"{len(failed)} check(s) failed",
            {"failed": failed},
            data=data,
            warnings=warnings,
        )
