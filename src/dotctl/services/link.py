"""LinkService — install, uninstall, and report package symlinks.

INVARIANT: a target occupied by anything other than a link owned by this
repository is never touched unless force/adopt was requested. Directories
are never removed. Re-running install on an unchanged tree performs zero
mutations.
"""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from dotctl.domain.outcomes import LinkOutcome, count_actions
from dotctl.domain.packages import LinkPair, Package, UnknownPackageError
from dotctl.domain.types import (
    FAILED_ACTIONS,
    MUTATING_ACTIONS,
    ErrorKind,
    LinkAction,
    LinkMode,
    TargetState,
)
from dotctl.infrastructure.filesystem import (
    backup_file,
    create_link,
    inspect_target,
    is_owned_link,
    link_destination,
    remove_target,
    same_file_path,
)
from dotctl.services._helpers import now_compact
from dotctl.services.base import BaseService
from dotctl.services.result import ServiceResult
from dotctl.services.telemetry import trace_span, traced

logger = logging.getLogger(__name__)


class LinkService(BaseService):
    """Stow-style symlink farm management."""

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @traced
    def install(
        self,
        names: Sequence[str] = (),
        *,
        all_packages: bool = False,
        mode: LinkMode = LinkMode.DEFAULT,
    ) -> ServiceResult:
        """Link every file of the selected packages into its target root."""
        op = "install"
        selected = self._select(op, names, all_packages)
        if isinstance(selected, ServiceResult):
            return selected
        return self.install_packages(selected, mode=mode)

    def install_packages(
        self,
        packages: Sequence[Package],
        *,
        mode: LinkMode = LinkMode.DEFAULT,
        op: str = "install",
    ) -> ServiceResult:
        """Install an already-resolved package list (used by repair/update)."""
        settings = self._repo.settings
        backup_dir: Path | None = None
        if settings.backup_enabled:
            backup_dir = self._repo.backup_root / now_compact()

        outcomes: list[LinkOutcome] = []
        for package in packages:
            with trace_span(f"package:{package.name}") as span:
                results = [
                    self._install_pair(pair, mode, backup_dir=backup_dir) for pair in package.pairs
                ]
                if span is not None:
                    span.annotate("pairs", len(results))
            outcomes.extend(results)

        return self._link_result(op, packages, outcomes, mode=mode)

    @traced
    def uninstall(
        self,
        names: Sequence[str] = (),
        *,
        all_packages: bool = False,
    ) -> ServiceResult:
        """Remove links owned by the selected packages. Foreign files survive."""
        op = "uninstall"
        selected = self._select(op, names, all_packages)
        if isinstance(selected, ServiceResult):
            return selected

        dry_run = self._repo.settings.dry_run
        outcomes: list[LinkOutcome] = []
        for package in selected:
            for pair in package.pairs:
                outcomes.append(self._uninstall_pair(pair, dry_run=dry_run))
        return self._link_result(op, selected, outcomes)

    @traced
    def status(self, names: Sequence[str] = (), *, all_packages: bool = False) -> ServiceResult:
        """Per-package link state. Read-only."""
        op = "status"
        selected = self._select(op, names, all_packages)
        if isinstance(selected, ServiceResult):
            return selected

        root = self._repo.root
        packages: list[dict[str, Any]] = []
        problems: list[dict[str, str]] = []
        for package in selected:
            counts = {str(state): 0 for state in TargetState}
            for pair in package.pairs:
                state = inspect_target(pair.target, pair.source, root)
                counts[str(state)] += 1
                if state is not TargetState.CORRECT:
                    problems.append(
                        {"package": package.name, "target": str(pair.target), "state": str(state)}
                    )
            linked = counts[TargetState.CORRECT]
            foreign = (
                counts[TargetState.FOREIGN_FILE]
                + counts[TargetState.FOREIGN_LINK]
                + counts[TargetState.FOREIGN_DIR]
            )
            packages.append(
                {
                    "name": package.name,
                    "target_root": str(package.target_root),
                    "total": len(package.files),
                    "linked": linked,
                    "missing": counts[TargetState.MISSING],
                    "stale": counts[TargetState.OWNED_OTHER],
                    "conflicts": foreign,
                    "templates": len(package.templates),
                    "installed": bool(package.files) and linked == len(package.files),
                }
            )

        return ServiceResult(
            ok=True,
            op=op,
            data={"packages": packages, "problems": problems},
            warnings=list(self._repo.warnings),
        )

    @traced
    def list_packages(self) -> ServiceResult:
        """Every discovered package, flagged with this machine's default selection."""
        op = "packages"
        if not self._repo.root.is_dir():
            return self._fail(
                op,
                ErrorKind.NO_REPOSITORY,
                f"Repository not found: {self._repo.root}",
                {"root": str(self._repo.root)},
            )
        available = self._repo.packages()
        warnings = list(self._repo.warnings)
        try:
            selected = {p.name for p in self._repo.select()}
        except UnknownPackageError as exc:
            selected = set()
            warnings.append(f"[packages] default: {exc}")

        items = [{**p.to_dict(), "selected": p.name in selected} for p in available.values()]
        return ServiceResult(
            ok=True,
            op=op,
            data={"packages": items, "count": len(items), "root": str(self._repo.root)},
            warnings=warnings,
        )

    # ------------------------------------------------------------------
    # Per-pair logic
    # ------------------------------------------------------------------

    def _install_pair(
        self,
        pair: LinkPair,
        mode: LinkMode,
        *,
        backup_dir: Path | None,
    ) -> LinkOutcome:
        settings = self._repo.settings
        state = inspect_target(pair.target, pair.source, self._repo.root)

        if state is TargetState.CORRECT:
            return _outcome(pair, LinkAction.UNCHANGED)
        if state is TargetState.FOREIGN_DIR:
            return _outcome(pair, LinkAction.CONFLICT, "target is a directory", ErrorKind.CONFLICT)

        if state is TargetState.MISSING:
            action = LinkAction.LINKED
        elif state is TargetState.OWNED_OTHER:
            action = LinkAction.RELINKED
        elif mode is LinkMode.FORCE:
            action = LinkAction.REPLACED
        elif mode is LinkMode.ADOPT and state is TargetState.FOREIGN_FILE:
            action = LinkAction.ADOPTED
        elif mode is LinkMode.ADOPT:
            return _outcome(
                pair, LinkAction.CONFLICT, "only regular files can be adopted", ErrorKind.CONFLICT
            )
        else:
            what = "a file" if state is TargetState.FOREIGN_FILE else "a foreign symlink"
            return _outcome(
                pair,
                LinkAction.CONFLICT,
                f"target exists and is {what}; use --force or --adopt",
                ErrorKind.CONFLICT,
            )

        if settings.dry_run:
            return _outcome(pair, action, "dry run")

        try:
            message = ""
            if action in (LinkAction.REPLACED, LinkAction.ADOPTED) and backup_dir is not None:
                saved = backup_file(pair.target, backup_dir, f"{pair.package}/{pair.relpath}")
                message = f"backed up to {saved}"
            if action is LinkAction.ADOPTED:
                shutil.copyfile(pair.target, pair.source)
            if action is not LinkAction.LINKED:
                remove_target(pair.target)
            create_link(pair.source, pair.target, relative=settings.link.relative)
        except OSError as exc:
            logger.warning("Failed to link %s: %s", pair.target, exc)
            return _outcome(pair, LinkAction.ERROR, str(exc), ErrorKind.IO_ERROR)

        logger.debug("%s %s -> %s", action, pair.target, pair.source)
        return _outcome(pair, action, message)

    def _uninstall_pair(self, pair: LinkPair, *, dry_run: bool) -> LinkOutcome:
        target = pair.target
        if not is_owned_link(target, self._repo.root):
            reason = "not owned" if os.path.lexists(target) else "not installed"
            return _outcome(pair, LinkAction.SKIPPED, reason)
        if not same_file_path(link_destination(target), pair.source):
            return _outcome(pair, LinkAction.SKIPPED, "points at another source")
        if dry_run:
            return _outcome(pair, LinkAction.REMOVED, "dry run")
        try:
            remove_target(target)
        except OSError as exc:
            return _outcome(pair, LinkAction.ERROR, str(exc), ErrorKind.IO_ERROR)
        logger.debug("removed %s", target)
        return _outcome(pair, LinkAction.REMOVED)

    # ------------------------------------------------------------------
    # Aggregation
    # ------------------------------------------------------------------

    def _link_result(
        self,
        op: str,
        packages: Sequence[Package],
        outcomes: list[LinkOutcome],
        *,
        mode: LinkMode | None = None,
    ) -> ServiceResult:
        dry_run = self._repo.settings.dry_run
        changed = 0 if dry_run else sum(1 for o in outcomes if o.action in MUTATING_ACTIONS)
        data: dict[str, Any] = {
            "packages": [p.name for p in packages],
            "outcomes": [o.to_dict() for o in outcomes],
            "counts": count_actions(outcomes),
            "changed": changed,
            "dry_run": dry_run,
        }
        if mode is not None:
            data["mode"] = str(mode)
        warnings = list(self._repo.warnings)

        failed = [o for o in outcomes if o.action in FAILED_ACTIONS]
        if failed:
            code = (
                ErrorKind.CONFLICT
                if any(o.kind is ErrorKind.CONFLICT for o in failed)
                else ErrorKind.IO_ERROR
            )
            return self._fail(
                op,
                code,
                f"{len(failed)} of {len(outcomes)} link(s) failed",
                {"failed": [o.to_dict() for o in failed]},
                data=data,
                warnings=warnings,
            )
        return ServiceResult(ok=True, op=op, data=data, warnings=warnings)


def _outcome(
    pair: LinkPair,
    action: LinkAction,
    message: str = "",
    kind: ErrorKind | None = None,
) -> LinkOutcome:
    return LinkOutcome(
        package=pair.package,
        source=str(pair.source),
        target=str(pair.target),
        action=action,
        message=message,
        kind=kind,
    )
