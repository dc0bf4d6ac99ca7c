"""UpdateService — sync → install → inject → validate.

Stages run in strict order and the first failing stage stops the run.
Completed stages are never rolled back; the error names the failing stage
so it can be re-run on its own.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from dotctl.domain.types import ErrorKind, LinkMode
from dotctl.infrastructure.git import GitError
from dotctl.services.base import BaseService
from dotctl.services.doctor import DoctorService
from dotctl.services.inject import InjectService
from dotctl.services.link import LinkService
from dotctl.services.result import ServiceResult
from dotctl.services.telemetry import trace_span, traced

logger = logging.getLogger(__name__)

STAGES = ("sync", "install", "inject", "validate")


class UpdateService(BaseService):
    """Orchestrates a full refresh of the deployment."""

    @traced
    def update(
        self,
        *,
        mode: LinkMode = LinkMode.DEFAULT,
        offline: bool = False,
        skip_inject: bool = False,
    ) -> ServiceResult:
        """Run every stage in order, halting at the first failure."""
        op = "update"
        runners: dict[str, Callable[[], ServiceResult]] = {
            "sync": lambda: self.sync(offline=offline),
            "install": lambda: self._install(mode),
            "inject": self._inject,
            "validate": self._validate,
        }

        stages: list[dict[str, Any]] = []
        warnings: list[str] = []
        for stage in STAGES:
            if stage == "inject" and skip_inject:
                stages.append({"stage": stage, "ok": True, "skipped": True, "summary": "skipped"})
                continue
            with trace_span(f"stage:{stage}"):
                result = runners[stage]()
            stages.append(
                {"stage": stage, "ok": result.ok, "skipped": False, "summary": _summary(result)}
            )
            warnings.extend(f"{stage}: {w}" for w in result.warnings)
            if not result.ok:
                cause = result.error.model_dump() if result.error else {}
                logger.warning("Update halted at stage %s", stage)
                return self._fail(
                    op,
                    ErrorKind.STAGE_FAILED,
                    f"Stage '{stage}' failed: {cause.get('message', 'unknown error')}",
                    {"stage": stage, "cause": cause},
                    data={"stages": stages, "failed_stage": stage, "result": result.data},
                    warnings=warnings,
                )

        return ServiceResult(ok=True, op=op, data={"stages": stages}, warnings=warnings)

    @traced
    def sync(self, *, offline: bool = False) -> ServiceResult:
        """Fast-forward the repository from its remote, when that is safe."""
        op = "sync"
        repo = self._repo
        config = repo.settings.update
        git = repo.git
        if not repo.root.is_dir():
            return self._fail(
                op,
                ErrorKind.NO_REPOSITORY,
                f"Repository not found: {repo.root}",
                {"root": str(repo.root)},
            )
        if offline:
            return ServiceResult(ok=True, op=op, data={"pulled": False, "reason": "offline"})
        if not git.is_repo():
            return ServiceResult(
                ok=True,
                op=op,
                data={"pulled": False, "reason": "not a git repository"},
                warnings=[f"{repo.root} is not a git work tree; skipping sync"],
            )
        if repo.settings.dry_run:
            return ServiceResult(ok=True, op=op, data={"pulled": False, "reason": "dry run"})

        try:
            if git.is_dirty():
                return ServiceResult(
                    ok=True,
                    op=op,
                    data={"pulled": False, "reason": "uncommitted changes"},
                    warnings=["Repository has uncommitted changes; skipping pull"],
                )
            before = git.head()
            git.pull(
                config.remote,
                config.branch,
                attempts=config.retries,
                delay=config.retry_delay,
            )
            if config.submodules:
                git.update_submodules(attempts=config.retries, delay=config.retry_delay)
            after = git.head()
        except GitError as exc:
            return self._fail(op, ErrorKind.SYNC_FAILED, str(exc), {"command": exc.command})

        repo.refresh()
        return ServiceResult(
            ok=True,
            op=op,
            data={"pulled": True, "before": before, "after": after, "changed": before != after},
        )

    # ------------------------------------------------------------------
    # Stage adapters
    # ------------------------------------------------------------------

    def _install(self, mode: LinkMode) -> ServiceResult:
        return LinkService(self._repo).install(mode=mode)

    def _inject(self) -> ServiceResult:
        return InjectService(self._repo).inject()

    def _validate(self) -> ServiceResult:
        return DoctorService(self._repo).doctor()


def _summary(result: ServiceResult) -> str:
    """One-line description of a stage result."""
    if not result.ok and result.error is not None:
        return result.error.message
    data = result.data
    if result.op == "sync":
        if data.get("pulled"):
            if not data.get("changed"):
                return "up to date"
            return f"pulled {str(data.get('after', ''))[:8]}"
        return f"not pulled ({data.get('reason', '')})"
    if result.op == "install":
        return f"{len(data.get('outcomes', []))} link(s), {data.get('changed', 0)} changed"
    if result.op == "inject":
        return f"{len(data.get('templates', []))} template(s), {data.get('changed', 0)} written"
    if result.op == "doctor":
        counts = data.get("counts", {})
        return ", ".join(f"{counts.get(s, 0)} {s}" for s in ("pass", "warn", "fail"))
    return "ok"
