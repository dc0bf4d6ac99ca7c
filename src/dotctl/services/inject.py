"""InjectService — render ``{{NAME}}`` templates into concrete config files.

INVARIANT: a template is written all-or-nothing. If any token in it is
unresolved, its output is left exactly as it was. Written outputs replace
the previous file atomically, so a shell reading the file concurrently sees
either the old or the new content.

Secret values never leave this module except as bytes written to the
output; results and logs carry only variable names.
"""

from __future__ import annotations

import difflib
import logging
import shutil
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from dotctl.domain.packages import TemplateFile
from dotctl.domain.templates import find_tokens, mask_values, render
from dotctl.domain.types import ErrorKind, InjectAction
from dotctl.infrastructure.filesystem import atomic_write, existing_mode
from dotctl.infrastructure.secrets import SecretNotFound, SecretUnavailable
from dotctl.services.base import BaseService
from dotctl.services.result import ServiceResult
from dotctl.services.telemetry import trace_span, traced

logger = logging.getLogger(__name__)


@dataclass
class _Resolution:
    """Variables of one template after asking the resolver chain."""

    text: str
    names: list[str]
    values: dict[str, str] = field(default_factory=dict)
    missing: list[str] = field(default_factory=list)
    unavailable: list[str] = field(default_factory=list)
    reasons: list[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.missing and not self.unavailable

    @property
    def kind(self) -> ErrorKind | None:
        if self.missing:
            return ErrorKind.MISSING_VARIABLE
        if self.unavailable:
            return ErrorKind.EXTERNAL_UNAVAILABLE
        return None


class InjectService(BaseService):
    """Secret injection into package templates."""

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @traced
    def inject(self, names: Sequence[str] = (), *, all_packages: bool = False) -> ServiceResult:
        """Render and write every template of the selected packages."""
        op = "inject"
        templates = self._templates(op, names, all_packages)
        if isinstance(templates, ServiceResult):
            return templates
        return self.inject_templates(templates)

    def inject_templates(
        self,
        templates: Sequence[TemplateFile],
        *,
        op: str = "inject",
    ) -> ServiceResult:
        """Inject an already-resolved template list (used by update)."""
        settings = self._repo.settings
        entries: list[dict[str, Any]] = []
        warnings = list(self._repo.warnings)
        if not templates:
            warnings.append("No templates found")

        for template in templates:
            with trace_span(f"template:{template.source.name}"):
                entry, reasons = self._inject_one(template, dry_run=settings.dry_run)
            entries.append(entry)
            warnings.extend(r for r in reasons if r not in warnings)

        counts: dict[str, int] = {}
        for entry in entries:
            counts[entry["action"]] = counts.get(entry["action"], 0) + 1
        data: dict[str, Any] = {
            "templates": entries,
            "counts": counts,
            "changed": counts.get(str(InjectAction.WRITTEN), 0),
            "dry_run": settings.dry_run,
        }

        failed = [e for e in entries if e["action"] == InjectAction.FAILED]
        if failed:
            return self._fail(
                op,
                _overall_kind(failed),
                f"{len(failed)} of {len(entries)} template(s) failed",
                {
                    "failed": failed,
                    "missing": sorted({n for e in failed for n in e["missing"]}),
                    "unavailable": sorted({n for e in failed for n in e.get("unavailable", [])}),
                },
                data=data,
                warnings=warnings,
            )
        return ServiceResult(ok=True, op=op, data=data, warnings=warnings)

    @traced
    def check(self, names: Sequence[str] = (), *, all_packages: bool = False) -> ServiceResult:
        """Report each template's variables and whether they resolve. Writes nothing."""
        op = "inject_check"
        templates = self._templates(op, names, all_packages)
        if isinstance(templates, ServiceResult):
            return templates

        entries: list[dict[str, Any]] = []
        warnings = list(self._repo.warnings)
        failed: list[dict[str, Any]] = []
        for template in templates:
            try:
                res = self._resolve(template)
            except (OSError, UnicodeDecodeError) as exc:
                entry = {
                    **self._describe(template),
                    "ready": False,
                    "variables": [],
                    "error": str(exc),
                    "kind": str(ErrorKind.IO_ERROR),
                }
                entries.append(entry)
                failed.append(entry)
                continue
            variables = [
                {
                    "name": name,
                    "status": (
                        "missing"
                        if name in res.missing
                        else "unavailable"
                        if name in res.unavailable
                        else "resolved"
                    ),
                }
                for name in res.names
            ]
            entry = {**self._describe(template), "ready": res.complete, "variables": variables}
            entries.append(entry)
            warnings.extend(r for r in res.reasons if r not in warnings)
            if not res.complete:
                failed.append({**entry, "missing": res.missing, "kind": str(res.kind)})

        data = {"templates": entries, "ready": not failed}
        if failed:
            return self._fail(
                op,
                _overall_kind(failed),
                f"{len(failed)} of {len(entries)} template(s) not ready",
                {"templates": [e["template"] for e in failed]},
                data=data,
                warnings=warnings,
            )
        return ServiceResult(ok=True, op=op, data=data, warnings=warnings)

    @traced
    def diff(self, names: Sequence[str] = (), *, all_packages: bool = False) -> ServiceResult:
        """Unified diff of current outputs vs. rendered templates, secrets masked."""
        op = "inject_diff"
        templates = self._templates(op, names, all_packages)
        if isinstance(templates, ServiceResult):
            return templates

        entries: list[dict[str, Any]] = []
        warnings = list(self._repo.warnings)
        for template in templates:
            try:
                res = self._resolve(template)
                current = (
                    template.output.read_bytes().decode("utf-8")
                    if template.output.is_file()
                    else ""
                )
            except (OSError, UnicodeDecodeError) as exc:
                warnings.append(f"{template.source}: {exc}")
                continue
            rendered = render(res.text, res.values, keep_missing=True)
            lines = difflib.unified_diff(
                mask_values(current, res.values).splitlines(keepends=True),
                mask_values(rendered, res.values).splitlines(keepends=True),
                fromfile=str(template.output),
                tofile=f"{template.output} (rendered)",
            )
            patch = "".join(lines)
            entries.append(
                {
                    **self._describe(template),
                    "changed": bool(patch),
                    "diff": patch,
                    "missing": res.missing + res.unavailable,
                }
            )
            if not res.complete:
                warnings.append(
                    f"{template.source.name}: unresolved {', '.join(res.missing + res.unavailable)}"
                )

        return ServiceResult(
            ok=True,
            op=op,
            data={"templates": entries, "changed": sum(1 for e in entries if e["changed"])},
            warnings=warnings,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _templates(
        self,
        op: str,
        names: Sequence[str],
        all_packages: bool,
    ) -> list[TemplateFile] | ServiceResult:
        selected = self._select(op, names, all_packages)
        if isinstance(selected, ServiceResult):
            return selected
        return self._repo.templates(selected)

    @staticmethod
    def _describe(template: TemplateFile) -> dict[str, Any]:
        return {
            "package": template.package,
            "template": str(template.source),
            "output": str(template.output),
        }

    def _resolve(self, template: TemplateFile) -> _Resolution:
        """Read *template* and resolve each of its tokens once.

        Raises OSError/UnicodeDecodeError if the template cannot be read.
        """
        # Decode without newline translation so CRLF templates round-trip.
        text = template.source.read_bytes().decode("utf-8")
        res = _Resolution(text=text, names=find_tokens(text))
        resolver = self._repo.resolver
        for name in res.names:
            try:
                res.values[name] = resolver.resolve(name)
            except SecretNotFound:
                res.missing.append(name)
            except SecretUnavailable as exc:
                res.unavailable.append(name)
                res.reasons.append(f"{name}: {exc.reason}")
        return res

    def _inject_one(
        self,
        template: TemplateFile,
        *,
        dry_run: bool,
    ) -> tuple[dict[str, Any], list[str]]:
        settings = self._repo.settings
        entry = self._describe(template)
        try:
            res = self._resolve(template)
        except (OSError, UnicodeDecodeError) as exc:
            entry.update(
                action=str(InjectAction.FAILED),
                variables=[],
                missing=[],
                kind=str(ErrorKind.IO_ERROR),
                message=str(exc),
            )
            return entry, []

        entry.update(variables=res.names, missing=res.missing)
        if not res.complete:
            kind = res.kind
            entry.update(action=str(InjectAction.FAILED), kind=str(kind))
            if res.unavailable:
                entry["unavailable"] = res.unavailable
            logger.warning(
                "Skipping %s: unresolved %s",
                template.source,
                ", ".join(res.missing + res.unavailable),
            )
            return entry, res.reasons

        payload = render(res.text, res.values).encode("utf-8")
        output = template.output
        try:
            current = output.read_bytes() if output.is_file() else None
            if current == payload:
                entry["action"] = str(InjectAction.UNCHANGED)
                return entry, []
            if dry_run:
                entry["action"] = str(InjectAction.WOULD_WRITE)
                return entry, []
            if current is not None and settings.backup_enabled:
                backup = output.with_name(output.name + settings.templates.backup_suffix)
                shutil.copy2(output, backup)
                entry["backup"] = str(backup)
            mode = existing_mode(output, settings.templates.file_mode)
            atomic_write(output, payload, mode=mode)
        except OSError as exc:
            logger.warning("Failed to write %s: %s", output, exc)
            entry.update(
                action=str(InjectAction.FAILED),
                kind=str(ErrorKind.IO_ERROR),
                message=str(exc),
            )
            return entry, []

        logger.info("Wrote %s (%d variable(s))", output, len(res.names))
        entry["action"] = str(InjectAction.WRITTEN)
        return entry, []


def _overall_kind(failed: list[dict[str, Any]]) -> ErrorKind:
    """Definite missing variables outrank store outages, which outrank I/O errors."""
    kinds = {e.get("kind") for e in failed}
    for kind in (ErrorKind.MISSING_VARIABLE, ErrorKind.EXTERNAL_UNAVAILABLE):
        if str(kind) in kinds:
            return kind
    return ErrorKind.IO_ERROR
