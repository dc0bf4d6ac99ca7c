"""Per-item outcomes aggregated into service results."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from dotctl.domain.types import CheckStatus, ErrorKind, LinkAction


@dataclass(frozen=True)
class LinkOutcome:
    """Result of processing one link pair."""

    package: str
    source: str
    target: str
    action: LinkAction
    message: str = ""
    kind: ErrorKind | None = None

    @property
    def failed(self) -> bool:
        return self.kind is not None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "package": self.package,
            "source": self.source,
            "target": self.target,
            "action": str(self.action),
        }
        if self.message:
            data["message"] = self.message
        if self.kind is not None:
            data["kind"] = str(self.kind)
        return data


@dataclass(frozen=True)
class CheckResult:
    """Outcome of one doctor check (one check may yield several results)."""

    name: str
    status: CheckStatus
    message: str
    target: str | None = None
    kind: ErrorKind | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "status": str(self.status),
            "message": self.message,
        }
        if self.target is not None:
            data["target"] = self.target
        if self.kind is not None:
            data["kind"] = str(self.kind)
        return data


def count_actions(outcomes: Iterable[LinkOutcome]) -> dict[str, int]:
    """Tally outcomes by action, in a stable key order."""
    counts = Counter(str(o.action) for o in outcomes)
    return {str(a): counts[str(a)] for a in LinkAction if counts[str(a)]}


def count_statuses(results: Iterable[CheckResult]) -> dict[str, int]:
    """Tally check results as ``{"pass": n, "warn": n, "fail": n}``."""
    counts = Counter(str(r.status) for r in results)
    return {str(s): counts[str(s)] for s in CheckStatus}
