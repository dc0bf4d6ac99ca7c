"""Enums shared across the domain and service layers."""

from __future__ import annotations

from enum import StrEnum


class TargetKind(StrEnum):
    """Where a package's files are linked to."""

    HOME = "home"
    XDG = "xdg"


class LinkMode(StrEnum):
    """How the installer treats targets occupied by foreign content."""

    DEFAULT = "default"
    FORCE = "force"
    ADOPT = "adopt"


class TargetState(StrEnum):
    """Observed state of a link target relative to its source."""

    MISSING = "missing"
    CORRECT = "correct"
    OWNED_OTHER = "owned_other"
    FOREIGN_LINK = "foreign_link"
    FOREIGN_FILE = "foreign_file"
    FOREIGN_DIR = "foreign_dir"


class LinkAction(StrEnum):
    """Per-pair outcome of install/uninstall."""

    LINKED = "linked"
    UNCHANGED = "unchanged"
    RELINKED = "relinked"
    ADOPTED = "adopted"
    REPLACED = "replaced"
    REMOVED = "removed"
    SKIPPED = "skipped"
    CONFLICT = "conflict"
    ERROR = "error"


MUTATING_ACTIONS = frozenset(
    {
        LinkAction.LINKED,
        LinkAction.RELINKED,
        LinkAction.ADOPTED,
        LinkAction.REPLACED,
        LinkAction.REMOVED,
    }
)
FAILED_ACTIONS = frozenset({LinkAction.CONFLICT, LinkAction.ERROR})


class InjectAction(StrEnum):
    """Per-template outcome of an injection run."""

    WRITTEN = "written"
    UNCHANGED = "unchanged"
    WOULD_WRITE = "would_write"
    FAILED = "failed"


class CheckStatus(StrEnum):
    """Outcome of a single doctor check."""

    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"


class ErrorKind(StrEnum):
    """Error codes carried in ``ServiceError.code``."""

    CONFLICT = "CONFLICT"
    MISSING_VARIABLE = "MISSING_VARIABLE"
    EXTERNAL_UNAVAILABLE = "EXTERNAL_UNAVAILABLE"
    SYNTAX_INVALID = "SYNTAX_INVALID"
    UNKNOWN_PACKAGE = "UNKNOWN_PACKAGE"
    NO_REPOSITORY = "NO_REPOSITORY"
    SYNC_FAILED = "SYNC_FAILED"
    STAGE_FAILED = "STAGE_FAILED"
    CHECKS_FAILED = "CHECKS_FAILED"
    IO_ERROR = "IO_ERROR"
    ALREADY_EXISTS = "ALREADY_EXISTS"
