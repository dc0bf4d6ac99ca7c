"""Last-check timestamp used to throttle periodic ``doctor --if-due`` runs."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from pathlib import Path

from dotctl.infrastructure.filesystem import atomic_write

logger = logging.getLogger(__name__)

STATE_DIRNAME = "dotctl"
LAST_CHECK_FILENAME = "last-check"


def default_state_file(home: Path, state_home: str | None = None) -> Path:
    """``$XDG_STATE_HOME/dotctl/last-check`` (default ``~/.local/state``)."""
    base = Path(state_home) if state_home else home / ".local" / "state"
    return base / STATE_DIRNAME / LAST_CHECK_FILENAME


def read_last_check(path: Path) -> datetime | None:
    """Timestamp of the last recorded check, or None if absent or unreadable."""
    if not path.is_file():
        return None
    try:
        raw = path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Ignoring unreadable last-check file %s: %s", path, exc)
        return None
    try:
        stamp = datetime.fromisoformat(raw)
    except ValueError:
        logger.warning("Ignoring malformed last-check timestamp in %s", path)
        return None
    if stamp.tzinfo is None:
        stamp = stamp.replace(tzinfo=UTC)
    return stamp


def write_last_check(path: Path, when: datetime | None = None) -> datetime:
    """Record *when* (default now) as the last check time."""
    stamp = when or datetime.now(UTC)
    atomic_write(path, (stamp.isoformat() + "\n").encode("utf-8"), mode=0o644)
    return stamp


def is_due(path: Path, interval_hours: float, *, now: datetime | None = None) -> bool:
    """True if no check was recorded within the last *interval_hours*."""
    last = read_last_check(path)
    if last is None:
        return True
    current = now or datetime.now(UTC)
    return current - last >= timedelta(hours=interval_hours)
