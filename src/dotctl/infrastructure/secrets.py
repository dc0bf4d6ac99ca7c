"""Secret resolution — environment variables and the 1Password CLI.

A resolver maps a variable name to its value or raises:

- :class:`SecretNotFound` when the store answered but has no such item.
- :class:`SecretUnavailable` when the store could not be asked at all
  (CLI missing, not signed in, timeout, network failure).

INVARIANT: secret values never appear in exceptions or log records.
Only variable names and failure reasons do.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from collections.abc import Mapping, Sequence
from typing import Protocol

from dotctl.config.models import SecretsConfig
from dotctl.infrastructure.retry import retry

logger = logging.getLogger(__name__)

# Substrings of ``op`` stderr that mean "could not ask", not "no such item".
_UNAVAILABLE_MARKERS = (
    "not signed in",
    "session expired",
    "sign in",
    "no accounts configured",
    "authorization",
    "connection",
    "network",
    "timed out",
    "timeout",
    "couldn't connect",
    "could not connect",
)


class SecretError(Exception):
    """Base class for secret lookup failures."""

    def __init__(self, key: str, reason: str = "") -> None:
        self.key = key
        self.reason = reason
        message = f"{key}: {reason}" if reason else key
        super().__init__(message)


class SecretNotFound(SecretError):
    """The store has no value for the key."""


class SecretUnavailable(SecretError):
    """The store could not be reached."""


class SecretResolver(Protocol):
    """Anything that resolves a variable name to a value."""

    name: str

    def resolve(self, key: str) -> str: ...


# ---------------------------------------------------------------------------
# Resolvers
# ---------------------------------------------------------------------------


class EnvResolver:
    """Resolve variables from the process environment."""

    name = "env"

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        self._environ = os.environ if environ is None else environ

    def resolve(self, key: str) -> str:
        if key in self._environ:
            return self._environ[key]
        raise SecretNotFound(key, "not set in environment")


class OnePasswordResolver:
    """Resolve variables with ``op read op://<vault>/<NAME>/<field>``.

    Unavailable lookups are retried ``retries`` times with backoff. Once
    the store has been found unavailable after retries, later lookups in
    the same run fail immediately with the same reason.
    """

    name = "op"

    def __init__(
        self,
        *,
        binary: str = "op",
        vault: str = "Employee",
        field: str = "credential",
        account: str | None = None,
        timeout: float = 15.0,
        retries: int = 3,
        retry_delay: float = 0.5,
    ) -> None:
        self.binary = binary
        self.vault = vault
        self.field = field
        self.account = account
        self.timeout = timeout
        self.retries = retries
        self.retry_delay = retry_delay
        self._down: str | None = None

    def reference(self, key: str) -> str:
        """The ``op://`` secret reference for *key*."""
        return f"op://{self.vault}/{key}/{self.field}"

    def _command(self, *args: str) -> list[str]:
        cmd = [self.binary, *args]
        if self.account:
            cmd.extend(["--account", self.account])
        return cmd

    def _run(self, key: str, *args: str) -> subprocess.CompletedProcess[str]:
        if shutil.which(self.binary) is None:
            raise SecretUnavailable(key, f"{self.binary} CLI not found on PATH")
        try:
            return subprocess.run(
                self._command(*args),
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            raise SecretUnavailable(key, f"{self.binary} timed out after {self.timeout}s") from exc
        except OSError as exc:
            raise SecretUnavailable(key, str(exc)) from exc

    def _read_once(self, key: str) -> str:
        proc = self._run(key, "read", self.reference(key))
        if proc.returncode == 0:
            value = proc.stdout
            if value.endswith("\r\n"):
                return value[:-2]
            if value.endswith("\n"):
                return value[:-1]
            return value
        stderr = proc.stderr.strip()
        if any(marker in stderr.lower() for marker in _UNAVAILABLE_MARKERS):
            raise SecretUnavailable(key, stderr or f"exit status {proc.returncode}")
        raise SecretNotFound(key, stderr or f"exit status {proc.returncode}")

    def resolve(self, key: str) -> str:
        if self._down is not None:
            raise SecretUnavailable(key, self._down)
        read = retry(
            attempts=self.retries,
            delay=self.retry_delay,
            exceptions=(SecretUnavailable,),
        )(self._read_once)
        try:
            return read(key)
        except SecretUnavailable as exc:
            self._down = exc.reason
            logger.debug("1Password unavailable: %s", exc.reason)
            raise

    def ping(self) -> str:
        """Check the CLI is signed in (``op whoami``). No retries.

        Returns the CLI's identity line. Raises :class:`SecretUnavailable`.
        """
        proc = self._run("whoami", "whoami")
        if proc.returncode != 0:
            raise SecretUnavailable("whoami", proc.stderr.strip() or "not signed in")
        return proc.stdout.strip().splitlines()[0] if proc.stdout.strip() else "signed in"


class ChainResolver:
    """Try resolvers in order; memoize values for the lifetime of one run.

    A key not found anywhere raises :class:`SecretNotFound`, unless some
    resolver was unavailable, in which case the answer is unknown and
    :class:`SecretUnavailable` is raised instead.
    """

    name = "chain"

    def __init__(self, resolvers: Sequence[SecretResolver]) -> None:
        self._resolvers = list(resolvers)
        self._memo: dict[str, str] = {}

    @property
    def names(self) -> list[str]:
        return [r.name for r in self._resolvers]

    def get(self, name: str) -> SecretResolver | None:
        """The resolver registered under *name*, if any."""
        for resolver in self._resolvers:
            if resolver.name == name:
                return resolver
        return None

    def resolve(self, key: str) -> str:
        if key in self._memo:
            return self._memo[key]
        unavailable: list[str] = []
        for resolver in self._resolvers:
            try:
                value = resolver.resolve(key)
            except SecretNotFound:
                continue
            except SecretUnavailable as exc:
                unavailable.append(f"{resolver.name}: {exc.reason}")
                continue
            logger.debug("Resolved %s via %s (%d chars)", key, resolver.name, len(value))
            self._memo[key] = value
            return value
        if unavailable:
            raise SecretUnavailable(key, "; ".join(unavailable))
        raise SecretNotFound(key, f"not found in {', '.join(self.names) or 'any resolver'}")


def build_resolver(
    config: SecretsConfig,
    environ: Mapping[str, str] | None = None,
) -> ChainResolver:
    """Build the resolver chain named by ``[secrets] resolvers``.

    Raises:
        ValueError: for an unknown resolver name.
    """
    resolvers: list[SecretResolver] = []
    for name in config.resolvers:
        if name == "env":
            resolvers.append(EnvResolver(environ))
        elif name == "op":
            resolvers.append(
                OnePasswordResolver(
                    binary=config.op_binary,
                    vault=config.op_vault,
                    field=config.op_field,
                    account=config.op_account,
                    timeout=config.timeout,
                    retries=config.retries,
                    retry_delay=config.retry_delay,
                )
            )
        else:
            msg = f"Unknown secret resolver: {name!r} (expected 'env' or 'op')"
            raise ValueError(msg)
    return ChainResolver(resolvers)
