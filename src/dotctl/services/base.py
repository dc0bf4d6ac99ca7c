"""BaseService — abstract foundation for all dotctl services.

Every service receives a :class:`Repository` at construction time. The
Repository provides package discovery, target roots, the secret resolver
chain, and git access.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from dotctl.domain.packages import UnknownPackageError
from dotctl.domain.types import ErrorKind
from dotctl.services.result import ServiceError, ServiceResult

if TYPE_CHECKING:
    from collections.abc import Sequence

    from dotctl.domain.packages import Package
    from dotctl.infrastructure.repository import Repository


class BaseService:
    """Abstract base for all service-layer classes.

    Usage::

        class LinkService(BaseService):
            def install(self, names: Sequence[str] = ()) -> ServiceResult:
                packages = self._repo.select(names)
                ...
    """

    def __init__(self, repo: Repository) -> None:
        self._repo = repo

    @property
    def repo(self) -> Repository:
        return self._repo

    def _select(
        self,
        op: str,
        names: Sequence[str],
        all_packages: bool,
    ) -> list[Package] | ServiceResult:
        """Resolve a package selection, or the error result explaining why not."""
        if not self._repo.root.is_dir():
            return self._fail(
                op,
                ErrorKind.NO_REPOSITORY,
                f"Repository not found: {self._repo.root}",
                {"root": str(self._repo.root)},
            )
        try:
            return self._repo.select(names, all_packages=all_packages)
        except UnknownPackageError as exc:
            return self._fail(
                op,
                ErrorKind.UNKNOWN_PACKAGE,
                str(exc),
                {"unknown": exc.names, "available": exc.available},
            )

    @staticmethod
    def _fail(
        op: str,
        code: ErrorKind,
        message: str,
        detail: dict[str, object] | None = None,
        *,
        data: dict[str, object] | None = None,
        warnings: list[str] | None = None,
    ) -> ServiceResult:
        return ServiceResult(
            ok=False,
            op=op,
            data=data or {},
            warnings=warnings or [],
            error=ServiceError(code=str(code), message=message, detail=detail or {}),
        )
