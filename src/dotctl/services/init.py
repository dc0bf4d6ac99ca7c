"""InitService — scaffold a ``dotctl.toml`` for a dotfiles repository."""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path

from pydantic import ValidationError

from dotctl.config.discovery import CONFIG_FILENAME
from dotctl.config.models import DotConfig, PackagesConfig, SecretsConfig
from dotctl.domain.types import ErrorKind
from dotctl.infrastructure.filesystem import atomic_write
from dotctl.infrastructure.templates import build_template_environment
from dotctl.services.result import ServiceError, ServiceResult

logger = logging.getLogger(__name__)


class InitService:
    """Repository scaffolding. Static: runs before any Repository exists."""

    @staticmethod
    def init_repository(
        path: Path,
        *,
        default_packages: list[str] | None = None,
        force: bool = False,
        dry_run: bool = False,
    ) -> ServiceResult:
        """Render ``dotctl.toml`` into *path* from the packaged template.

        A template at ``<path>/.dotctl/templates/dotctl.toml.j2`` overrides
        the packaged one. The rendered file is validated before it is written.
        """
        op = "init"
        config_path = path / CONFIG_FILENAME
        if config_path.exists() and not force:
            return ServiceResult(
                ok=False,
                op=op,
                error=ServiceError(
                    code=str(ErrorKind.ALREADY_EXISTS),
                    message=f"{config_path} already exists (use --force to overwrite)",
                    detail={"path": str(config_path)},
                ),
            )

        packages = PackagesConfig()
        secrets = SecretsConfig()
        env = build_template_environment("config", repo_root=path)
        rendered = env.get_template("dotctl.toml.j2").render(
            repo_name=path.name or str(path),
            default_packages=default_packages or [],
            groups=packages.groups,
            resolvers=secrets.resolvers,
            op_vault=secrets.op_vault,
            op_field=secrets.op_field,
        )

        try:
            DotConfig.model_validate(tomllib.loads(rendered))
        except (tomllib.TOMLDecodeError, ValidationError) as exc:
            return ServiceResult(
                ok=False,
                op=op,
                error=ServiceError(
                    code=str(ErrorKind.SYNTAX_INVALID),
                    message=f"Rendered config is invalid: {exc}",
                    detail={"path": str(config_path)},
                ),
            )

        data = {"path": str(config_path), "written": not dry_run}
        if dry_run:
            return ServiceResult(ok=True, op=op, data={**data, "content": rendered})

        try:
            atomic_write(config_path, rendered.encode("utf-8"), mode=0o644)
        except OSError as exc:
            return ServiceResult(
                ok=False,
                op=op,
                error=ServiceError(
                    code=str(ErrorKind.IO_ERROR),
                    message=f"Could not write {config_path}: {exc}",
                    detail={"path": str(config_path)},
                ),
            )
        logger.info("Wrote %s", config_path)
        return ServiceResult(ok=True, op=op, data=data)
