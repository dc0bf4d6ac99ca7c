"""Root CLI group for dotctl with global flags and command registration."""

from __future__ import annotations

from pathlib import Path

import click
from pydantic import ValidationError

from dotctl import __version__
from dotctl.commands import register_commands
from dotctl.commands._context import AppContext
from dotctl.config.settings import DotSettings


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="dotctl")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-q", "--quiet", is_flag=True, help="Minimal output.")
@click.option("-v", "--verbose", is_flag=True, help="Detailed output with debug info.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.option(
    "--repo",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Dotfiles repository root.",
)
@click.option(
    "--target",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Install under this directory instead of $HOME.",
)
@click.option("--backup", is_flag=True, help="Back up files before replacing them.")
@click.option("--dry-run", is_flag=True, help="Report what would change without changing it.")
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
    repo: Path | None,
    target: Path | None,
    backup: bool,
    dry_run: bool,
) -> None:
    """dotctl — dotfiles deployment and secret injection."""
    ctx.ensure_object(dict)
    flags: dict[str, object] = {
        "json_output": json_output,
        "quiet": quiet,
        "verbose": verbose,
        "log_json": log_json,
        "backup": backup,
        "dry_run": dry_run,
    }
    if target is not None:
        flags["target"] = target
    try:
        settings = DotSettings.from_cli(config_path=config_path, repo_root=repo, **flags)
    except ValidationError as exc:
        msg = f"Invalid configuration: {exc}"
        raise click.ClickException(msg) from exc
    ctx.obj = AppContext(settings)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
