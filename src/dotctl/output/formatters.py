"""Rich/JSON output helpers.

The CLI renders a ServiceResult for humans (Rich tables, colors) or
machines (``--json``). This layer picks the mode; per-op rendering lives
in :mod:`dotctl.output.renderers`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from dotctl.output.renderers import render_quiet, render_result

if TYPE_CHECKING:
    from dotctl.services.result import ServiceResult


@dataclass(frozen=True)
class OutputSettings:
    """Output mode flags taken from the root CLI group."""

    json_output: bool = False
    quiet: bool = False
    verbose: bool = False


def format_result(
    result: ServiceResult,
    *,
    settings: OutputSettings | None = None,
    json_output: bool = False,
) -> str:
    """Format a ServiceResult for display.

    Args:
        result: The service result to format.
        settings: Output mode; overrides *json_output* when given.
        json_output: Shorthand for ``OutputSettings(json_output=True)``.
    """
    mode = settings or OutputSettings(json_output=json_output)
    if mode.json_output:
        return result.model_dump_json(indent=2)
    if mode.quiet:
        return render_quiet(result)
    return render_result(result, verbose=mode.verbose)
