"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes the body of one op's output to a Rich Console
(backed by StringIO). Bodies are shared between success and failure: a
failed install still shows its outcome table before the error line.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
Unknown ops fall through to a generic key-value renderer.
"""

from __future__ import annotations

import json as _json
from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from dotctl.output.console import create_console, get_output, style_for

if TYPE_CHECKING:
    from rich.console import Console

    from dotctl.services.result import ServiceResult


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich.

    Returns plain text (no ANSI) when Rich detects no terminal,
    which is the case inside Click's CliRunner and piped output.
    """
    console = create_console()
    renderer = _OP_RENDERERS.get(result.op, _render_generic)

    if result.ok:
        _status_line(console, result)
        renderer(result, console, verbose=verbose)
    else:
        if result.data and renderer is not _render_generic:
            renderer(result, console, verbose=verbose)
        _render_error(result, console, verbose=verbose)

    if verbose:
        _render_meta(console, result)
    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Render minimal output for ``--quiet`` mode."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op} — {msg}"
    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    """Print the OK status line."""
    label = Text("OK", style="dot.ok")
    op = Text(f"  {result.op}", style="dot.op")
    console.print(label, op, end="")
    console.print()


def _field(console: Console, key: str, value: Any) -> None:
    """Print a single indented key-value field."""
    k = Text(f"  {key}: ", style="dot.key")
    style = "dot.path" if key in ("path", "root", "output", "target") else ""
    console.print(k, Text(str(value), style=style), end="")
    console.print()


def _styled(value: str) -> Text:
    return Text(value, style=style_for(value))


def _counts_line(console: Console, counts: dict[str, int]) -> None:
    parts = [f"[{style_for(k) or 'default'}]{v} {k}[/]" for k, v in counts.items() if v]
    console.print("  " + (", ".join(parts) if parts else "nothing to do"))


def _render_meta(console: Console, result: ServiceResult) -> None:
    """Print meta block including telemetry span tree (verbose only)."""
    if not result.meta:
        return

    console.print()
    console.print(Text("  meta:", style="dim"))
    for k, v in result.meta.items():
        if k == "telemetry":
            _render_telemetry_tree(console, v, indent=4)
        else:
            console.print(f"    {k}: {v}")


def _render_telemetry_tree(
    console: Console,
    span_data: dict[str, Any],
    indent: int = 4,
) -> None:
    """Render a hierarchical span tree with color-coded timing."""
    prefix = " " * indent
    name = span_data.get("name", "?")
    duration = span_data.get("duration_ms", 0.0)
    style = "bold red" if duration > 1000 else "yellow" if duration > 100 else "dim"

    line = f"{prefix}[{style}]{duration:>8.2f}ms[/{style}]  {name}"
    annotations = span_data.get("annotations") or {}
    if annotations:
        line += "  (" + ", ".join(f"{k}={v}" for k, v in annotations.items()) + ")"
    console.print(line)

    for child in span_data.get("children", []):
        _render_telemetry_tree(console, child, indent=indent + 4)


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    label = Text("ERROR", style="dot.error")
    op = Text(f"  {result.op}", style="dot.op")
    sep = Text(" — ")
    console.print(label, op, sep, Text(msg))

    if err is None:
        return
    stage = err.detail.get("stage")
    if stage:
        console.print(f"  failed stage: [bold]{stage}[/bold]")
    if verbose and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(f"    {k}: {_json.dumps(v, default=str)}")


# ── Link renderers ────────────────────────────────────────────────────


def _render_links(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render install/uninstall/repair outcomes; unchanged pairs only with -v."""
    d = result.data
    outcomes = d.get("outcomes", [])
    shown = [o for o in outcomes if verbose or o.get("action") not in ("unchanged", "skipped")]

    for link in d.get("removed", []):
        console.print(Text.assemble("  ", ("removed", "dot.warning"), f" broken link {link}"))

    if shown:
        table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
        table.add_column("Action", no_wrap=True)
        table.add_column("Package", style="dot.package", no_wrap=True)
        table.add_column("Target")
        table.add_column("Note", style="dim")
        for o in shown:
            table.add_row(
                _styled(str(o.get("action", ""))),
                str(o.get("package", "")),
                str(o.get("target", "")),
                str(o.get("message", "")),
            )
        console.print(table)

    if d.get("dry_run"):
        console.print("  [dot.warning]dry run[/dot.warning]: no changes made")
    _counts_line(console, d.get("counts", {}))


def _render_status(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render per-package link state."""
    d = result.data
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("Package", style="dot.package", no_wrap=True)
    table.add_column("Target root", style="dot.path")
    table.add_column("Linked", justify="right")
    table.add_column("Missing", justify="right")
    table.add_column("Stale", justify="right")
    table.add_column("Conflicts", justify="right")
    for p in d.get("packages", []):
        conflicts = int(p.get("conflicts", 0))
        table.add_row(
            str(p.get("name", "")),
            str(p.get("target_root", "")),
            f"{p.get('linked', 0)}/{p.get('total', 0)}",
            str(p.get("missing", 0)),
            str(p.get("stale", 0)),
            Text(str(conflicts), style="dot.error" if conflicts else ""),
        )
    console.print(table)
    if verbose:
        for problem in d.get("problems", []):
            console.print(Text(f"  {problem['state']}: {problem['target']}"))


def _render_packages(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render discovered packages, marking this machine's selection."""
    d = result.data
    _field(console, "root", d.get("root", ""))
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("", no_wrap=True)
    table.add_column("Package", style="dot.package", no_wrap=True)
    table.add_column("Target root", style="dot.path")
    table.add_column("Files", justify="right")
    table.add_column("Templates", justify="right")
    for p in d.get("packages", []):
        table.add_row(
            Text("*", style="dot.ok") if p.get("selected") else "",
            str(p.get("name", "")),
            str(p.get("target_root", "")),
            str(p.get("files", 0)),
            str(p.get("templates", 0)),
        )
    console.print(table)
    console.print(f"\n{d.get('count', 0)} packages (* = selected by default)")


# ── Inject renderers ──────────────────────────────────────────────────


def _render_inject(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render per-template injection outcomes (variable names only)."""
    d = result.data
    templates = d.get("templates", [])
    if templates:
        table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
        table.add_column("Action", no_wrap=True)
        table.add_column("Output")
        table.add_column("Variables", justify="right")
        table.add_column("Note", style="dim")
        for t in templates:
            missing = t.get("missing", []) + t.get("unavailable", [])
            note = f"unresolved: {', '.join(missing)}" if missing else t.get("message", "")
            table.add_row(
                _styled(str(t.get("action", ""))),
                str(t.get("output", "")),
                str(len(t.get("variables", []))),
                note,
            )
        console.print(table)
    if d.get("dry_run"):
        console.print("  [dot.warning]dry run[/dot.warning]: no files written")
    _counts_line(console, d.get("counts", {}))


def _render_inject_check(
    result: ServiceResult,
    console: Console,
    *,
    verbose: bool = False,
) -> None:
    """Render template readiness with per-variable status."""
    for t in result.data.get("templates", []):
        ready = bool(t.get("ready"))
        mark = Text("ready", style="dot.pass") if ready else Text("not ready", style="dot.fail")
        console.print(Text(f"  {t.get('template', '')}  "), mark)
        if t.get("error"):
            console.print(Text(f"    {t['error']}", style="dot.error"))
        for var in t.get("variables", []):
            status = str(var.get("status", ""))
            if verbose or status != "resolved":
                style = "dot.pass" if status == "resolved" else "dot.fail"
                name = str(var.get("name", ""))
                console.print(Text.assemble("    ", (status, style), f" {name}"))


def _render_inject_diff(
    result: ServiceResult,
    console: Console,
    *,
    verbose: bool = False,
) -> None:
    """Render masked unified diffs."""
    entries = result.data.get("templates", [])
    for t in entries:
        if not t.get("changed"):
            if verbose:
                console.print(f"  [dim]unchanged[/dim] {t.get('output', '')}")
            continue
        for line in str(t.get("diff", "")).splitlines():
            style = (
                "green"
                if line.startswith("+") and not line.startswith("+++")
                else "red"
                if line.startswith("-") and not line.startswith("---")
                else "cyan"
                if line.startswith("@@")
                else ""
            )
            console.print(Text(line, style=style))
    console.print(f"\n{result.data.get('changed', 0)} of {len(entries)} output(s) would change")


# ── Doctor renderers ──────────────────────────────────────────────────


def _render_doctor(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render the check report grouped by check name."""
    d = result.data
    if d.get("skipped"):
        console.print(f"  skipped: last check at {d.get('last_check')}")
        return

    by_check: dict[str, list[dict[str, Any]]] = {}
    for check in d.get("checks", []):
        by_check.setdefault(str(check.get("name", "?")), []).append(check)

    for name, results in by_check.items():
        console.print(f"\n[bold]{name}[/bold]")
        for r in results:
            status = str(r.get("status", ""))
            if status == "pass" and not verbose and len(results) > 1:
                continue
            message = str(r.get("message", ""))
            line = Text.assemble("  ", (f"{status:<4}", style_for(status)), "  ", message)
            console.print(line)

    counts = d.get("counts", {})
    console.print(
        f"\n{counts.get('pass', 0)} passed, {counts.get('warn', 0)} warnings, "
        f"{counts.get('fail', 0)} failed"
    )


# ── Update renderers ──────────────────────────────────────────────────


def _render_update(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render the stage list in execution order."""
    for stage in result.data.get("stages", []):
        if stage.get("skipped"):
            label = Text("skip", style="dim")
        elif stage.get("ok"):
            label = Text("ok  ", style="dot.pass")
        else:
            label = Text("FAIL", style="dot.fail")
        detail = f"  {stage.get('stage', '')}: {stage.get('summary', '')}"
        console.print(Text.assemble("  ", label, detail))


def _render_sync(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    if d.get("pulled"):
        _field(console, "before", d.get("before", ""))
        _field(console, "after", d.get("after", ""))
    else:
        _field(console, "pulled", f"no ({d.get('reason', '')})")


# ── Init renderer ─────────────────────────────────────────────────────


def _render_init(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    _field(console, "path", d.get("path", ""))
    if "content" in d:
        console.print()
        console.print(Text(str(d["content"])))


# ── Generic fallback ──────────────────────────────────────────────────


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: all data as key-value pairs."""
    for key, value in result.data.items():
        if isinstance(value, (dict, list)):
            _field(console, key, _json.dumps(value, separators=(",", ":")))
        else:
            _field(console, key, value)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Any] = {
    # Links
    "install": _render_links,
    "uninstall": _render_links,
    "repair": _render_links,
    "status": _render_status,
    "packages": _render_packages,
    # Templates
    "inject": _render_inject,
    "inject_check": _render_inject_check,
    "inject_diff": _render_inject_diff,
    # Health
    "doctor": _render_doctor,
    # Orchestration
    "update": _render_update,
    "sync": _render_sync,
    # Scaffolding
    "init": _render_init,
}
