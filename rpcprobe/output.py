"""Output renderer: rich table formatter, JSON formatter, format dispatch."""

import json
import logging
import sys
from io import StringIO

from rich.console import Console
from rich.table import Table

from rpcprobe.models import ProbeReport, ProbeResult

logger = logging.getLogger(__name__)


def render(
    report: ProbeReport,
    fmt: str,
    *,
    title: str | None = None,
    file: object | None = None,
    width: int | None = None,
) -> None:
    """Dispatch output to the appropriate formatter.

    Args:
        report: Probe report to render.
        fmt: Output format — ``"table"`` or ``"json"``.
        title: Table title (ignored for JSON).
        file: Writable file object for output (default: ``sys.stdout``).
        width: Explicit console width (default: auto-detect).

    Raises:
        ValueError: If *fmt* is not ``"table"`` or ``"json"``.
    """
    if fmt == "table":
        render_table(report, title=title, file=file, width=width)
    elif fmt == "json":
        render_json(report, file=file)
    else:
        raise ValueError(f"Unknown output format: {fmt!r}")


# ---------------------------------------------------------------------------
# Table (rich) formatter
# ---------------------------------------------------------------------------


def render_table(
    report: ProbeReport,
    *,
    title: str | None = None,
    file: object | None = None,
    width: int | None = None,
) -> None:
    """Render *report* as a ``rich`` table followed by a summary line.

    Rows follow the input order of the endpoints.
    """
    out = file or sys.stdout
    console = Console(file=out, highlight=False, width=width)

    table = Table(title=title or f"{len(report.all)} endpoints")
    table.add_column("URL", overflow="fold")
    table.add_column("Transport")
    table.add_column("Status")
    table.add_column("Height", justify="right")
    table.add_column("Latency (ms)", justify="right")

    for result in report.all:
        table.add_row(
            result.endpoint.url,
            result.endpoint.transport.value,
            _status(result),
            _fmt(result.height),
            _fmt(result.latency_ms),
        )

    console.print(table)
    console.print(
        f"  {len(report.working)} working, {len(report.not_working)} not working"
    )


def _status(result: ProbeResult) -> str:
    if not result.success:
        return "[red]down[/red]"
    if not result.has_height:
        return "[yellow]up (no height)[/yellow]"
    return "[green]up[/green]"


# ---------------------------------------------------------------------------
# JSON formatter
# ---------------------------------------------------------------------------


def render_json(report: ProbeReport, *, file: object | None = None) -> None:
    """Render *report* as JSON to *file*.

    The document has ``allRpcs``, ``workingRpcs`` and ``notWorkingRpcs``
    arrays; see ``ProbeReport.to_dict``.
    """
    out = file or sys.stdout
    json.dump(report.to_dict(), out, indent=2)
    out.write("\n")  # type: ignore[union-attr]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _fmt(value: object) -> str:
    """Format a field value for table display.

    ``None`` becomes ``"—"``, everything else is stringified.
    """
    if value is None:
        return "—"
    return str(value)


def render_to_string(
    report: ProbeReport, fmt: str, *, title: str | None = None, width: int = 200
) -> str:
    """Render to a string instead of stdout — useful for testing."""
    buf = StringIO()
    render(report, fmt, title=title, file=buf, width=width)
    return buf.getvalue()
