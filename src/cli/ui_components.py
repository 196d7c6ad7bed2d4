"""Componentes de UI para CLI (Rich).

Por qué separar componentes:
- Evita mezclar lógica de comandos con detalles visuales.
- Permite reutilizar tablas/líneas en múltiples comandos.
"""

from __future__ import annotations

from datetime import datetime

from rich.console import Console
from rich.table import Table
from rich.text import Text

from core.domain.models import ServerStatus, ServerStatusReport, SourceDataItem
from core.services.download_sweep import ItemReport

_STATUS_STYLES: dict[ServerStatus, str] = {
    ServerStatus.STOPPED: "red",
    ServerStatus.STARTING: "yellow",
    ServerStatus.LOADING: "yellow",
    ServerStatus.RUNNING: "green",
}


def build_status_table(report: ServerStatusReport, *, channel: str) -> Table:
    table = Table(title="Hedge Server", show_header=False)
    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("Value", style="white")

    table.add_row("Channel", channel)
    table.add_row("Status", Text(report.status.value, style=_STATUS_STYLES[report.status]))
    if report.pid is not None:
        table.add_row("PID", str(report.pid))
    if report.port is not None:
        table.add_row("Port", str(report.port))
    if report.start_time is not None:
        started = datetime.fromtimestamp(report.start_time / 1000)
        table.add_row("Started", started.strftime("%Y-%m-%d %H:%M:%S"))
    return table


def build_source_data_table(items: list[SourceDataItem]) -> Table:
    table = Table(title="Source Data")
    table.add_column("Site", style="cyan", no_wrap=True, justify="right")
    table.add_column("ID", style="white", justify="right")
    table.add_column("Status", style="magenta")
    table.add_column("Content", style="dim")
    for item in items:
        parts = []
        if item.tag_count > 0:
            parts.append(f"{item.tag_count} tag(s)")
        if item.book_count > 0:
            parts.append(f"{item.book_count} book(s)")
        if item.relation_count > 0:
            parts.append(f"{item.relation_count} relation(s)")
        table.add_row(item.display_site, str(item.source_id), item.status, ", ".join(parts))
    return table


def print_item_report(console: Console, report: ItemReport, total: int) -> None:
    """Una línea por item del barrido de descargas."""

    width = len(str(total))
    now = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    line = Text(f"{now} | {report.index:>{width}}/{total} ")
    line.append(f"| {report.item.site:16} | {report.item.source_id:>12} |", style="bold yellow")

    outcome = report.outcome
    if outcome is None:
        line.append(f" Failed: {report.error}", style="bold red")
    else:
        timing = f"in {outcome.elapsed_ms / 1000:.2f}s, retry {outcome.retry_count} time(s)"
        if report.update_error:
            line.append(f" Success ({timing}), But update failed: {report.update_error}", style="bold red")
        else:
            line.append(f" Success ({timing})", style="bold green")
    console.print(line)
