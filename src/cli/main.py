"""CLI de Hedge (Typer).

Cada comando arma sus colaboradores a partir del único `AppSettings` cargado
en el callback, ejecuta su cuerpo async con `asyncio.run` y convierte
cualquier `HedgeError` en una línea roja y código de salida 1.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import AsyncIterator, Awaitable, Callable, List, Optional, TypeVar

import typer
from rich.console import Console

from adapters.download import DownloadModule
from adapters.http_client import FetchAdapter
from adapters.imports import ImportModule, OrderTimeType
from adapters.server_client import AuthenticatedClient, build_server_client, describe_error
from adapters.source_data import SourceDataModule
from cli import doctor
from cli.ui_components import build_source_data_table, build_status_table, print_item_report
from core.config import AppSettings, load_settings
from core.domain.models import SessionMode
from core.errors import HedgeError
from core.log import setup_logging
from core.services.channels import ChannelManager
from core.services.download_sweep import SweepHooks, run_download_sweep
from core.services.pacer import Pacer
from core.services.session_manager import SessionManager

T = TypeVar("T")

app = typer.Typer(no_args_is_help=True, help="Command-line client for the Hedge server.")
server_app = typer.Typer(no_args_is_help=True, help="Manage the background server of the current channel.")
channel_app = typer.Typer(no_args_is_help=True, help="Select and inspect channels.")
import_app = typer.Typer(no_args_is_help=True, help="Import files into the library.")
source_data_app = typer.Typer(no_args_is_help=True, help="Query and download source data.")

app.add_typer(server_app, name="server")
app.add_typer(channel_app, name="channel")
app.add_typer(import_app, name="import")
app.add_typer(source_data_app, name="source-data")
app.add_typer(doctor.app, name="doctor")

_console = Console()
_err_console = Console(stderr=True)


@dataclass
class ServerContext:
    manager: SessionManager
    client: AuthenticatedClient


def _fail(message: str) -> typer.Exit:
    _err_console.print(f"[bold red]{message}[/bold red]")
    return typer.Exit(code=1)


def _run(body: Callable[[], Awaitable[T]]) -> T:
    try:
        return asyncio.run(body())
    except HedgeError as exc:
        raise _fail(describe_error(exc)) from exc


def _settings(ctx: typer.Context) -> AppSettings:
    return ctx.obj


@asynccontextmanager
async def open_server(
    settings: AppSettings,
    *,
    mode: SessionMode | None = SessionMode.ONE_SHOT,
) -> AsyncIterator[ServerContext]:
    """Session for one command; `mode=None` skips the handshake."""

    channels = ChannelManager(settings)
    client = AuthenticatedClient(build_server_client(settings))
    manager = SessionManager(settings, channels.current_channel, client)
    try:
        if mode is not None:
            await manager.acquire(mode)
        yield ServerContext(manager=manager, client=client)
    finally:
        await manager.close()
        await client.aclose()


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(False, "--debug", help="Verbose logging on stderr."),
) -> None:
    try:
        settings = load_settings()
    except HedgeError as exc:
        raise _fail(describe_error(exc)) from exc
    setup_logging(debug or settings.debug_mode)
    ctx.obj = settings


# --- server ----------------------------------------------------------------


@server_app.command("status")
def server_status(ctx: typer.Context) -> None:
    """Show the status of the server of the current channel."""

    settings = _settings(ctx)

    async def body() -> None:
        async with open_server(settings, mode=None) as server:
            report = await server.manager.status_report()
            _console.print(build_status_table(report, channel=server.manager.channel))

    _run(body)


@server_app.command("start")
def server_start(ctx: typer.Context) -> None:
    """Start the server (if needed) and wait until it is ready."""

    settings = _settings(ctx)

    async def body() -> None:
        async with open_server(settings) as server:
            session = server.manager.session
            assert session is not None
            _console.print(f"[green]Server is running on {session.address}.[/green]")

    _run(body)


@server_app.command("stop")
def server_stop(ctx: typer.Context) -> None:
    """Kill the server process of the current channel."""

    settings = _settings(ctx)

    async def body() -> bool:
        async with open_server(settings, mode=None) as server:
            return server.manager.kill()

    if _run(body):
        _console.print("[green]Server stopped.[/green]")
    else:
        _console.print("[dim]Server is not running.[/dim]")


@server_app.command("log")
def server_log(ctx: typer.Context) -> None:
    """Print the server log of the current channel."""

    settings = _settings(ctx)

    async def body() -> None:
        async with open_server(settings, mode=None) as server:
            for line in server.manager.read_log():
                _console.print(line, markup=False, highlight=False)

    _run(body)


@server_app.command("permanent")
def server_permanent(
    ctx: typer.Context,
    enable: bool = typer.Option(True, "--enable/--disable", help="Keep the server alive without clients."),
) -> None:
    """Toggle the permanent mode of the server."""

    settings = _settings(ctx)

    async def body() -> None:
        async with open_server(settings) as server:
            await server.manager.permanent(enable)

    _run(body)
    _console.print(f"Permanent mode {'enabled' if enable else 'disabled'}.")


# --- channel ---------------------------------------------------------------


@channel_app.command("info")
def channel_info(ctx: typer.Context) -> None:
    """Show the current channel."""

    try:
        channels = ChannelManager(_settings(ctx))
    except HedgeError as exc:
        raise _fail(describe_error(exc)) from exc
    _console.print(f"Current channel: [cyan]{channels.current_channel}[/cyan]")


@channel_app.command("use")
def channel_use(ctx: typer.Context, channel_name: str = typer.Argument(..., help="Channel to select.")) -> None:
    """Select the channel used by the next commands."""

    try:
        ChannelManager(_settings(ctx)).use_channel(channel_name)
    except HedgeError as exc:
        raise _fail(describe_error(exc)) from exc
    _console.print(f"Using channel [cyan]{channel_name}[/cyan].")


@channel_app.command("list")
def channel_list(ctx: typer.Context) -> None:
    """List the channels found in the appdata directory."""

    try:
        channels = ChannelManager(_settings(ctx))
        names = channels.list_channels()
    except HedgeError as exc:
        raise _fail(describe_error(exc)) from exc
    for name in names:
        marker = "*" if name == channels.current_channel else " "
        _console.print(f"{marker} {name}")


# --- import ----------------------------------------------------------------


@import_app.command("list")
def import_list(ctx: typer.Context) -> None:
    """List the pending imports."""

    settings = _settings(ctx)

    async def body() -> None:
        async with open_server(settings) as server:
            result = await ImportModule(server.client).list()
        for item in result.result:
            _console.print(f"-{item.id:3}| {item.file_name or '':50} | {item.partition_time}")
        if result.result:
            _console.print("---")
        _console.print(f"Total {result.total} result(s).")

    _run(body)


@import_app.command("add")
def import_add(
    ctx: typer.Context,
    files: List[Path] = typer.Argument(..., help="Files to import."),
    remove: bool = typer.Option(False, "--remove", help="Remove the original files after importing."),
) -> None:
    """Add files to the import list."""

    settings = _settings(ctx)

    async def body() -> int:
        failed = 0
        async with open_server(settings) as server:
            module = ImportModule(server.client)
            for file in files:
                try:
                    await module.add(file, remove)
                    _console.print(f"{file} added.")
                except HedgeError as exc:
                    failed += 1
                    _console.print(f"[red]{file} add failed. {describe_error(exc)}[/red]")
        return failed

    if _run(body):
        raise typer.Exit(code=1)


@import_app.command("batch")
def import_batch(
    ctx: typer.Context,
    partition_time: Optional[datetime] = typer.Option(None, formats=["%Y-%m-%d"], help="Set the partition date."),
    create_time: Optional[OrderTimeType] = typer.Option(None, help="Set the create time from this field."),
    order_time: Optional[OrderTimeType] = typer.Option(None, help="Set the order time from this field."),
    analyse_source: bool = typer.Option(False, "--analyse-source", help="Analyse source info from file names."),
) -> None:
    """Batch-update the pending imports."""

    if not (partition_time or create_time or order_time or analyse_source):
        return
    settings = _settings(ctx)

    async def body() -> bool:
        async with open_server(settings) as server:
            warnings = await ImportModule(server.client).batch(
                partition_time=partition_time.date() if partition_time else None,
                create_time=create_time,
                order_time=order_time,
                analyse_source=analyse_source,
            )
        for res in warnings:
            reason = " ".join(w.message for w in res.warnings)
            _console.print(f"-{res.id:3}| {reason}")
        if warnings:
            _console.print("---")
            _console.print("[yellow]Some items batch failed.[/yellow]")
            return False
        _console.print("[green]Batch succeed.[/green]")
        return True

    if not _run(body):
        raise typer.Exit(code=1)


@import_app.command("save")
def import_save(ctx: typer.Context) -> None:
    """Save the pending imports into the library."""

    settings = _settings(ctx)

    async def body() -> int:
        async with open_server(settings) as server:
            result = await ImportModule(server.client).save()
        for err in result.errors:
            _console.print(f"-{err.import_id:3}| {' '.join(err.reasons())}")
        if result.errors:
            _console.print("---")
            _console.print(f"{result.total} item(s) saved. {len(result.errors)} item(s) save failed.")
        else:
            _console.print(f"{result.total} item(s) saved.")
        return len(result.errors)

    if _run(body):
        raise typer.Exit(code=1)


# --- source data -----------------------------------------------------------


@source_data_app.command("query")
def source_data_query(
    ctx: typer.Context,
    hql: str = typer.Argument(..., help="Query expression."),
    offset: int = typer.Option(0, min=0),
    limit: int = typer.Option(100, min=1),
) -> None:
    """Query source data."""

    settings = _settings(ctx)

    async def body() -> None:
        async with open_server(settings) as server:
            result = await SourceDataModule(server.client).query(hql=hql, offset=offset, limit=limit)
        if result.result:
            _console.print(build_source_data_table(result.result))
        _console.print(f"Total {result.total} result(s), current {offset + 1} to {offset + len(result.result)}.")

    _run(body)


@source_data_app.command("download")
def source_data_download(
    ctx: typer.Context,
    site: Optional[List[str]] = typer.Option(None, "--site", help="Sites to sweep (default: every configured site)."),
    limit: int = typer.Option(1000, min=1, help="Maximum items per sweep."),
) -> None:
    """Download metadata for source data not edited yet (or in error)."""

    settings = _settings(ctx)
    sites = site or [entry.site for entry in settings.download.available_sites]
    if not sites:
        raise _fail("No site configured in download.available_sites.")

    async def body() -> int:
        async with open_server(settings, mode=SessionMode.MAINTAINED) as server:
            source_data = SourceDataModule(server.client)
            found = await source_data.query(status=["NOT_EDITED", "ERROR"], site=sites, limit=limit)
            if not found.result:
                _console.print(f"Total {found.total} result(s) found.")
                return 0
            _console.print(
                f"Total {found.total} result(s) found. Current processing {len(found.result)} result(s)."
            )
            _console.print("---")

            async with FetchAdapter(settings.download) as adapter:
                downloads = DownloadModule(settings.download, adapter)
                sweep = await run_download_sweep(
                    items=found.result,
                    download=downloads.download,
                    update=source_data.update,
                    pacer=Pacer(settings.download.waiting_interval),
                    hooks=SweepHooks(item_done=lambda report, total: print_item_report(_console, report, total)),
                )

        _console.print("---")
        _console.print(f"Processing completed. Success {sweep.success} item(s), failed {sweep.failed} item(s).")
        return sweep.failed

    if _run(body):
        raise typer.Exit(code=1)


def run() -> None:
    app()


if __name__ == "__main__":
    run()
