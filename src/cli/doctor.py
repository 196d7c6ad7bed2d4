"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from adapters.download import RULES
from adapters.server_client import AuthenticatedClient, build_server_client, describe_error
from core.config import AppSettings, get_local_config_file
from core.errors import HedgeError
from core.services.channels import ChannelManager
from core.services.session_manager import SessionManager

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


async def _check_server(settings: AppSettings, channel: str) -> tuple[bool, str]:
    client = AuthenticatedClient(build_server_client(settings))
    try:
        report = await SessionManager(settings, channel, client).status_report()
        return True, report.status.value
    except HedgeError as exc:
        return False, describe_error(exc)
    finally:
        await client.aclose()


@app.command()
def run(ctx: typer.Context) -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings: AppSettings = ctx.obj

    table = Table(title="Hedge Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    # Config
    config_file = get_local_config_file()
    table.add_row("Local config", "OK" if config_file.is_file() else "DEFAULT", str(config_file))
    table.add_row("Userdata", "OK" if settings.userdata_path.is_dir() else "MISSING", str(settings.userdata_path))

    binary = settings.server_binary()
    table.add_row("Server binary", "OK" if binary.is_file() else "MISSING", str(binary))

    # Sites -> rules
    rules = settings.download.site_rules()
    if not rules:
        table.add_row("Download sites", "OPTIONAL", "No site configured -> source-data download disabled")
    for site, rule in sorted(rules.items()):
        known = rule in RULES
        table.add_row(f"Site {site}", "OK" if known else "FAIL", rule if known else f"unknown rule {rule}")

    # Channel + server (never spawns)
    try:
        channel = ChannelManager(settings).current_channel
        table.add_row("Channel", "OK", channel)
        ok_server, detail_server = asyncio.run(_check_server(settings, channel))
        table.add_row("Server", "OK" if ok_server else "FAIL", detail_server)
    except HedgeError as exc:
        table.add_row("Channel", "FAIL", describe_error(exc))

    _console.print(table)

    if not binary.is_file():
        _console.print(
            "\n[yellow]Note:[/yellow] Set `server_path` in the local config when the server is installed elsewhere."
        )
