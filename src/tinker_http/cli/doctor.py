"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from tinker_http.core.config import AppSettings, build_transport_config, mask_api_key, write_user_env_vars
from tinker_http.core.errors import ConfigurationError, TinkerError
from tinker_http.core.proxy import parse_proxy_url
from tinker_http.core.services.client import TinkerClient

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


async def _check_http(settings: AppSettings) -> tuple[bool, str]:
    try:
        async with TinkerClient(settings) as client:
            health = await client.health_check()
        return True, f"status={health.status or 'unknown'}"
    except TinkerError as exc:
        return False, str(exc)


@app.command()
def run() -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()

    table = Table(title="tinker-http Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    # Config
    if settings.api_key:
        table.add_row("API key", "OK", mask_api_key(settings.api_key))
    else:
        table.add_row("API key", "FAIL", "Set TINKER_API_KEY")
    table.add_row("Base URL", "OK", settings.base_url)

    proxy_ok = True
    try:
        transport_config = build_transport_config(settings)
    except ConfigurationError as exc:
        proxy_ok = False
        table.add_row("Proxy", "FAIL", str(exc))
    else:
        proxy = transport_config.proxy
        table.add_row("Proxy", "OK", str(proxy) if proxy else "direct (no proxy)")
        if not transport_config.verify_tls:
            table.add_row("TLS verification", "WARN", "Disabled (TINKER_VERIFY_TLS=false)")

    # Connectivity (best-effort)
    if settings.api_key and proxy_ok:
        ok_http, detail_http = asyncio.run(_check_http(settings))
        table.add_row("Service health", "OK" if ok_http else "FAIL", detail_http)
    else:
        table.add_row("Service health", "SKIPPED", "Fix the configuration first")

    _console.print(table)


@app.command(name="setup-proxy")
def setup_proxy(
    clear: bool = typer.Option(False, "--clear", help="Remove the stored proxy."),
) -> None:
    """Interactive proxy setup (stores config in the user config .env)."""

    if clear:
        env_path = write_user_env_vars({"TINKER_PROXY": None})
        _console.print(f"[green]Removed proxy from:[/green] {env_path}")
        return

    url = typer.prompt("Proxy URL (http://[user:pass@]host[:port])").strip()
    try:
        directive = parse_proxy_url(url)
    except ConfigurationError as exc:
        raise typer.BadParameter(str(exc)) from exc

    env_path = write_user_env_vars({"TINKER_PROXY": directive.to_url()})
    _console.print(f"[green]Saved proxy {directive} to:[/green] {env_path}")
