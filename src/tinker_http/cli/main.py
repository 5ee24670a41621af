"""tinker-http command line.

Thin layer over `TinkerClient`: parse options, run the coroutine, render with Rich.
Errors from the client are printed as panels and turned into exit code 1.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Optional, TypeVar

import typer
from rich.console import Console
from rich.logging import RichHandler

from tinker_http.cli import doctor
from tinker_http.cli.ui_components import (
    build_capabilities_table,
    build_config_table,
    build_error_panel,
    build_model_info_panel,
    print_banner,
)
from tinker_http.core.config import AppSettings
from tinker_http.core.errors import TinkerError
from tinker_http.core.services.client import TinkerClient

T = TypeVar("T")

app = typer.Typer(no_args_is_help=True, help="Client for the Tinker model-serving API.")
app.add_typer(doctor.app, name="doctor")

console = Console()
_err_console = Console(stderr=True)


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=_err_console, show_path=False)],
        force=True,
    )
    # Keep httpx/httpcore quiet unless debugging
    if level.upper() != "DEBUG":
        for name in ("httpx", "httpcore"):
            logging.getLogger(name).setLevel(logging.WARNING)


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="DEBUG, INFO, WARNING or ERROR (default: TINKER_LOG_LEVEL).",
    ),
) -> None:
    level = (log_level or AppSettings().log_level).upper()
    if level not in ("DEBUG", "INFO", "WARNING", "ERROR"):
        raise typer.BadParameter(f"unknown log level {log_level!r}", param_hint="--log-level")
    setup_logging(level)


def _settings(base_url: str | None, proxy: str | None) -> AppSettings:
    overrides: dict[str, Any] = {}
    if base_url:
        overrides["base_url"] = base_url
    if proxy:
        overrides["proxy"] = proxy
    return AppSettings(**overrides)


def _run_client(
    settings: AppSettings,
    action: Callable[[TinkerClient], Awaitable[T]],
) -> T:
    async def _go() -> T:
        async with TinkerClient(settings) as client:
            return await action(client)

    try:
        return asyncio.run(_go())
    except TinkerError as exc:
        _err_console.print(build_error_panel(exc))
        raise typer.Exit(code=1) from exc


def _print_json(payload: Any) -> None:
    console.print_json(json.dumps(payload))


BaseUrlOption = typer.Option(None, "--base-url", help="Override TINKER_BASE_URL.")
ProxyOption = typer.Option(None, "--proxy", help="Proxy URL; wins over HTTP(S)_PROXY.")
JsonOption = typer.Option(False, "--json", help="Print raw JSON instead of tables.")


@app.command()
def capabilities(
    base_url: Optional[str] = BaseUrlOption,
    proxy: Optional[str] = ProxyOption,
    as_json: bool = JsonOption,
) -> None:
    """List the models supported by the service."""

    result = _run_client(_settings(base_url, proxy), lambda c: c.get_server_capabilities())
    if as_json:
        _print_json(result.model_dump(mode="json"))
        return
    print_banner(console)
    console.print(build_capabilities_table(result))


@app.command()
def health(
    base_url: Optional[str] = BaseUrlOption,
    proxy: Optional[str] = ProxyOption,
) -> None:
    """Check that the service answers its health endpoint."""

    result = _run_client(_settings(base_url, proxy), lambda c: c.health_check())
    console.print(f"[green]healthy[/green] status={result.status or 'unknown'}")


@app.command(name="model-info")
def model_info(
    model_id: str = typer.Argument(..., help="Active model id."),
    base_url: Optional[str] = BaseUrlOption,
    proxy: Optional[str] = ProxyOption,
    as_json: bool = JsonOption,
) -> None:
    """Show metadata for an active model."""

    result = _run_client(_settings(base_url, proxy), lambda c: c.get_info(model_id))
    if as_json:
        _print_json(result.model_dump(mode="json"))
        return
    console.print(build_model_info_panel(result))


@app.command(name="config")
def show_config() -> None:
    """Print the effective configuration with secrets masked."""

    console.print(build_config_table(AppSettings().redacted()))


def run() -> None:
    app()


if __name__ == "__main__":
    run()
