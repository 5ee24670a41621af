"""CLI UI components (Rich).

Why separate components:
- Keeps command logic apart from visual details.
- Tables/panels are reused by several commands (main + doctor).
"""

from __future__ import annotations

from typing import Any

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from tinker_http.core.domain.models import GetInfoResponse, GetServerCapabilitiesResponse
from tinker_http.core.errors import APIStatusError, TinkerError


def print_banner(console: Console) -> None:
    """Print the welcome banner.

    Why here:
    - Avoids circular imports (main <-> doctor).
    - The banner can be skipped in non-interactive modes (JSON output).
    """

    title = Text("tinker-http", style="bold cyan")
    subtitle = Text("Tinker API client • Proxies • Diagnostics", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def _format_extra(extra: dict[str, Any]) -> str:
    return ", ".join(f"{key}={value!r}" for key, value in sorted(extra.items()))


def build_capabilities_table(capabilities: GetServerCapabilitiesResponse) -> Table:
    table = Table(title="Supported Models")
    table.add_column("Model name", style="cyan")
    table.add_column("Model id", style="white", no_wrap=True)
    table.add_column("Arch", style="green")
    table.add_column("Other fields", style="dim")
    for model in capabilities.supported_models:
        table.add_row(
            model.model_name or "-",
            model.model_id or "-",
            model.arch or "-",
            _format_extra(model.unknown_fields),
        )
    return table


def build_model_info_panel(info: GetInfoResponse) -> Panel:
    body = Text()
    body.append(f"Model id: {info.model_id}\n", style="bold")
    if info.model_name or info.model_data.model_name:
        body.append(f"Model name: {info.model_name or info.model_data.model_name}\n")
    if info.model_data.arch:
        body.append(f"Arch: {info.model_data.arch}\n")
    if info.model_data.tokenizer_id:
        body.append(f"Tokenizer: {info.model_data.tokenizer_id}\n")
    if info.is_lora is not None:
        lora = f"yes (rank {info.lora_rank})" if info.is_lora else "no"
        body.append(f"LoRA: {lora}\n")
    extra = {**info.unknown_fields, **info.model_data.unknown_fields}
    if extra:
        body.append(f"\nOther fields: {_format_extra(extra)}", style="dim")
    return Panel(body, title=Text("Model info", style="bold yellow"), border_style="yellow")


def build_config_table(values: dict[str, Any]) -> Table:
    """Settings table; pass `AppSettings.redacted()` so no secret is shown."""

    table = Table(title="Configuration")
    table.add_column("Setting", style="bright_green", no_wrap=True)
    table.add_column("Value", style="white")
    for key in sorted(values):
        value = values[key]
        table.add_row(key, "-" if value in (None, "", []) else str(value))
    return table


def build_error_panel(exc: TinkerError) -> Panel:
    body = Text(str(exc))
    if isinstance(exc, APIStatusError) and exc.category:
        body.append(f"\nCategory: {exc.category}", style="dim")
    if exc.elapsed is not None:
        body.append(f"\nElapsed: {exc.elapsed:.2f}s", style="dim")
    return Panel(body, title=type(exc).__name__, border_style="red")
