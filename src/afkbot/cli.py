# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""afkbot command line interface."""

from __future__ import annotations

import asyncio

import click
import httpx
from rich.console import Console
from rich.table import Table

from afkbot.logging import configure_logging
from afkbot.settings import Settings
from afkbot.state import backoff_delay

console = Console()


def _settings(**overrides: object) -> Settings:
    return Settings(**{k: v for k, v in overrides.items() if v is not None})


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
def cli() -> None:
    """afkbot command line interface."""


@cli.command("run")
@click.option("--host", default=None, help="Server host (env: SERVER_HOST).")
@click.option("--port", type=int, default=None, help="Server port (env: SERVER_PORT).")
@click.option("--username", default=None, help="Player name (env: BOT_USERNAME).")
@click.option("--version", "version", default=None, help="Protocol version (env: MC_VERSION).")
@click.option("--auth", default=None, help="Auth mode (env: AFKBOT_AUTH).")
@click.option("--status-port", type=int, default=None, help="Port for the status endpoint.")
@click.option("--log-level", default=None, help="DEBUG, INFO, WARNING or ERROR.")
@click.option("--log-format", type=click.Choice(["console", "json"]), default=None, help="Console text or JSON lines.")
@click.option("--client", "client_factory", default=None, help="Session client factory as 'module:callable'.")
@click.option("--chaos-fail-every", type=int, default=None, help="Fail every Nth connect (resilience runs).")
@click.option("--chaos-kick-after", "chaos_kick_after_s", type=float, default=None, help="Kick N seconds after ready.")
def run(**options: object) -> None:
    """Connect, stay active and reconnect with backoff until interrupted."""
    from afkbot.runner import resolve_client_factory, run_bot

    settings = _settings(**options)
    configure_logging(settings)
    try:
        factory = resolve_client_factory(settings)
    except (ValueError, ImportError) as e:
        raise click.BadParameter(str(e), param_hint="--client") from e
    asyncio.run(run_bot(settings, client_factory=factory))


@cli.command("status")
@click.option("--url", default="http://localhost:3000", show_default=True, help="Status endpoint URL.")
@click.option("--timeout", type=float, default=5.0, show_default=True)
def status(url: str, timeout: float) -> None:
    """Show the status reported by a running bot."""
    try:
        resp = httpx.get(url, timeout=timeout)
        resp.raise_for_status()
    except httpx.HTTPError as e:
        console.print(f"[red]Status endpoint unavailable:[/red] {e}")
        raise SystemExit(1) from e

    data = resp.json()
    table = Table(title=data.get("status", "afkbot"))
    table.add_column("Field")
    table.add_column("Value")
    connected = data.get("connected")
    table.add_row("State", str(data.get("state", "?")))
    table.add_row("Connected", "[green]yes[/green]" if connected else "[red]no[/red]")
    table.add_row("Uptime", str(data.get("uptime", "?")))
    table.add_row("Reconnects", str(data.get("reconnects", 0)))
    table.add_row("Last error", str(data.get("lastError") or "-"))
    console.print(table)


@cli.command("backoff")
def backoff() -> None:
    """Print the reconnect delay schedule for the current settings."""
    settings = Settings()
    table = Table(title=f"Reconnect schedule (max {settings.max_attempts} attempts)")
    table.add_column("Attempt", justify="right")
    table.add_column("Delay", justify="right")
    for attempt in range(1, settings.max_attempts + 1):
        table.add_row(str(attempt), f"{backoff_delay(attempt, settings.base_delay_s, settings.cap_delay_s):g}s")
    console.print(table)


if __name__ == "__main__":
    cli()
