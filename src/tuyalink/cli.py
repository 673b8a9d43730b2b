"""Thin CLI wrapper over :class:`tuyalink.Client`."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from collections.abc import Coroutine
from datetime import datetime
from enum import Enum
from typing import Any, TypeVar

import typer
from dotenv import load_dotenv

from tuyalink._logging import setup_logging
from tuyalink.client import Client
from tuyalink.errors import ConfigurationError, TuyaError
from tuyalink.store import FileCredentialStore, MemoryCredentialStore

T = TypeVar("T")

app = typer.Typer(help="Link a Tuya account and control its devices.", invoke_without_command=True)


class LogFormat(str, Enum):
    console = "console"
    json = "json"


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
    log_format: LogFormat = typer.Option(
        LogFormat.console, "--log-format", help="Log output: console or json"
    ),
) -> None:
    """Link a Tuya account and control its devices."""
    setup_logging("DEBUG" if verbose else "WARNING", log_format.value)
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(0)


def _print_json(obj: object) -> None:
    """Print JSON, syntax-highlighted on a TTY and compact otherwise."""
    if sys.stdout.isatty():
        try:
            from rich.console import Console
            from rich.syntax import Syntax

            Console().print(Syntax(json.dumps(obj, indent=2), "json"))
        except ImportError:
            typer.echo(json.dumps(obj, indent=2))
    else:
        typer.echo(json.dumps(obj))


def _ensure_client(*, persist: bool = True) -> Client:
    """Build a client from the environment (and ``.env``) or exit with an error."""
    load_dotenv()
    store = FileCredentialStore() if persist else MemoryCredentialStore()
    try:
        return Client.from_env(store=store)
    except ConfigurationError as e:
        typer.echo(e.message, err=True)
        raise typer.Exit(1) from None


def _run(coro: Coroutine[Any, Any, T]) -> T:
    """Run *coro*, turning library errors into a clean exit."""
    try:
        return asyncio.run(coro)
    except TuyaError as e:
        typer.echo(e.message, err=True)
        raise typer.Exit(1) from None


def _resolve(client: Client, uid: str | None) -> str:
    try:
        return client.resolve_account(uid)
    except TuyaError as e:
        typer.echo(e.message, err=True)
        raise typer.Exit(1) from None


def _parse_value(raw: str) -> object:
    """``on``/``off`` map to booleans, JSON literals are decoded, anything else is a string."""
    if raw.lower() in ("on", "off"):
        return raw.lower() == "on"
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def _format_expiry(expires_at: float) -> str:
    return datetime.fromtimestamp(expires_at).strftime("%Y-%m-%d %H:%M:%S")


_UID_OPTION = typer.Option(None, "--uid", "-u", help="Account uid (defaults to the only linked one)")
_JSON_OPTION = typer.Option(False, "--json", "-j", help="Output as JSON")


# ---------------------------------------------------------------------------
# Account commands
# ---------------------------------------------------------------------------


@app.command("login-url")
def login_url(
    state: str | None = typer.Option(None, "--state", help="Opaque state echoed back by Tuya"),
) -> None:
    """Print the Tuya authorization URL to open in a browser."""
    client = _ensure_client()
    typer.echo(client.build_authorization_url(state))


@app.command()
def link(code: str = typer.Argument(..., help="Authorization code from the callback")) -> None:
    """Exchange an authorization code and save the account locally."""
    client = _ensure_client()
    credential = _run(client.exchange_authorization_code(code))
    typer.echo(f"Linked account {credential.uid}.")


@app.command()
def accounts() -> None:
    """List linked accounts."""
    client = _ensure_client()
    linked = client.linked_accounts()
    if not linked:
        typer.echo("No linked accounts. Run `tuyalink login-url` to start.", err=True)
        raise typer.Exit(1)
    for cred in linked:
        typer.echo(f"  {cred.uid}  (token expires {_format_expiry(cred.expires_at)})")


@app.command()
def unlink(uid: str | None = _UID_OPTION) -> None:
    """Forget a linked account."""
    client = _ensure_client()
    resolved = _resolve(client, uid)
    client.unlink(resolved)
    typer.echo(f"Unlinked account {resolved}.")


# ---------------------------------------------------------------------------
# Device commands
# ---------------------------------------------------------------------------


@app.command()
def devices(uid: str | None = _UID_OPTION, as_json: bool = _JSON_OPTION) -> None:
    """List devices on the account."""
    client = _ensure_client()
    resolved = _resolve(client, uid)
    found = _run(client.list_devices(resolved))

    if as_json:
        _print_json([d.to_dict() for d in found])
        return
    if not found:
        typer.echo("No devices found.", err=True)
        raise typer.Exit(1)

    for dev in found:
        marker = "*" if dev.online else " "
        typer.echo(f"  {marker} {dev.name} ({dev.category})")
        typer.echo(f"      ID: {dev.id}")
    typer.echo("\n  * = online.")


@app.command()
def status(
    device_id: str = typer.Argument(..., help="Device ID"),
    uid: str | None = _UID_OPTION,
    as_json: bool = _JSON_OPTION,
) -> None:
    """Show whether the device is switched on."""
    client = _ensure_client()
    resolved = _resolve(client, uid)
    result = _run(client.get_status(device_id, resolved))

    if as_json:
        _print_json(result.to_dict())
        return
    typer.echo(f"{device_id}: {'on' if result.on else 'off'}")


@app.command()
def energy(
    device_id: str = typer.Argument(..., help="Device ID"),
    uid: str | None = _UID_OPTION,
    as_json: bool = _JSON_OPTION,
) -> None:
    """Show power, voltage and current for the device."""
    client = _ensure_client()
    resolved = _resolve(client, uid)
    snapshot = _run(client.get_energy(device_id, resolved))

    if as_json:
        _print_json({**snapshot.to_dict(), "source": snapshot.source.value})
        return
    typer.echo(f"  Power:   {snapshot.power_w} W")
    typer.echo(f"  Voltage: {snapshot.voltage_v} V")
    typer.echo(f"  Current: {snapshot.current_a} A")
    if snapshot.simulated:
        typer.echo("  (device reports no energy data; values are simulated)")


@app.command("set", context_settings={"help_option_names": ["-h", "--help"]})
def set_value(
    device_id: str = typer.Argument(..., help="Device ID"),
    value: str = typer.Argument(..., help="on | off | JSON value"),
    code: str | None = typer.Option(None, "--code", "-c", help="Data-point code (default: switch)"),
    uid: str | None = _UID_OPTION,
) -> None:
    """Send a command to the device.

    \b
    Examples:
      tuyalink set <device> on
      tuyalink set <device> 50 --code bright_value
    """
    client = _ensure_client()
    resolved = _resolve(client, uid)
    _run(client.send_command(device_id, resolved, _parse_value(value), code=code))
    typer.echo(f"Command sent to {device_id}.")


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Interface to bind"),
    port: int = typer.Option(3000, help="Port to listen on"),
    persist: bool = typer.Option(
        False, "--persist/--no-persist", help="Keep linked accounts in the credentials file"
    ),
) -> None:
    """Run the HTTP backend for the mobile app."""
    from tuyalink.server import run

    client = _ensure_client(persist=persist)
    # Serve at INFO unless --verbose asked for more.
    root = logging.getLogger()
    root.setLevel(min(root.level, logging.INFO))
    run(client, host=host, port=port)
