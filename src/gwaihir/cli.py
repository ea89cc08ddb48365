"""Command-line interface for Gwaihir."""

import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Optional

import click

from gwaihir import __version__
from gwaihir.config.loader import DEFAULT_CONFIG, Settings

if TYPE_CHECKING:
    from gwaihir.core.dispatch import WakeDispatcher

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}

# LogRecord attributes; anything else on a record came from ``extra=``.
_RESERVED = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """One JSON object per line: time, level, logger, message and any extra fields."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key not in _RESERVED and not key.startswith("_"):
                entry[key] = value
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _setup_logging(level: str = "info", fmt: str = "text", verbose: bool = False) -> None:
    log_level = logging.DEBUG if verbose else _LEVELS.get(level.lower(), logging.INFO)
    handler = logging.StreamHandler()
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s", datefmt="%H:%M:%S"
            )
        )
    logging.basicConfig(level=log_level, handlers=[handler], force=True)


def _load_settings(ctx: click.Context) -> Settings:
    from gwaihir.config.loader import load_settings
    from gwaihir.core.errors import ConfigError

    try:
        settings = load_settings(Path(ctx.obj["config"]))
    except ConfigError as exc:
        click.echo(str(exc), err=True)
        sys.exit(1)
    _setup_logging(settings.log.level, settings.log.format, ctx.obj["verbose"])
    return settings


def _load_dispatcher(ctx: click.Context) -> "WakeDispatcher":
    from gwaihir.core.dispatch import WakeDispatcher
    from gwaihir.core.errors import RegistryError
    from gwaihir.core.registry import build_registry
    from gwaihir.core.wol import BroadcastTransmitter

    settings = _load_settings(ctx)
    try:
        registry = build_registry(settings.machines)
    except RegistryError as exc:
        click.echo(f"Machine configuration error: {exc}", err=True)
        sys.exit(1)
    return WakeDispatcher(registry, BroadcastTransmitter(timeout=settings.wol_timeout))


# ── Root group ────────────────────────────────────────────────────────────────


@click.group()
@click.version_option(version=__version__, prog_name="gwaihir")
@click.option(
    "--config",
    "-c",
    default=str(DEFAULT_CONFIG),
    envvar="GWAIHIR_CONFIG",
    show_default=True,
    help="Path to gwaihir.yaml",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, config: str, verbose: bool) -> None:
    """Gwaihir: Wake-on-LAN messenger for allowlisted machines."""
    _setup_logging(verbose=verbose)
    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["verbose"] = verbose


# ── machines group ────────────────────────────────────────────────────────────


@main.group()
def machines() -> None:
    """Inspect the machine allowlist."""


@machines.command("list")
@click.pass_context
def machines_list(ctx: click.Context) -> None:
    """List all allowlisted machines."""
    dispatcher = _load_dispatcher(ctx)
    found = dispatcher.list_machines()
    if not found:
        click.echo("No machines configured.")
        return
    click.echo(f"{'ID':<20} {'NAME':<24} {'MAC':<19} {'BROADCAST'}")
    click.echo("─" * 80)
    for machine in found:
        click.echo(
            f"{machine.id:<20} {machine.name:<24} {machine.normalized_mac:<19} "
            f"{machine.broadcast}"
        )


@machines.command("show")
@click.argument("machine_id")
@click.pass_context
def machines_show(ctx: click.Context, machine_id: str) -> None:
    """Show one machine as JSON."""
    from gwaihir.core.errors import MachineNotFound

    dispatcher = _load_dispatcher(ctx)
    try:
        machine = dispatcher.get_machine(machine_id)
    except MachineNotFound:
        click.echo(f"Machine '{machine_id}' not found.", err=True)
        sys.exit(1)
    click.echo(json.dumps(machine.to_dict(), indent=2))


# ── wake command ──────────────────────────────────────────────────────────────


@main.command()
@click.argument("machine_id")
@click.pass_context
def wake(ctx: click.Context, machine_id: str) -> None:
    """Send a Wake-on-LAN packet to an allowlisted machine."""
    from gwaihir.core.errors import DispatchFailed, MachineNotFound

    dispatcher = _load_dispatcher(ctx)
    try:
        result = dispatcher.dispatch(machine_id)
    except MachineNotFound:
        click.echo(f"Machine '{machine_id}' not found.", err=True)
        sys.exit(1)
    except DispatchFailed as exc:
        click.echo(f"✗  {exc}", err=True)
        sys.exit(2)
    machine = result.machine
    click.echo(f"WOL packet sent to {machine.normalized_mac} ({machine.name}) via {machine.broadcast}")


# ── check command ─────────────────────────────────────────────────────────────


@main.command()
@click.pass_context
def check(ctx: click.Context) -> None:
    """Validate the config file and machine allowlist."""
    dispatcher = _load_dispatcher(ctx)
    click.echo(f"✓  Config OK ({len(dispatcher.registry)} machine(s))")


# ── serve command ─────────────────────────────────────────────────────────────


@main.command()
@click.option("--host", default="0.0.0.0", show_default=True, help="Bind host")
@click.option("--port", type=int, default=None, help="Bind port (default: server.port from config)")
@click.pass_context
def serve(ctx: click.Context, host: str, port: Optional[int]) -> None:
    """Start the Gwaihir API server."""
    import uvicorn

    from gwaihir.api.routes import create_app
    from gwaihir.core.errors import RegistryError

    settings = _load_settings(ctx)
    try:
        app = create_app(settings=settings)
    except RegistryError as exc:
        click.echo(f"Machine configuration error: {exc}", err=True)
        sys.exit(1)
    bind_port = port or settings.port
    click.echo(f"Starting Gwaihir at http://{host}:{bind_port}")
    uvicorn.run(app, host=host, port=bind_port, log_config=None)


if __name__ == "__main__":
    main()
