"""CLI entry point for pairing-cli.

Usage:
    pairing-cli                              # interactive menu
    pairing-cli devices
    pairing-cli export [--output-dir DIR]
    pairing-cli test-wifi [--ip ADDRESS]
    pairing-cli enable-wifi
    pairing-cli regenerate [--output-dir DIR]

Every command accepts --udid (or PAIRING_UDID) to skip device selection.
"""

from __future__ import annotations

import logging

import click
from rich.logging import RichHandler

from .core import (
    MobileDeviceTransport,
    Operation,
    OperationResult,
    PairingToolError,
    SessionOrchestrator,
)
from .core.registry import DEFAULT_WORKERS
from .output import console, output_error, output_json
from .prompt import RichPrompt


def _setup_logging(verbose: int, log_level: str | None):
    if log_level:
        level = logging.getLevelName(log_level.upper())
        if not isinstance(level, int):
            raise click.BadParameter(f"Unknown log level {log_level!r}", param_hint="--log-level")
    else:
        level = {0: logging.WARNING, 1: logging.INFO}.get(verbose, logging.DEBUG)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def get_orchestrator(ctx) -> SessionOrchestrator:
    obj = ctx.obj
    if obj.get("orchestrator") is None:
        if obj.get("mock"):
            from .mock import MockTransport
            transport = MockTransport.with_samples()
        else:
            transport = MobileDeviceTransport(usbmux_address=obj.get("usbmux"))
        obj["orchestrator"] = SessionOrchestrator(
            transport,
            prompt=RichPrompt(),
            max_workers=obj.get("workers") or DEFAULT_WORKERS,
        )
    return obj["orchestrator"]


def _report(result: OperationResult):
    style = "green" if result.ok else "red"
    mark = "✓" if result.ok else "✗"
    console.print(f"[{style}]{mark} {result.message}[/{style}]")
    output_json(result.to_dict())
    if not result.ok:
        raise SystemExit(1)


def _run(ctx, operation: Operation | None, **kwargs):
    orchestrator = get_orchestrator(ctx)
    try:
        device = orchestrator.select_device(ctx.obj.get("udid"))
        console.print(f"Using {device.label} - {device.identity}")
        if operation is None:
            operation = orchestrator.prompt.choose_operation()
        result = orchestrator.run(operation, device, **kwargs)
    except PairingToolError as e:
        output_error(e)
        raise SystemExit(1)
    _report(result)


@click.group(invoke_without_command=True)
@click.option("--udid", envvar="PAIRING_UDID", default=None, help="Target device UDID")
@click.option("--mock", is_flag=True, envvar="PAIRING_MOCK", help="Use built-in sample devices instead of usbmuxd")
@click.option("--workers", envvar="PAIRING_WORKERS", type=click.IntRange(min=1), default=DEFAULT_WORKERS,
              help="Parallel device name lookups")
@click.option("--usbmux", envvar="PAIRING_USBMUX", default=None, help="usbmuxd address (host:port or socket path)")
@click.option("--verbose", "-v", count=True, help="Increase log verbosity (-v info, -vv debug)")
@click.option("--log-level", envvar="PAIRING_LOG_LEVEL", default=None, help="Explicit log level name")
@click.pass_context
def main(ctx, udid: str | None, mock: bool, workers: int, usbmux: str | None, verbose: int, log_level: str | None):
    """pairing-cli: export, test and regenerate iOS pairing files for WiFi sync."""
    ctx.ensure_object(dict)
    ctx.obj["udid"] = udid
    ctx.obj["mock"] = mock
    ctx.obj["workers"] = workers
    ctx.obj["usbmux"] = usbmux
    _setup_logging(verbose, log_level)

    if ctx.invoked_subcommand is None:
        ctx.invoke(menu)


# ------------------------------------------------------------------
# Devices
# ------------------------------------------------------------------

@main.command()
@click.option("--no-names", is_flag=True, help="Skip the per-device name lookup")
@click.pass_context
def devices(ctx, no_names: bool):
    """List connected devices in discovery order."""
    orchestrator = get_orchestrator(ctx)
    try:
        found = orchestrator.registry.list_devices(resolve_names=not no_names)
    except PairingToolError as e:
        output_error(e)
        raise SystemExit(1)
    output_json([d.to_dict() for d in found])


# ------------------------------------------------------------------
# Pairing file workflows
# ------------------------------------------------------------------

@main.command()
@click.option("--output-dir", "-o", type=click.Path(file_okay=False), default=None,
              help="Folder to save <udid>.plist to (prompted if omitted)")
@click.pass_context
def export(ctx, output_dir: str | None):
    """Export the current pairing file."""
    _run(ctx, Operation.EXPORT, destination=output_dir)


@main.command(name="test-wifi")
@click.option("--ip", default=None, help="IP address of the device on the local network")
@click.pass_context
def test_wifi(ctx, ip: str | None):
    """Test the current pairing file for WiFi sync."""
    _run(ctx, Operation.TEST_WIFI, address=ip)


@main.command(name="enable-wifi")
@click.pass_context
def enable_wifi(ctx):
    """Turn on WiFi sync on the device."""
    _run(ctx, Operation.ENABLE_WIFI)


@main.command()
@click.option("--output-dir", "-o", type=click.Path(file_okay=False), default=None,
              help="Folder to save the new <udid>.plist to (prompted if omitted)")
@click.pass_context
def regenerate(ctx, output_dir: str | None):
    """Pair again over USB and export the new pairing file."""
    _run(ctx, Operation.REGENERATE, destination=output_dir)


# ------------------------------------------------------------------
# Interactive menu
# ------------------------------------------------------------------

@main.command()
@click.pass_context
def menu(ctx):
    """Pick a device and an operation interactively."""
    _run(ctx, None)


if __name__ == "__main__":
    main()
