"""
Command-Line Interface for btreceipt.

Usage:
    btreceipt devices                 - List paired devices
    btreceipt text [FILES...]         - Print text files
    btreceipt image [FILES...]        - Print images (colour stripped)
    btreceipt receipt --outlet ...    - Print a receipt slip
    btreceipt config show|init|alias  - Inspect or edit configuration
"""

import asyncio
import dataclasses
import json
import logging
import shlex
import sys
from pathlib import Path
from typing import Optional

import click

from .config import TRANSPORTS, Config, config_path, load_config, save_config
from .errors import ConfigError, ConnectionFailure
from .jobs import Receipt
from .printer import JobOutcome, ReceiptPrinter

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s - %(message)s"


def pick_files(kind: str) -> Optional[list[str]]:
    """Ask the user which files to print.

    Returns:
        The entered paths, or None if nothing usable was entered
    """
    try:
        answer = click.prompt(
            f"Select {kind} file(s) to print (blank to cancel)",
            default="",
            show_default=False,
        )
    except click.Abort:
        return None
    try:
        paths = shlex.split(answer)
    except ValueError as e:
        click.echo(f"Invalid file selection: {e}", err=True)
        return None
    return paths or None


def report(outcome: JobOutcome):
    """Show a job outcome and exit non-zero on failure."""
    for failure in outcome.skipped:
        click.echo(f"Skipped: {failure}", err=True)

    if outcome.ok or outcome.cancelled:
        click.echo(outcome.message)
        return

    click.echo(f"Print error: {outcome.message}", err=True)
    sys.exit(1)


def make_printer(ctx, rotate: int = 0, **overrides) -> ReceiptPrinter:
    config: Config = ctx.obj["config"]
    if overrides:
        try:
            config = dataclasses.replace(config, **overrides)
        except ConfigError as e:
            click.echo(f"Config error: {e}", err=True)
            sys.exit(1)
    return ReceiptPrinter.from_config(config, name=ctx.obj["printer"], rotate=rotate)


@click.group()
@click.option("--debug/--no-debug", default=False, help="Enable debug output")
@click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Config file (default: ~/.config/btreceipt/config.json)",
)
@click.option("--printer", "-p", help="Printer name or alias (default from config)")
@click.option("--transport", type=click.Choice(TRANSPORTS), help="Transport to use")
@click.pass_context
def main(ctx, debug, config_file, printer, transport):
    """Bluetooth receipt printer CLI."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
    )
    ctx.ensure_object(dict)

    try:
        file_config = load_config(config_file)
        config = file_config
        if transport:
            config = dataclasses.replace(config, transport=transport)
    except ConfigError as e:
        click.echo(f"Config error: {e}", err=True)
        sys.exit(1)

    # Command-line overrides apply to "config", never to what gets saved
    ctx.obj["file_config"] = file_config
    ctx.obj["config"] = config
    ctx.obj["config_file"] = config_file
    ctx.obj["printer"] = printer


@main.command()
@click.pass_context
def devices(ctx):
    """List paired Bluetooth devices."""

    async def _devices():
        printer = make_printer(ctx)
        try:
            found = await printer.list_devices()
        except ConnectionFailure as e:
            click.echo(f"Connection error: {e}", err=True)
            sys.exit(1)

        if not found:
            click.echo("No paired devices found.")
            return

        click.echo(f"Found {len(found)} paired device(s):\n")
        for device in found:
            marker = "*" if device.name == printer.device_name else " "
            click.echo(f" {marker} {device}")

    asyncio.run(_devices())


@main.command()
@click.argument("files", nargs=-1, type=click.Path(dir_okay=False))
@click.pass_context
def text(ctx, files):
    """Print text files as-is.

    If no files are given, prompts for them.
    """
    selection = list(files) or pick_files("text")

    async def _text():
        printer = make_printer(ctx)
        if selection:
            click.echo(f"Printing {len(selection)} file(s) on {printer.device_name}...")
        report(await printer.print_text_files(selection))

    asyncio.run(_text())


@main.command()
@click.argument("files", nargs=-1, type=click.Path(dir_okay=False))
@click.option(
    "--rotate",
    type=click.Choice(["0", "90", "180", "270"]),
    default="0",
    show_default=True,
    help="Image rotation (clockwise)",
)
@click.option(
    "--quality",
    type=click.IntRange(1, 95),
    help="Encoder quality (default from config)",
)
@click.option("--width", type=click.IntRange(min=1), help="Resize to this width in pixels")
@click.pass_context
def image(ctx, files, rotate, quality, width):
    """Print images after stripping their colour.

    If no files are given, prompts for them.
    """
    selection = list(files) or pick_files("image")
    overrides = {}
    if quality is not None:
        overrides["image_quality"] = quality
    if width is not None:
        overrides["image_width"] = width

    async def _image():
        printer = make_printer(ctx, rotate=int(rotate), **overrides)
        if selection:
            click.echo(f"Printing {len(selection)} image(s) on {printer.device_name}...")
        report(await printer.print_image_files(selection))

    asyncio.run(_image())


@main.command()
@click.option("--outlet", required=True, help="Outlet name")
@click.option("--invoice", required=True, help="Invoice number")
@click.option("--run-number", required=True, help="Running number")
@click.option("--encoding", default="utf-8", show_default=True, help="Text encoding")
@click.pass_context
def receipt(ctx, outlet, invoice, run_number, encoding):
    """Print a receipt slip."""

    async def _receipt():
        printer = make_printer(ctx)
        click.echo(f"Printing receipt {invoice} on {printer.device_name}...")
        report(await printer.print_receipt(Receipt(outlet, invoice, run_number), encoding))

    asyncio.run(_receipt())


@main.group("config")
def config_group():
    """Inspect or edit the configuration file."""


@config_group.command("show")
@click.pass_context
def config_show(ctx):
    """Print the effective configuration."""
    path = ctx.obj["config_file"] or config_path()
    click.echo(f"# {path}{'' if path.exists() else ' (not found, using defaults)'}")
    click.echo(json.dumps(ctx.obj["config"].to_dict(), indent=2))


@config_group.command("init")
@click.option("--force", is_flag=True, help="Overwrite an existing file")
@click.pass_context
def config_init(ctx, force):
    """Write the loaded file settings (or the defaults) to the config file."""
    path = ctx.obj["config_file"] or config_path()
    if path.exists() and not force:
        click.echo(f"{path} already exists (use --force to overwrite)", err=True)
        sys.exit(1)
    save_config(ctx.obj["file_config"], path)
    click.echo(f"Wrote {path}")


@config_group.command("alias")
@click.argument("alias")
@click.argument("device_name")
@click.pass_context
def config_alias(ctx, alias, device_name):
    """Map ALIAS to the paired device DEVICE_NAME."""
    config: Config = ctx.obj["file_config"]
    devices = dict(config.devices)
    devices[alias] = device_name
    path = save_config(dataclasses.replace(config, devices=devices), ctx.obj["config_file"])
    click.echo(f"{alias} -> {device_name} saved to {path}")


if __name__ == "__main__":
    main()
