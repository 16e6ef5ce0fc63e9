#!/usr/bin/env python3
"""
lanbeacon CLI

Command-line interface for announcing and browsing LAN services.

Usage:
    lanbeacon announce NAME PORT          # Announce until Ctrl+C
    lanbeacon browse                      # Show services on the network
"""

import asyncio
import logging
from pathlib import Path
from typing import Dict, Iterable

import click
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.logging import RichHandler

from .config import load_config
from .discovery import DiscoveryEngine, ServiceEvent, ServiceRecord
from .exceptions import LanBeaconError

console = Console()


def setup_logging(verbose: bool = False, level_name: str = 'INFO'):
    """Configure logging with rich output."""
    level = logging.DEBUG if verbose else getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_time=False, show_path=False)]
    )


def parse_metadata(pairs: Iterable[str]) -> Dict[str, str]:
    """Turn ``key=value`` strings into a dict."""
    metadata = {}
    for pair in pairs:
        key, sep, value = pair.partition('=')
        if not sep or not key:
            raise click.BadParameter(f"Invalid metadata: {pair} (use key=value)")
        if key in ('host', 'port', 'name'):
            raise click.BadParameter(f"Metadata key '{key}' is reserved")
        metadata[key] = value
    return metadata


@click.group()
@click.option('-v', '--verbose', is_flag=True, help='Enable verbose output')
@click.option('--config', 'config_path', type=click.Path(dir_okay=False), help='JSON config file')
@click.option('--broadcast/--multicast', default=None, help='Use UDP broadcast instead of multicast')
@click.option('--group', help='Multicast group address')
@click.option('--port', type=int, help='Beacon UDP port')
@click.option('--ttl', type=int, help='Multicast TTL')
@click.pass_context
def cli(ctx, verbose, config_path, broadcast, group, port, ttl):
    """lanbeacon - server-less service discovery on the LAN."""
    config = load_config(Path(config_path) if config_path else None)

    if broadcast is not None:
        config.broadcast = broadcast
    if group:
        config.group_address = group
    if port:
        config.port = port
    if ttl:
        config.ttl = ttl

    setup_logging(verbose, config.log_level)
    ctx.ensure_object(dict)
    ctx.obj['config'] = config


@cli.command()
@click.argument('name')
@click.argument('port', type=int)
@click.option('--host', help='Address to advertise (default: autodetect)')
@click.option('--meta', '-m', multiple=True, help='Extra field (key=value)')
@click.option('--interval', default=10.0, show_default=True, help='Re-announce every N seconds')
@click.pass_context
def announce(ctx, name, port, host, meta, interval):
    """Announce a service until interrupted."""
    config = ctx.obj['config']
    descriptor = {'name': name, 'port': port, **parse_metadata(meta)}
    if host:
        descriptor['host'] = host

    async def run():
        async with DiscoveryEngine(config) as engine:
            key = await engine.announce_service(descriptor)
            if key is None:
                console.print("[red]Incomplete service description (need host, port and name)[/red]")
                return

            console.print(Panel.fit(
                f"[bold green]Service Announced[/bold green]\n\n"
                f"Key: [cyan]{key}[/cyan]\n"
                f"Destination: [yellow]{config.send_address}:{config.port}[/yellow]\n"
                f"Instance: [dim]{engine.instance_id}[/dim]",
                title="lanbeacon"
            ))
            console.print("\n[dim]Press Ctrl+C to stop[/dim]\n")

            try:
                while True:
                    await asyncio.sleep(interval)
                    engine.repeat_announcements()
            finally:
                engine.renounce_service(key)
                console.print(f"[yellow]Renounced {key}[/yellow]")

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        pass
    except LanBeaconError as e:
        console.print(f"[red]{e}[/red]")
        ctx.exit(1)


@cli.command()
@click.option('--timeout', default=3.0, show_default=True, help='Seconds to listen')
@click.pass_context
def browse(ctx, timeout):
    """Query the network and list discovered services."""
    config = ctx.obj['config']

    def on_announced(record: ServiceRecord):
        console.print(f"[green]+[/green] {record.key}")

    def on_renounced(record: ServiceRecord):
        console.print(f"[red]-[/red] {record.key}")

    async def run() -> Dict[str, ServiceRecord]:
        async with DiscoveryEngine(config) as engine:
            engine.subscribe(ServiceEvent.SERVICE_ANNOUNCED, on_announced)
            engine.subscribe(ServiceEvent.SERVICE_RENOUNCED, on_renounced)
            console.print("[dim]Discovering services...[/dim]")
            await asyncio.sleep(timeout)
            return engine.get_service_infos()

    try:
        services = asyncio.run(run())
    except LanBeaconError as e:
        console.print(f"[red]{e}[/red]")
        ctx.exit(1)
        return

    if not services:
        console.print("[yellow]No services found[/yellow]")
        return

    console.print(services_table(services.values()))


def services_table(records: Iterable[ServiceRecord]) -> Table:
    """Render records as a rich table."""
    table = Table(title="Discovered Services")
    table.add_column("Name", style="cyan")
    table.add_column("Host", style="yellow")
    table.add_column("Port", justify="right")
    table.add_column("Extra", style="dim")

    for record in sorted(records, key=lambda r: r.key):
        d = record.descriptor
        extra = ", ".join(f"{k}={v}" for k, v in sorted(d.extra.items()))
        table.add_row(d.name, d.host, str(d.port), extra)

    return table


if __name__ == '__main__':
    cli()
