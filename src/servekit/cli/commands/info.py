"""CLI commands reporting host and process information."""

import json

import click

from servekit.lib import system


@click.command()
def interfaces() -> None:
    """Print the IP addresses of active, non-loopback network interfaces."""
    click.echo(json.dumps(system.get_active_network_interfaces(), indent=2))


@click.command()
@click.option("--raw", is_flag=True, default=False, help="Print byte counts")
def memory(raw: bool) -> None:
    """Print the memory usage of this process."""
    usage = system.get_memory_usage(formatted=not raw)
    for name, value in usage.items():
        click.echo(f"{name:<12}{value}")
