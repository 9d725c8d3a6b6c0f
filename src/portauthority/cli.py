"""
PortAuthority CLI - register the network jack this host is plugged into.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import json
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from portauthority import __version__
from portauthority.authority import PortAuthority
from portauthority.config import PortAuthorityConfig
from portauthority.exceptions import InterfaceNotFoundError
from portauthority.interfaces import canonical_mac, get_interface, list_interfaces, resolve_ipv4
from portauthority.lldp.decoder import LookupStrategy
from portauthority.models import OperationalStatus, ReportOutcome

console = Console()

EXAMPLE_CONFIG = """# PortAuthority Configuration

# Provisioning server form endpoint
provisioning_url = "https://netcenter.studentaffairs.ohio-state.edu/portmapper/port_authority.php"

# SSL verification (set to false for self-signed certs)
verify_ssl = true
http_timeout = 30

# Capture: device read timeout (ms) and how long to wait for LLDP (s)
open_timeout_ms = 4000
read_timeout = 30

# How to find system name / port ID in the LLDP frame: auto, type, position
lookup_strategy = auto

# Percent-encode form values (the endpoint historically gets them raw)
encode_form_values = false
"""


def configure_logging(verbose: bool) -> None:
    """Send log records through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _status_markup(status: OperationalStatus) -> str:
    if status == OperationalStatus.UP:
        return "[green]UP[/green]"
    if status == OperationalStatus.DOWN:
        return "[red]DOWN[/red]"
    return f"[yellow]{status.value.upper()}[/yellow]"


def _config_error(message: str) -> None:
    console.print(f"[red]Config error:[/red] {escape(message)}")
    sys.exit(2)


def _load_config(ctx: click.Context) -> PortAuthorityConfig:
    config_file = ctx.obj.get("config_file")
    try:
        if config_file:
            return PortAuthorityConfig.from_file(config_file)
        return PortAuthorityConfig.from_env()
    except (ValueError, TypeError, AttributeError) as e:
        source = config_file or "PORTAUTHORITY_* environment"
        _config_error(f"{source}: {e}")


def _validate_config(config: PortAuthorityConfig) -> None:
    errors = config.validate()
    if errors:
        for error in errors:
            console.print(f"[red]Config error:[/red] {escape(error)}")
        sys.exit(2)


def _build_authority(config: PortAuthorityConfig, interface: str) -> PortAuthority:
    try:
        iface = get_interface(interface)
    except InterfaceNotFoundError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        console.print("[dim]Run 'portauthority interfaces' to list adapters.[/dim]")
        sys.exit(2)
    return PortAuthority(iface, config=config)


def _print_failure(outcome: ReportOutcome) -> None:
    console.print(f"[red]{escape(outcome.message)}[/red]")
    if outcome.detail:
        console.print(f"[dim]{escape(outcome.detail)}[/dim]")


@click.group()
@click.version_option(version=__version__, prog_name="portauthority")
@click.option("--config", "-c", "config_file", type=click.Path(exists=True, dir_okay=False),
              help="Path to config file (default: PORTAUTHORITY_* environment)")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, config_file: str | None, verbose: bool) -> None:
    """PortAuthority - network jack self-registration.

    Listens for the LLDP announcement from the switch this host is plugged
    into and reports the switch and port to the provisioning server.
    """
    ctx.ensure_object(dict)
    ctx.obj["config_file"] = config_file
    configure_logging(verbose)


@main.command()
@click.option("--all", "-a", "show_all", is_flag=True, help="Include loopback and virtual interfaces")
def interfaces(show_all: bool):
    """List network adapters with their MAC, IPv4 address and status."""
    ifaces = list_interfaces(include_virtual=show_all)

    if not ifaces:
        console.print("[yellow]No network interfaces found[/yellow]")
        return

    table = Table(box=None)
    table.add_column("Interface", style="cyan")
    table.add_column("MAC Address", style="white")
    table.add_column("IPv4", style="yellow")
    table.add_column("Status")

    for iface in ifaces:
        table.add_row(
            escape(iface.name),
            canonical_mac(iface) if iface.physical_address else "-",
            resolve_ipv4(iface),
            _status_markup(iface.operational_status),
        )

    console.print(table)
    console.print(f"\n[dim]Total: {len(ifaces)} interface(s)[/dim]")


@main.command()
@click.option("-i", "--interface", required=True, help="Network interface to listen on")
@click.option("-t", "--timeout", type=float, help="Seconds to wait for an LLDP frame")
@click.option("--strategy", type=click.Choice([s.value for s in LookupStrategy]),
              help="How to locate system name and port ID TLVs")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def listen(ctx: click.Context, interface: str, timeout: float | None, strategy: str | None, json_output: bool):
    """Show which switch port this host is on, without reporting it.

    Note: Requires root/admin privileges for packet capture.

    Examples:
        sudo portauthority listen -i eth0
        sudo portauthority listen -i en0 -t 60 --strategy position
    """
    config = _load_config(ctx)
    if timeout is not None:
        config.read_timeout = timeout
    if strategy:
        config.lookup_strategy = LookupStrategy.parse(strategy)

    _validate_config(config)
    authority = _build_authority(config, interface)

    try:
        with console.status(f"[cyan]Listening for LLDP on {escape(interface)} ({config.read_timeout:g}s)...[/cyan]"):
            result = authority.discover()
    except PermissionError:
        console.print("[red]Error:[/red] Permission denied. Run with sudo/root privileges.")
        sys.exit(1)

    if isinstance(result, ReportOutcome):
        if json_output:
            console.print_json(json.dumps(result.to_dict()))
        else:
            _print_failure(result)
        sys.exit(1)

    if json_output:
        console.print_json(json.dumps(result.to_dict()))
        return

    console.print(Panel(
        f"[cyan]Switch:[/cyan] {escape(result.switch_name)}\n"
        f"[cyan]Interface:[/cyan] {escape(result.raw_port)}\n"
        f"[cyan]Port:[/cyan] {escape(result.port)}\n"
        f"[cyan]Gigabit:[/cyan] {'yes' if result.gigabit else 'no'}\n"
        f"[cyan]Local MAC:[/cyan] {authority.mac_address}\n"
        f"[cyan]Local IP:[/cyan] {authority.ip_address}",
        title=f"[bold]{escape(interface)}[/bold]",
        border_style="green",
    ))


@main.command()
@click.option("-i", "--interface", required=True, help="Network interface plugged into the jack")
@click.option("--room", required=True, help="Room number")
@click.option("--jack", required=True, help="Jack label")
@click.option("--user", "-u", required=True, help="Provisioning username")
@click.option("--password", "-p", prompt=True, hide_input=True, help="Provisioning password")
@click.option("--url", help="Provisioning endpoint (overrides config)")
@click.option("-t", "--timeout", type=float, help="Seconds to wait for an LLDP frame")
@click.option("--encode-values", is_flag=True, help="Percent-encode form values")
@click.option("--insecure", is_flag=True, help="Skip TLS certificate verification")
@click.pass_context
def report(ctx: click.Context, interface: str, room: str, jack: str, user: str, password: str,
           url: str | None, timeout: float | None, encode_values: bool, insecure: bool):
    """Register this host's switch port for a room and jack.

    Note: Requires root/admin privileges for packet capture.

    Examples:
        sudo portauthority report -i eth0 --room 101 --jack J1 -u jdoe
    """
    config = _load_config(ctx)

    # Override with command line options
    if url:
        config.provisioning_url = url
    if timeout is not None:
        config.read_timeout = timeout
    if encode_values:
        config.encode_form_values = True
    if insecure:
        config.verify_ssl = False

    _validate_config(config)
    authority = _build_authority(config, interface)

    try:
        with console.status(f"[cyan]Waiting for LLDP on {escape(interface)}, then reporting...[/cyan]"):
            outcome = authority.report(room, jack, user, password)
    except PermissionError:
        console.print("[red]Error:[/red] Permission denied. Run with sudo/root privileges.")
        sys.exit(1)

    if not outcome.ok:
        _print_failure(outcome)
        sys.exit(1)

    topology = outcome.topology
    console.print(f"[green]Reported[/green] {escape(topology.switch_name)} port {escape(topology.port)} "
                  f"for room {escape(room)} jack {escape(jack)}\n")
    if outcome.response:
        console.print(outcome.response, markup=False, highlight=False)
    else:
        console.print("[dim](empty response)[/dim]")


@main.command("config")
@click.option("--output", "-o", type=click.Path(), help="Write example config to file")
@click.option("--show", is_flag=True, help="Show the effective configuration")
@click.pass_context
def config_cmd(ctx: click.Context, output: str | None, show: bool):
    """Show or generate configuration."""
    if show:
        console.print_json(json.dumps(_load_config(ctx).to_dict()))
        return

    if output:
        Path(output).write_text(EXAMPLE_CONFIG)
        console.print(f"[green]Example config written to {output}[/green]")
    else:
        console.print(EXAMPLE_CONFIG, markup=False)


if __name__ == "__main__":
    main()
