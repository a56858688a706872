"""
Command-line interface for Server Agent.

Provides commands for running the telemetry agent, one-off collection and
drive health checks.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from server_agent import __version__
from server_agent.config import Config
from server_agent.core import Agent, Payload
from server_agent.errors import SerializationError, TransmissionError
from server_agent.models import DriveRecord
from server_agent.scheduler import Scheduler

console = Console()


def setup_logging(level: str, log_file: str | None = None) -> None:
    """Configure logging with rich handler, plus a file handler if requested."""
    handlers: list[logging.Handler] = [RichHandler(console=console, rich_tracebacks=True)]
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        )
        handlers.append(file_handler)

    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=handlers,
    )


@click.group()
@click.version_option(version=__version__, prog_name="server-agent")
@click.option(
    "-c",
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file",
)
@click.option(
    "-V",
    "--verbose",
    is_flag=True,
    help="Enable verbose output",
)
@click.pass_context
def main(ctx: click.Context, config: Path | None, verbose: bool) -> None:
    """
    Server Agent - Host telemetry for drives, CPU, memory and network.

    Collect statistics periodically and optionally send them to a collector.
    """
    ctx.ensure_object(dict)

    try:
        ctx.obj["config"] = Config.load(config) if config else Config.load()
    except ValueError as e:
        raise click.ClickException(f"Invalid configuration: {e}") from e

    log_level = "DEBUG" if verbose else ctx.obj["config"].log_level
    setup_logging(log_level, ctx.obj["config"].log_file)
    ctx.obj["verbose"] = verbose


@main.command()
@click.pass_context
def run(ctx: click.Context) -> None:
    """
    Run the agent.

    Checks drives and collects/reports stats on their configured intervals
    until interrupted.
    """
    config: Config = ctx.obj["config"]
    agent = Agent(config)
    scheduler = Scheduler.for_agent(agent)

    console.print(
        Panel.fit(
            f"[bold blue]Server Agent v{__version__}[/]\n"
            f"Drive check every {config.drive_check_interval}s, "
            f"report every {config.report_interval}s",
            border_style="blue",
        )
    )

    try:
        scheduler.run()
    except KeyboardInterrupt:
        scheduler.stop()
        console.print("[yellow]Stopped[/]")
    finally:
        agent.close()


@main.command()
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    help="Write output to file instead of stdout",
)
@click.option(
    "--format",
    "-f",
    type=click.Choice(["json", "pretty"]),
    default="pretty",
    help="Output format",
)
@click.option(
    "--send/--no-send",
    default=None,
    help="Send results to the configured collector (default: transmission_enabled)",
)
@click.pass_context
def collect(
    ctx: click.Context,
    output: Path | None,
    format: str,
    send: bool | None,
) -> None:
    """
    Run one collection cycle.

    Collects drive and system statistics, logs the payload and, when
    enabled, sends it.
    """
    config: Config = ctx.obj["config"]
    agent = Agent(config)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Collecting statistics...", total=None)
        payload = agent.collect()
        progress.update(task, completed=True)

    if format == "pretty":
        _display_summary(payload)

    try:
        response = agent.report(payload, send=send)
    except SerializationError as e:
        console.print(f"[red]✗ {e}[/]")
        sys.exit(1)
    except TransmissionError as e:
        console.print(f"[red]✗ Send failed: {e}[/]")
    else:
        if response is not None:
            console.print("[green]✓ Stats sent[/]")
            if ctx.obj["verbose"]:
                console.print(f"  Response: {response}")
    finally:
        agent.close()

    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(payload.to_json())
        console.print(f"\n[dim]Payload saved to: {output}[/]")
    elif format == "json":
        console.print_json(payload.to_json())


def _drive_table(drive_records: list[DriveRecord]) -> Table:
    table = Table(title="Drives", show_header=True)
    table.add_column("Device", style="cyan")
    table.add_column("Serial")
    table.add_column("Status", justify="center")
    table.add_column("Temp", justify="right")
    table.add_column("Used", justify="right")

    styles = {"OK": "green", "FAILING": "red"}
    for drive in drive_records:
        style = styles.get(drive.status, "yellow")
        temp = f"{drive.temp}°C" if drive.temp >= 0 else "-"
        used = f"{drive.used_percent:.1f}%" if drive.used_percent >= 0 else "-"
        table.add_row(drive.name, drive.serial or "-", f"[{style}]{drive.status}[/]", temp, used)
    return table


def _display_summary(payload: Payload) -> None:
    """Display drive and system tables for a payload."""
    console.print(_drive_table(payload.drives))

    table = Table(title="System", show_header=False)
    table.add_column("Metric", style="dim")
    table.add_column("Value")

    cpu = payload.cpu
    table.add_row("CPU", cpu.model_name)
    table.add_row("Cores / Threads", f"{cpu.cpu_count} / {cpu.threads}")
    table.add_row("Clock", f"{cpu.clock_mhz:.0f} MHz" if cpu.clock_mhz >= 0 else "-")
    table.add_row("CPU Usage", f"{cpu.usage_percent:.1f}%" if cpu.usage_percent >= 0 else "-")
    table.add_row("CPU Temp", f"{cpu.temp_c:.1f}°C" if cpu.temp_c >= 0 else "-")
    table.add_row(
        "Memory",
        f"{payload.memory.used_percent:.1f}% of {_bytes_to_human(payload.memory.total)}"
        if payload.memory.used_percent >= 0
        else "-",
    )
    table.add_row("Net Sent", _bytes_to_human(payload.network.bytes_sent))
    table.add_row("Net Received", _bytes_to_human(payload.network.bytes_recv))
    console.print(table)

    if payload.errors:
        console.print()
        console.print("[yellow]Errors:[/]")
        for error in payload.errors:
            console.print(f"  • {error}")


def _bytes_to_human(size: int) -> str:
    """Convert bytes to human readable string."""
    size_float = float(size)
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if abs(size_float) < 1024.0:
            return f"{size_float:.1f} {unit}"
        size_float /= 1024.0
    return f"{size_float:.1f} PB"


@main.command()
@click.pass_context
def drives(ctx: click.Context) -> None:
    """
    Check drive health now.

    Exits with status 1 if any drive reports failing.
    """
    config: Config = ctx.obj["config"]
    agent = Agent(config)

    try:
        drive_records, errors = agent.collect_drives()
    finally:
        agent.close()

    console.print(_drive_table(drive_records))

    for error in errors:
        console.print(f"[yellow]  • {error}[/]")

    failing = [drive.name for drive in drive_records if drive.is_failing()]
    if failing:
        console.print(f"[red]✗ Failing drives: {', '.join(failing)}[/]")
        sys.exit(1)
    console.print("[green]✓ No failing drives[/]")


@main.command("list")
def list_available() -> None:
    """List all available collectors."""
    table = Table(title="Available Collectors", show_header=True)
    table.add_column("Name", style="cyan")
    table.add_column("Description")

    from server_agent.collectors import COLLECTORS

    for name, cls in COLLECTORS.items():
        table.add_row(name, cls.description)

    console.print()
    console.print(table)


@main.command("version", short_help="Display version information")
def version() -> None:
    """Display version information for Server Agent."""
    console.print()
    console.print(
        Panel.fit(
            f"[bold blue]Server Agent[/]\nVersion: [cyan]{__version__}[/]",
            border_style="blue",
            title="Version Information",
        )
    )
    console.print()

    table = Table(show_header=False, box=None)
    table.add_column("Component", style="dim", width=20)
    table.add_column("Version", style="cyan")

    table.add_row("Server Agent", __version__)
    table.add_row("Python", sys.version.split()[0])

    console.print(table)
    console.print()


@main.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show current configuration and connection status."""
    config: Config = ctx.obj["config"]

    console.print()
    console.print(
        Panel.fit(
            "[bold]Server Agent Status[/]",
            border_style="blue",
        )
    )

    table = Table(show_header=False, box=None)
    table.add_column("Setting", style="dim")
    table.add_column("Value")

    table.add_row("Collector URL", config.transmission_url or "[dim]Not configured[/]")
    table.add_row("Transmission", "Enabled" if config.transmission_enabled else "Disabled")
    table.add_row("Drive Alerts", "Enabled" if config.alerts_enabled else "Disabled")
    table.add_row("Drive Check Interval", f"{config.drive_check_interval}s")
    table.add_row("Report Interval", f"{config.report_interval}s")
    table.add_row("Drive Enumeration", config.drive_enumeration)
    table.add_row("smartctl", config.smartctl_path)
    table.add_row("Log Level", config.log_level)

    console.print(table)

    if config.transmission_url:
        console.print()
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True,
        ) as progress:
            task = progress.add_task("Testing connection...", total=None)
            from server_agent.reporter import Reporter

            reporter = Reporter(config)
            try:
                connected = reporter.test_connection()
            finally:
                reporter.close()
            progress.update(task, completed=True)

        if connected:
            console.print("[green]✓ Server is reachable[/]")
        else:
            console.print("[red]✗ Server is not reachable[/]")


@main.command()
@click.argument("output_path", type=click.Path(path_type=Path))
def init_config(output_path: Path) -> None:
    """
    Generate a sample configuration file.

    Creates a YAML configuration file with all available options
    and helpful comments.
    """
    sample_config = """# Server Agent Configuration

# Sending stats to a remote collector
transmission:
  # URL stats are POSTed to as JSON
  url: http://your-web-service-url.com/api/stats

  # Stats are only logged locally unless this is true
  enabled: false

  # Request timeout in seconds
  timeout: 30

# Drive failure alerts
alerts:
  # Log a warning for each failing drive on every drive check
  enabled: false

# Schedule, in seconds
schedule:
  drive_check_interval: 600
  report_interval: 3600

  # Let a new run start while the previous one of the same job is still running
  allow_overlap: true

# smartctl invocation
smartctl:
  path: smartctl
  timeout: 30

# How drives are enumerated: scan (smartctl --scan) or partitions (mounted partitions)
drive:
  enumeration: scan

# Seconds the CPU usage sample blocks for
cpu:
  sample_interval: 1.0

# Logging
log:
  # Log level: DEBUG, INFO, WARNING, ERROR
  level: INFO

  # Log file path (null = console only)
  file: null
"""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(sample_config)
    console.print(f"[green]✓ Configuration file created: {output_path}[/]")
    console.print()
    console.print("Next steps:")
    console.print("  1. Edit the configuration file with your collector URL")
    console.print("  2. Check your drives: [cyan]server-agent drives[/]")
    console.print("  3. Start the agent: [cyan]server-agent -c <config> run[/]")


if __name__ == "__main__":
    main()
