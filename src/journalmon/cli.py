"""CLI for journalmon.

Usage:
    journalmon                       follow the journal with the default config
    journalmon -c /path/to/config    follow the journal with a specific config
    journalmon run --input -         read journal JSON from stdin instead
    journalmon test                  send a test alert
    journalmon check-config          validate and show the effective config
"""

from dataclasses import asdict
from pathlib import Path

import click

from journalmon import __version__
from journalmon.alerter import (
    Dispatcher,
    FileSource,
    JournalMonitor,
    JournalSource,
    build_transport,
    priority_name,
    run_monitor,
)
from journalmon.config import DEFAULT_CONFIG_PATHS, Config, ConfigError, load_config
from journalmon.logging import configure_logging

_SEARCH_PATHS = "\n".join(f"  {p}" for p in DEFAULT_CONFIG_PATHS)

CONFIG_HELP = f"""\b
Config file locations (first found wins):
{_SEARCH_PATHS}

\b
Config file format (YAML, or legacy key=value):
  recipient: admin@example.com
  mailer_path: /usr/local/bin/mailer
  min_priority: 3        # 0=emerg, 3=error, 4=warning, 7=debug
  batch_window: 60       # seconds to coalesce bursts, 0 disables
  filters: nginx,postgres
"""


@click.group(invoke_without_command=True, epilog=CONFIG_HELP)
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to config file",
)
@click.option("--verbose", is_flag=True, help="Enable debug logging")
@click.version_option(
    __version__, "--version", "-v", prog_name="journalmon", message="%(prog)s version %(version)s"
)
@click.pass_context
def main(ctx: click.Context, config_path: Path | None, verbose: bool) -> None:
    """Watch the systemd journal and send alerts for errors."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose

    if ctx.invoked_subcommand is None:
        ctx.invoke(run)


@main.command()
@click.option(
    "--input",
    "input_path",
    type=click.Path(dir_okay=False, allow_dash=True),
    default=None,
    help="Read journal JSON lines from a file ('-' for stdin) instead of journalctl",
)
@click.pass_context
def run(ctx: click.Context, input_path: str | None) -> None:
    """Run the monitor (default command)."""
    config = _load_config(ctx.obj["config_path"])
    configure_logging("journalmon", "DEBUG" if ctx.obj["verbose"] else config.log_level)

    click.echo(f"journalmon {__version__}", err=True)
    click.echo(f"  Recipient: {config.recipient}", err=True)
    click.echo(f"  Transport: {_describe_transport(config)}", err=True)
    click.echo(
        f"  Min priority: {priority_name(config.min_priority)} (<={config.min_priority})",
        err=True,
    )
    click.echo(f"  Batch window: {config.batch_window:g}s", err=True)
    if config.filters:
        click.echo(f"  Filters: {', '.join(config.filters)}", err=True)
    click.echo("", err=True)

    source = FileSource(input_path) if input_path else None
    raise SystemExit(run_monitor(config, source=source))


@main.command()
@click.pass_context
def test(ctx: click.Context) -> None:
    """Send a test alert to verify delivery."""
    config = _load_config(ctx.obj["config_path"])
    configure_logging("journalmon", "DEBUG" if ctx.obj["verbose"] else config.log_level)

    dispatcher = Dispatcher(build_transport(config))
    monitor = JournalMonitor(config, JournalSource(config.min_priority), dispatcher)
    try:
        ok = monitor.send_test_alert()
    finally:
        dispatcher.close()

    if ok:
        click.echo(f"Test alert sent to {config.recipient}")
    else:
        click.echo("Failed to send test alert", err=True)
        raise SystemExit(1)


@main.command("check-config")
@click.pass_context
def check_config(ctx: click.Context) -> None:
    """Validate the configuration and print the effective values."""
    config = _load_config(ctx.obj["config_path"])
    for key, value in asdict(config).items():
        if key == "webhook_url" and value:
            value = value[:50] + "..." if len(value) > 50 else value
        if key == "filters":
            value = ",".join(value) or "(all services)"
        click.echo(f"{key}: {value}")


def _load_config(config_path: Path | None) -> Config:
    """Load configuration or exit with a diagnostic."""
    try:
        return load_config(config_path)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        click.echo("Run 'journalmon --help' for more information.", err=True)
        raise SystemExit(1) from e


def _describe_transport(config: Config) -> str:
    if config.transport == "webhook":
        assert config.webhook_url
        return f"webhook {config.webhook_url[:50]}..."
    return f"mailer {config.mailer_path}"


if __name__ == "__main__":
    main()
