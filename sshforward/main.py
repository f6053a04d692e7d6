"""
Main entry point for the SSH Forward application.

This module provides the command-line interface: loading the
configuration, setting up logging and running the connection supervisor
until the process is interrupted.
"""

import asyncio
import signal
import sys
from typing import Optional

import typer
from loguru import logger

from .core.exceptions import ForwardBindError
from .core.interfaces.ssh import describe_forwards
from .infrastructure.clients.ssh.client import AsyncSSHConnector
from .infrastructure.config.loader import DEFAULT_CONFIG_FILE, ConfigLoader
from .infrastructure.config.models import ForwarderConfig
from .infrastructure.logging.setup import setup_logging
from .infrastructure.services.ssh.supervisor import ConnectionSupervisor

# Create CLI application
cli = typer.Typer(
    name="sshforward",
    help="Self-healing SSH connection multiplexing static local port forwards"
)


@cli.command()
def start(
    config_file: str = typer.Option(
        DEFAULT_CONFIG_FILE, "--config", "-c", help="Configuration file path"
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Logging level"
    ),
    debug: bool = typer.Option(
        False, "--debug", help="Enable debug logging"
    )
) -> None:
    """Connect to the SSH server and serve all configured forwards."""

    config_loader = ConfigLoader()
    try:
        config = config_loader.load_config(config_file)
    except (FileNotFoundError, ValueError) as e:
        typer.echo(f"Cannot load configuration: {e}", err=True)
        sys.exit(1)

    # Override with command line arguments
    if log_level:
        config.logging.level = log_level.upper()
    if debug:
        config.logging.level = "DEBUG"

    setup_logging(config.logging)
    logger.info(f"Loaded configuration from {config.config_file_path}")

    try:
        asyncio.run(run_application(config))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except ForwardBindError as e:
        logger.error(f"Fatal configuration error: {e}")
        sys.exit(1)


@cli.command()
def init_config(
    output: str = typer.Option(
        DEFAULT_CONFIG_FILE, "--output", "-o", help="Output configuration file"
    ),
    format: str = typer.Option(
        "yaml", "--format", "-f", help="Configuration format (yaml/json)"
    )
) -> None:
    """Generate a sample configuration file."""

    config = ForwarderConfig.sample()
    config_loader = ConfigLoader()

    try:
        config_loader.save_config(config, output, format)
        typer.echo(f"Sample configuration saved to {output}")
    except ValueError as e:
        typer.echo(f"Error saving configuration: {e}", err=True)
        sys.exit(1)


@cli.command()
def validate_config(
    config_file: str = typer.Argument(DEFAULT_CONFIG_FILE,
                                      help="Configuration file to validate")
) -> None:
    """Validate a configuration file."""

    config_loader = ConfigLoader()

    try:
        config = config_loader.load_config(config_file)
    except (FileNotFoundError, ValueError) as e:
        typer.echo(f"Configuration validation failed: {e}", err=True)
        sys.exit(1)

    server = config.ssh_server
    typer.echo(f"Configuration file {config_file} is valid")
    typer.echo(f"SSH server: {server.username}@{server.host}:{server.port}")
    for line in describe_forwards(config.to_forward_specs()):
        typer.echo(f"  {line}")


def create_supervisor(config: ForwarderConfig) -> ConnectionSupervisor:
    """Wire the supervisor for a validated configuration."""
    settings = config.supervisor
    connector = AsyncSSHConnector(keepalive_interval=settings.keepalive_interval)

    return ConnectionSupervisor(
        endpoint=config.to_endpoint(),
        forwards=config.to_forward_specs(),
        connector=connector,
        connect_timeout=settings.connect_timeout,
        reconnect_interval=settings.reconnect_interval,
        probe_interval=settings.probe_interval,
        probe_command=settings.probe_command,
        probe_timeout=settings.probe_timeout
    )


async def run_application(config: ForwarderConfig) -> None:
    """
    Run the supervisor until SIGINT or SIGTERM.

    Args:
        config: Validated application configuration

    Raises:
        ForwardBindError: If a forward's local port cannot be bound
    """
    supervisor = create_supervisor(config)
    loop = asyncio.get_running_loop()

    def signal_handler(signum: int) -> None:
        logger.info(f"Received signal {signum}, initiating shutdown...")
        asyncio.ensure_future(supervisor.stop())

    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, signal_handler, signum)
        except NotImplementedError:
            # Windows event loops; Ctrl+C still ends asyncio.run
            break

    await supervisor.run()


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
