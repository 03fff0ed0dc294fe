# release_guard/cli/main.py
"""Main CLI entry point for release-guard"""

import os
import sys
import logging
from pathlib import Path
from typing import Optional

import click
from rich.logging import RichHandler

from ..__version__ import __version__
from ..api.releaser import Releaser
from ..constants import APP_NAME, ENV_CONFIG_PATH, ENV_LOG_LEVEL, LOG_FORMAT
from ..models import Config
from ..services import ConfigService
from .utils.output import console

from .commands import (
    run,
    gate,
    ledger,
    backups,
    report,
    doctor,
)


def setup_logging(verbose: bool = False, debug: bool = False) -> None:
    """Setup logging configuration

    Args:
        verbose: Enable verbose output (INFO level)
        debug: Enable debug output (DEBUG level)
    """
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    # Explicit level from the environment wins
    env_level = os.environ.get(ENV_LOG_LEVEL)
    if env_level:
        level = logging.getLevelName(env_level.upper())
        if not isinstance(level, int):
            level = logging.WARNING

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[
            RichHandler(
                console=console,
                show_time=debug,
                show_path=debug,
                rich_tracebacks=True,
                tracebacks_suppress=[click]
            )
        ]
    )

    # Quiet chatty libraries
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("aiofiles").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


class Context:
    """CLI context object with lazy configuration loading

    Configuration and the releaser are only built when a command asks
    for them, so ``--help`` and ``doctor`` work without a valid file.
    """

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize CLI context"""
        self.config_path = config_path
        self.verbose: bool = False
        self.debug: bool = False
        self._config: Optional[Config] = None
        self._releaser: Optional[Releaser] = None

    def load_config(self) -> Config:
        """Load the configuration once

        Raises:
            ConfigError: Missing or invalid configuration
        """
        if self._config is None:
            self._config = ConfigService(self.config_path).load_config()
            if self.debug:
                console.print(f"[dim]Configuration: {self.config_path or 'default'}[/dim]")
        return self._config

    @property
    def config(self) -> Config:
        return self.load_config()

    @property
    def config_loaded(self) -> bool:
        return self._config is not None

    @property
    def releaser(self) -> Releaser:
        """Releaser for the configured environment (lazy loading)"""
        if self._releaser is None:
            self._releaser = Releaser(self.config)
        return self._releaser


@click.group(name=APP_NAME)
@click.version_option(__version__, prog_name=APP_NAME)
@click.option('-v', '--verbose', is_flag=True, help='Enable verbose output')
@click.option('-d', '--debug', is_flag=True, help='Enable debug output')
@click.option('-q', '--quiet', is_flag=True, help='Suppress all output except errors')
@click.option('-c', '--config', 'config_path', type=click.Path(dir_okay=False, path_type=Path),
              envvar=ENV_CONFIG_PATH, help='Configuration file')
@click.pass_context
def cli(ctx, verbose, debug, quiet, config_path):
    """Release Guard - gated releases with automatic rollback

    Runs a release of a container stack as one attempt: the quality gate
    decides whether it may start, the running stack is backed up, the new
    tag is deployed and verified, and any failure restores the backup.

    Exit codes: 0 succeeded, 1 failed, 3 rejected by the gate,
    4 environment busy, 5 rolled back, 10 rollback failed.
    """
    if quiet:
        logging.disable(logging.CRITICAL)
    else:
        setup_logging(verbose=verbose, debug=debug)

    ctx.obj = Context(config_path)
    ctx.obj.verbose = verbose
    ctx.obj.debug = debug


cli.add_command(run.run)
cli.add_command(gate.gate)
cli.add_command(ledger.ledger)
cli.add_command(backups.backups)
cli.add_command(report.report)
cli.add_command(doctor.doctor)


def main():
    """Console script entry point

    Exit codes of the commands pass through unchanged; an interrupt outside
    a run exits 130 and an unexpected error exits 1.
    """
    try:
        cli(prog_name=APP_NAME)

    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        sys.exit(130)

    except Exception as e:
        console.print(f"[red]Unexpected error: {e}[/red]")
        if '--debug' in sys.argv or '-d' in sys.argv:
            console.print_exception()
        sys.exit(1)


if __name__ == "__main__":
    main()
