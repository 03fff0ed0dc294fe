"""Configuration context decorator for CLI commands"""

import sys
from functools import wraps
from typing import Callable

import click

from ..utils.output import console
from ...constants import EMOJI_ERROR, ExitCode, PROJECT_CONFIG_FILE
from ...exceptions import ConfigError


def require_config(func: Callable) -> Callable:
    """Decorator that ensures the command runs with a loaded configuration

    The configuration is loaded through the CLI context before the command
    body runs; a missing or invalid file ends the command with exit code 1.

    Args:
        func: Command function to decorate

    Returns:
        Decorated function
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        ctx = click.get_current_context()

        try:
            ctx.obj.load_config()
        except ConfigError as e:
            console.print(f"{EMOJI_ERROR} {e}")
            if ctx.obj.config_path is None:
                console.print(
                    f"Create {PROJECT_CONFIG_FILE} or pass --config to point at one."
                )
            sys.exit(ExitCode.FAILED)

        return func(*args, **kwargs)

    return wrapper
