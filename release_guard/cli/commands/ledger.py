"""Version ledger command implementation"""

import json
import sys

import click

from ..decorators import require_config
from ..utils.output import format_ledger, print_error
from ...constants import ExitCode
from ...exceptions import LedgerError


@click.command()
@click.option('--json', 'as_json', is_flag=True, help='Print the ledger as JSON')
@click.pass_context
@require_config
def ledger(ctx, as_json):
    """Show the current and stable tag of the environment"""
    try:
        record = ctx.obj.releaser.ledger()
    except LedgerError as e:
        print_error("Cannot read the version ledger", e)
        sys.exit(ExitCode.FAILED)

    if as_json:
        click.echo(json.dumps(record.to_dict(), indent=2))
    else:
        format_ledger(record, ctx.obj.config.environment.name)
