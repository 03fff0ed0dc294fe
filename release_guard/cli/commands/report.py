"""Attempt report command implementation"""

import json
import sys

import click

from ..decorators import require_config
from ..utils.output import format_attempt_report, format_json, print_error
from ...constants import ExitCode
from ...models import AttemptReport, RollbackReport
from ...utils.file_utils import read_json


@click.command()
@click.argument('attempt_id')
@click.option('--json', 'as_json', is_flag=True, help='Print the stored report as JSON')
@click.pass_context
@require_config
def report(ctx, attempt_id, as_json):
    """Show the stored report of a finished attempt"""
    paths = ctx.obj.releaser.paths
    path = paths.get_attempt_report_path(attempt_id)

    if not path.exists():
        print_error(f"No report for attempt {attempt_id} in {paths.reports_dir}")
        sys.exit(ExitCode.FAILED)

    try:
        data = read_json(path)
        attempt_report = AttemptReport.from_dict(data)
    except (OSError, ValueError, KeyError, TypeError) as e:
        print_error(f"Cannot read {path}", e)
        sys.exit(ExitCode.FAILED)

    if as_json:
        click.echo(json.dumps(data, indent=2))
        return

    format_attempt_report(attempt_report)

    rollback_path = paths.get_rollback_report_path(attempt_id)
    if ctx.obj.verbose and rollback_path.exists():
        rollback = RollbackReport.from_dict(read_json(rollback_path))
        format_json(rollback.to_dict(), title="Rollback Report")
