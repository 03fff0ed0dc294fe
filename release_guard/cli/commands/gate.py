"""Quality gate command implementation"""

import json
import sys

import click

from ..decorators import require_config
from ..utils.output import format_gate_report, print_error
from ...constants import ExitCode
from ...exceptions import ReleaseGuardError


@click.command()
@click.option('--unit', '-u', 'units', multiple=True,
              help='Unit to evaluate (repeatable; defaults to the configured units)')
@click.option('--json', 'as_json', is_flag=True, help='Print the verdicts as JSON')
@click.pass_context
@require_config
def gate(ctx, units, as_json):
    """Evaluate the quality gate without deploying

    Exits 0 when the gate passes and 3 when it rejects the release.

    Examples:

        release-guard gate
        release-guard gate -u api -u worker --json
    """
    try:
        report = ctx.obj.releaser.evaluate_gate(list(units) or None)
    except ReleaseGuardError as e:
        print_error("Quality gate could not be evaluated", e)
        sys.exit(ExitCode.FAILED)

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
    else:
        format_gate_report(report)

    sys.exit(ExitCode.SUCCEEDED if report.passed else ExitCode.REJECTED)
