"""Run command implementation"""

import asyncio
import json
import logging
import signal
import sys

import click

from ..decorators import require_config
from ..utils.output import console, format_attempt_report, format_json, print_error
from ...api.releaser import Releaser
from ...constants import ENV_BUILD_NUMBER, ENV_COMMIT_ID, ExitCode
from ...exceptions import ReleaseGuardError
from ...utils.async_utils import run_async

logger = logging.getLogger(__name__)


async def _release_with_abort(releaser: Releaser, **options):
    """Run a release with SIGINT/SIGTERM wired to the abort event"""
    abort = asyncio.Event()
    loop = asyncio.get_running_loop()

    installed = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, abort.set)
            installed.append(sig)
        except (NotImplementedError, RuntimeError) as e:
            logger.debug(f"Cannot install handler for {sig.name}: {e}")

    try:
        return await releaser.async_release(abort=abort, **options)
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)


@click.command()
@click.option('--tag', '-t', required=True, help='Release tag to deploy')
@click.option('--unit', '-u', 'units', multiple=True,
              help='Unit to deploy, in start order (repeatable; defaults to the configured units)')
@click.option('--commit', envvar=ENV_COMMIT_ID, help='Commit to report the outcome on')
@click.option('--build-id', envvar=ENV_BUILD_NUMBER, help='Attempt identifier (defaults to a timestamp)')
@click.option('--skip-gate', is_flag=True, help='Do not consult the quality gate')
@click.option('--json', 'as_json', is_flag=True, help='Print the report as JSON')
@click.pass_context
@require_config
def run(ctx, tag, units, commit, build_id, skip_gate, as_json):
    """Release a tag: gate, backup, deploy, verify, roll back on failure

    The process exit code reflects the terminal state of the attempt, so
    pipelines can alert on a failed rollback (exit code 10).

    Examples:

        # Release tag 42 of the configured units
        release-guard run --tag 42

        # Release two units and report on a commit
        release-guard run --tag 42 -u api -u worker --commit 3f2a9c1
    """
    if not as_json:
        console.print(f"Releasing [bold]{tag}[/bold] to [cyan]{ctx.obj.config.environment.name}[/cyan]")

    try:
        report = run_async(_release_with_abort(
            ctx.obj.releaser,
            target_tag=tag,
            units=list(units) or None,
            attempt_id=build_id,
            commit_id=commit,
            skip_gate=skip_gate,
        ))
    except ReleaseGuardError as e:
        print_error("Release could not start", e)
        sys.exit(ExitCode.FAILED)

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2, default=str))
    else:
        format_attempt_report(report)
        if ctx.obj.debug:
            format_json(report.to_dict(), title="Attempt Report")

    sys.exit(report.exit_code)
