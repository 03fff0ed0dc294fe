"""Backup inspection commands"""

import sys

import click

from ..decorators import require_config
from ..utils.output import format_backup_list, format_json, print_error, print_warning
from ...constants import ExitCode
from ...exceptions import BackupNotFoundError
from ...models import Backup
from ...utils.async_utils import run_async
from ...utils.file_utils import read_json


@click.group()
def backups():
    """Inspect backups taken before each deploy

    Backups are kept for audit and never deleted by release-guard.
    """
    pass


@backups.command('list')
@click.option('--attempt', '-a', 'attempt_id', help='Only backups of this attempt')
@click.pass_context
@require_config
def list_backups(ctx, attempt_id):
    """List backup records"""
    manager = ctx.obj.releaser.backup_manager()

    records = []
    for path in manager.list_backups(attempt_id):
        try:
            records.append(Backup.from_dict(read_json(path)))
        except (OSError, ValueError, KeyError, TypeError) as e:
            print_warning(f"Skipping unreadable backup {path.name}: {e}")

    records.sort(key=lambda b: b.created_at)
    format_backup_list(records)


@backups.command('show')
@click.argument('backup_id')
@click.option('--attempt', '-a', 'attempt_id', help='Attempt the backup belongs to')
@click.pass_context
@require_config
def show_backup(ctx, backup_id, attempt_id):
    """Show one backup record, descriptor included"""
    manager = ctx.obj.releaser.backup_manager()

    try:
        backup = run_async(manager.load(backup_id, attempt_id))
    except BackupNotFoundError as e:
        print_error("Backup unavailable", e)
        sys.exit(ExitCode.FAILED)

    format_json(backup.to_dict(), title=f"Backup {backup.id}")
