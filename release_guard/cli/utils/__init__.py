"""CLI utility functions"""

from .output import (
    console,
    format_attempt_report,
    format_gate_report,
    format_ledger,
    format_backup_list,
    format_json,
    print_error,
    print_warning,
    print_success,
)

__all__ = [
    'console',
    'format_attempt_report',
    'format_gate_report',
    'format_ledger',
    'format_backup_list',
    'format_json',
    'print_error',
    'print_warning',
    'print_success',
]
