# release_guard/cli/commands/__init__.py
"""CLI commands"""

from . import run
from . import gate
from . import ledger
from . import backups
from . import report
from . import doctor

__all__ = [
    "run",
    "gate",
    "ledger",
    "backups",
    "report",
    "doctor",
]
