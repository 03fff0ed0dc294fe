"""Exception definitions for release-guard"""

from typing import Any, Dict, List, Optional, Sequence

from .constants import ErrorCode


class ReleaseGuardError(Exception):
    """Base exception for release-guard"""

    def __init__(self, message: str, error_code: str = None):
        super().__init__(message)
        self.error_code = error_code


class ConfigError(ReleaseGuardError):
    """Configuration error"""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.CONFIG_ERROR)


class InvalidTransitionError(ReleaseGuardError):
    """Attempt state machine refused a transition"""

    def __init__(self, current: str, requested: str):
        message = f"Invalid attempt transition: {current} -> {requested}"
        super().__init__(message, ErrorCode.INVALID_TRANSITION)
        self.current = current
        self.requested = requested


class LedgerError(ReleaseGuardError):
    """Version ledger could not be read or written"""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.LEDGER_CORRUPT)


class BackupNotFoundError(ReleaseGuardError):
    """Backup record missing or unreadable"""

    def __init__(self, backup_id: str, reason: str = "not found"):
        super().__init__(f"Backup {backup_id} {reason}", ErrorCode.BACKUP_NOT_FOUND)
        self.backup_id = backup_id


class SnapshotError(ReleaseGuardError):
    """Snapshot could not be taken; nothing has been mutated"""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.SNAPSHOT_FAILED)


class DeployStepError(ReleaseGuardError):
    """A mutating deploy step failed"""

    def __init__(self, message: str, error_code: str = None, unit: Optional[str] = None):
        super().__init__(message, error_code)
        self.unit = unit


class TeardownError(DeployStepError):
    """Stopping or removing the prior stack failed"""

    def __init__(self, message: str, unit: Optional[str] = None):
        super().__init__(message, ErrorCode.TEARDOWN_FAILED, unit)


class PullError(DeployStepError):
    """Pulling an image for the target tag failed"""

    def __init__(self, message: str, unit: Optional[str] = None):
        super().__init__(message, ErrorCode.PULL_FAILED, unit)


class StartError(DeployStepError):
    """Starting the new stack failed"""

    def __init__(self, message: str, unit: Optional[str] = None):
        super().__init__(message, ErrorCode.START_FAILED, unit)


class ReadinessTimeout(ReleaseGuardError):
    """Units did not all become healthy before the deadline"""

    def __init__(self, unhealthy_units: Sequence[str], deadline: float,
                 message: Optional[str] = None, error_code: str = ErrorCode.READINESS_TIMEOUT):
        self.unhealthy_units: List[str] = list(unhealthy_units)
        self.deadline = deadline
        if message is None:
            message = (
                f"Units not healthy after {deadline:g}s: "
                f"{', '.join(self.unhealthy_units)}"
            )
        super().__init__(message, error_code)


class ReadinessAborted(ReadinessTimeout):
    """Readiness polling was aborted from outside"""

    def __init__(self, unhealthy_units: Sequence[str], deadline: float):
        super().__init__(
            unhealthy_units,
            deadline,
            message=f"Readiness polling aborted; still unhealthy: {', '.join(unhealthy_units)}",
            error_code=ErrorCode.READINESS_ABORTED,
        )


class AttemptCancelled(ReleaseGuardError):
    """The attempt task was cancelled while the stack was being changed"""

    def __init__(self, state: str):
        super().__init__(f"Attempt cancelled while {state}", ErrorCode.ATTEMPT_CANCELLED)
        self.state = state


class RollbackFailed(ReleaseGuardError):
    """Restoring the backup failed; a human has to take over"""

    def __init__(self, message: str, cause: Optional[BaseException] = None,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.ROLLBACK_FAILED)
        self.cause = cause
        self.context = context or {}


class EnvironmentBusy(ReleaseGuardError):
    """Another attempt holds the environment lock"""

    def __init__(self, environment: str, timeout: float):
        message = f"Environment '{environment}' is busy (lock not acquired within {timeout:g}s)"
        super().__init__(message, ErrorCode.ENVIRONMENT_BUSY)
        self.environment = environment
        self.timeout = timeout


class GateFetchError(ReleaseGuardError):
    """Verdict for a unit could not be fetched"""

    def __init__(self, unit: str, message: str):
        super().__init__(f"Verdict fetch failed for {unit}: {message}", ErrorCode.GATE_FETCH_FAILED)
        self.unit = unit


class StatusReportError(ReleaseGuardError):
    """Commit status could not be pushed"""

    def __init__(self, commit_id: str, message: str):
        super().__init__(f"Status report for {commit_id} failed: {message}", ErrorCode.STATUS_REPORT_FAILED)
        self.commit_id = commit_id


def error_chain(exc: Optional[BaseException]) -> List[str]:
    """Render an exception and its causes, outermost first"""
    chain = []
    seen = set()
    original = None
    while exc is not None and id(exc) not in seen and exc is not original:
        seen.add(id(exc))
        code = getattr(exc, "error_code", None)
        prefix = f"[{code}] " if code else ""
        chain.append(f"{prefix}{type(exc).__name__}: {exc}")
        if isinstance(exc, RollbackFailed) and original is None:
            original = exc.cause
        if exc.__cause__ is not None or exc.__suppress_context__:
            exc = exc.__cause__
        else:
            exc = exc.__context__

    # The failure that triggered the rollback comes last
    if original is not None:
        chain.append("caused by original failure:")
        chain.extend(error_chain(original))
    return chain
