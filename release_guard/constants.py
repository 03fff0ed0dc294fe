"""Global constants for release-guard"""

from enum import Enum

APP_NAME = "release-guard"

# Logging
LOG_FORMAT = "%(message)s"

# Configuration
CONFIG_VERSION = "1.0"
PROJECT_CONFIG_FILE = ".release-guard.yaml"
DEFAULT_STATE_ROOT = ".release-guard"
DEFAULT_ENVIRONMENT = "default"

# Persisted state layout (relative to the environment state directory)
LEDGER_FILE = "ledger.json"
BACKUPS_DIR = "backups"
REPORTS_DIR = "reports"
LOCK_FILE = ".lock"
ATTEMPT_REPORT_PATTERN = "{attempt_id}.json"
ROLLBACK_REPORT_PATTERN = "{attempt_id}.rollback.json"
BACKUP_FILE_PATTERN = "{backup_id}.json"

# Quality gate defaults
DEFAULT_GATE_MAX_FAILURES = 1
DEFAULT_GATE_MAX_WORKERS = 4
DEFAULT_GATE_FETCH_TIMEOUT = 30.0  # seconds, per unit
DEFAULT_GATE_TIMEOUT = 120.0  # seconds, whole aggregation
DEFAULT_RETRY_COUNT = 0
DEFAULT_RETRY_DELAY = 2.0  # seconds
DEFAULT_RETRY_BACKOFF = 2.0

# Readiness defaults
DEFAULT_READINESS_DEADLINE = 120.0  # seconds
DEFAULT_READINESS_INTERVAL = 5.0  # seconds

# Lock defaults
DEFAULT_LOCK_TIMEOUT = 30.0  # seconds
DEFAULT_LOCK_POLL_INTERVAL = 0.5  # seconds

# Runtime defaults
DEFAULT_RUNTIME_TYPE = "docker"
DEFAULT_COMPOSE_FILE = "docker-compose.yml"
DEFAULT_IMAGE_TEMPLATE = "{unit}:{tag}"
DEFAULT_TAG_VARIABLE = "TAG"
DEFAULT_DOCKER_BINARY = "docker"
DEFAULT_COMMAND_TIMEOUT = 300.0  # seconds

# Status reporting defaults
DEFAULT_STATUS_PROVIDER = "github"
DEFAULT_STATUS_API_URL = "https://api.github.com"
DEFAULT_STATUS_CONTEXT = "release-guard"
DEFAULT_HTTP_TIMEOUT = 15.0  # seconds


class RuntimeType(Enum):
    DOCKER = "docker"


class StatusProvider(Enum):
    GITHUB = "github"


class CommitState(Enum):
    SUCCESS = "success"
    FAILURE = "failure"


# Error codes
class ErrorCode:
    CONFIG_ERROR = "RG001"
    SNAPSHOT_FAILED = "RG002"
    TEARDOWN_FAILED = "RG003"
    PULL_FAILED = "RG004"
    START_FAILED = "RG005"
    READINESS_TIMEOUT = "RG006"
    READINESS_ABORTED = "RG007"
    ROLLBACK_FAILED = "RG008"
    ENVIRONMENT_BUSY = "RG009"
    GATE_FETCH_FAILED = "RG010"
    STATUS_REPORT_FAILED = "RG011"
    LEDGER_CORRUPT = "RG012"
    BACKUP_NOT_FOUND = "RG013"
    INVALID_TRANSITION = "RG014"
    GATE_REJECTED = "RG015"
    ATTEMPT_CANCELLED = "RG016"


# Process exit codes, ROLLBACK_FAILED is the highest severity
class ExitCode:
    SUCCEEDED = 0
    FAILED = 1
    REJECTED = 3
    ENVIRONMENT_BUSY = 4
    ROLLED_BACK = 5
    ROLLBACK_FAILED = 10


# Environment variables
ENV_CONFIG_PATH = "RELEASE_GUARD_CONFIG"
ENV_LOG_LEVEL = "RELEASE_GUARD_LOG_LEVEL"
ENV_BUILD_NUMBER = "BUILD_NUMBER"
ENV_COMMIT_ID = "GIT_COMMIT"

# Display constants
EMOJI_SUCCESS = "✓"
EMOJI_ERROR = "✗"
EMOJI_WARNING = "⚠"
EMOJI_REWIND = "⏪"

# Messages templates
MSG_RELEASE_SUCCEEDED = f"{EMOJI_SUCCESS} Release {{tag}} is live (attempt {{attempt_id}})"
MSG_RELEASE_ROLLED_BACK = f"{EMOJI_REWIND} Release {{tag}} rolled back to {{restored_tag}} (attempt {{attempt_id}})"
MSG_ROLLBACK_FAILED = f"{EMOJI_ERROR} Rollback of {{tag}} failed, manual intervention required (attempt {{attempt_id}})"
MSG_GATE_REJECTED = f"{EMOJI_ERROR} Quality gate rejected release {{tag}}: {{failed}} failing unit(s)"
