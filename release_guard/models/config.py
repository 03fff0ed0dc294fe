"""Configuration data models"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..constants import (
    RuntimeType,
    StatusProvider,
    CONFIG_VERSION,
    DEFAULT_ENVIRONMENT,
    DEFAULT_STATE_ROOT,
    DEFAULT_RUNTIME_TYPE,
    DEFAULT_COMPOSE_FILE,
    DEFAULT_IMAGE_TEMPLATE,
    DEFAULT_TAG_VARIABLE,
    DEFAULT_DOCKER_BINARY,
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_GATE_MAX_FAILURES,
    DEFAULT_GATE_MAX_WORKERS,
    DEFAULT_GATE_FETCH_TIMEOUT,
    DEFAULT_GATE_TIMEOUT,
    DEFAULT_RETRY_COUNT,
    DEFAULT_RETRY_DELAY,
    DEFAULT_RETRY_BACKOFF,
    DEFAULT_READINESS_DEADLINE,
    DEFAULT_READINESS_INTERVAL,
    DEFAULT_LOCK_TIMEOUT,
    DEFAULT_LOCK_POLL_INTERVAL,
    DEFAULT_STATUS_PROVIDER,
    DEFAULT_STATUS_API_URL,
    DEFAULT_STATUS_CONTEXT,
    DEFAULT_HTTP_TIMEOUT,
)


@dataclass
class EnvironmentConfig:
    """Target environment and where its state lives"""

    name: str = DEFAULT_ENVIRONMENT
    state_dir: Optional[str] = None

    def __post_init__(self):
        if not self.name:
            raise ValueError("Environment requires a 'name'")

    def get_state_dir(self, base: Optional[Path] = None) -> Path:
        """Resolve the state directory, relative paths against ``base``"""
        path = Path(self.state_dir) if self.state_dir else Path(DEFAULT_STATE_ROOT) / self.name
        if not path.is_absolute() and base is not None:
            path = base / path
        return path

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        data = {"name": self.name}
        if self.state_dir:
            data["state_dir"] = self.state_dir
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EnvironmentConfig':
        """Create from dictionary"""
        return cls(
            name=data.get("name", DEFAULT_ENVIRONMENT),
            state_dir=data.get("state_dir"),
        )


@dataclass
class RuntimeConfig:
    """Container runtime configuration"""

    type: str = DEFAULT_RUNTIME_TYPE
    compose_file: str = DEFAULT_COMPOSE_FILE
    project_name: Optional[str] = None
    image_template: str = DEFAULT_IMAGE_TEMPLATE
    registry: Optional[str] = None
    tag_variable: str = DEFAULT_TAG_VARIABLE
    docker_binary: str = DEFAULT_DOCKER_BINARY
    command_timeout: float = DEFAULT_COMMAND_TIMEOUT
    running_is_healthy: bool = True
    options: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Validate runtime configuration"""
        if self.type == RuntimeType.DOCKER.value and not self.compose_file:
            raise ValueError("Docker runtime requires 'compose_file'")
        if "{unit}" not in self.image_template or "{tag}" not in self.image_template:
            raise ValueError("image_template must contain {unit} and {tag}")
        if "{registry}" in self.image_template and not self.registry:
            raise ValueError("image_template uses {registry} but no registry is set")

    def image_for(self, unit: str, tag: str) -> str:
        """Image reference for ``unit`` at ``tag``"""
        return self.image_template.format(unit=unit, tag=tag, registry=self.registry or "")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        data = {
            "type": self.type,
            "compose_file": self.compose_file,
            "image_template": self.image_template,
            "tag_variable": self.tag_variable,
            "docker_binary": self.docker_binary,
            "command_timeout": self.command_timeout,
            "running_is_healthy": self.running_is_healthy,
        }
        if self.project_name:
            data["project_name"] = self.project_name
        if self.registry:
            data["registry"] = self.registry
        if self.options:
            data["options"] = self.options
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RuntimeConfig':
        """Create from dictionary"""
        return cls(
            type=data.get("type", DEFAULT_RUNTIME_TYPE),
            compose_file=data.get("compose_file", DEFAULT_COMPOSE_FILE),
            project_name=data.get("project_name"),
            image_template=data.get("image_template", DEFAULT_IMAGE_TEMPLATE),
            registry=data.get("registry"),
            tag_variable=data.get("tag_variable", DEFAULT_TAG_VARIABLE),
            docker_binary=data.get("docker_binary", DEFAULT_DOCKER_BINARY),
            command_timeout=float(data.get("command_timeout", DEFAULT_COMMAND_TIMEOUT)),
            running_is_healthy=data.get("running_is_healthy", True),
            options=data.get("options", {}),
        )


@dataclass
class GateConfig:
    """Quality gate configuration"""

    enabled: bool = True
    url: Optional[str] = None
    token: Optional[str] = None
    project_key_template: str = "{unit}"
    max_failures: int = DEFAULT_GATE_MAX_FAILURES
    max_workers: int = DEFAULT_GATE_MAX_WORKERS
    fetch_timeout: float = DEFAULT_GATE_FETCH_TIMEOUT
    timeout: float = DEFAULT_GATE_TIMEOUT
    retries: int = DEFAULT_RETRY_COUNT
    retry_delay: float = DEFAULT_RETRY_DELAY
    retry_backoff: float = DEFAULT_RETRY_BACKOFF

    def __post_init__(self):
        if self.max_failures < 0:
            raise ValueError("gate.max_failures must be >= 0")
        if self.max_workers < 1:
            raise ValueError("gate.max_workers must be >= 1")
        if self.enabled and not self.url:
            raise ValueError("Enabled quality gate requires 'url'")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        data = {
            "enabled": self.enabled,
            "project_key_template": self.project_key_template,
            "max_failures": self.max_failures,
            "max_workers": self.max_workers,
            "fetch_timeout": self.fetch_timeout,
            "timeout": self.timeout,
            "retries": self.retries,
            "retry_delay": self.retry_delay,
            "retry_backoff": self.retry_backoff,
        }
        if self.url:
            data["url"] = self.url
        if self.token:
            data["token"] = self.token
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GateConfig':
        """Create from dictionary"""
        return cls(
            enabled=data.get("enabled", True),
            url=data.get("url"),
            token=data.get("token") or None,
            project_key_template=data.get("project_key_template", "{unit}"),
            max_failures=int(data.get("max_failures", DEFAULT_GATE_MAX_FAILURES)),
            max_workers=int(data.get("max_workers", DEFAULT_GATE_MAX_WORKERS)),
            fetch_timeout=float(data.get("fetch_timeout", DEFAULT_GATE_FETCH_TIMEOUT)),
            timeout=float(data.get("timeout", DEFAULT_GATE_TIMEOUT)),
            retries=int(data.get("retries", DEFAULT_RETRY_COUNT)),
            retry_delay=float(data.get("retry_delay", DEFAULT_RETRY_DELAY)),
            retry_backoff=float(data.get("retry_backoff", DEFAULT_RETRY_BACKOFF)),
        )


@dataclass
class ReadinessConfig:
    """Readiness polling configuration"""

    deadline: float = DEFAULT_READINESS_DEADLINE
    interval: float = DEFAULT_READINESS_INTERVAL

    def __post_init__(self):
        if self.deadline <= 0 or self.interval <= 0:
            raise ValueError("readiness deadline and interval must be positive")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {"deadline": self.deadline, "interval": self.interval}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ReadinessConfig':
        """Create from dictionary"""
        return cls(
            deadline=float(data.get("deadline", DEFAULT_READINESS_DEADLINE)),
            interval=float(data.get("interval", DEFAULT_READINESS_INTERVAL)),
        )


@dataclass
class LockConfig:
    """Environment lock configuration"""

    timeout: float = DEFAULT_LOCK_TIMEOUT
    poll_interval: float = DEFAULT_LOCK_POLL_INTERVAL

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {"timeout": self.timeout, "poll_interval": self.poll_interval}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LockConfig':
        """Create from dictionary"""
        return cls(
            timeout=float(data.get("timeout", DEFAULT_LOCK_TIMEOUT)),
            poll_interval=float(data.get("poll_interval", DEFAULT_LOCK_POLL_INTERVAL)),
        )


@dataclass
class StatusConfig:
    """Commit status reporting configuration"""

    enabled: bool = False
    provider: str = DEFAULT_STATUS_PROVIDER
    api_url: str = DEFAULT_STATUS_API_URL
    repository: Optional[str] = None  # owner/name
    token: Optional[str] = None
    context: str = DEFAULT_STATUS_CONTEXT
    details_url: Optional[str] = None
    timeout: float = DEFAULT_HTTP_TIMEOUT

    def __post_init__(self):
        """Validate status configuration"""
        StatusProvider(self.provider)
        if self.enabled and not self.repository:
            raise ValueError("Enabled status reporting requires 'repository'")

    def render_details_url(self, attempt_id: str, tag: str) -> Optional[str]:
        if not self.details_url:
            return None
        return self.details_url.format(attempt_id=attempt_id, tag=tag)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        data = {
            "enabled": self.enabled,
            "provider": self.provider,
            "api_url": self.api_url,
            "context": self.context,
            "timeout": self.timeout,
        }
        if self.repository:
            data["repository"] = self.repository
        if self.token:
            data["token"] = self.token
        if self.details_url:
            data["details_url"] = self.details_url
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StatusConfig':
        """Create from dictionary"""
        return cls(
            enabled=data.get("enabled", False),
            provider=data.get("provider", DEFAULT_STATUS_PROVIDER),
            api_url=data.get("api_url", DEFAULT_STATUS_API_URL),
            repository=data.get("repository"),
            token=data.get("token") or None,
            context=data.get("context", DEFAULT_STATUS_CONTEXT),
            details_url=data.get("details_url"),
            timeout=float(data.get("timeout", DEFAULT_HTTP_TIMEOUT)),
        )


@dataclass
class Config:
    """Complete configuration"""

    version: str = CONFIG_VERSION
    environment: EnvironmentConfig = field(default_factory=EnvironmentConfig)
    units: List[str] = field(default_factory=list)
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)
    gate: GateConfig = field(default_factory=lambda: GateConfig(enabled=False))
    readiness: ReadinessConfig = field(default_factory=ReadinessConfig)
    lock: LockConfig = field(default_factory=LockConfig)
    status: StatusConfig = field(default_factory=StatusConfig)
    logging: Dict[str, Any] = field(default_factory=dict)

    # Directory the configuration file was loaded from
    base_dir: Optional[Path] = None

    @property
    def state_dir(self) -> Path:
        return self.environment.get_state_dir(self.base_dir)

    @property
    def compose_path(self) -> Path:
        path = Path(self.runtime.compose_file)
        if not path.is_absolute() and self.base_dir is not None:
            path = self.base_dir / path
        return path

    @classmethod
    def from_dict(cls, data: Dict[str, Any], base_dir: Optional[Path] = None) -> 'Config':
        """Create from dictionary"""
        data = data or {}
        units = data.get("units", [])
        if not isinstance(units, list):
            raise ValueError("'units' must be a list of unit names")

        return cls(
            version=str(data.get("version", CONFIG_VERSION)),
            environment=EnvironmentConfig.from_dict(data.get("environment", {})),
            units=[str(u) for u in units],
            runtime=RuntimeConfig.from_dict(data.get("runtime", {})),
            gate=GateConfig.from_dict(data["gate"]) if data.get("gate") else GateConfig(enabled=False),
            readiness=ReadinessConfig.from_dict(data.get("readiness", {})),
            lock=LockConfig.from_dict(data.get("lock", {})),
            status=StatusConfig.from_dict(data.get("status", {})),
            logging=data.get("logging", {}),
            base_dir=base_dir,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "version": self.version,
            "environment": self.environment.to_dict(),
            "units": list(self.units),
            "runtime": self.runtime.to_dict(),
            "gate": self.gate.to_dict(),
            "readiness": self.readiness.to_dict(),
            "lock": self.lock.to_dict(),
            "status": self.status.to_dict(),
            "logging": self.logging,
        }
