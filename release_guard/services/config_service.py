"""Configuration loading service"""

import logging
import os
from pathlib import Path
from typing import Optional, Union

import yaml

from ..constants import ENV_CONFIG_PATH, PROJECT_CONFIG_FILE
from ..exceptions import ConfigError
from ..models.config import Config

logger = logging.getLogger(__name__)


class ConfigService:
    """Service for locating and loading the release configuration"""

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        """Initialize config service

        Args:
            config_path: Explicit configuration file; falls back to
                ``$RELEASE_GUARD_CONFIG`` and then the project file in the
                working directory
        """
        if config_path is None:
            config_path = os.environ.get(ENV_CONFIG_PATH) or PROJECT_CONFIG_FILE
        self.config_path = Path(config_path)
        self._config: Optional[Config] = None

    @property
    def config(self) -> Config:
        """Get current configuration (lazy load)"""
        if self._config is None:
            self.load_config()
        return self._config

    def load_config(self) -> Config:
        """Load configuration from file

        Raises:
            ConfigError: Missing file, bad YAML or invalid values
        """
        if not self.config_path.exists():
            raise ConfigError(f"Configuration file not found: {self.config_path}")

        try:
            with open(self.config_path, 'r') as f:
                content = f.read()
        except OSError as e:
            raise ConfigError(f"Cannot read {self.config_path}: {e}") from e

        # Secrets come from the environment
        content = os.path.expandvars(content)

        try:
            data = yaml.safe_load(content) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {self.config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"{self.config_path} must contain a mapping")

        try:
            self._config = Config.from_dict(data, base_dir=self.config_path.resolve().parent)
        except (ValueError, TypeError, KeyError) as e:
            raise ConfigError(f"Invalid configuration in {self.config_path}: {e}") from e

        logger.debug(f"Loaded configuration from {self.config_path}")
        return self._config

