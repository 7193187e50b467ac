"""Configuration management - loads cafe.yaml and environment variables."""

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from cafe_ops.models.service import CafeConfig, ServiceDefinition

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "cafe.yaml"


class ConfigurationError(Exception):
    """Raised when configuration is invalid or missing."""

    pass


class Config:
    """Application configuration loader.

    Loads cafe.yaml and provides validated access to:
    - Company settings
    - The service catalog
    - Token prefixes, clock mode and redemption policy
    """

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to cafe.yaml. If not provided, uses CONFIG_PATH env var
                        or the config/cafe.yaml shipped with the project
        """
        self._config_path = self._resolve_config_path(config_path)
        self._cafe_config: Optional[CafeConfig] = None
        self._load_config()

    def _resolve_config_path(self, config_path: Optional[str]) -> Path:
        if config_path:
            return Path(config_path)

        env_path = os.getenv("CONFIG_PATH")
        if env_path:
            return Path(env_path)

        return DEFAULT_CONFIG_PATH

    def _load_config(self) -> None:
        """Load and validate cafe.yaml."""
        if not self._config_path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {self._config_path}\n"
                f"Please create config/cafe.yaml or set CONFIG_PATH environment variable"
            )

        try:
            with open(self._config_path, encoding="utf-8") as f:
                raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse YAML configuration: {e}") from e

        if not raw_config:
            raise ConfigurationError(f"Configuration file is empty: {self._config_path}")

        try:
            self._cafe_config = CafeConfig(**raw_config)
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}") from e

        ids = [service.id for service in self._cafe_config.services]
        duplicates = sorted({service_id for service_id in ids if ids.count(service_id) > 1})
        if duplicates:
            raise ConfigurationError(f"Duplicate service ids in catalog: {', '.join(duplicates)}")

        from cafe_ops.utils.durations import validate_period

        bad_periods = [
            f"{service.id} ({service.validity_period})"
            for service in self._cafe_config.services
            if service.validity_period is not None and not validate_period(service.validity_period)
        ]
        if bad_periods:
            raise ConfigurationError(f"Invalid validity_period for services: {', '.join(bad_periods)}")

    @property
    def cafe(self) -> CafeConfig:
        """Validated configuration."""
        if self._cafe_config is None:
            raise ConfigurationError("Configuration not loaded")
        return self._cafe_config

    @property
    def config_path(self) -> Path:
        return self._config_path

    @property
    def company(self):
        return self.cafe.company

    @property
    def services(self) -> list[ServiceDefinition]:
        return self.cafe.services

    @property
    def token_settings(self):
        return self.cafe.tokens

    @property
    def clock_settings(self):
        return self.cafe.clock

    @property
    def redemption_policy(self):
        return self.cafe.redemption

    def reload(self) -> None:
        """Reload configuration from disk."""
        self._load_config()


# Global configuration instance
_config_instance: Optional[Config] = None


def get_config(config_path: Optional[str] = None) -> Config:
    """Get global configuration instance (singleton).

    Args:
        config_path: Optional path to configuration file (only used on first call)
    """
    global _config_instance
    if _config_instance is None:
        _config_instance = Config(config_path)
    return _config_instance


def reload_config() -> None:
    """Reload global configuration from disk."""
    global _config_instance
    if _config_instance:
        _config_instance.reload()
    else:
        _config_instance = Config()
