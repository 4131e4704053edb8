"""
Configuration management for the crawler.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml


class ConfigError(ValueError):
    """Raised when configuration values are missing or invalid."""


@dataclass
class CrawlerConfig:
    """Configuration for crawler behavior."""
    seed_url: Optional[str] = None
    max_depth: int = 1
    verbose: bool = False
    user_agent: str = "sitecrawler/1.0"
    request_timeout: Optional[float] = None
    max_concurrent_requests: int = 0


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = "WARNING"
    file: Optional[str] = None
    format: str = "%(levelname)s: %(message)s"
    json: bool = False


@dataclass
class Config:
    """Main configuration class."""
    crawler: CrawlerConfig = field(default_factory=CrawlerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


class ConfigManager:
    """Manages configuration loading and validation."""

    def __init__(self, config_path: Union[str, Path, None] = None):
        self.config_path = Path(config_path) if config_path else None
        self._config: Optional[Config] = None

    def load_config(self) -> Config:
        """
        Load configuration from a YAML file.

        Sections and keys missing from the file keep their defaults. Without
        a config path the defaults are returned as-is.
        """
        config_data: Dict[str, Any] = {}
        if self.config_path is not None:
            if not self.config_path.exists():
                raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

            with open(self.config_path, 'r') as file:
                try:
                    config_data = yaml.safe_load(file) or {}
                except yaml.YAMLError as e:
                    raise ConfigError(f"Invalid YAML in {self.config_path}: {e}") from e

        if not isinstance(config_data, dict):
            raise ConfigError("Configuration root must be a mapping")

        self._config = Config(
            crawler=self._section(CrawlerConfig, config_data, 'crawler'),
            logging=self._section(LoggingConfig, config_data, 'logging'),
        )

        validate_config(self._config)
        return self._config

    @staticmethod
    def _section(cls, config_data: Dict[str, Any], name: str):
        section = config_data.get(name) or {}
        if not isinstance(section, dict):
            raise ConfigError(f"'{name}' section must be a mapping")
        try:
            return cls(**section)
        except TypeError as e:
            raise ConfigError(f"Invalid '{name}' section: {e}") from e

    @property
    def config(self) -> Config:
        """Get the loaded configuration."""
        if not self._config:
            raise ValueError("Configuration not loaded. Call load_config() first.")
        return self._config


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_config(config: Config) -> None:
    """Validate configuration values."""
    crawler = config.crawler

    if not _is_int(crawler.max_depth):
        raise ConfigError("max_depth must be an integer")

    if not isinstance(crawler.verbose, bool):
        raise ConfigError("verbose must be a boolean")

    if crawler.seed_url is not None and not isinstance(crawler.seed_url, str):
        raise ConfigError("seed_url must be a string")

    if not isinstance(crawler.user_agent, str):
        raise ConfigError("user_agent must be a string")

    if crawler.request_timeout is not None:
        if not (_is_int(crawler.request_timeout) or isinstance(crawler.request_timeout, float)):
            raise ConfigError("request_timeout must be a number")
        if crawler.request_timeout <= 0:
            raise ConfigError("request_timeout must be positive")

    if not _is_int(crawler.max_concurrent_requests):
        raise ConfigError("max_concurrent_requests must be an integer")
    if crawler.max_concurrent_requests < 0:
        raise ConfigError("max_concurrent_requests must be non-negative")

    if not isinstance(config.logging.level, str):
        raise ConfigError("logging level must be a string")
    if not isinstance(logging.getLevelName(config.logging.level.upper()), int):
        raise ConfigError(f"Unknown log level: {config.logging.level}")

    if not isinstance(config.logging.json, bool):
        raise ConfigError("logging json must be a boolean")

    if not isinstance(config.logging.format, str):
        raise ConfigError("logging format must be a string")

    if config.logging.file is not None and not isinstance(config.logging.file, str):
        raise ConfigError("logging file must be a string")


def load_config(config_path: Union[str, Path, None] = None) -> Config:
    """Load configuration from file, or defaults when no path is given."""
    return ConfigManager(config_path).load_config()
