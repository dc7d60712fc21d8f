"""
Configuration management for the wikidist crawler.
"""

import yaml
import logging
from pathlib import Path
from typing import Any, Dict, Optional
from dataclasses import dataclass, field, fields


@dataclass
class CrawlerConfig:
    """Configuration for crawler behavior."""
    workers: int = 10
    start_url: str = "Cat"
    site_prefix: str = "en"
    api_host: str = "wikipedia.org"
    user_agent: str = "wikidist/1.0 (link graph crawler)"
    request_timeout: int = 30
    # Queue capacities and batch sizes are multiples of the worker count
    queue_multiplier: int = 100
    low_water_multiplier: int = 80
    batch_multiplier: int = 100
    results_multiplier: int = 2
    refill_interval: float = 0.01
    metrics_interval: float = 10.0


@dataclass
class SeenSetConfig:
    """Configuration for the frontier deduplication window."""
    ttl: float = 120.0
    sweep_interval: float = 300.0


@dataclass
class StoreConfig:
    """Configuration for the article store."""
    type: str = "memory"
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: Optional[str] = None
    key_prefix: str = "wikidist"


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = "INFO"
    file: str = "logs/crawler.log"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    json: bool = False
    max_file_size_mb: int = 50
    backup_count: int = 5
    error_file: str = "logs/errors.log"
    error_max_file_size_mb: int = 10
    error_backup_count: int = 3
    library_level: str = "WARNING"


@dataclass
class MonitoringConfig:
    """Configuration for monitoring."""
    prometheus_port: int = 8000
    metrics_enabled: bool = False


@dataclass
class Config:
    """Main configuration class."""
    crawler: CrawlerConfig = field(default_factory=CrawlerConfig)
    seen: SeenSetConfig = field(default_factory=SeenSetConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)


def _section(cls, data: Optional[Dict[str, Any]]):
    """Build a config section, rejecting unknown keys."""
    data = data or {}
    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown {cls.__name__} keys: {', '.join(sorted(unknown))}")
    return cls(**data)


class ConfigManager:
    """Manages configuration loading and validation."""

    def __init__(self, config_path: str = "config.yaml"):
        self.config_path = Path(config_path)
        self._config: Optional[Config] = None

    def load_config(self) -> Config:
        """Load configuration from YAML file."""
        if not self.config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

        with open(self.config_path, 'r') as file:
            config_data = yaml.safe_load(file) or {}

        self._config = self.from_dict(config_data)
        self._validate_config()
        return self._config

    @staticmethod
    def from_dict(config_data: Dict[str, Any]) -> Config:
        """Parse configuration sections; missing sections take defaults."""
        return Config(
            crawler=_section(CrawlerConfig, config_data.get('crawler')),
            seen=_section(SeenSetConfig, config_data.get('seen')),
            store=_section(StoreConfig, config_data.get('store')),
            logging=_section(LoggingConfig, config_data.get('logging')),
            monitoring=_section(MonitoringConfig, config_data.get('monitoring'))
        )

    def _validate_config(self):
        """Validate configuration values."""
        if not self._config:
            raise ValueError("Configuration not loaded")
        validate_config(self._config)

    @property
    def config(self) -> Config:
        """Get the loaded configuration."""
        if not self._config:
            raise ValueError("Configuration not loaded. Call load_config() first.")
        return self._config


def validate_config(config: Config):
    """Raise ValueError on inconsistent configuration values."""
    crawler = config.crawler

    if crawler.workers < 1:
        raise ValueError("workers must be at least 1")

    if not crawler.start_url:
        raise ValueError("start_url must be provided")

    if not crawler.site_prefix:
        raise ValueError("site_prefix must be provided")

    if crawler.queue_multiplier < 1 or crawler.batch_multiplier < 1 or crawler.results_multiplier < 1:
        raise ValueError("queue, batch and results multipliers must be at least 1")

    if not 0 <= crawler.low_water_multiplier <= crawler.queue_multiplier:
        raise ValueError("low_water_multiplier must be between 0 and queue_multiplier")

    if crawler.refill_interval <= 0 or crawler.metrics_interval <= 0:
        raise ValueError("refill_interval and metrics_interval must be positive")

    if crawler.request_timeout <= 0:
        raise ValueError("request_timeout must be positive")

    if config.seen.ttl <= 0 or config.seen.sweep_interval <= 0:
        raise ValueError("seen ttl and sweep_interval must be positive")

    if config.store.type not in ['memory', 'redis']:
        raise ValueError("Store type must be 'memory' or 'redis'")

    log = config.logging
    for level in (log.level, log.library_level):
        if not isinstance(logging.getLevelName(level.upper()), int):
            raise ValueError(f"Unknown log level: {level}")

    if log.max_file_size_mb < 1 or log.error_max_file_size_mb < 1:
        raise ValueError("log file sizes must be at least 1 MB")

    if log.backup_count < 0 or log.error_backup_count < 0:
        raise ValueError("log backup counts cannot be negative")

    logging.info("Configuration validation passed")


def load_config(config_path: str = "config.yaml") -> Config:
    """Load configuration from file."""
    return ConfigManager(config_path).load_config()
