"""
overpass-geojson configuration handling.

Provides YAML configuration loading and validation.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .endpoints import Endpoint
from .errors import ConfigurationError

DEFAULT_ENDPOINTS: List[Endpoint] = [
    Endpoint(url="https://162.55.144.139/api/interpreter", host="overpass-api.de"),
    Endpoint(url="https://65.109.112.52/api/interpreter", host="lz4.overpass-api.de"),
    Endpoint(url="https://193.219.97.30/api/interpreter", host="overpass.kumi.systems"),
]

DEFAULT_LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"


@dataclass
class OverpassConfig:
    """
    overpass-geojson configuration.

    Can be loaded from a YAML file or created programmatically.
    """
    endpoints: List[Endpoint] = field(default_factory=lambda: list(DEFAULT_ENDPOINTS))

    # Transport
    timeout: float = 60.0  # seconds, per attempt
    user_agent: str = "OSM-MCP/1.0"
    verify_tls: bool = False  # endpoints are addressed by IP literal

    # Cache
    cache_enabled: bool = True
    cache_max_size: int = 100
    cache_ttl: float = 15 * 60  # seconds
    cache_cleanup_interval: float = 5 * 60  # seconds

    # Backoff between failed attempts
    rate_limit_backoff_base: float = 5.0
    rate_limit_backoff_max: float = 30.0
    rate_limit_backoff_multiplier: float = 2.0
    server_error_delay: float = 2.0

    # Validation
    max_area: float = 0.001  # square degrees, warning only
    max_limit: int = 10000
    slow_limit: int = 1000

    # Logging
    log_level: str = "INFO"
    log_file: str = ""
    log_format: str = DEFAULT_LOG_FORMAT
    log_max_bytes: int = 10485760  # 10MB
    log_backup_count: int = 3

    # Metrics
    metrics_enabled: bool = False
    metrics_type: str = "simple"  # prometheus, simple
    metrics_port: int = 9090

    def __post_init__(self) -> None:
        if not self.endpoints:
            raise ConfigurationError("At least one endpoint must be configured")
        if self.cache_max_size <= 0:
            raise ConfigurationError("cache.max_size must be greater than 0")
        if self.cache_ttl <= 0:
            raise ConfigurationError("cache.ttl must be greater than 0")
        if self.cache_cleanup_interval <= 0:
            raise ConfigurationError("cache.cleanup_interval must be greater than 0")
        if self.timeout <= 0:
            raise ConfigurationError("client.timeout must be greater than 0")

    @classmethod
    def load(cls, path: str) -> "OverpassConfig":
        """
        Load configuration from a YAML file.

        Args:
            path: Path to the YAML configuration file

        Returns:
            OverpassConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            yaml.YAMLError: If config file is invalid YAML
            ConfigurationError: If values are out of range
        """
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OverpassConfig":
        """
        Create configuration from a dictionary.

        Args:
            data: Configuration dictionary

        Returns:
            OverpassConfig instance
        """
        endpoints_cfg = data.get("endpoints")
        client_cfg = data.get("client", {})
        cache_cfg = data.get("cache", {})
        backoff_cfg = data.get("backoff", {})
        validation_cfg = data.get("validation", {})
        logging_cfg = data.get("logging", {})
        metrics_cfg = data.get("metrics", {})

        if endpoints_cfg is None:
            endpoints = list(DEFAULT_ENDPOINTS)
        else:
            endpoints = [Endpoint.from_dict(e) for e in endpoints_cfg]

        return cls(
            endpoints=endpoints,
            timeout=client_cfg.get("timeout", 60.0),
            user_agent=client_cfg.get("user_agent", "OSM-MCP/1.0"),
            verify_tls=client_cfg.get("verify_tls", False),
            cache_enabled=cache_cfg.get("enabled", True),
            cache_max_size=cache_cfg.get("max_size", 100),
            cache_ttl=cache_cfg.get("ttl", 15 * 60),
            cache_cleanup_interval=cache_cfg.get("cleanup_interval", 5 * 60),
            rate_limit_backoff_base=backoff_cfg.get("rate_limit_base", 5.0),
            rate_limit_backoff_max=backoff_cfg.get("rate_limit_max", 30.0),
            rate_limit_backoff_multiplier=backoff_cfg.get("rate_limit_multiplier", 2.0),
            server_error_delay=backoff_cfg.get("server_error_delay", 2.0),
            max_area=validation_cfg.get("max_area", 0.001),
            max_limit=validation_cfg.get("max_limit", 10000),
            slow_limit=validation_cfg.get("slow_limit", 1000),
            log_level=logging_cfg.get("level", "INFO"),
            log_file=logging_cfg.get("file", ""),
            log_format=logging_cfg.get("format", DEFAULT_LOG_FORMAT),
            log_max_bytes=logging_cfg.get("max_bytes", 10485760),
            log_backup_count=logging_cfg.get("backup_count", 3),
            metrics_enabled=metrics_cfg.get("enabled", False),
            metrics_type=metrics_cfg.get("type", "simple"),
            metrics_port=metrics_cfg.get("port", 9090),
        )

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert configuration to dictionary.

        Returns:
            Configuration as dictionary (round-trips through from_dict)
        """
        return {
            "endpoints": [e.to_dict() for e in self.endpoints],
            "client": {
                "timeout": self.timeout,
                "user_agent": self.user_agent,
                "verify_tls": self.verify_tls,
            },
            "cache": {
                "enabled": self.cache_enabled,
                "max_size": self.cache_max_size,
                "ttl": self.cache_ttl,
                "cleanup_interval": self.cache_cleanup_interval,
            },
            "backoff": {
                "rate_limit_base": self.rate_limit_backoff_base,
                "rate_limit_max": self.rate_limit_backoff_max,
                "rate_limit_multiplier": self.rate_limit_backoff_multiplier,
                "server_error_delay": self.server_error_delay,
            },
            "validation": {
                "max_area": self.max_area,
                "max_limit": self.max_limit,
                "slow_limit": self.slow_limit,
            },
            "logging": {
                "level": self.log_level,
                "file": self.log_file,
                "format": self.log_format,
                "max_bytes": self.log_max_bytes,
                "backup_count": self.log_backup_count,
            },
            "metrics": {
                "enabled": self.metrics_enabled,
                "type": self.metrics_type,
                "port": self.metrics_port,
            },
        }

    def save(self, path: str) -> None:
        """Write configuration to a YAML file."""
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(self.to_dict(), f, sort_keys=False)


def find_config() -> Optional[str]:
    """
    Find config file using standard priority order:

    1. OVERPASS_GEOJSON_CONFIG environment variable
    2. .overpass-geojson.yaml in current directory (project config)
    3. ~/.config/overpass-geojson/config.yaml (user config)

    Returns None if no config found.
    """
    env_config = os.environ.get("OVERPASS_GEOJSON_CONFIG")
    if env_config:
        path = Path(env_config)
        if path.exists():
            return str(path)

    project_config = Path.cwd() / ".overpass-geojson.yaml"
    if project_config.exists():
        return str(project_config)

    user_config = Path.home() / ".config" / "overpass-geojson" / "config.yaml"
    if user_config.exists():
        return str(user_config)

    return None
