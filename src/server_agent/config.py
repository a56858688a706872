"""
Configuration management for Server Agent.

Supports configuration via YAML files, environment variables, and programmatic access.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

DEFAULT_CONFIG_PATHS = [
    Path("/etc/server-agent/config.yaml"),
    Path.home() / ".config" / "server-agent" / "config.yaml",
    Path("server-agent.yaml"),
]

DRIVE_ENUMERATION_STRATEGIES = ("scan", "partitions")


@dataclass
class Config:
    """
    Configuration container for Server Agent.

    Priority (highest to lowest):
    1. Programmatic values passed to __init__
    2. Environment variables (prefixed with SERVER_AGENT_)
    3. Config file values
    4. Default values
    """

    # Transmission settings
    transmission_url: str | None = None
    transmission_enabled: bool = False
    transmission_timeout: int = 30

    # Drive failure alerts
    alerts_enabled: bool = False

    # Schedule (seconds)
    drive_check_interval: int = 600
    report_interval: int = 3600
    allow_overlap: bool = True

    # Drive collection
    smartctl_path: str = "smartctl"
    smartctl_timeout: int = 30
    drive_enumeration: str = "scan"

    # System collection
    cpu_sample_interval: float = 1.0

    # Logging
    log_level: str = "INFO"
    log_file: str | None = None

    def __post_init__(self) -> None:
        self.cpu_sample_interval = float(self.cpu_sample_interval)
        self.validate()

    def validate(self) -> None:
        """Reject values the agent cannot run with."""
        if self.drive_enumeration not in DRIVE_ENUMERATION_STRATEGIES:
            raise ValueError(
                f"Unknown drive_enumeration '{self.drive_enumeration}', "
                f"expected one of {', '.join(DRIVE_ENUMERATION_STRATEGIES)}"
            )
        for attr in ("drive_check_interval", "report_interval"):
            if getattr(self, attr) <= 0:
                raise ValueError(f"{attr} must be positive")
        if self.cpu_sample_interval < 0:
            raise ValueError("cpu_sample_interval must not be negative")

    @classmethod
    def from_file(cls, path: str | Path) -> Config:
        """Load configuration from a YAML file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Config:
        """Create config from a dictionary."""
        known_fields = {f.name for f in cls.__dataclass_fields__.values()}

        # Flatten nested sections: {"transmission": {"url": ...}} -> transmission_url
        flat = {}
        for key, value in data.items():
            if isinstance(value, dict):
                for subkey, subvalue in value.items():
                    prefixed = f"{key}_{subkey}"
                    flat[prefixed if prefixed in known_fields else subkey] = subvalue
            else:
                flat[key] = value

        filtered = {k: v for k, v in flat.items() if k in known_fields}

        return cls(**filtered)

    @classmethod
    def load(cls, config_path: str | Path | None = None) -> Config:
        """
        Load configuration with full resolution order.

        Args:
            config_path: Explicit path to config file. If None, searches
                        default locations.

        Returns:
            Fully resolved Config instance.
        """
        base_config: dict[str, Any] = {}

        if config_path:
            path = Path(config_path)
            if path.exists():
                with open(path) as f:
                    base_config = yaml.safe_load(f) or {}
        else:
            for path in DEFAULT_CONFIG_PATHS:
                if path.exists():
                    with open(path) as f:
                        base_config = yaml.safe_load(f) or {}
                    break

        config = cls.from_dict(base_config) if base_config else cls()

        config._apply_env_overrides()
        config.validate()

        return config

    def _apply_env_overrides(self) -> None:
        """Apply environment variable overrides."""
        env_mappings = {
            "SERVER_AGENT_TRANSMISSION_URL": "transmission_url",
            "SERVER_AGENT_TRANSMISSION_ENABLED": "transmission_enabled",
            "SERVER_AGENT_TRANSMISSION_TIMEOUT": "transmission_timeout",
            "SERVER_AGENT_ALERTS_ENABLED": "alerts_enabled",
            "SERVER_AGENT_DRIVE_CHECK_INTERVAL": "drive_check_interval",
            "SERVER_AGENT_REPORT_INTERVAL": "report_interval",
            "SERVER_AGENT_ALLOW_OVERLAP": "allow_overlap",
            "SERVER_AGENT_SMARTCTL_PATH": "smartctl_path",
            "SERVER_AGENT_SMARTCTL_TIMEOUT": "smartctl_timeout",
            "SERVER_AGENT_DRIVE_ENUMERATION": "drive_enumeration",
            "SERVER_AGENT_CPU_SAMPLE_INTERVAL": "cpu_sample_interval",
            "SERVER_AGENT_LOG_LEVEL": "log_level",
            "SERVER_AGENT_LOG_FILE": "log_file",
        }

        for env_var, attr in env_mappings.items():
            value = os.environ.get(env_var)
            if value is not None:
                # Type coercion
                current = getattr(self, attr)
                if isinstance(current, bool):
                    setattr(self, attr, value.lower() in ("true", "1", "yes"))
                elif isinstance(current, int):
                    setattr(self, attr, int(value))
                elif isinstance(current, float):
                    setattr(self, attr, float(value))
                else:
                    setattr(self, attr, value)

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary."""
        return {
            "transmission": {
                "url": self.transmission_url,
                "enabled": self.transmission_enabled,
                "timeout": self.transmission_timeout,
            },
            "alerts": {
                "enabled": self.alerts_enabled,
            },
            "schedule": {
                "drive_check_interval": self.drive_check_interval,
                "report_interval": self.report_interval,
                "allow_overlap": self.allow_overlap,
            },
            "smartctl": {
                "path": self.smartctl_path,
                "timeout": self.smartctl_timeout,
            },
            "drive": {
                "enumeration": self.drive_enumeration,
            },
            "cpu": {
                "sample_interval": self.cpu_sample_interval,
            },
            "log": {
                "level": self.log_level,
                "file": self.log_file,
            },
        }

    def save(self, path: str | Path) -> None:
        """Save configuration to a YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)
