"""
System configuration for the trade journal engine.

One YAML file configures the whole engine. Missing sections and keys fall
back to the dataclass defaults, and ``${VAR}`` placeholders are replaced
with environment variables before the sections are built.

Lookup order when no explicit path is given:
1. ``$TRADEJOURNAL_CONFIG``
2. ``config/tradejournal.yaml`` in the working directory
3. Built-in defaults
"""

import os
import re
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from tradejournal.system.log_system import LoggingConfig as LoggerConfig

DEFAULT_CONFIG_PATH = Path("config/tradejournal.yaml")
CONFIG_ENV_VAR = "TRADEJOURNAL_CONFIG"

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")


@dataclass
class EngineConfig:
    """
    Calculation settings.

    Attributes:
        accounting_basis: "cash" (P&L in exit month) or "accrual" (P&L in trade month)
        import_chunk_size: Trades recomputed per chunk during bulk recompute
    """

    accounting_basis: str = "accrual"
    import_chunk_size: int = 50

    def __post_init__(self) -> None:
        if self.accounting_basis not in ("cash", "accrual"):
            raise ValueError(f"accounting_basis must be 'cash' or 'accrual', got {self.accounting_basis!r}")
        if self.import_chunk_size < 1:
            raise ValueError(f"import_chunk_size must be at least 1, got {self.import_chunk_size}")


@dataclass
class LoggingConfig:
    """Logging section; converted to the logger factory's model on use."""

    level: str = "INFO"
    format: str = "console"
    timestamp_format: str = "compact"
    enable_file: bool = True
    file_path: str = "logs/tradejournal.log"
    file_level: str = "WARNING"
    file_rotation: bool = True
    max_file_size_mb: int = 10
    backup_count: int = 3

    def to_logger_config(self) -> LoggerConfig:
        """Build the LoggerFactory configuration for this section."""
        return LoggerConfig(
            level=self.level,  # type: ignore[arg-type]
            format=self.format,  # type: ignore[arg-type]
            timestamp_format=self.timestamp_format,  # type: ignore[arg-type]
            enable_file=self.enable_file,
            file_path=Path(self.file_path),
            file_level=self.file_level,  # type: ignore[arg-type]
            file_rotation=self.file_rotation,
            max_file_size_mb=self.max_file_size_mb,
            backup_count=self.backup_count,
        )


@dataclass
class SystemConfig:
    """Complete engine configuration."""

    engine: EngineConfig = field(default_factory=EngineConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def load(cls, path: str | Path | None = None) -> "SystemConfig":
        """
        Load configuration from YAML, falling back to defaults.

        Args:
            path: Config file; when None the environment variable and the
                default location are tried in turn

        Returns:
            SystemConfig (all defaults when no file exists)
        """
        config_path = _resolve_config_path(path)
        if config_path is None or not config_path.exists():
            return cls()

        with config_path.open(encoding="utf-8") as handle:
            raw = yaml.safe_load(handle) or {}

        return cls._from_dict(_substitute_env_vars(raw))

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> "SystemConfig":
        defaults = _as_dict(cls())
        merged = _deep_merge(defaults, data)
        return cls(
            engine=EngineConfig(**_known_keys(EngineConfig, merged.get("engine", {}))),
            logging=LoggingConfig(**_known_keys(LoggingConfig, merged.get("logging", {}))),
        )


def _as_dict(config: SystemConfig) -> dict[str, Any]:
    return {
        "engine": {f.name: getattr(config.engine, f.name) for f in fields(EngineConfig)},
        "logging": {f.name: getattr(config.logging, f.name) for f in fields(LoggingConfig)},
    }


def _known_keys(section: type, values: dict[str, Any]) -> dict[str, Any]:
    names = {f.name for f in fields(section)}
    return {key: value for key, value in values.items() if key in names}


def _resolve_config_path(path: str | Path | None) -> Path | None:
    if path is not None:
        return Path(path)
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_PATH


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge `override` into a copy of `base`, recursing into nested dicts."""
    result = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _substitute_env_vars(value: Any) -> Any:
    """Replace ${VAR} in strings (recursively); undefined variables are left as-is."""
    if isinstance(value, dict):
        return {key: _substitute_env_vars(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_substitute_env_vars(item) for item in value]
    if isinstance(value, str):
        return _ENV_PATTERN.sub(lambda match: os.environ.get(match.group(1), match.group(0)), value)
    return value


_system_config: SystemConfig | None = None


def get_system_config(path: str | Path | None = None) -> SystemConfig:
    """
    Get the system configuration singleton.

    Args:
        path: Explicit config file; loads it and replaces the cached instance

    Returns:
        Cached SystemConfig
    """
    global _system_config
    if path is not None:
        _system_config = SystemConfig.load(path)
    elif _system_config is None:
        _system_config = SystemConfig.load()
    return _system_config


def reload_system_config() -> SystemConfig:
    """Force reload of the configuration from disk."""
    global _system_config
    _system_config = SystemConfig.load()
    return _system_config
