"""Engine-wide settings: the YAML system config and the logging setup hosts install."""

from tradejournal.system.config import EngineConfig, SystemConfig, get_system_config, reload_system_config
from tradejournal.system.log_system import LoggerFactory, LoggingConfig

__all__ = [
    "EngineConfig",
    "LoggerFactory",
    "LoggingConfig",
    "SystemConfig",
    "get_system_config",
    "reload_system_config",
]
