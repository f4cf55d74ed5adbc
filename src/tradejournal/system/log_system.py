"""Logging setup for applications embedding the trade journal engine.

Engine modules only emit structlog events. The host application decides
where they go by calling ``LoggerFactory.configure`` once:

- console: colored one-line events, with a compact layout for ``recalc.*``
- json: one JSON object per line on stdout
- file: JSON lines in a (rotating) log file with its own level
"""

import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Callable, Literal

import structlog
from pydantic import BaseModel, Field

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

DEFAULT_LOG_FILE = Path("logs/tradejournal.log")

# Keys structlog adds that are not part of an event's context
_METADATA_KEYS = ("log_timestamp", "level", "event", "filename", "lineno", "logger")

_TIMESTAMP_FORMATS = {
    "compact": "%y%m%d-%H%M%S.{ms:02d}",
    "time": "%H:%M:%S.{ms:02d}",
    "short": "%m%dT%H%M%S",
}


class LoggingConfig(BaseModel):
    """Where engine events go and how they look.

    Engine events by level:
    - DEBUG: each recomputed trade, each finished import chunk
    - INFO: bulk recompute started, completed or cancelled
    - WARNING: over-exited trades

    Timestamps: "compact" (241022-205007.28), "time" (20:50:07.28),
    "short" (1022T205007) or "iso".
    """

    level: LogLevel = Field(default="INFO", description="Console level")
    format: Literal["console", "json"] = Field(default="console", description="Console output format")
    timestamp_format: Literal["iso", "compact", "time", "short"] = Field(default="compact")
    enable_file: bool = Field(default=True, description="Also write JSON lines to a log file")
    file_path: Path | None = Field(default=None, description="Log file, logs/tradejournal.log when unset")
    file_level: LogLevel = Field(default="WARNING", description="File level, independent of the console level")
    file_rotation: bool = Field(default=True, description="Rotate the file by size")
    max_file_size_mb: int = Field(default=10, ge=1)
    backup_count: int = Field(default=3, ge=0)


class LoggerFactory:
    """
    Installs the logging configuration and hands out loggers.

    Example:
        LoggerFactory.configure(LoggingConfig(level="DEBUG", enable_file=False))
        logger = LoggerFactory.get_logger()
        logger.info("journal.imported", trades=120)
    """

    _config: LoggingConfig | None = None
    _configured: bool = False

    @classmethod
    def configure(cls, config: LoggingConfig | None = None) -> None:
        """
        Route structlog and stdlib logging through console and file handlers.

        Args:
            config: Logging settings, defaults when None
        """
        config = config or LoggingConfig()
        if config.enable_file and config.file_path is None:
            config.file_path = DEFAULT_LOG_FILE
        cls._config = config

        pre_chain = cls._build_common_processors(config.timestamp_format)
        handlers = [cls._console_handler(config, pre_chain)]
        if config.enable_file:
            handlers.append(cls._configure_file_logging(config, pre_chain))

        root_level = min(handler.level for handler in handlers)
        logging.basicConfig(level=root_level, handlers=handlers, force=True)

        structlog.configure(
            processors=[*pre_chain, *cls._exception_processors(config.format)],
            wrapper_class=structlog.stdlib.BoundLogger,
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        cls._configured = True

    @classmethod
    def _console_handler(cls, config: LoggingConfig, pre_chain: list[Any]) -> logging.Handler:
        renderer: Any = cls._console_renderer() if config.format == "console" else structlog.processors.JSONRenderer()
        handler = logging.StreamHandler(stream=sys.stdout)
        handler.setLevel(getattr(logging, config.level))
        handler.setFormatter(structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=pre_chain))
        return handler

    @staticmethod
    def _exception_processors(fmt: str) -> list[Any]:
        """Exception handling for the chosen format, then the hand-off to the stdlib formatter."""
        if fmt == "console":
            processors: list[Any] = [
                structlog.dev.set_exc_info,
                structlog.processors.ExceptionRenderer(structlog.dev.plain_traceback),  # type: ignore[arg-type]
            ]
        else:
            processors = [structlog.processors.format_exc_info]
        return [*processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter]

    @classmethod
    def _build_common_processors(cls, timestamp_format: str) -> list[Any]:
        """Processors shared by structlog and foreign stdlib records before rendering."""
        return [
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            cls._get_timestamper(timestamp_format),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.CallsiteParameterAdder(
                [structlog.processors.CallsiteParameter.FILENAME, structlog.processors.CallsiteParameter.LINENO]
            ),
        ]

    @staticmethod
    def _get_timestamper(fmt: str) -> Any:
        """Timestamp processor writing to 'log_timestamp', so trade dates in the context are left alone."""
        pattern = _TIMESTAMP_FORMATS.get(fmt)

        def add_timestamp(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
            now = datetime.now(timezone.utc)
            if pattern is None:
                event_dict["log_timestamp"] = now.isoformat()
            else:
                event_dict["log_timestamp"] = now.strftime(pattern.format(ms=now.microsecond // 10000))
            return event_dict

        return add_timestamp

    @staticmethod
    def _console_renderer() -> Callable[[Any, str, dict[str, Any]], str]:
        """Console renderer: timestamp, colored level, event, context and location."""

        def renderer(logger: Any, name: str, event_dict: dict[str, Any]) -> str:
            timestamp = event_dict.pop("log_timestamp", "")
            level = event_dict.pop("level", "info").upper()
            event = event_dict.pop("event", "")
            filename = event_dict.pop("filename", "")
            lineno = event_dict.pop("lineno", "")
            logger_name = event_dict.pop("logger", "")

            if event.startswith("recalc."):
                return _SystemLogFormatters.format_recalc_log(event, event_dict, level, timestamp)

            level_color = _SystemLogFormatters.LEVEL_COLORS.get(level, "")
            reset = _SystemLogFormatters.RESET
            gray = "\033[90m"

            parts = [timestamp, f"[{level_color}{level.lower()}{reset}]", event]

            context = " ".join(f"{key}={value}" for key, value in sorted(event_dict.items()) if not key.startswith("_"))
            if context:
                parts.append(f"{gray}|{reset} {context}")

            if filename and lineno:
                module_file = Path(filename).stem
                if logger_name and logger_name != "tradejournal":
                    parts.append(f"{gray}({logger_name}.{module_file}:{lineno}){reset}")
                else:
                    parts.append(f"{gray}({module_file}:{lineno}){reset}")

            return " ".join(parts)

        return renderer

    @staticmethod
    def _configure_file_logging(config: LoggingConfig, pre_chain: list[Any]) -> logging.Handler:
        """JSON-lines file handler at the file level, rotating by size when enabled."""
        file_path = config.file_path or DEFAULT_LOG_FILE
        file_path.parent.mkdir(parents=True, exist_ok=True)

        handler: logging.Handler
        if config.file_rotation:
            handler = RotatingFileHandler(
                file_path,
                maxBytes=config.max_file_size_mb * 1024 * 1024,
                backupCount=config.backup_count,
                encoding="utf-8",
            )
        else:
            handler = logging.FileHandler(file_path, encoding="utf-8")

        handler.setLevel(getattr(logging, config.file_level))
        handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(processor=structlog.processors.JSONRenderer(), foreign_pre_chain=pre_chain)
        )
        return handler

    @classmethod
    def get_logger(cls, name: str | None = None):
        """
        Logger for host code, configuring defaults on first use.

        Args:
            name: Logger name, the caller's module name when None

        Returns:
            structlog BoundLogger
        """
        if not cls._configured:
            cls.configure()

        if name is None:
            caller = sys._getframe(1)
            name = caller.f_globals.get("__name__", "tradejournal")
        return structlog.get_logger(name)

    @classmethod
    def get_config(cls) -> LoggingConfig:
        """Installed configuration, or the defaults before configure()."""
        return cls._config or LoggingConfig()

    @classmethod
    def is_configured(cls) -> bool:
        return cls._configured

    @classmethod
    def reset(cls) -> None:
        """Remove installed handlers and structlog configuration (used by tests)."""
        root_logger = logging.getLogger()
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
            handler.close()
        root_logger.setLevel(logging.WARNING)
        structlog.reset_defaults()
        cls._config = None
        cls._configured = False


class _SystemLogFormatters:
    """Console formatting for engine logs."""

    CYAN = "\033[36m"
    MAGENTA = "\033[35m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    RED = "\033[31m"
    DIM = "\033[2m"
    BOLD = "\033[1m"
    RESET = "\033[0m"

    LEVEL_COLORS = {
        "DEBUG": CYAN,
        "INFO": GREEN,
        "WARNING": YELLOW,
        "ERROR": RED,
        "CRITICAL": MAGENTA,
    }

    @classmethod
    def format_recalc_log(cls, event: str, event_dict: dict[str, Any], level: str, timestamp: str) -> str:
        """Format recalculation logs: `recalc.batch_chunk_done` -> "Recalc | Batch Chunk Done | ..."."""
        color = cls.LEVEL_COLORS.get(level, cls.RESET)
        msg = event.replace("recalc.", "").replace("_", " ").title()

        parts = [
            f"{cls.DIM}{timestamp}{cls.RESET}",
            f"{color}Recalc{cls.RESET}",
            f"{cls.BOLD}{msg}{cls.RESET}",
        ]

        if "trade_id" in event_dict:
            parts.append(f"Trade: {cls.MAGENTA}{event_dict.pop('trade_id')}{cls.RESET}")
        if "processed" in event_dict and "total" in event_dict:
            parts.append(
                f"Progress: {cls.GREEN}{event_dict.pop('processed')}/{event_dict.pop('total')}{cls.RESET}"
            )

        for key, value in sorted(event_dict.items()):
            if key.startswith("_") or key in _METADATA_KEYS:
                continue
            parts.append(f"{key}={cls.CYAN}{value}{cls.RESET}")

        return " | ".join(parts)
