"""Centralized logging configuration for QLedger."""

import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Callable, Literal

import structlog
from pydantic import BaseModel, Field

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

DEFAULT_LOG_FILE = Path("logs/qledger.log")


class LoggingConfig(BaseModel):
    """Configuration for logging system.

    Logging Levels Guide:

    INFO (Default):
    - Transactions created, updated, deleted
    - Bulk imports completed
    - Cash transfers recorded
    - Portfolio overviews computed

    DEBUG:
    - Cycle assignment per transaction
    - Holding recompute results
    - Quote cache misses

    WARNING:
    - Rejected transaction requests

    ERROR:
    - Holding recompute failures

    Timestamp Format Options:
    - "iso": 2025-10-22T20:50:07.288824+00:00 (full ISO format)
    - "compact": 251022-205007.28 (YYMMDD-HHMMSS.ms)
    - "time": 20:50:07.28 (time only)
    - "short": 1022T205007 (MMDDTHHMMSS)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Minimum console log level",
    )
    format: Literal["console", "json"] = Field(
        default="console",
        description="Output format: console, or json",
    )
    timestamp_format: Literal["iso", "compact", "time", "short"] = Field(
        default="compact",
        description="Timestamp format for console output",
    )
    enable_file: bool = Field(
        default=False,
        description="Enable logging to file",
    )
    file_path: Path | None = Field(
        default=None,
        description="Path to log file (uses logs/qledger.log if None)",
    )
    file_level: LogLevel = Field(
        default="WARNING",
        description="Minimum log level for file output",
    )
    file_rotation: bool = Field(
        default=True,
        description="Enable log file rotation (when file gets too large)",
    )
    max_file_size_mb: int = Field(
        default=10,
        description="Maximum log file size in MB before rotation",
    )
    backup_count: int = Field(
        default=3,
        description="Number of rotated log files to keep",
    )
    console_width: int = Field(
        default=0,
        description="Maximum console line width (0 = no limit)",
    )


class LoggerFactory:
    """
    Factory for creating and configuring structured loggers.

    Provides centralized configuration for all QLedger logging.
    Call configure() once at application startup, then use get_logger()
    to get configured logger instances throughout the codebase.

    Example:
        # At startup
        config = LoggingConfig(level="DEBUG", enable_file=True, file_path=Path("qledger.log"))
        LoggerFactory.configure(config)

        # In modules
        logger = LoggerFactory.get_logger()
        logger.info("ledger.transaction.created", symbol="600000", shares="1000")
    """

    _config: LoggingConfig | None = None
    _configured: bool = False

    @classmethod
    def configure(cls, config: LoggingConfig | None = None) -> None:
        """
        Configure the logging system.

        Should be called once at application startup before any logging occurs.

        Args:
            config: LoggingConfig instance. If None, uses default configuration.
        """
        if config is None:
            config = LoggingConfig()

        cls._config = config

        processors = cls._build_common_processors(config.timestamp_format)

        console_handler = logging.StreamHandler(stream=sys.stderr)
        console_handler.setLevel(getattr(logging, config.level))
        console_processor: Any
        if config.format == "console":
            console_processor = cls._custom_console_renderer(config.console_width)
        else:
            console_processor = structlog.processors.JSONRenderer()
        console_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processor=console_processor,
                foreign_pre_chain=processors,
            )
        )

        handlers: list[logging.Handler] = [console_handler]
        root_level = getattr(logging, config.level)

        if config.enable_file:
            if config.file_path is None:
                config.file_path = DEFAULT_LOG_FILE

            file_handler = cls._configure_file_logging(config, processors)
            handlers.append(file_handler)
            root_level = min(root_level, getattr(logging, config.file_level))

        logging.basicConfig(level=root_level, handlers=handlers, force=True)

        configured_processors = list(processors)
        if config.format == "console":
            configured_processors.extend(
                [
                    structlog.dev.set_exc_info,
                    structlog.processors.ExceptionRenderer(
                        structlog.dev.plain_traceback,  # type: ignore[arg-type]
                    ),
                ]
            )
        else:
            configured_processors.append(structlog.processors.format_exc_info)
        configured_processors.append(structlog.stdlib.ProcessorFormatter.wrap_for_formatter)

        structlog.configure(
            processors=configured_processors,
            wrapper_class=structlog.stdlib.BoundLogger,
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )

        cls._configured = True

    @classmethod
    def _build_common_processors(cls, timestamp_format: str) -> list[Any]:
        """Processors shared by both structlog and stdlib handlers before rendering."""
        return [
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            cls._get_timestamper(timestamp_format),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.CallsiteParameterAdder(
                [
                    structlog.processors.CallsiteParameter.FILENAME,
                    structlog.processors.CallsiteParameter.LINENO,
                ]
            ),
        ]

    @staticmethod
    def _get_timestamper(fmt: str) -> Any:
        """Get a timestamper for the given format.

        Uses the 'log_timestamp' key so it never collides with domain fields
        such as a transaction's trade_date.
        """

        def add_timestamp_processor(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
            now = datetime.now(timezone.utc)
            ms = now.microsecond // 10000

            if fmt == "compact":
                event_dict["log_timestamp"] = now.strftime(f"%y%m%d-%H%M%S.{ms:02d}")
            elif fmt == "time":
                event_dict["log_timestamp"] = now.strftime(f"%H:%M:%S.{ms:02d}")
            elif fmt == "short":
                event_dict["log_timestamp"] = now.strftime("%m%dT%H%M%S")
            else:
                event_dict["log_timestamp"] = now.isoformat()

            return event_dict

        return add_timestamp_processor

    @staticmethod
    def _custom_console_renderer(width: int = 0) -> Callable[[Any, str, dict[str, Any]], str]:
        """Console renderer: timestamp, level, area, event, context and file:line."""

        def renderer(logger: Any, name: str, event_dict: dict[str, Any]) -> str:
            timestamp = event_dict.pop("log_timestamp", "")
            level = event_dict.pop("level", "info").upper()
            event = str(event_dict.pop("event", ""))
            filename = event_dict.pop("filename", "")
            lineno = event_dict.pop("lineno", "")
            logger_name = event_dict.pop("logger", "")

            line = _ConsoleFormatter.format_line(event, event_dict, level, timestamp)

            if filename and lineno:
                module_file = Path(filename).stem
                if logger_name and logger_name != "qledger":
                    location = f"({logger_name}:{lineno})"
                else:
                    location = f"({module_file}:{lineno})"
                line = f"{line} {_ConsoleFormatter.GRAY}{location}{_ConsoleFormatter.RESET}"

            if width > 0:
                line = _ConsoleFormatter.truncate(line, width)
            return line

        return renderer

    @classmethod
    def _configure_file_logging(cls, config: LoggingConfig, pre_chain: list[Any]) -> logging.Handler:
        """Configure file output for logging."""
        file_path = config.file_path
        assert file_path is not None  # Already defaulted in configure()

        file_path.parent.mkdir(parents=True, exist_ok=True)

        handler: logging.Handler
        if config.file_rotation:
            handler = RotatingFileHandler(
                filename=str(file_path),
                maxBytes=config.max_file_size_mb * 1024 * 1024,
                backupCount=config.backup_count,
                encoding="utf-8",
            )
        else:
            handler = logging.FileHandler(
                filename=str(file_path),
                encoding="utf-8",
            )

        handler.setLevel(getattr(logging, config.file_level))

        handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processor=structlog.processors.JSONRenderer(),
                foreign_pre_chain=pre_chain,
            )
        )

        return handler

    @classmethod
    def get_logger(cls, name: str | None = None):
        """
        Get a configured logger instance.

        Args:
            name: Optional logger name. If None, uses the calling module's __name__.

        Returns:
            Configured structlog BoundLogger instance.
        """
        if not cls._configured:
            cls.configure()

        if name is None:
            import inspect

            frame = inspect.currentframe()
            if frame and frame.f_back:
                name = frame.f_back.f_globals.get("__name__", "qledger")
            else:
                name = "qledger"

        return structlog.get_logger(name)

    @classmethod
    def get_config(cls) -> LoggingConfig:
        """Get current logging configuration."""
        if cls._config is None:
            return LoggingConfig()
        return cls._config

    @classmethod
    def is_configured(cls) -> bool:
        """Check if logging has been configured."""
        return cls._configured

    @classmethod
    def reset(cls) -> None:
        """Reset logging configuration (mainly for testing)."""
        root_logger = logging.getLogger()
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)
            handler.close()
        root_logger.handlers.clear()
        root_logger.setLevel(logging.NOTSET)
        cls._config = None
        cls._configured = False
        structlog.reset_defaults()


class _ConsoleFormatter:
    """ANSI formatting for console log lines."""

    CYAN = "\033[36m"
    MAGENTA = "\033[35m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    RED = "\033[31m"
    GRAY = "\033[90m"
    BOLD = "\033[1m"
    RESET = "\033[0m"

    LEVEL_COLORS = {
        "DEBUG": CYAN,
        "INFO": GREEN,
        "WARNING": YELLOW,
        "ERROR": RED,
        "CRITICAL": MAGENTA,
    }

    AREAS = {
        "ledger": "Ledger",
        "holding": "Holding",
        "cycle": "Cycle",
        "portfolio": "Portfolio",
        "quotes": "Quotes",
        "cli": "CLI",
    }

    @classmethod
    def format_line(cls, event: str, event_dict: dict[str, Any], level: str, timestamp: str) -> str:
        """
        Format a log line.

        ``ledger.transaction.created`` renders as ``Ledger | Transaction Created``
        followed by the key=value context in sorted order.
        """
        color = cls.LEVEL_COLORS.get(level, cls.RESET)
        head, _, rest = event.partition(".")
        area = cls.AREAS.get(head)

        parts = [f"{cls.GRAY}{timestamp}{cls.RESET}", f"{color}{level.lower():<7}{cls.RESET}"]
        if area and rest:
            message = rest.replace(".", " ").replace("_", " ").title()
            parts.append(f"{color}{area}{cls.RESET} | {cls.BOLD}{message}{cls.RESET}")
        else:
            parts.append(f"{cls.BOLD}{event}{cls.RESET}")

        context = [
            f"{key}={cls.CYAN}{value}{cls.RESET}"
            for key, value in sorted(event_dict.items())
            if not key.startswith("_")
        ]
        if context:
            parts.append(" ".join(context))

        return " ".join(parts)

    @classmethod
    def truncate(cls, line: str, width: int) -> str:
        """Cut a line to ``width`` visible characters, keeping ANSI codes intact."""
        visible = 0
        out: list[str] = []
        i = 0
        while i < len(line):
            if line[i] == "\033":
                end = line.find("m", i)
                if end == -1:
                    break
                out.append(line[i : end + 1])
                i = end + 1
                continue
            if visible >= width:
                out.append(cls.RESET)
                break
            out.append(line[i])
            visible += 1
            i += 1
        return "".join(out)
