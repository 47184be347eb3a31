"""System configuration.

One configuration for the whole ledger engine, loaded from YAML:

    ledger:
      strict_recompute: false
      fees:
        equity: {rate: 0.0003, minimum: 5}
        fund: {rate: 0.0003, minimum: 5}
        stamp_tax_rate: 0.0005
        transfer_fee_rate: 0.00001
    quotes:
      cache_ttl_seconds: 300
    logging:
      level: INFO
      format: console

Search order when no path is given:
1. config/qledger.yaml (project)
2. ~/.qledger/qledger.yaml (user)
3. Built-in defaults

``${VAR}`` placeholders in string values are replaced from the environment;
undefined variables are left as written.
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from qledger.services.fees import FeeConfig
from qledger.system.log_system import DEFAULT_LOG_FILE
from qledger.system.log_system import LoggingConfig as LoggerConfig

DEFAULT_CONFIG_PATHS = (
    Path("config/qledger.yaml"),
    Path.home() / ".qledger" / "qledger.yaml",
)

_ENV_VAR = re.compile(r"\$\{([^}]+)\}")


@dataclass
class LedgerConfig:
    """Ledger behaviour.

    Attributes:
        fees: Default fee settings as plain values (see FeeConfig.from_dict)
        strict_recompute: Raise recompute failures from writes instead of reporting them
        default_portfolio_id: Portfolio used by the CLI when none is given
    """

    fees: dict[str, Any] = field(default_factory=dict)
    strict_recompute: bool = False
    default_portfolio_id: int = 1

    def fee_config(self) -> FeeConfig:
        """Build the FeeConfig described by ``fees``."""
        return FeeConfig.from_dict(self.fees)


@dataclass
class QuoteConfig:
    """Quote provider settings.

    Attributes:
        cache_ttl_seconds: Time-to-live of cached quotes
    """

    cache_ttl_seconds: float = 300.0


@dataclass
class LoggingConfig:
    """Logging settings as written in the config file."""

    level: str = "INFO"
    format: str = "console"
    timestamp_format: str = "compact"
    enable_file: bool = False
    file_path: str = str(DEFAULT_LOG_FILE)
    file_level: str = "WARNING"
    file_rotation: bool = True
    max_file_size_mb: int = 10
    backup_count: int = 3
    console_width: int = 0

    def to_logger_config(self) -> LoggerConfig:
        """Convert to the log system's LoggingConfig."""
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
            console_width=self.console_width,
        )


@dataclass
class SystemConfig:
    """Complete system configuration."""

    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    quotes: QuoteConfig = field(default_factory=QuoteConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def load(cls, path: str | Path | None = None) -> "SystemConfig":
        """
        Load configuration from YAML, merged over the defaults.

        Args:
            path: Explicit config file; when None the default locations are tried

        Returns:
            SystemConfig (built-in defaults when no file exists or it is empty)

        Raises:
            yaml.YAMLError: If the file cannot be parsed
        """
        candidates = [Path(path)] if path is not None else list(DEFAULT_CONFIG_PATHS)

        for candidate in candidates:
            if candidate.exists():
                with open(candidate) as f:
                    data = yaml.safe_load(f) or {}
                return cls._from_dict(_substitute_env_vars(data))

        return cls()

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> "SystemConfig":
        defaults = cls()
        merged = _deep_merge(
            {
                "ledger": vars(defaults.ledger),
                "quotes": vars(defaults.quotes),
                "logging": vars(defaults.logging),
            },
            data,
        )
        return cls(
            ledger=LedgerConfig(**merged["ledger"]),
            quotes=QuoteConfig(**merged["quotes"]),
            logging=LoggingConfig(**merged["logging"]),
        )


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge ``override`` into a copy of ``base``, recursing into nested dicts."""
    result = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _substitute_env_vars(value: Any) -> Any:
    """Replace ``${VAR}`` in strings, recursing into dicts and lists."""
    if isinstance(value, str):
        return _ENV_VAR.sub(lambda m: os.environ.get(m.group(1), m.group(0)), value)
    if isinstance(value, dict):
        return {key: _substitute_env_vars(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_substitute_env_vars(item) for item in value]
    return value


_system_config: SystemConfig | None = None


def get_system_config(path: str | Path | None = None) -> SystemConfig:
    """Get the system configuration singleton, loading it on first use."""
    global _system_config
    if _system_config is None:
        _system_config = SystemConfig.load(path)
    return _system_config


def reload_system_config(path: str | Path | None = None) -> SystemConfig:
    """Force a reload of the system configuration singleton."""
    global _system_config
    _system_config = SystemConfig.load(path)
    return _system_config
