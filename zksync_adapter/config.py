"""
Configuration management for zkSync adapter

Loads settings from environment variables and .env file.
Includes logging configuration with rotating file output.
"""

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, List, Optional

from dotenv import load_dotenv


def _load_env_file():
    """Load .env file from project root"""
    current = Path(__file__).parent.parent  # zksync_adapter package parent
    env_file = current / ".env"

    if env_file.exists():
        load_dotenv(env_file)


# Load .env on module import
_load_env_file()


def _get_env(key: str, default: Optional[str] = "") -> Optional[str]:
    value = os.getenv(key)
    return default if value is None else value


def _get_env_number(key: str, default, cast: Callable[[str], Any]):
    """Parse a numeric env var; unset, empty or invalid values give `default`."""
    value = os.getenv(key)
    if value is None or value == "":
        return default
    try:
        return cast(value)
    except ValueError:
        logging.getLogger(__name__).warning(f"{key}={value!r} is not a valid {cast.__name__}, using {default}")
        return default


def _get_env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


DEFAULT_L2_URL = "http://localhost:3050"


@dataclass
class ProviderConfig:
    """L2 JSON-RPC endpoint configuration"""
    url: str = field(default_factory=lambda: _get_env("ZKSYNC_WEB3_API_URL", DEFAULT_L2_URL))
    timeout_seconds: float = field(default_factory=lambda: _get_env_number("RPC_TIMEOUT_SECONDS", 30.0, float))


@dataclass
class L1Config:
    """L1 (settlement chain) endpoint configuration"""
    url: str = field(default_factory=lambda: _get_env("ETH_RPC_URL", ""))
    timeout_seconds: int = field(default_factory=lambda: _get_env_number("L1_RPC_TIMEOUT_SECONDS", 30, int))


@dataclass
class PollingConfig:
    """
    Defaults for receipt / finalization / priority-op polling loops.

    None for timeout or max attempts means the loop is unbounded.
    """
    interval_seconds: float = field(default_factory=lambda: _get_env_number("POLL_INTERVAL_SECONDS", 0.5, float))
    timeout_seconds: Optional[float] = field(default_factory=lambda: _get_env_number("POLL_TIMEOUT_SECONDS", None, float))
    max_attempts: Optional[int] = field(default_factory=lambda: _get_env_number("POLL_MAX_ATTEMPTS", None, int))


@dataclass
class SignerConfig:
    """Signer configuration for local key signing"""
    # Name of the env var holding the hex private key
    private_key_env: str = field(default_factory=lambda: _get_env("SIGNER_PRIVATE_KEY_ENV", "EVM_PRIVATE_KEY"))


def _get_default_log_path() -> str:
    """zksync_adapter/log/zksync_<UTC timestamp>.log"""
    from datetime import datetime, timezone
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    return str(Path(__file__).parent / "log" / f"zksync_{timestamp}.log")


DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"

# Subpackages and modules that log under the package logger
_LOGGED_COMPONENTS = ("infra", "core", "adapters", "types", "provider", "wallet", "signer", "contract")


@dataclass
class LoggingConfig:
    """
    Logging configuration with file output.

    Environment variables:
        LOG_FILE: Path to log file (default: zksync_adapter/log/zksync_<ts>.log)
        LOG_LEVEL: DEBUG, INFO, WARNING, ERROR, CRITICAL (default: INFO)
        LOG_FORMAT: Custom log format string
        LOG_CONSOLE: Enable console output (default: true)
        LOG_MAX_BYTES: Max log file size before rotation (default: 10MB)
        LOG_BACKUP_COUNT: Rotated files to keep (default: 5)
    """
    log_file: str = field(default_factory=lambda: _get_env("LOG_FILE", _get_default_log_path()))
    log_level: str = field(default_factory=lambda: _get_env("LOG_LEVEL", "INFO"))
    log_format: str = field(default_factory=lambda: _get_env("LOG_FORMAT", DEFAULT_LOG_FORMAT))
    console_output: bool = field(default_factory=lambda: _get_env_bool("LOG_CONSOLE", True))
    max_bytes: int = field(default_factory=lambda: _get_env_number("LOG_MAX_BYTES", 10 * 1024 * 1024, int))
    backup_count: int = field(default_factory=lambda: _get_env_number("LOG_BACKUP_COUNT", 5, int))

    @property
    def level(self) -> int:
        return getattr(logging, self.log_level.upper(), logging.INFO)


@dataclass
class Config:
    """
    Main configuration container

    Usage:
        from zksync_adapter.config import config

        print(config.provider.url)
        print(config.polling.interval_seconds)
    """
    provider: ProviderConfig = field(default_factory=ProviderConfig)
    l1: L1Config = field(default_factory=L1Config)
    polling: PollingConfig = field(default_factory=PollingConfig)
    signer: SignerConfig = field(default_factory=SignerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def reload(cls) -> "Config":
        """Reload configuration from environment"""
        _load_env_file()
        return cls()


# Global config instance
config = Config()


def get_config() -> Config:
    """Get global configuration instance"""
    return config


def reload_config() -> Config:
    """Reload and return new configuration"""
    global config
    config = Config.reload()
    return config


def setup_logging(
    log_config: Optional[LoggingConfig] = None,
    logger_name: str = "zksync_adapter",
) -> logging.Logger:
    """
    Attach rotating-file and console handlers to the package logger.

    Provider, wallet, adapter and polling loggers are children of
    `logger_name` and propagate to these handlers; their level is set to
    match so DEBUG traces (RPC calls, WETH lookups, polling attempts) show
    up when requested.

    Args:
        log_config: Logging configuration (uses global config if None)
        logger_name: Root logger of the package

    Example:
        from zksync_adapter.config import LoggingConfig, setup_logging
        logger = setup_logging(LoggingConfig(log_file="bridge.log", log_level="DEBUG"))
    """
    if log_config is None:
        log_config = config.logging

    logger = logging.getLogger(logger_name)
    logger.setLevel(log_config.level)

    # Close before removing so file handles are released on reload
    for handler in logger.handlers[:]:
        handler.close()
        logger.removeHandler(handler)

    formatter = logging.Formatter(log_config.log_format)
    handlers: List[logging.Handler] = []

    if log_config.log_file:
        from logging.handlers import RotatingFileHandler

        Path(log_config.log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(RotatingFileHandler(
            log_config.log_file,
            maxBytes=log_config.max_bytes,
            backupCount=log_config.backup_count,
            encoding="utf-8",
        ))

    if log_config.console_output:
        handlers.append(logging.StreamHandler())

    for handler in handlers:
        handler.setLevel(log_config.level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    for component in _LOGGED_COMPONENTS:
        logging.getLogger(f"{logger_name}.{component}").setLevel(log_config.level)

    if log_config.log_file:
        logger.info(
            f"zkSync logging to {log_config.log_file} at {log_config.log_level} "
            f"(L2 endpoint {config.provider.url})"
        )

    return logger


def enable_file_logging(
    log_file: Optional[str] = None,
    level: str = "INFO",
    console: bool = True,
) -> logging.Logger:
    """Quick setup: file logging to `log_file` (default: the configured path)."""
    if log_file is None:
        log_file = config.logging.log_file

    return setup_logging(LoggingConfig(log_file=log_file, log_level=level, console_output=console))
