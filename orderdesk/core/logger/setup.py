"""
Logger setup: attach rotating file (JSON) and console handlers from config.
"""
from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from orderdesk.core.logger.config import LoggerConfig
from orderdesk.core.logger.formatters import JsonFormatter, PlainConsoleFormatter

_default_config: Optional[LoggerConfig] = None


def _level(name: str) -> int:
    return getattr(logging, name.upper(), logging.INFO)


def build_rotating_file_handler(
    log_dir: str,
    basename: str = "orderdesk",
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 5,
    level: str = "INFO",
) -> RotatingFileHandler:
    """Rotating file handler with JSON formatter."""
    os.makedirs(log_dir, exist_ok=True)
    handler = RotatingFileHandler(
        os.path.join(log_dir, f"{basename}.log"),
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setLevel(_level(level))
    handler.setFormatter(JsonFormatter())
    return handler


def build_console_handler(level: str = "INFO", fmt: Optional[str] = None) -> logging.StreamHandler:
    """Console handler with plain formatter."""
    handler = logging.StreamHandler()
    handler.setLevel(_level(level))
    handler.setFormatter(PlainConsoleFormatter(fmt=fmt))
    return handler


def configure(config: Optional[LoggerConfig] = None) -> None:
    """
    Configure the ``orderdesk`` logger (or config.root_name) with the given config.
    If config is None, uses LoggerConfig.from_env().
    Call once at startup; calling again replaces the handlers.
    """
    global _default_config
    if config is None:
        config = LoggerConfig.from_env()
    _default_config = config

    root = logging.getLogger(config.root_name or "orderdesk")
    root.setLevel(_level(config.level))

    # Avoid duplicate handlers when reconfigured (e.g. in tests)
    root.handlers.clear()

    if config.console:
        root.addHandler(build_console_handler(config.level))

    if config.file_rotating and config.log_dir and config.log_dir.strip():
        try:
            handler = build_rotating_file_handler(
                config.log_dir,
                basename=config.log_file_basename,
                max_bytes=config.max_bytes,
                backup_count=config.backup_count,
                level=config.level,
            )
        except OSError:
            root.warning("Could not create log dir %s, skipping file handler", config.log_dir)
        else:
            root.addHandler(handler)

    root.propagate = False


def get_logger(name: str, config: Optional[LoggerConfig] = None) -> logging.Logger:
    """
    Return a logger for the given name, configuring the root on first use.
    Use get_logger(__name__) from orderdesk packages so names stay under the root.
    """
    if _default_config is None:
        configure(config)
    return logging.getLogger(name)
