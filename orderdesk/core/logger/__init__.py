"""
Project logger: rotating file (JSON) + console.

Usage:
    from orderdesk.core.logger import configure, get_logger, LoggerConfig

    configure(LoggerConfig(level="DEBUG", log_dir="/var/log/orderdesk"))
    # or from env: LOG_LEVEL, LOG_DIR, LOG_FILE_BASENAME, LOG_MAX_BYTES, ...
    configure()

    logger = get_logger(__name__)
    logger.info("Order %s created", order_number)
"""
from orderdesk.core.logger.config import LoggerConfig
from orderdesk.core.logger.formatters import JsonFormatter, PlainConsoleFormatter
from orderdesk.core.logger.setup import (
    build_console_handler,
    build_rotating_file_handler,
    configure,
    get_logger,
)

__all__ = [
    "LoggerConfig",
    "JsonFormatter",
    "PlainConsoleFormatter",
    "configure",
    "get_logger",
    "build_rotating_file_handler",
    "build_console_handler",
]
