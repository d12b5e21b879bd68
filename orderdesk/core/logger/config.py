"""
Logger configuration. Build explicitly or from env.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Optional

_TRUTHY = ("1", "true", "yes")


@dataclass(frozen=True)
class LoggerConfig:
    """
    Configuration for the orderdesk logger.

    Use LoggerConfig.from_env() for env-based config, or build explicitly.
    """

    # Level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    level: str = "INFO"
    # Log directory for rotating file (if None, file handler is skipped)
    log_dir: Optional[str] = None
    # Basename for log file (e.g. "orderdesk" -> orderdesk.log)
    log_file_basename: str = "orderdesk"
    max_bytes: int = 5 * 1024 * 1024  # 5 MB
    backup_count: int = 5
    # Root logger name (handlers attached here; children inherit)
    root_name: str = "orderdesk"
    console: bool = True
    # Only takes effect when log_dir is set
    file_rotating: bool = True

    @classmethod
    def from_env(cls) -> "LoggerConfig":
        """Build config from LOG_* environment variables."""
        return cls(
            level=os.environ.get("LOG_LEVEL", "INFO").upper(),
            log_dir=os.environ.get("LOG_DIR") or None,
            log_file_basename=os.environ.get("LOG_FILE_BASENAME", "orderdesk"),
            max_bytes=int(os.environ.get("LOG_MAX_BYTES", "5242880")),
            backup_count=int(os.environ.get("LOG_BACKUP_COUNT", "5")),
            root_name=os.environ.get("LOG_ROOT_NAME", "orderdesk"),
            console=os.environ.get("LOG_CONSOLE", "true").lower() in _TRUTHY,
            file_rotating=os.environ.get("LOG_FILE_ROTATING", "true").lower() in _TRUTHY,
        )

    def with_overrides(
        self,
        *,
        level: Optional[str] = None,
        log_dir: Optional[str] = None,
        console: Optional[bool] = None,
        file_rotating: Optional[bool] = None,
    ) -> "LoggerConfig":
        """Return a new config with the given overrides."""
        return replace(
            self,
            level=level.upper() if level is not None else self.level,
            log_dir=log_dir if log_dir is not None else self.log_dir,
            console=console if console is not None else self.console,
            file_rotating=file_rotating if file_rotating is not None else self.file_rotating,
        )
