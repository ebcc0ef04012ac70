# src/agentcycle/logging_config.py
"""
Logging setup for agentcycle applications.

Library modules only ever call ``logging.getLogger(__name__)``; nothing is
configured on import.  An application running agents calls
``configure_logging()`` once at startup to install:

- a console handler gated by ``DisplayFilter``
- an optional file handler, either one file per run or a single rotating file
- per-logger level overrides (``components``)

Settings come from, in increasing precedence: ``DEFAULT_LOGGING_CONFIG``,
the ``[agentcycle.logging]`` table of a TOML file, an explicit dict, and
the ``AGENTCYCLE_LOG_LEVEL`` environment variable (console level).

**Display filter**: with ``console_enabled=False`` (the default) the
console only shows records logged with ``extra={"display": True}``, such
as agent start and stop notices, while the per-cycle chatter goes to the
file.  Use ``log_display()`` to emit such records.

Usage:
    from agentcycle.logging_config import configure_logging, log_display

    configure_logging(config={"console_enabled": True, "file_enabled": False})

    logger = logging.getLogger("myapp")
    log_display(logger, logging.INFO, "Started %d agents", len(agents))
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

LOG_LEVEL_ENV = "AGENTCYCLE_LOG_LEVEL"

DEFAULT_LOGGING_CONFIG: dict[str, Any] = {
    "console_enabled": False,
    "console_level": "WARNING",
    "console_format": "%(levelname)s - %(name)s - %(message)s",
    "file_enabled": True,
    "file_level": "DEBUG",
    "file_directory": "~/.local/share/agentcycle/logs",
    "file_mode": "per_run",
    "file_name_pattern": "{app}_{timestamp:%Y%m%d_%H%M%S}.log",
    "file_single_name": "{app}.log",
    "file_format": "%(asctime)s [%(levelname)-8s] %(name)-36s - %(message)s",
    "rotation_max_bytes": 10 * 1024 * 1024,
    "rotation_backup_count": 5,
    "display_min_level": "INFO",
    "components": {
        "agentcycle": "INFO",
        "agentcycle.guardrails": "WARNING",
        "asyncio": "WARNING",
    },
}


def _level(value: str | int | None, default: int) -> int:
    """Resolve a level name or number, falling back to *default*."""
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        resolved = logging.getLevelName(value.upper())
        if isinstance(resolved, int):
            return resolved
    return default


class DisplayFilter(logging.Filter):
    """
    Gate for the console handler.

    With the console globally enabled every record passes and the handler
    level decides.  Otherwise only records flagged ``display=True`` at or
    above ``display_min_level`` pass.
    """

    def __init__(self, console_globally_enabled: bool = False, display_min_level: int = logging.INFO):
        super().__init__()
        self.console_globally_enabled = console_globally_enabled
        self.display_min_level = display_min_level

    def filter(self, record: logging.LogRecord) -> bool:
        if self.console_globally_enabled:
            return True
        if getattr(record, "display", False):
            return record.levelno >= self.display_min_level
        return False


class LoggingManager:
    """
    Process-wide owner of the handlers installed by ``configure_logging``.

    A singleton: the first ``configure()`` wins unless
    ``force_reconfigure=True`` is passed.
    """

    _instance: Optional["LoggingManager"] = None
    _configured: bool = False
    _log_file_path: Path | None = None

    def __init__(self) -> None:
        self.console_handler: logging.Handler | None = None
        self.file_handler: logging.Handler | None = None
        self.display_filter: DisplayFilter | None = None

    @classmethod
    def get_instance(cls) -> "LoggingManager":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def is_configured(cls) -> bool:
        return cls._configured

    @classmethod
    def get_log_file_path(cls) -> Path | None:
        return cls._log_file_path

    @classmethod
    def reset(cls) -> None:
        """Remove installed handlers and forget the configuration."""
        if cls._instance is not None:
            root = logging.getLogger()
            for handler in (cls._instance.console_handler, cls._instance.file_handler):
                if handler is not None:
                    root.removeHandler(handler)
                    handler.close()
        cls._instance = None
        cls._configured = False
        cls._log_file_path = None

    def configure(
        self,
        app_name: str = "agentcycle",
        config: dict[str, Any] | None = None,
        config_path: str | Path | None = None,
        force_reconfigure: bool = False,
    ) -> Path | None:
        """
        Install handlers on the root logger.

        Returns:
            Path of the log file, or None when file logging is off or the
            file could not be created.
        """
        if LoggingManager._configured and not force_reconfigure:
            return LoggingManager._log_file_path

        settings = load_logging_config(config, config_path)
        root = logging.getLogger()
        for handler in (self.console_handler, self.file_handler):
            if handler is not None:
                root.removeHandler(handler)
                handler.close()
        self.console_handler = self.file_handler = None
        root.setLevel(logging.DEBUG)

        console_enabled = bool(settings.get("console_enabled", False))
        self.display_filter = DisplayFilter(
            console_globally_enabled=console_enabled,
            display_min_level=_level(settings.get("display_min_level"), logging.INFO),
        )
        self.console_handler = self._create_console_handler(settings)
        if not console_enabled:
            # The filter alone decides what reaches the console.
            self.console_handler.setLevel(logging.DEBUG)
        self.console_handler.addFilter(self.display_filter)
        root.addHandler(self.console_handler)

        log_file_path = None
        if settings.get("file_enabled", True):
            self.file_handler, log_file_path = self._create_file_handler(settings, app_name)
            if self.file_handler is not None:
                root.addHandler(self.file_handler)

        for component, level in settings.get("components", {}).items():
            logging.getLogger(component).setLevel(_level(level, logging.INFO))

        LoggingManager._configured = True
        LoggingManager._log_file_path = log_file_path
        logging.getLogger(__name__).debug("Logging configured (file=%s)", log_file_path)
        return log_file_path

    @staticmethod
    def _create_console_handler(settings: dict[str, Any]) -> logging.Handler:
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(_level(settings.get("console_level"), logging.WARNING))
        handler.setFormatter(
            logging.Formatter(settings.get("console_format", DEFAULT_LOGGING_CONFIG["console_format"]))
        )
        return handler

    @staticmethod
    def _create_file_handler(
        settings: dict[str, Any], app_name: str
    ) -> tuple[logging.Handler | None, Path | None]:
        log_dir = Path(os.path.expanduser(settings.get("file_directory", DEFAULT_LOGGING_CONFIG["file_directory"])))
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            sys.stderr.write(f"Warning: Cannot create log directory {log_dir}: {e}\n")
            return None, None

        try:
            if settings.get("file_mode", "per_run") == "single":
                path = log_dir / settings.get("file_single_name", "{app}.log").format(app=app_name)
                handler: logging.Handler = RotatingFileHandler(
                    path,
                    maxBytes=settings.get("rotation_max_bytes", DEFAULT_LOGGING_CONFIG["rotation_max_bytes"]),
                    backupCount=settings.get("rotation_backup_count", DEFAULT_LOGGING_CONFIG["rotation_backup_count"]),
                    encoding="utf-8",
                )
            else:
                pattern = settings.get("file_name_pattern", DEFAULT_LOGGING_CONFIG["file_name_pattern"])
                path = log_dir / pattern.format(app=app_name, timestamp=datetime.now())
                handler = logging.FileHandler(path, encoding="utf-8")
        except OSError as e:
            sys.stderr.write(f"Warning: Cannot create log file in {log_dir}: {e}\n")
            return None, None

        handler.setLevel(_level(settings.get("file_level"), logging.DEBUG))
        handler.setFormatter(
            logging.Formatter(settings.get("file_format", DEFAULT_LOGGING_CONFIG["file_format"]))
        )
        return handler, path

    def set_console_level(self, level: str | int) -> None:
        if self.console_handler is not None:
            self.console_handler.setLevel(_level(level, self.console_handler.level))

    def set_file_level(self, level: str | int) -> None:
        if self.file_handler is not None:
            self.file_handler.setLevel(_level(level, self.file_handler.level))

    def enable_console(self, level: str | int = "WARNING") -> None:
        """Let every record at or above *level* through to the console."""
        if self.display_filter is not None:
            self.display_filter.console_globally_enabled = True
        self.set_console_level(level)


def load_logging_config(
    config: dict[str, Any] | None = None,
    config_path: str | Path | None = None,
) -> dict[str, Any]:
    """
    Merge logging settings from defaults, a TOML file, *config* and the environment.

    The file's ``[agentcycle.logging]`` table is used; a missing file is
    an error, a missing table is not.
    """
    settings: dict[str, Any] = dict(DEFAULT_LOGGING_CONFIG)

    if config_path is not None:
        import tomllib

        path = Path(config_path).expanduser()
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path, "rb") as f:
            raw = tomllib.load(f)
        settings.update(raw.get("agentcycle", {}).get("logging", {}))

    if config:
        settings.update(config)

    env_level = os.environ.get(LOG_LEVEL_ENV)
    if env_level:
        settings["console_enabled"] = True
        settings["console_level"] = env_level.upper()

    return settings


def configure_logging(
    app_name: str = "agentcycle",
    config: dict[str, Any] | None = None,
    config_path: str | Path | None = None,
    force_reconfigure: bool = False,
) -> Path | None:
    """
    Configure logging for an application that runs agents.

    Example:
        configure_logging(
            app_name="fleet",
            config={"file_mode": "single", "file_directory": "/var/log/fleet"},
        )
    """
    return LoggingManager.get_instance().configure(
        app_name=app_name,
        config=config,
        config_path=config_path,
        force_reconfigure=force_reconfigure,
    )


def log_display(logger: logging.Logger, level: int, msg: str, *args: Any, **kwargs: Any) -> None:
    """Log *msg* so that it reaches the console even when the console is quiet."""
    extra = dict(kwargs.pop("extra", None) or {})
    extra["display"] = True
    logger.log(level, msg, *args, extra=extra, **kwargs)


def get_log_file_path() -> Path | None:
    return LoggingManager.get_log_file_path()


def set_console_level(level: str | int) -> None:
    LoggingManager.get_instance().set_console_level(level)


def set_file_level(level: str | int) -> None:
    LoggingManager.get_instance().set_file_level(level)


def set_component_level(component: str, level: str | int) -> None:
    """Change one logger's level at runtime."""
    logger = logging.getLogger(component)
    logger.setLevel(_level(level, logger.level))


def enable_console_logging(level: str | int = "WARNING") -> None:
    LoggingManager.get_instance().enable_console(level)
