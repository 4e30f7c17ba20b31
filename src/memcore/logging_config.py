# src/memcore/logging_config.py
"""
Logging setup for applications embedding memcore.

memcore modules only ever call ``logging.getLogger(__name__)``. An
application that wants a console handler, an optional log file and
per-component levels calls :func:`configure_logging` once at startup.

In quiet mode (``console_enabled=False``, the default) the console only
shows records logged through :func:`log_display`, such as compaction
summaries.

Usage:
    configure_logging(app_name="agent", config={"console_enabled": True})
    log_display(logger, logging.INFO, "Loaded %d memories", count)
"""

import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib


DEFAULT_LOGGING_CONFIG: dict[str, Any] = {
    "console_enabled": False,
    "console_level": "WARNING",
    "console_format": "%(levelname)s - %(message)s",
    "display_min_level": "INFO",
    "file_enabled": False,
    "file_level": "DEBUG",
    "file_directory": "~/.local/share/memcore/logs",
    "file_mode": "per_run",  # or "single" (rotating)
    "file_format": "%(asctime)s [%(levelname)-8s] %(name)s - %(message)s",
    "rotation_max_bytes": 10 * 1024 * 1024,
    "rotation_backup_count": 5,
    "components": {
        "memcore": "INFO",
        "sentence_transformers": "WARNING",
        "transformers": "WARNING",
    },
}


def _resolve_level(value: str | int, default: int) -> int:
    if isinstance(value, int):
        return value
    level = logging.getLevelName(str(value).upper())
    return level if isinstance(level, int) else default


class DisplayFilter(logging.Filter):
    """Console gate: everything in verbose mode, only ``display=True`` records otherwise."""

    def __init__(self, console_globally_enabled: bool = False, display_min_level: int = logging.INFO) -> None:
        super().__init__()
        self.console_globally_enabled = console_globally_enabled
        self.display_min_level = display_min_level

    def filter(self, record: logging.LogRecord) -> bool:
        if self.console_globally_enabled:
            return True
        return bool(getattr(record, "display", False)) and record.levelno >= self.display_min_level


class UnifiedLoggingManager:
    """Process-wide logging state. Configures the root logger at most once unless forced."""

    _instance: Optional["UnifiedLoggingManager"] = None
    _configured: bool = False
    _log_file_path: Path | None = None
    _console_handler: logging.Handler | None = None
    _file_handler: logging.Handler | None = None
    _display_filter: DisplayFilter | None = None

    @classmethod
    def get_instance(cls) -> "UnifiedLoggingManager":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def is_configured(cls) -> bool:
        return cls._configured

    @classmethod
    def get_log_file_path(cls) -> Path | None:
        return cls._log_file_path

    def configure(
        self,
        app_name: str = "memcore",
        config: dict[str, Any] | None = None,
        config_file_path: str | Path | None = None,
        force_reconfigure: bool = False,
    ) -> Path | None:
        """Install handlers on the root logger. Returns the log file path, if any."""
        cls = UnifiedLoggingManager
        if cls._configured and not force_reconfigure:
            return cls._log_file_path

        settings = self._load_config(config, config_file_path)

        root = logging.getLogger()
        for handler in root.handlers[:]:
            root.removeHandler(handler)
            handler.close()
        root.setLevel(logging.DEBUG)

        verbose = bool(settings["console_enabled"])
        self._display_filter = DisplayFilter(verbose, _resolve_level(settings["display_min_level"], logging.INFO))
        console = logging.StreamHandler(sys.stderr)
        # In quiet mode the filter alone decides what reaches the console
        console.setLevel(_resolve_level(settings["console_level"], logging.WARNING) if verbose else logging.DEBUG)
        console.setFormatter(logging.Formatter(settings["console_format"]))
        console.addFilter(self._display_filter)
        root.addHandler(console)
        self._console_handler = console

        self._file_handler = None
        cls._log_file_path = None
        if settings["file_enabled"]:
            handler, path = self._create_file_handler(settings, app_name)
            if handler is not None:
                root.addHandler(handler)
                self._file_handler = handler
                cls._log_file_path = path

        for component, level in settings["components"].items():
            logging.getLogger(component).setLevel(_resolve_level(level, logging.INFO))

        cls._configured = True
        logging.getLogger(__name__).debug(f"Logging configured for '{app_name}'. Log file: {cls._log_file_path}")
        return cls._log_file_path

    @staticmethod
    def _load_config(config: dict[str, Any] | None, config_file_path: str | Path | None) -> dict[str, Any]:
        """Overlay an explicit dict, or else a TOML ``[logging]`` section, on the defaults."""
        if config is None and config_file_path is not None:
            try:
                with open(config_file_path, "rb") as f:
                    config = tomllib.load(f).get("logging", {})
            except (OSError, tomllib.TOMLDecodeError) as e:
                sys.stderr.write(f"Warning: Cannot read logging config {config_file_path}: {e}\n")
        return {**DEFAULT_LOGGING_CONFIG, **(config or {})}

    @staticmethod
    def _create_file_handler(
        settings: dict[str, Any], app_name: str
    ) -> tuple[logging.Handler | None, Path | None]:
        log_dir = Path(os.path.expanduser(settings["file_directory"]))
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            if settings["file_mode"] == "single":
                path = log_dir / f"{app_name}.log"
                handler: logging.Handler = RotatingFileHandler(
                    path,
                    maxBytes=settings["rotation_max_bytes"],
                    backupCount=settings["rotation_backup_count"],
                    encoding="utf-8",
                )
            else:
                path = log_dir / f"{app_name}_{datetime.now():%Y%m%d_%H%M%S}.log"
                handler = logging.FileHandler(path, encoding="utf-8")
        except OSError as e:
            sys.stderr.write(f"Warning: Cannot create log file in {log_dir}: {e}\n")
            return None, None

        handler.setLevel(_resolve_level(settings["file_level"], logging.DEBUG))
        handler.setFormatter(logging.Formatter(settings["file_format"]))
        return handler, path

    def set_console_level(self, level: str | int) -> None:
        if self._console_handler is not None:
            self._console_handler.setLevel(_resolve_level(level, logging.WARNING))


def configure_logging(
    app_name: str = "memcore",
    config: dict[str, Any] | None = None,
    config_file_path: str | Path | None = None,
    force_reconfigure: bool = False,
) -> Path | None:
    """Configure root logging once. Later calls are no-ops unless ``force_reconfigure``."""
    return UnifiedLoggingManager.get_instance().configure(app_name, config, config_file_path, force_reconfigure)


def log_display(logger: logging.Logger, level: int, msg: str, *args: Any, **kwargs: Any) -> None:
    """Log a record that also reaches the console in quiet mode."""
    kwargs["extra"] = {**(kwargs.get("extra") or {}), "display": True}
    logger.log(level, msg, *args, **kwargs)


def get_log_file_path() -> Path | None:
    return UnifiedLoggingManager.get_log_file_path()


def set_console_level(level: str | int) -> None:
    UnifiedLoggingManager.get_instance().set_console_level(level)


def set_component_level(component: str, level: str | int) -> None:
    logging.getLogger(component).setLevel(_resolve_level(level, logging.INFO))
