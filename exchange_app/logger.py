"""Logging configuration for hosts embedding the exchange.

Exchange packages log at the configured level; everything else (plotly,
pandas, sqlite adapters) stays at WARNING through the root logger. Records
carry the thread name since the engine serves several request threads.
"""

from __future__ import annotations

import logging.config
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from token_exchange.config import resolve_log_level, resolve_package_log_levels

EXCHANGE_PACKAGES = ("token_exchange", "exchange_app")

LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(threadName)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"                # Default for the exchange packages
    log_file: Optional[str] = None     # Rotating trade log, console only if None
    package_levels: Dict[str, str] = field(default_factory=dict)  # Per-package overrides
    library_level: str = "WARNING"     # Root logger, i.e. third-party libraries

    @classmethod
    def from_env(cls, log_file: Optional[str] = None) -> "LoggingConfig":
        return cls(
            level=resolve_log_level(),
            log_file=log_file,
            package_levels=resolve_package_log_levels(),
        )

    def level_for(self, package: str) -> str:
        return self.package_levels.get(package, self.level).upper()


def _file_handler(path: str) -> Dict[str, Any]:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "formatter": "exchange",
        "filename": path,
        "maxBytes": 5_000_000,
        "backupCount": 3,
        "encoding": "utf-8",
    }


def build_dict_config(cfg: LoggingConfig) -> Dict[str, Any]:
    """dictConfig schema: shared handlers on root, levels set per package."""
    handlers: Dict[str, Any] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "exchange",
            "stream": "ext://sys.stdout",
        }
    }
    if cfg.log_file:
        handlers["file"] = _file_handler(cfg.log_file)

    # Package loggers have no handlers of their own and propagate to root,
    # so the root level only filters records logged directly on libraries.
    loggers = {
        package: {"level": cfg.level_for(package)}
        for package in EXCHANGE_PACKAGES
    }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "exchange": {"format": LOG_FORMAT, "datefmt": DATE_FORMAT},
        },
        "handlers": handlers,
        "loggers": loggers,
        "root": {
            "level": cfg.library_level.upper(),
            "handlers": list(handlers),
        },
    }


def configure_logging(cfg: LoggingConfig) -> None:
    """Configure logging once from the host entrypoint."""
    if cfg.log_file:
        Path(cfg.log_file).parent.mkdir(parents=True, exist_ok=True)
    logging.config.dictConfig(build_dict_config(cfg))
    logging.getLogger(__name__).debug(
        "Logging configured: %s",
        {package: cfg.level_for(package) for package in EXCHANGE_PACKAGES},
    )
