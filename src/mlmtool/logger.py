# mlmtool - logger
# Copyright (C) 2025  mlmtool authors
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.

# pyright: reportExplicitAny=false

import logging
import logging.config
from pathlib import Path
from typing import Any

from rich.console import Console

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logger = logging.getLogger("mlmtool")


def setup_logging(
    level: int | str,
    *,
    log_file: Path | None = None,
    console: Console | None = None,
) -> None:
    """Configure console and, optionally, rotating file logging."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    console_handler: dict[str, Any] = {
        "level": level,
        "class": "rich.logging.RichHandler",
        "formatter": "rich",
        "show_path": False,
        "rich_tracebacks": False,
    }
    if console is not None:
        console_handler["console"] = console

    cfg: dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "rich": {
                "format": "[%(name)s] %(message)s",
                "datefmt": DATE_FORMAT,
            },
            "simple": {
                "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
                "datefmt": DATE_FORMAT,
            },
        },
        "handlers": {
            "console": console_handler,
        },
    }

    handlers: list[str] = ["console"]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        cfg["handlers"]["log_file"] = {
            "level": "DEBUG",
            "class": "logging.handlers.RotatingFileHandler",
            "formatter": "simple",
            "filename": str(log_file),
            "maxBytes": 2097152,
            "backupCount": 2,
        }
        handlers.append("log_file")

    cfg["loggers"] = {
        "mlmtool": {
            "level": "DEBUG" if log_file is not None else level,
            "handlers": handlers,
            "propagate": False,
        },
        "httpx": {
            "level": "DEBUG" if level == logging.DEBUG else "CRITICAL",
        },
    }

    logging.config.dictConfig(cfg)

