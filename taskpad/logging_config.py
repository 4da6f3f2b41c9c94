from __future__ import annotations

"""Logging set-up for applications embedding taskpad.

Call :func:`setup_logging` once at start-up. The ``logging`` config section
is handed to :func:`logging.config.dictConfig` with its ``file`` handler
pointed at ``$TASKPAD_LOG_DIR/app.log`` (``logs/app.log`` by default).

Two environment variables raise individual loggers to DEBUG afterwards:

``TASKPAD_DEBUG_DRAG``
    any truthy value; covers drop projection and the structural edits it
    triggers.
``TASKPAD_DEBUG_MODULES``
    comma-separated logger names.
"""

import logging
import logging.config
import os
from pathlib import Path
from typing import Any, Dict, Iterator

from taskpad.config import ConfigManager
from taskpad.version import get_app_version

__all__ = ["setup_logging"]

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_DRAG_LOGGERS = (
    "taskpad.core.services.drag_planner",
    "taskpad.core.services.structure_editing_service",
)
_TRUTHY = frozenset({"1", "true", "yes", "on"})


def setup_logging() -> Path:
    """Configure the logging tree and return the log file path in use."""
    log_file = Path(os.environ.get("TASKPAD_LOG_DIR", "logs")) / "app.log"
    log_file.parent.mkdir(parents=True, exist_ok=True)

    section = ConfigManager().get_logging_config()
    if section.get("version"):
        file_handler = section.get("handlers", {}).get("file")
        if isinstance(file_handler, dict):
            file_handler["filename"] = str(log_file)
        try:
            logging.config.dictConfig(section)
        except (ValueError, TypeError, AttributeError, ImportError) as exc:
            _console_only()
            logging.error("Logging section rejected, console only: %s", exc)
        else:
            logging.info("taskpad %s logging to %s", get_app_version(), log_file)
    else:
        _console_only()
        logging.warning("No logging section configured, console only")

    for name in _debug_targets():
        _force_debug(logging.getLogger(name))
    return log_file


def _console_only() -> None:
    config: Dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"plain": {"format": LOG_FORMAT}},
        "handlers": {"console": {"class": "logging.StreamHandler", "formatter": "plain"}},
        "root": {"level": "INFO", "handlers": ["console"]},
    }
    logging.config.dictConfig(config)


def _debug_targets() -> Iterator[str]:
    if os.environ.get("TASKPAD_DEBUG_DRAG", "").strip().lower() in _TRUTHY:
        yield from _DRAG_LOGGERS
    for name in os.environ.get("TASKPAD_DEBUG_MODULES", "").split(","):
        if name.strip():
            yield name.strip()


def _force_debug(target: logging.Logger) -> None:
    target.setLevel(logging.DEBUG)
    # Root handlers usually filter at INFO; give the logger its own outlet
    if not any(h.level <= logging.DEBUG for h in target.handlers):
        handler = logging.StreamHandler()
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        target.addHandler(handler)
    target.info("DEBUG forced for %s", target.name)
