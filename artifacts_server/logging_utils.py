# artifacts_server/logging_utils.py
"""
Process-wide logging setup for the artifacts server.

Behaviour is driven by two environment variables, read once at import time:

``LOG_LEVEL``
    ``0`` silences the logger, ``1`` logs INFO and above, ``2`` logs DEBUG
    and above. Any other value is treated like ``0``.
``LOG_FILE``
    Destination file. It is always created, even when logging is silent, so
    deployment tooling can rely on its presence.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

ROOT_LOGGER_NAME = "artifacts_server"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_LEVELS = {"1": logging.INFO, "2": logging.DEBUG}

_LOG_LEVEL = os.getenv("LOG_LEVEL", "0").strip()
_LOG_FILE = os.getenv("LOG_FILE", "artifacts_server.log")

_configured = False
_disabled = True


def _configure_root() -> logging.Logger:
    global _configured, _disabled

    root = logging.getLogger(ROOT_LOGGER_NAME)
    if _configured:
        return root

    log_path = Path(_LOG_FILE)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    log_path.touch(exist_ok=True)

    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    level = _LEVELS.get(_LOG_LEVEL)
    _disabled = level is None
    root.propagate = False
    root.disabled = _disabled

    if _disabled:
        root.setLevel(logging.CRITICAL + 1)
    else:
        handler = logging.FileHandler(log_path, encoding="utf-8")
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
        root.setLevel(level)

    _configured = True
    return root


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Return a logger living under the ``artifacts_server`` namespace.

    Parameters
    ----------
    name : Optional[str]
        Module or component name. Names outside the package namespace are
        nested under it so they share the configured handler.

    Returns
    -------
    logging.Logger
        Configured logger; ``disabled`` is set when logging is silenced.
    """
    root = _configure_root()
    if not name or name == ROOT_LOGGER_NAME:
        return root

    if not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    logger = logging.getLogger(name)
    logger.disabled = _disabled
    return logger
