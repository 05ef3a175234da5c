"""Diagnostic logging for davy.

User-facing status goes through rich consoles on stderr. This module only
carries the developer trace: which docker commands ran, which volume was
initialized, which env key was forwarded empty. It stays at WARNING unless
``davy --debug`` or ``DAVY_DEBUG=1`` turns it up.
"""

from __future__ import annotations

import logging
import os
import sys

from .constants import ENV_DEBUG

ROOT_LOGGER = "davy"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_FORMAT_DEBUG = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_TRUTHY = ("1", "true", "yes", "on")

_configured = False


def debug_from_env() -> bool:
    """True when DAVY_DEBUG holds a truthy value."""
    return os.environ.get(ENV_DEBUG, "").strip().lower() in _TRUTHY


def _formatter(debug: bool) -> logging.Formatter:
    return logging.Formatter(LOG_FORMAT_DEBUG if debug else LOG_FORMAT, datefmt=DATE_FORMAT)


def _apply(root: logging.Logger, debug: bool) -> None:
    level = logging.DEBUG if debug else logging.WARNING
    root.setLevel(level)
    for handler in root.handlers:
        handler.setLevel(level)
        handler.setFormatter(_formatter(debug))


def _configure() -> None:
    """Attach the stderr handler to the ``davy`` logger once per process."""
    global _configured
    if _configured:
        return

    root = logging.getLogger(ROOT_LOGGER)
    if not root.handlers:
        root.addHandler(logging.StreamHandler(sys.stderr))
    _apply(root, debug_from_env())
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Logger for a davy module.

    Names outside the package are nested under ``davy.`` so one level
    switch covers every module.
    """
    _configure()
    if name != ROOT_LOGGER and not name.startswith(f"{ROOT_LOGGER}."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def set_debug(enabled: bool = True) -> None:
    """Switch the davy trace between DEBUG (with line numbers) and WARNING."""
    _configure()
    _apply(logging.getLogger(ROOT_LOGGER), enabled)
