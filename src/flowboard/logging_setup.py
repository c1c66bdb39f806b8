# Flowboard - Cash-flow Dashboard & Analysis engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Logging for Flowboard.

Every module logs through ``get_logger(__name__)``, i.e. a child of the
``"flowboard"`` logger. The package logger carries a ``NullHandler`` so the
library stays silent until an application configures it.

The CLI calls ``configure_logging`` with ``--log-level``. Diagnostics
(encoding fallbacks, skipped lines, snapshot saves, file reloads) go to
stderr so that stdout only holds the rendered tables. Calling it again
replaces the handler installed by the previous call.

Level resolution: the explicit argument, else ``FLOWBOARD_LOG_LEVEL``, else
WARNING. Unknown level names are an error.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO, Optional, Union

PACKAGE_LOGGER = "flowboard"
LEVEL_ENV_VAR = "FLOWBOARD_LOG_LEVEL"
DEFAULT_FORMAT = "%(levelname)s %(name)s: %(message)s"

_handler: Optional[logging.Handler] = None

logging.getLogger(PACKAGE_LOGGER).addHandler(logging.NullHandler())


def resolve_level(level: Union[int, str, None] = None) -> int:
    """
    Turn a level (number, name or numeric string) into a logging level.

    Raises
    ------
    ValueError
        If ``level`` (or the environment variable) names no logging level.
    """
    if level is None:
        level = os.getenv(LEVEL_ENV_VAR) or logging.WARNING
    if isinstance(level, int):
        return level

    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    value = logging.getLevelName(name)
    if not isinstance(value, int):
        raise ValueError(
            f"Unknown log level: {level!r}. Expected DEBUG, INFO, WARNING, ERROR or CRITICAL."
        )
    return value


def configure_logging(
    level: Union[int, str, None] = None,
    *,
    fmt: str = DEFAULT_FORMAT,
    stream: Optional[IO[str]] = None,
) -> logging.Handler:
    """
    Send Flowboard log records to ``stream`` (stderr by default).

    Returns the installed handler.
    """
    global _handler
    resolved = resolve_level(level)

    logger = logging.getLogger(PACKAGE_LOGGER)
    if _handler is not None:
        logger.removeHandler(_handler)

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(logging.Formatter(fmt))
    logger.addHandler(handler)
    logger.setLevel(resolved)
    logger.propagate = False
    _handler = handler
    return handler


def reset_logging() -> None:
    """Remove the configured handler and hand records back to the root logger."""
    global _handler
    logger = logging.getLogger(PACKAGE_LOGGER)
    if _handler is not None:
        logger.removeHandler(_handler)
        _handler = None
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
