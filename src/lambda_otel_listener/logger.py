"""Package logger.

Lambda controls the log level of a function through ``AWS_LAMBDA_LOG_LEVEL``;
``LOG_LEVEL`` is honoured as a fallback for local runs.
"""

import logging
import os

from .constants import Defaults, EnvVars

_LOGGER_PREFIX = "lambda-otel-listener"


def _resolve_level() -> int:
    value = (
        os.environ.get(EnvVars.AWS_LAMBDA_LOG_LEVEL)
        or os.environ.get(EnvVars.LOG_LEVEL)
        or Defaults.LOG_LEVEL
    )
    level = logging.getLevelName(value.strip().upper())
    return level if isinstance(level, int) else logging.WARNING


class Logger:
    """Thin wrapper over a stdlib logger with a fixed prefix and env-driven level."""

    def __init__(self, name: str) -> None:
        self.logger = logging.getLogger(f"{_LOGGER_PREFIX}.{name}")
        self.logger.setLevel(_resolve_level())

    def debug(self, msg: str, *args: object) -> None:
        self.logger.debug(msg, *args)

    def warn(self, msg: str, *args: object) -> None:
        self.logger.warning(msg, *args)


def create_logger(name: str) -> Logger:
    """Create a logger for one module of the package."""
    return Logger(name)
