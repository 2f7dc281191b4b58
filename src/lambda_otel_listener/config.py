"""Configuration read from environment variables.

Environment variables take precedence over values passed in code. An
invalid environment value is logged and ignored, falling back to the code
value and then to the default.
"""

import os
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from .constants import Defaults, EnvVars
from .logger import create_logger

logger = create_logger("config")

T = TypeVar("T")


def _fallback(config_value: T | None, default: T) -> T:
    return config_value if config_value is not None else default


def get_bool_env(
    name: str,
    config_value: bool | None = None,
    default: bool = False,
) -> bool:
    """Read a boolean environment variable (``true``/``false``, case-insensitive)."""
    value = os.environ.get(name, "").strip().lower()
    if not value:
        return _fallback(config_value, default)
    if value == "true":
        return True
    if value == "false":
        return False
    logger.warn("Invalid boolean for %s: %r, using fallback", name, value)
    return _fallback(config_value, default)


def get_int_env(
    name: str,
    config_value: int | None = None,
    default: int = 0,
    validator: Callable[[int], bool] | None = None,
) -> int:
    """Read an integer environment variable, optionally checked by ``validator``."""
    value = os.environ.get(name, "").strip()
    if not value:
        return _fallback(config_value, default)
    try:
        parsed = int(value)
    except ValueError:
        logger.warn("Invalid integer for %s: %r, using fallback", name, value)
        return _fallback(config_value, default)
    if validator is not None and not validator(parsed):
        logger.warn("Value %d for %s failed validation, using fallback", parsed, name)
        return _fallback(config_value, default)
    return parsed


def get_str_env(
    name: str,
    config_value: str | None = None,
    default: str = "",
    validator: Callable[[str], bool] | None = None,
) -> str:
    """Read a string environment variable, optionally checked by ``validator``."""
    value = os.environ.get(name, "").strip()
    if not value:
        return _fallback(config_value, default)
    if validator is not None and not validator(value):
        logger.warn("Value %r for %s failed validation, using fallback", value, name)
        return _fallback(config_value, default)
    return value


@dataclass(frozen=True)
class TraceConfig:
    """Options controlling the trace listener.

    Attributes:
        auto_patch_outbound: Install outbound request instrumentation for the
            duration of each invocation.
        early_timeout_threshold_ms: Margin before the Lambda deadline at which
            the invocation is reported as timed out.
    """

    auto_patch_outbound: bool = Defaults.AUTO_PATCH_OUTBOUND
    early_timeout_threshold_ms: int = Defaults.EARLY_TIMEOUT_THRESHOLD_MS

    @classmethod
    def from_env(
        cls,
        auto_patch_outbound: bool | None = None,
        early_timeout_threshold_ms: int | None = None,
    ) -> "TraceConfig":
        """Resolve a config from the environment, with code values as fallback."""
        return cls(
            auto_patch_outbound=get_bool_env(
                EnvVars.AUTO_PATCH_OUTBOUND,
                auto_patch_outbound,
                Defaults.AUTO_PATCH_OUTBOUND,
            ),
            early_timeout_threshold_ms=get_int_env(
                EnvVars.EARLY_TIMEOUT_THRESHOLD_MS,
                early_timeout_threshold_ms,
                Defaults.EARLY_TIMEOUT_THRESHOLD_MS,
                lambda x: x >= 0,
            ),
        )
