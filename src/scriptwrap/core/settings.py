"""
Engine settings read from the process environment.

Environment variables:
    - SCRIPTWRAP_LOG_BINDINGS: log script bindings at INFO instead of DEBUG
    - SCRIPTWRAP_MODULE_PREFIX: prefix for module names registered per compiled script
    - SCRIPTWRAP_LOG_LEVEL: logging level used by the command line tool

Usage:
    from scriptwrap.core.settings import get_settings

    settings = get_settings()
    if settings.log_bindings:
        ...
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass

logger = logging.getLogger(__name__)

LOG_BINDINGS_VAR = "SCRIPTWRAP_LOG_BINDINGS"
MODULE_PREFIX_VAR = "SCRIPTWRAP_MODULE_PREFIX"
LOG_LEVEL_VAR = "SCRIPTWRAP_LOG_LEVEL"

_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off", ""})


@dataclass(frozen=True)
class EngineSettings:
    """Settings shared by every wrapper in the process."""

    log_bindings: bool = False
    module_prefix: str = "scriptwrap_script"
    log_level: str = "WARNING"


def _parse_bool(name: str, value: str, default: bool) -> bool:
    normalized = value.lower().strip()
    if normalized in _TRUE:
        return True
    if normalized in _FALSE:
        return default if not normalized else False
    logger.warning("Unknown %s value '%s'. Using default: %s", name, value, default)
    return default


def get_settings(environ: Mapping[str, str] | None = None) -> EngineSettings:
    """Build EngineSettings from ``environ`` (defaults to ``os.environ``)."""
    env = os.environ if environ is None else environ
    defaults = EngineSettings()

    log_bindings = _parse_bool(
        LOG_BINDINGS_VAR, env.get(LOG_BINDINGS_VAR, ""), defaults.log_bindings
    )

    module_prefix = env.get(MODULE_PREFIX_VAR, "").strip() or defaults.module_prefix
    if not module_prefix.isidentifier():
        logger.warning(
            "Invalid %s value '%s'. Using default: %s",
            MODULE_PREFIX_VAR,
            module_prefix,
            defaults.module_prefix,
        )
        module_prefix = defaults.module_prefix

    log_level = env.get(LOG_LEVEL_VAR, "").upper().strip() or defaults.log_level
    if log_level not in logging.getLevelNamesMapping():
        logger.warning(
            "Unknown %s value '%s'. Using default: %s",
            LOG_LEVEL_VAR,
            log_level,
            defaults.log_level,
        )
        log_level = defaults.log_level

    return EngineSettings(
        log_bindings=log_bindings,
        module_prefix=module_prefix,
        log_level=log_level,
    )
