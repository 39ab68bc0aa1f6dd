"""
Core types for the script build wrapper: phases, errors, configuration.
"""

from .config import WrapperConfig, dump_wrapper_config, load_wrapper_config
from .errors import (
    CleanupWarning,
    CompileError,
    ConfigError,
    ErrorContext,
    ExecutionError,
    ResultTypeMismatch,
    ScriptWrapError,
)
from .phases import CONCRETE_PHASES, Phase, matches
from .settings import EngineSettings, get_settings

__all__ = [
    "CONCRETE_PHASES",
    "CleanupWarning",
    "CompileError",
    "ConfigError",
    "EngineSettings",
    "ErrorContext",
    "ExecutionError",
    "Phase",
    "ResultTypeMismatch",
    "ScriptWrapError",
    "WrapperConfig",
    "dump_wrapper_config",
    "get_settings",
    "load_wrapper_config",
    "matches",
]
