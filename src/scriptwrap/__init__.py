"""
scriptwrap - run a user script at build lifecycle hooks.

Attach one block of Python to a job; it runs at setup, teardown, launcher
or logger decoration, or variable contribution, and can replace the
default behavior of each.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _metadata_version

from .core import (
    CompileError,
    ConfigError,
    ExecutionError,
    Phase,
    ScriptWrapError,
    WrapperConfig,
    load_wrapper_config,
    matches,
)
from .runtime import Environment, ScriptBuildWrapper, ScriptResult

try:
    __version__ = _metadata_version("scriptwrap")
except PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = [
    "__version__",
    "CompileError",
    "ConfigError",
    "Environment",
    "ExecutionError",
    "Phase",
    "ScriptBuildWrapper",
    "ScriptResult",
    "ScriptWrapError",
    "WrapperConfig",
    "load_wrapper_config",
    "matches",
]
