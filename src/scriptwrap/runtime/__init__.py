"""
Script build wrapper runtime: compiler, dispatcher, and hook entry points.
"""

from .compiler import CompiledUnit, ScriptCompiler, ScriptInstance
from .context import ConfigView, build_context
from .descriptor import DESCRIPTOR, ScriptBuildWrapperDescriptor
from .dispatcher import Dispatcher, ScriptResult
from .protocols import Build, BuildListener, Launcher, OutputStream
from .wrapper import Environment, ScriptBuildWrapper

__all__ = [
    "DESCRIPTOR",
    "Build",
    "BuildListener",
    "CompiledUnit",
    "ConfigView",
    "Dispatcher",
    "Environment",
    "Launcher",
    "OutputStream",
    "ScriptBuildWrapper",
    "ScriptBuildWrapperDescriptor",
    "ScriptCompiler",
    "ScriptInstance",
    "ScriptResult",
    "build_context",
]
