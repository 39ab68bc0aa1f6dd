"""
Compiles wrapper script source into reusable compiled units.

A compiled unit owns two process-wide resources that must be released
when the unit is replaced:

1. A ``linecache`` entry, so tracebacks from the script show its lines
2. A home module in ``sys.modules``, so classes defined by the script
   (including dataclasses) can resolve their ``__module__``

Script results:
    The value of the last top-level statement, when it is an expression.
    Otherwise the value bound to ``result`` by the script, or None.

    Example:
        if phase == "TEAR_DOWN":
            result = build.display_name.endswith("-ok")
"""

from __future__ import annotations

import ast
import builtins
import linecache
import logging
import sys
import threading
import types
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

from ..core.errors import (
    CleanupWarning,
    CompileError,
    ErrorContext,
    ScriptWrapError,
    make_compile_error,
    warn_nonfatal,
)
from ..core.settings import EngineSettings, get_settings

logger = logging.getLogger(__name__)

RESULT_NAME = "__script_result__"
RESULT_VARIABLE = "result"


def _capture_trailing_expression(tree: ast.Module) -> None:
    """Rewrite a trailing expression statement into an assignment to RESULT_NAME."""
    if not tree.body or not isinstance(tree.body[-1], ast.Expr):
        return
    last = tree.body[-1]
    assign = ast.Assign(
        targets=[ast.Name(id=RESULT_NAME, ctx=ast.Store())],
        value=last.value,
    )
    tree.body[-1] = ast.copy_location(assign, last)
    ast.fix_missing_locations(tree)


class ScriptInstance:
    """One runnable instance of a compiled unit. Never reused across runs."""

    def __init__(self, unit: CompiledUnit):
        self.unit = unit
        self.namespace: dict[str, Any] = {
            "__name__": unit.name,
            "__file__": unit.filename,
            "__builtins__": builtins,
        }

    def bind(self, context: Mapping[str, Any]) -> None:
        """Expose the execution context as script globals."""
        self.namespace.update(context)

    def run(self) -> Any:
        """Execute the script to completion and return its result."""
        exec(self.unit.code, self.namespace)
        if RESULT_NAME in self.namespace:
            return self.namespace[RESULT_NAME]
        return self.namespace.get(RESULT_VARIABLE)


@dataclass(eq=False)
class CompiledUnit:
    """
    Immutable compiled form of a script.

    Runs take a lease on the unit. A retired unit is unloaded once its
    last lease is returned, so in-flight runs are never torn by a reload.

    Attributes:
        name: Module name registered in sys.modules
        filename: Pseudo file name used for tracebacks and linecache
        source: Script source the unit was compiled from
        code: Compiled code object
        version: Version number within the owning wrapper
    """

    name: str
    filename: str
    source: str
    code: types.CodeType
    version: int
    module: types.ModuleType = field(repr=False)
    unloader: Callable[[CompiledUnit], None] = field(repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    _leases: int = field(default=0, repr=False)
    _retired: bool = field(default=False, repr=False)
    _unloaded: bool = field(default=False, repr=False)

    @property
    def leases(self) -> int:
        return self._leases

    @property
    def retired(self) -> bool:
        return self._retired

    @property
    def unloaded(self) -> bool:
        return self._unloaded

    def instantiate(self) -> ScriptInstance:
        return ScriptInstance(self)

    @contextmanager
    def lease(self) -> Iterator[CompiledUnit]:
        """Hold the unit loaded for the duration of a run."""
        with self._lock:
            if self._unloaded:
                raise ScriptWrapError(f"Compiled script {self.name} has been unloaded")
            self._leases += 1
        try:
            yield self
        finally:
            with self._lock:
                self._leases -= 1
                release = self._retired and self._leases == 0 and not self._unloaded
                if release:
                    self._unloaded = True
            if release:
                self._release()

    def retire(self) -> None:
        """Mark the unit as replaced; unload now or when the last lease ends."""
        with self._lock:
            if self._retired:
                return
            self._retired = True
            release = self._leases == 0
            if release:
                self._unloaded = True
            else:
                logger.debug(
                    "Deferring unload of %s until %d run(s) finish", self.name, self._leases
                )
        if release:
            self._release()

    def _release(self) -> None:
        try:
            self.unloader(self)
        except Exception as e:
            logger.warning("Failed to unload compiled script %s: %s", self.name, e, exc_info=True)
            warn_nonfatal(
                f"Failed to unload compiled script {self.name}: {e}", CleanupWarning, stacklevel=3
            )


class ScriptCompiler:
    """
    Turns script source into CompiledUnits and unloads them again.

    Example:
        >>> compiler = ScriptCompiler()
        >>> unit = compiler.compile("1 + 1", "ScriptBuildWrapper_demo")
        >>> instance = unit.instantiate()
        >>> instance.run()
        2
    """

    def __init__(self, settings: EngineSettings | None = None):
        self.settings = settings or get_settings()

    def compile(self, source: str, name: str, version: int = 1) -> CompiledUnit:
        """
        Compile script source.

        Args:
            source: Python source text
            name: Script name, unique per owning wrapper
            version: Version number recorded on the unit

        Returns:
            A loaded CompiledUnit

        Raises:
            CompileError: If the source is not valid Python
        """
        script_name = f"{name}_{version}"
        filename = f"{script_name}.py"
        module_name = f"{self.settings.module_prefix}_{script_name}"

        logger.debug("Compiling script %s:\n%s", filename, source)
        try:
            tree = ast.parse(source, filename=filename, mode="exec")
            _capture_trailing_expression(tree)
            code = compile(tree, filename, "exec", dont_inherit=True)
        except SyntaxError as e:
            raise make_compile_error(e, source, filename) from e
        except ValueError as e:
            # null bytes in source
            raise CompileError(str(e), ErrorContext(file=filename, line=1, column=1)) from e

        module = types.ModuleType(module_name)
        module.__file__ = filename

        linecache.cache[filename] = (len(source), None, source.splitlines(True), filename)
        sys.modules[module_name] = module

        unit = CompiledUnit(
            name=module_name,
            filename=filename,
            source=source,
            code=code,
            version=version,
            module=module,
            unloader=self.unload,
        )
        logger.debug("Compiled script unit: %s", unit)
        return unit

    def unload(self, unit: CompiledUnit) -> None:
        """Release the linecache entry and home module of a unit."""
        linecache.cache.pop(unit.filename, None)
        if sys.modules.get(unit.name) is unit.module:
            del sys.modules[unit.name]
        logger.debug("Unloaded compiled script %s", unit.name)
