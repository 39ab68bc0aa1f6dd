"""
Script dispatch: decides whether a wrapper's script runs for a phase,
runs it, and checks the result.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from contextlib import AbstractContextManager
from dataclasses import dataclass
from typing import Any, Protocol

from ..core.errors import ExecutionError, ResultTypeMismatch, warn_nonfatal
from ..core.phases import Phase, matches
from ..core.settings import EngineSettings
from .compiler import CompiledUnit
from .context import ConfigView, build_context
from .protocols import BuildListener

logger = logging.getLogger(__name__)


class ScriptOwner(Protocol):
    """What the dispatcher needs from the wrapper that owns the script."""

    @property
    def mode(self) -> Phase: ...

    @property
    def settings(self) -> EngineSettings: ...

    def lease_unit(self) -> AbstractContextManager[CompiledUnit]: ...

    def view(self, unit: CompiledUnit) -> ConfigView: ...


@dataclass(frozen=True)
class ScriptResult:
    """
    Outcome of one dispatch.

    Attributes:
        phase: Phase that was requested
        applicable: False when the wrapper's mode does not cover the phase
        value: Script result, None for side-effecting phases
        type_matched: False when the value is not of the expected type
    """

    phase: Phase
    applicable: bool
    value: Any = None
    type_matched: bool = True

    @classmethod
    def not_applicable(cls, phase: Phase) -> ScriptResult:
        return cls(phase=phase, applicable=False)

    @property
    def usable(self) -> bool:
        """True when the value can replace the caller's default."""
        return self.applicable and self.value is not None and self.type_matched


class Dispatcher:
    """Runs the owner's compiled script for the phases its mode covers."""

    def __init__(self, owner: ScriptOwner):
        self.owner = owner

    def applies_to(self, phase: Phase) -> bool:
        return matches(self.owner.mode, phase)

    def execute(
        self,
        phase: Phase,
        inputs: Mapping[str, Any],
        expected_type: type | None = None,
        *,
        listener: BuildListener | None = None,
    ) -> ScriptResult:
        """
        Run the script for ``phase`` if the wrapper's mode covers it.

        Args:
            phase: Concrete phase being executed
            inputs: Phase-specific variables for the script
            expected_type: Expected result type; None ignores the result
            listener: Build listener for the failure report, when not among inputs

        Returns:
            ScriptResult describing what happened

        Raises:
            ValueError: If ``phase`` is ALL
            ExecutionError: If the script raises
        """
        if not phase.is_concrete:
            raise ValueError(f"{phase} is not an executable phase")

        if not self.applies_to(phase):
            return ScriptResult.not_applicable(phase)

        logger.debug("Executing script in mode: %s", phase)

        with self.owner.lease_unit() as unit:
            context = build_context(phase, inputs, self.owner.view(unit))
            self._log_bindings(context)

            instance = unit.instantiate()
            instance.bind(context)
            try:
                value = instance.run()
            except (Exception, SystemExit) as e:
                logger.error("Script execution failed in phase %s", phase, exc_info=True)
                if listener is None:
                    listener = inputs.get("listener")
                _report_to_listener(listener, phase, e)
                raise ExecutionError(phase, e) from e

        logger.debug("Script result: %r", value)

        if expected_type is None:
            return ScriptResult(phase=phase, applicable=True)

        if value is not None and not isinstance(value, expected_type):
            expected, actual = _type_name(expected_type), _type_name(type(value))
            logger.warning("Incompatible result type; expect: %s, have: %s", expected, actual)
            warn_nonfatal(
                f"Incompatible result type in {phase}; expect: {expected}, have: {actual}",
                ResultTypeMismatch,
                stacklevel=3,
            )
            return ScriptResult(phase=phase, applicable=True, value=value, type_matched=False)

        return ScriptResult(phase=phase, applicable=True, value=value)

    def _log_bindings(self, context: Mapping[str, Any]) -> None:
        level = logging.INFO if self.owner.settings.log_bindings else logging.DEBUG
        if not logger.isEnabledFor(level):
            return
        logger.log(level, "Binding variables:")
        for name, value in context.items():
            value_type = type(value).__name__ if value is not None else None
            logger.log(level, "  %s=%r (%s)", name, value, value_type)


def _type_name(t: type) -> str:
    return f"{t.__module__}.{t.__qualname__}"


def _report_to_listener(listener: Any, phase: Phase, error: BaseException) -> None:
    """Write a failure line to the build log when a listener was supplied."""
    stream = getattr(listener, "logger", None)
    if stream is None:
        return
    line = f"ERROR: Script execution failed in phase {phase}: {error!r}\n"
    try:
        try:
            stream.write(line)
        except TypeError:
            # binary log stream
            stream.write(line.encode("utf-8"))
        stream.flush()
    except (OSError, ValueError) as e:
        logger.warning("Could not write script failure to build log: %s", e)
