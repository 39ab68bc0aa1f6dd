"""
Error types for script build wrapper configuration, compilation, and execution.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from .phases import Phase


class ScriptWrapError(Exception):
    """Base exception for all script build wrapper errors."""

    def __init__(self, message: str, context: Optional["ErrorContext"] = None):
        self.message = message
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with context if available."""
        if self.context:
            return f"{self.context.format()}\n{self.message}"
        return self.message


class ConfigError(ScriptWrapError):
    """
    Raised when a wrapper configuration cannot be accepted.

    Examples:
    - Unknown mode name (names are case-sensitive)
    - Empty script source
    - Job file without a script-build-wrapper table
    """

    pass


class CompileError(ScriptWrapError):
    """
    Raised when script source is not valid Python.

    The attached context points at the offending line of the script.
    """

    pass


class ExecutionError(ScriptWrapError):
    """
    Raised when a script fails while running in a phase.

    The original exception is available as ``__cause__`` and ``cause``.
    """

    def __init__(self, phase: Phase, cause: BaseException):
        self.phase = phase
        self.cause = cause
        super().__init__(f"Script execution failed in phase {phase}: {cause!r}")


class ResultTypeMismatch(UserWarning):
    """Warning category for script results of an unexpected type."""


class CleanupWarning(UserWarning):
    """Warning category for compiled units that could not be unloaded."""


def warn_nonfatal(message: str, category: type[Warning], stacklevel: int = 2) -> None:
    """
    Issue a warning that never interrupts the caller.

    Callers log the condition themselves; when a filter escalates the
    category to an error (``-W error``) the warning is dropped.
    """
    try:
        warnings.warn(message, category, stacklevel=stacklevel + 1)
    except category:
        pass


@dataclass
class ErrorContext:
    """
    Context information for an error, including source location.

    Attributes:
        file: Script name the error refers to
        line: Line number (1-indexed)
        column: Column number (1-indexed)
        snippet: Optional source lines around the error location
    """

    file: str
    line: int
    column: int
    snippet: str | None = None

    def format(self) -> str:
        """
        Format error context as a human-readable string.

        Returns:
            Formatted string like: "ScriptBuildWrapper_1a2b_1.py:10:5"
        """
        location = f"{self.file}:{self.line}:{self.column}"
        if self.snippet:
            return f"{location}\n{self._format_snippet()}"
        return location

    def _format_snippet(self) -> str:
        """Format code snippet with line numbers and error marker."""
        if not self.snippet:
            return ""

        lines = self.snippet.split("\n")
        formatted = []

        # Snippet starts up to two lines before the error
        start_line = max(1, self.line - 2)

        for i, line in enumerate(lines):
            line_num = start_line + i
            prefix = f"{line_num:4d} | "
            formatted.append(prefix + line)

            if line_num == self.line:
                marker_pos = len(prefix) + max(self.column, 1) - 1
                formatted.append(" " * marker_pos + "^^^")

        return "\n".join(formatted)


def make_compile_error(err: SyntaxError, source: str, filename: str) -> CompileError:
    """
    Helper to create a CompileError from a SyntaxError raised by ``compile``.

    Args:
        err: The syntax error reported by the Python compiler
        source: Full script source
        filename: Name the script was compiled under

    Returns:
        CompileError with location and snippet attached
    """
    line = err.lineno or 1
    column = err.offset or 1
    source_lines = source.splitlines()
    start = max(0, line - 3)
    snippet = "\n".join(source_lines[start : line + 2]) or None
    context = ErrorContext(file=filename, line=line, column=column, snippet=snippet)
    return CompileError(err.msg or "invalid syntax", context)


def describe_errors(errors: list[dict[str, Any]]) -> str:
    """Render pydantic error dicts as a single line."""
    parts = []
    for error in errors:
        loc = ".".join(str(part) for part in error.get("loc", ())) or "config"
        parts.append(f"{loc}: {error.get('msg', 'invalid value')}")
    return "; ".join(parts)
