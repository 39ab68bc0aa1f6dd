"""
Protocols for the build orchestrator objects handed to scripts.

The engine never calls into these beyond writing error reports to a
listener's log stream; they exist so results can be type checked and
so orchestrators know what scripts expect to receive.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class OutputStream(Protocol):
    """A writable log stream."""

    def write(self, data: Any, /) -> Any: ...

    def flush(self) -> None: ...


@runtime_checkable
class BuildListener(Protocol):
    """Receives build progress; exposes the build log stream."""

    @property
    def logger(self) -> OutputStream: ...


@runtime_checkable
class Launcher(Protocol):
    """Starts processes on behalf of a build."""

    def launch(
        self,
        cmd: Sequence[str],
        env: Mapping[str, str] | None = None,
        cwd: str | None = None,
    ) -> int: ...


@runtime_checkable
class Build(Protocol):
    """A single execution of a job."""

    @property
    def display_name(self) -> str: ...
