"""Shared pytest fixtures for scriptwrap tests."""

from __future__ import annotations

import io
from collections.abc import Mapping, Sequence

import pytest

from scriptwrap.runtime.compiler import CompiledUnit, ScriptCompiler


class FakeBuild:
    """Build double; scripts append to ``calls`` to prove they ran."""

    def __init__(self, display_name: str = "demo #1") -> None:
        self.display_name = display_name
        self.calls: list[str] = []


class FakeLauncher:
    def __init__(self) -> None:
        self.commands: list[list[str]] = []

    def launch(
        self,
        cmd: Sequence[str],
        env: Mapping[str, str] | None = None,
        cwd: str | None = None,
    ) -> int:
        self.commands.append(list(cmd))
        return 0


class FakeListener:
    def __init__(self) -> None:
        self.logger = io.StringIO()


class CountingCompiler(ScriptCompiler):
    """Records every compile and unload call."""

    def __init__(self) -> None:
        super().__init__()
        self.compiled: list[CompiledUnit] = []
        self.unloaded: list[CompiledUnit] = []

    def compile(self, source: str, name: str, version: int = 1) -> CompiledUnit:
        unit = super().compile(source, name, version)
        self.compiled.append(unit)
        return unit

    def unload(self, unit: CompiledUnit) -> None:
        self.unloaded.append(unit)
        super().unload(unit)


@pytest.fixture
def build() -> FakeBuild:
    return FakeBuild()


@pytest.fixture
def launcher() -> FakeLauncher:
    return FakeLauncher()


@pytest.fixture
def listener() -> FakeListener:
    return FakeListener()


@pytest.fixture
def counting_compiler() -> CountingCompiler:
    return CountingCompiler()


@pytest.fixture
def make_build() -> type[FakeBuild]:
    return FakeBuild
