"""Tests for context building and script dispatch."""

from __future__ import annotations

import logging
import traceback
import warnings
from typing import Any

import pytest

from scriptwrap.core.errors import ExecutionError, ResultTypeMismatch
from scriptwrap.core.phases import Phase
from scriptwrap.core.settings import EngineSettings
from scriptwrap.runtime.context import ConfigView, build_context
from scriptwrap.runtime.dispatcher import ScriptResult
from scriptwrap.runtime.protocols import Launcher
from scriptwrap.runtime.wrapper import ScriptBuildWrapper


def _view() -> ConfigView:
    return ConfigView(source="1", mode=Phase.ALL, version=1, display_name="Script Build Wrapper")


class TestBuildContext:
    def test_adds_implicit_entries(self) -> None:
        view = _view()
        context = build_context(Phase.SETUP, {"build": "b"}, view)
        assert context == {
            "build": "b",
            "mode": Phase.SETUP,
            "phase": Phase.SETUP,
            "container": view,
            "config": view,
        }

    def test_returns_new_dict(self) -> None:
        inputs = {"build": "b"}
        first = build_context(Phase.SETUP, inputs, _view())
        second = build_context(Phase.SETUP, inputs, _view())
        assert first is not second
        assert first is not inputs
        assert inputs == {"build": "b"}

    def test_implicit_entries_win(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="scriptwrap.runtime.context"):
            context = build_context(Phase.TEAR_DOWN, {"mode": "mine"}, _view())
        assert context["mode"] is Phase.TEAR_DOWN
        assert any("reserved" in r.message for r in caplog.records)


class TestScriptResult:
    def test_not_applicable_is_not_usable(self) -> None:
        result = ScriptResult.not_applicable(Phase.SETUP)
        assert not result.applicable
        assert not result.usable

    def test_none_value_is_not_usable(self) -> None:
        assert not ScriptResult(phase=Phase.SETUP, applicable=True, value=None).usable

    def test_mismatched_value_is_not_usable(self) -> None:
        result = ScriptResult(phase=Phase.SETUP, applicable=True, value=1, type_matched=False)
        assert not result.usable


class TestExecute:
    def test_not_applicable_skips_script(self, build: Any) -> None:
        with ScriptBuildWrapper("build.calls.append(phase)", "SETUP") as wrapper:
            result = wrapper.execute(Phase.TEAR_DOWN, {"build": build}, bool)
        assert result == ScriptResult.not_applicable(Phase.TEAR_DOWN)
        assert build.calls == []

    def test_all_is_not_executable(self) -> None:
        with ScriptBuildWrapper("1", "ALL") as wrapper:
            with pytest.raises(ValueError, match="not an executable phase"):
                wrapper.execute(Phase.ALL, {})

    def test_script_sees_mode_and_container(self) -> None:
        with ScriptBuildWrapper("(mode, container.mode, container.version)", "ALL") as wrapper:
            result = wrapper.execute(Phase.DECORATE_LOGGER, {}, tuple)
        assert result.value == (Phase.DECORATE_LOGGER, Phase.ALL, 1)
        assert result.usable

    def test_phase_and_config_aliases(self) -> None:
        with ScriptBuildWrapper("(phase, config.mode, config.version)", "ALL") as wrapper:
            result = wrapper.execute(Phase.DECORATE_LOGGER, {}, tuple)
        assert result.value == (Phase.DECORATE_LOGGER, Phase.ALL, 1)
        assert result.usable

    def test_config_view_is_read_only(self) -> None:
        with ScriptBuildWrapper("config.source = 'x'", "SETUP") as wrapper:
            with pytest.raises(ExecutionError):
                wrapper.execute(Phase.SETUP, {})

    def test_void_phase_ignores_result(self) -> None:
        with ScriptBuildWrapper("'ignored'", "BUILD_VARIABLES") as wrapper:
            result = wrapper.execute(Phase.BUILD_VARIABLES, {"vars": {}})
        assert result.applicable
        assert result.value is None

    def test_script_error_is_wrapped(self, listener: Any) -> None:
        with ScriptBuildWrapper('raise RuntimeError("boom")', "SETUP") as wrapper:
            with pytest.raises(ExecutionError) as exc_info:
                wrapper.execute(Phase.SETUP, {"listener": listener})
        error = exc_info.value
        assert error.phase is Phase.SETUP
        assert isinstance(error.__cause__, RuntimeError)
        assert error.cause is error.__cause__
        assert "ERROR: Script execution failed in phase SETUP" in listener.logger.getvalue()

    def test_traceback_shows_script_line(self) -> None:
        with ScriptBuildWrapper('x = 1\nraise KeyError("missing")\n', "SETUP") as wrapper:
            with pytest.raises(ExecutionError) as exc_info:
                wrapper.execute(Phase.SETUP, {})
            frames = traceback.extract_tb(exc_info.value.__cause__.__traceback__)
        assert frames[-1].lineno == 2
        assert frames[-1].line == 'raise KeyError("missing")'

    def test_system_exit_is_wrapped(self) -> None:
        with ScriptBuildWrapper("import sys\nsys.exit(3)", "SETUP") as wrapper:
            with pytest.raises(ExecutionError):
                wrapper.execute(Phase.SETUP, {})

    def test_type_mismatch_returns_value(self, caplog: pytest.LogCaptureFixture) -> None:
        with ScriptBuildWrapper("'not a launcher'", "DECORATE_LAUNCHER") as wrapper:
            with caplog.at_level(logging.WARNING, logger="scriptwrap.runtime.dispatcher"):
                with pytest.warns(ResultTypeMismatch):
                    result = wrapper.execute(Phase.DECORATE_LAUNCHER, {}, Launcher)
        assert result.value == "not a launcher"
        assert not result.type_matched
        assert any("Incompatible result type" in r.message for r in caplog.records)

    def test_type_mismatch_survives_error_filter(self) -> None:
        with ScriptBuildWrapper("'not a launcher'", "DECORATE_LAUNCHER") as wrapper:
            with warnings.catch_warnings():
                warnings.simplefilter("error")
                result = wrapper.execute(Phase.DECORATE_LAUNCHER, {}, Launcher)
        assert result.value == "not a launcher"
        assert not result.type_matched

    def test_listener_argument_receives_failure(self, listener: Any) -> None:
        with ScriptBuildWrapper("1 / 0", "TEAR_DOWN") as wrapper:
            with pytest.raises(ExecutionError):
                wrapper.execute(Phase.TEAR_DOWN, {}, bool, listener=listener)
        assert "ERROR: Script execution failed in phase TEAR_DOWN" in listener.logger.getvalue()

    def test_logs_bindings_when_enabled(self, caplog: pytest.LogCaptureFixture) -> None:
        settings = EngineSettings(log_bindings=True)
        with ScriptBuildWrapper("None", "SETUP", settings=settings) as wrapper:
            with caplog.at_level(logging.INFO, logger="scriptwrap.runtime.dispatcher"):
                wrapper.execute(Phase.SETUP, {"build": "b"})
        messages = [r.getMessage() for r in caplog.records]
        assert "Binding variables:" in messages
        assert "  build='b' (str)" in messages
