"""
Script build wrapper: the hook entry points a build orchestrator calls.

One wrapper holds one script and one mode. At each lifecycle hook the
wrapper runs the script when its mode covers the hook's phase, and
otherwise (or when the script produces no usable result) falls back to
the default behavior:

    =====================  ==========================  ======================
    Phase                  Script variables            Default
    =====================  ==========================  ======================
    SETUP                  build, launcher, listener   default Environment
    TEAR_DOWN              build, launcher             teardown succeeds
    DECORATE_LAUNCHER      build, launcher, listener   launcher unchanged
    DECORATE_LOGGER        build, logger               logger unchanged
    BUILD_VARIABLES        build, vars                 vars unchanged
    ENVIRONMENT_VARIABLES  build, vars                 vars unchanged
    =====================  ==========================  ======================

Every script also sees ``mode`` (alias ``phase``) and ``container``
(alias ``config``).

Example:
    >>> wrapper = ScriptBuildWrapper('vars["X"] = "1"', "ENVIRONMENT_VARIABLES")
    >>> env = wrapper.set_up(build, launcher, listener)
    >>> variables = {}
    >>> env.build_env_vars(variables)
    >>> variables
    {'X': '1'}
"""

from __future__ import annotations

import itertools
import logging
import threading
from collections.abc import Iterator, Mapping, MutableMapping
from contextlib import ExitStack, contextmanager
from typing import Any

from ..core.config import WrapperConfig
from ..core.errors import ScriptWrapError
from ..core.phases import Phase
from ..core.settings import EngineSettings, get_settings
from .compiler import CompiledUnit, ScriptCompiler
from .context import ConfigView
from .descriptor import DESCRIPTOR, ScriptBuildWrapperDescriptor
from .dispatcher import Dispatcher, ScriptResult
from .protocols import Build, BuildListener, Launcher, OutputStream

logger = logging.getLogger(__name__)

_wrapper_ids = itertools.count(1)


class Environment:
    """
    Per-build object returned from setup.

    Scripts running in SETUP may return their own subclass.
    """

    def tear_down(self, build: Build, listener: BuildListener) -> bool:
        """Run teardown; return False to mark the build as failed."""
        return True

    def build_env_vars(self, env: MutableMapping[str, str]) -> None:
        """Add or change environment variables for processes the build launches."""

    def contribute_vars(self, build: Build, env: MutableMapping[str, str]) -> None:
        self.build_env_vars(env)


class _ScriptEnvironment(Environment):
    """Default environment; re-enters the wrapper's script for teardown and env vars."""

    def __init__(
        self,
        wrapper: ScriptBuildWrapper,
        build: Build,
        launcher: Launcher,
        listener: BuildListener,
    ):
        self._wrapper = wrapper
        self._build = build
        self._launcher = launcher
        self._listener = listener

    def tear_down(self, build: Build, listener: BuildListener) -> bool:
        logger.debug("tearDown")
        result = self._wrapper.execute(
            Phase.TEAR_DOWN,
            {"build": build, "launcher": self._launcher},
            bool,
            listener=listener,
        )
        if result.usable:
            return result.value
        return True

    def build_env_vars(self, env: MutableMapping[str, str]) -> None:
        logger.debug("buildEnvVars")
        self._wrapper.execute(
            Phase.ENVIRONMENT_VARIABLES,
            {"build": self._build, "vars": env},
        )


class ScriptBuildWrapper:
    """
    Runs a user script at build lifecycle hooks.

    The script is compiled when the wrapper is constructed and again on
    every reload; an invalid script fails fast with CompileError. Parallel
    builds may share one wrapper.

    Raises:
        ConfigError: If mode is unknown or source is empty
        CompileError: If source is not valid Python
    """

    descriptor: ScriptBuildWrapperDescriptor = DESCRIPTOR

    def __init__(
        self,
        source: str,
        mode: str | Phase,
        *,
        compiler: ScriptCompiler | None = None,
        settings: EngineSettings | None = None,
    ):
        self._setup(WrapperConfig.create(source, mode), compiler, settings)

    @classmethod
    def from_config(cls, config: WrapperConfig, **kwargs: Any) -> ScriptBuildWrapper:
        return cls(config.source, config.mode, **kwargs)

    def _setup(
        self,
        config: WrapperConfig,
        compiler: ScriptCompiler | None,
        settings: EngineSettings | None,
    ) -> None:
        self._config = config
        self.settings = settings or get_settings()
        self._compiler = compiler or ScriptCompiler(self.settings)
        self._name = f"{type(self).__name__}_{next(_wrapper_ids)}"
        self._versions = itertools.count(1)
        self._lock = threading.Lock()
        self._unit: CompiledUnit | None = None
        self._closed = False
        self._dispatcher = Dispatcher(self)
        self._compile()

    # -- configuration -------------------------------------------------------

    @property
    def source(self) -> str:
        return self._config.source

    @property
    def mode(self) -> Phase:
        return self._config.mode

    @property
    def version(self) -> int:
        """Version of the currently installed compiled unit (0 once closed)."""
        unit = self._unit
        return unit.version if unit is not None else 0

    @property
    def closed(self) -> bool:
        return self._closed

    def to_config(self) -> WrapperConfig:
        return self._config

    def view(self, unit: CompiledUnit) -> ConfigView:
        return ConfigView(
            source=unit.source,
            mode=self.mode,
            version=unit.version,
            display_name=self.descriptor.display_name,
        )

    # -- compiled unit lifecycle --------------------------------------------

    def _compile(self) -> None:
        unit = self._compiler.compile(self.source, self._name, next(self._versions))
        with self._lock:
            if self._closed:
                unit.retire()
                raise ScriptWrapError(f"{self._name} is closed")
            if self._unit is not None and self._unit.version > unit.version:
                # a concurrent reload already installed a newer unit
                previous = unit
            else:
                previous, self._unit = self._unit, unit
        if previous is not None:
            previous.retire()

    def reload(self) -> None:
        """Recompile the stored source and replace the current compiled unit."""
        logger.debug("Reloading %s", self._name)
        self._compile()

    @contextmanager
    def lease_unit(self) -> Iterator[CompiledUnit]:
        """Hold the current compiled unit for one run."""
        with ExitStack() as stack:
            with self._lock:
                if self._closed or self._unit is None:
                    raise ScriptWrapError(f"{self._name} is closed")
                unit = stack.enter_context(self._unit.lease())
            yield unit

    def close(self) -> None:
        """Release the compiled unit. Safe to call more than once."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            unit, self._unit = self._unit, None
        if unit is not None:
            unit.retire()

    def __enter__(self) -> ScriptBuildWrapper:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __getstate__(self) -> dict[str, str]:
        return {"source": self.source, "mode": self.mode.value}

    def __setstate__(self, state: dict[str, str]) -> None:
        self._setup(WrapperConfig.create(state["source"], state["mode"]), None, None)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(mode={self.mode.value}, version={self.version})"

    # -- hooks ----------------------------------------------------------------

    def applies_to(self, phase: Phase) -> bool:
        return self._dispatcher.applies_to(phase)

    def execute(
        self,
        phase: Phase,
        inputs: Mapping[str, Any],
        expected_type: type | None = None,
        *,
        listener: BuildListener | None = None,
    ) -> ScriptResult:
        return self._dispatcher.execute(phase, inputs, expected_type, listener=listener)

    def set_up(self, build: Build, launcher: Launcher, listener: BuildListener) -> Environment:
        logger.debug("setUp")
        result = self.execute(
            Phase.SETUP,
            {"build": build, "launcher": launcher, "listener": listener},
            Environment,
        )
        if result.usable:
            return result.value
        return _ScriptEnvironment(self, build, launcher, listener)

    def decorate_launcher(
        self, build: Build, launcher: Launcher, listener: BuildListener
    ) -> Launcher:
        logger.debug("decorateLauncher")
        result = self.execute(
            Phase.DECORATE_LAUNCHER,
            {"build": build, "launcher": launcher, "listener": listener},
            Launcher,
        )
        if result.usable:
            return result.value
        return launcher

    def decorate_logger(self, build: Build, logger_stream: OutputStream) -> OutputStream:
        logger.debug("decorateLogger")
        result = self.execute(
            Phase.DECORATE_LOGGER,
            {"build": build, "logger": logger_stream},
            OutputStream,
        )
        if result.usable:
            return result.value
        return logger_stream

    def make_build_variables(self, build: Build, variables: MutableMapping[str, str]) -> None:
        logger.debug("makeBuildVariables")
        self.execute(Phase.BUILD_VARIABLES, {"build": build, "vars": variables})
