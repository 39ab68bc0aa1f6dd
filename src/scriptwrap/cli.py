"""
Command line tool for checking and dry-running wrapper scripts.

Commands:
- phases: List the modes a wrapper can be configured with
- check: Compile the script in a job file and report errors
- run: Run one phase of a job file's script against stub build objects
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from . import __version__
from .core.config import load_wrapper_config
from .core.errors import ExecutionError, ScriptWrapError
from .core.phases import Phase
from .core.settings import get_settings
from .runtime.descriptor import DESCRIPTOR
from .runtime.wrapper import ScriptBuildWrapper

app = typer.Typer(
    help="Check and dry-run script build wrapper job files",
    no_args_is_help=True,
)

console = Console()


class _StubBuild:
    def __init__(self, display_name: str):
        self.display_name = display_name

    def __repr__(self) -> str:
        return f"<build {self.display_name}>"


class _StubLauncher:
    """Records commands instead of starting processes."""

    def __init__(self) -> None:
        self.commands: list[list[str]] = []

    def launch(self, cmd: Any, env: Any = None, cwd: Any = None) -> int:
        self.commands.append(list(cmd))
        console.print(f"[dim]launch (dry-run): {' '.join(cmd)}[/dim]")
        return 0


class _StubListener:
    def __init__(self) -> None:
        self.logger = sys.stdout


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"scriptwrap {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version"
    ),
) -> None:
    """Check and dry-run script build wrapper job files."""


def _configure_logging(verbose: bool) -> None:
    level = "DEBUG" if verbose else get_settings().log_level
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def _parse_vars(items: list[str]) -> dict[str, str]:
    variables: dict[str, str] = {}
    for item in items:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected KEY=VALUE, got '{item}'", param_hint="--var")
        variables[key] = value
    return variables


def _load_wrapper(job_file: Path) -> ScriptBuildWrapper:
    try:
        return ScriptBuildWrapper.from_config(load_wrapper_config(job_file))
    except ScriptWrapError as e:
        console.print(f"[red]{type(e).__name__}[/red] in {job_file}")
        console.print(str(e), markup=False, highlight=False)
        raise typer.Exit(1)


@app.command("phases")
def phases_command() -> None:
    """List the phases a wrapper script can be attached to."""
    table = Table(title=DESCRIPTOR.display_name)
    table.add_column("Mode")
    table.add_column("Label")
    table.add_column("Default")

    default = DESCRIPTOR.default_mode()
    for name, label in DESCRIPTOR.mode_values():
        table.add_row(name, label, "*" if name == default.value else "")

    console.print(table)


@app.command("check")
def check_command(
    job_file: Path = typer.Argument(..., help="TOML job file with a [script-build-wrapper] table"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Compile the script in a job file."""
    _configure_logging(verbose)
    with _load_wrapper(job_file) as wrapper:
        console.print(f"[green]OK[/green] {job_file} (mode: {wrapper.mode.value})")


@app.command("run")
def run_command(
    job_file: Path = typer.Argument(..., help="TOML job file with a [script-build-wrapper] table"),
    phase: Phase = typer.Option(..., "--phase", "-p", help="Phase to run"),
    var: list[str] = typer.Option([], "--var", help="Variable for the vars map, KEY=VALUE"),
    build_name: str = typer.Option("dry-run #1", "--build-name", help="Stub build display name"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Run one phase of a job file's script against stub build objects."""
    _configure_logging(verbose)
    if phase is Phase.ALL:
        console.print("[red]ALL is not an executable phase[/red]")
        raise typer.Exit(2)

    variables = _parse_vars(var)
    build = _StubBuild(build_name)
    launcher = _StubLauncher()
    listener = _StubListener()

    with _load_wrapper(job_file) as wrapper:
        if not wrapper.applies_to(phase):
            console.print(
                f"[yellow]Mode {wrapper.mode.value} does not cover {phase.value}; "
                "default behavior applies[/yellow]"
            )
        try:
            outcome = _run_phase(wrapper, phase, build, launcher, listener, variables)
        except ExecutionError as e:
            console.print(f"[red]Script failed in {e.phase.value}[/red]: {e.cause!r}")
            raise typer.Exit(1)

    console.print(f"Result: {outcome}")
    if phase in (Phase.BUILD_VARIABLES, Phase.ENVIRONMENT_VARIABLES):
        table = Table(title="vars")
        table.add_column("Name")
        table.add_column("Value")
        for key, value in sorted(variables.items()):
            table.add_row(key, str(value))
        console.print(table)


def _run_phase(
    wrapper: ScriptBuildWrapper,
    phase: Phase,
    build: _StubBuild,
    launcher: _StubLauncher,
    listener: _StubListener,
    variables: dict[str, str],
) -> str:
    if phase is Phase.SETUP:
        return type(wrapper.set_up(build, launcher, listener)).__name__
    if phase is Phase.TEAR_DOWN:
        environment = wrapper.set_up(build, launcher, listener)
        return str(environment.tear_down(build, listener))
    if phase is Phase.DECORATE_LAUNCHER:
        decorated = wrapper.decorate_launcher(build, launcher, listener)
        return "unchanged" if decorated is launcher else f"replaced by {decorated!r}"
    if phase is Phase.DECORATE_LOGGER:
        decorated = wrapper.decorate_logger(build, listener.logger)
        return "unchanged" if decorated is listener.logger else f"replaced by {decorated!r}"
    if phase is Phase.BUILD_VARIABLES:
        wrapper.make_build_variables(build, variables)
        return "done"
    environment = wrapper.set_up(build, launcher, listener)
    environment.build_env_vars(variables)
    return "done"


def main() -> None:
    app()


if __name__ == "__main__":
    main()
