"""Tests for the scriptwrap command line tool."""

from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from scriptwrap.cli import app


@pytest.fixture
def cli_runner() -> CliRunner:
    return CliRunner()


def _job(tmp_path: Path, mode: str, source: str) -> Path:
    job = tmp_path / "job.toml"
    job.write_text(f"[script-build-wrapper]\nmode = \"{mode}\"\nsource = '''\n{source}'''\n")
    return job


def test_phases_lists_modes(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(app, ["phases"])
    assert result.exit_code == 0
    assert "DECORATE_LAUNCHER" in result.output
    assert "Script Build Wrapper" in result.output


def test_check_valid_job(cli_runner: CliRunner, tmp_path: Path) -> None:
    job = _job(tmp_path, "SETUP", "x = 1\n")
    result = cli_runner.invoke(app, ["check", str(job)])
    assert result.exit_code == 0
    assert "OK" in result.output


def test_check_reports_compile_error(cli_runner: CliRunner, tmp_path: Path) -> None:
    job = _job(tmp_path, "SETUP", "def broken(:\n")
    result = cli_runner.invoke(app, ["check", str(job)])
    assert result.exit_code == 1
    assert "CompileError" in result.output


def test_check_reports_config_error(cli_runner: CliRunner, tmp_path: Path) -> None:
    job = _job(tmp_path, "sometimes", "x = 1\n")
    result = cli_runner.invoke(app, ["check", str(job)])
    assert result.exit_code == 1
    assert "ConfigError" in result.output


def test_run_environment_variables(cli_runner: CliRunner, tmp_path: Path) -> None:
    job = _job(tmp_path, "ENVIRONMENT_VARIABLES", "vars['GREETING'] = vars['NAME'].upper()\n")
    result = cli_runner.invoke(
        app, ["run", str(job), "--phase", "ENVIRONMENT_VARIABLES", "--var", "NAME=ada"]
    )
    assert result.exit_code == 0, result.output
    assert "GREETING" in result.output
    assert "ADA" in result.output


def test_run_teardown_result(cli_runner: CliRunner, tmp_path: Path) -> None:
    job = _job(tmp_path, "TEAR_DOWN", "False\n")
    result = cli_runner.invoke(app, ["run", str(job), "--phase", "TEAR_DOWN"])
    assert result.exit_code == 0
    assert "Result: False" in result.output


def test_run_not_covered_phase(cli_runner: CliRunner, tmp_path: Path) -> None:
    job = _job(tmp_path, "SETUP", "x = 1\n")
    result = cli_runner.invoke(app, ["run", str(job), "--phase", "DECORATE_LAUNCHER"])
    assert result.exit_code == 0
    assert "default behavior applies" in result.output
    assert "unchanged" in result.output


def test_run_script_failure(cli_runner: CliRunner, tmp_path: Path) -> None:
    job = _job(tmp_path, "BUILD_VARIABLES", "raise ValueError('nope')\n")
    result = cli_runner.invoke(app, ["run", str(job), "--phase", "BUILD_VARIABLES"])
    assert result.exit_code == 1
    assert "Script failed in BUILD_VARIABLES" in result.output


def test_run_rejects_bad_var(cli_runner: CliRunner, tmp_path: Path) -> None:
    job = _job(tmp_path, "BUILD_VARIABLES", "x = 1\n")
    result = cli_runner.invoke(app, ["run", str(job), "--phase", "BUILD_VARIABLES", "--var", "oops"])
    assert result.exit_code != 0


def test_run_rejects_all(cli_runner: CliRunner, tmp_path: Path) -> None:
    job = _job(tmp_path, "ALL", "x = 1\n")
    result = cli_runner.invoke(app, ["run", str(job), "--phase", "ALL"])
    assert result.exit_code == 2


def test_version(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert result.output.startswith("scriptwrap ")
