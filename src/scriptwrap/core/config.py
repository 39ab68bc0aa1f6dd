"""
Persisted wrapper configuration.

Only two fields survive a reload: the script source and the mode.
Job files store them in TOML:

    [script-build-wrapper]
    mode = "ENVIRONMENT_VARIABLES"
    source = '''
    vars["BUILD_TAG"] = build.display_name
    '''
"""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigError, describe_errors
from .phases import Phase

CONFIG_TABLE = "script-build-wrapper"


class WrapperConfig(BaseModel):
    """Source text and mode of a script build wrapper."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    source: str = Field(min_length=1, description="Python source of the script")
    mode: Phase = Field(default=Phase.SETUP, description="Phase the script runs in")

    @field_validator("mode", mode="before")
    @classmethod
    def exact_mode_name(cls, value: Any) -> Any:
        # Exact, case-sensitive phase names only
        if isinstance(value, str) and not isinstance(value, Phase):
            try:
                return Phase.parse(value)
            except ConfigError as e:
                raise ValueError(e.message) from None
        return value

    @classmethod
    def create(cls, source: str, mode: str | Phase) -> WrapperConfig:
        """
        Validate and build a config, translating validation failures.

        Raises:
            ConfigError: If source is empty or mode is unknown
        """
        try:
            return cls(source=source, mode=mode)
        except ValidationError as e:
            raise ConfigError(f"Invalid wrapper configuration: {describe_errors(e.errors())}") from e


def load_wrapper_config(path: Path) -> WrapperConfig:
    """
    Load a wrapper configuration from a TOML job file.

    Args:
        path: Path to the job file

    Returns:
        Validated WrapperConfig

    Raises:
        ConfigError: If the file is missing, malformed, or lacks the wrapper table
    """
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError:
        raise ConfigError(f"Job file not found: {path}") from None
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e

    table = data.get(CONFIG_TABLE)
    if not isinstance(table, dict):
        raise ConfigError(f"No [{CONFIG_TABLE}] table in {path}")
    if "source" not in table:
        raise ConfigError(f"[{CONFIG_TABLE}] in {path} has no source")

    return WrapperConfig.create(source=table["source"], mode=table.get("mode", Phase.SETUP))


def dump_wrapper_config(config: WrapperConfig) -> str:
    """Render a config as a TOML job file fragment."""
    source = config.source
    if "'''" in source:
        raise ConfigError("Script source containing ''' cannot be written as TOML literal")
    if not source.endswith("\n"):
        source += "\n"
    return f"[{CONFIG_TABLE}]\nmode = \"{config.mode.value}\"\nsource = '''\n{source}'''\n"
