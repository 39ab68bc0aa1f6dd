"""
Lifecycle phases a build wrapper script can be attached to.

A wrapper is configured with one phase (its mode). The script runs for
that phase only, or for every phase when the mode is ``ALL``.
"""

from __future__ import annotations

from enum import StrEnum

from .errors import ConfigError


class Phase(StrEnum):
    """Points in a build's lifecycle where a script may run."""

    SETUP = "SETUP"
    TEAR_DOWN = "TEAR_DOWN"
    DECORATE_LAUNCHER = "DECORATE_LAUNCHER"
    DECORATE_LOGGER = "DECORATE_LOGGER"
    BUILD_VARIABLES = "BUILD_VARIABLES"
    ENVIRONMENT_VARIABLES = "ENVIRONMENT_VARIABLES"
    ALL = "ALL"

    @property
    def label(self) -> str:
        """Human readable name, e.g. ``Decorate launcher``."""
        return self.value.replace("_", " ").capitalize()

    @property
    def is_concrete(self) -> bool:
        return self is not Phase.ALL

    @classmethod
    def parse(cls, text: str) -> Phase:
        """
        Convert a persisted mode name into a Phase.

        Names are case-sensitive and must match exactly.

        Raises:
            ConfigError: If the name is not a known phase
        """
        try:
            return cls(text)
        except ValueError:
            valid = ", ".join(p.value for p in cls)
            raise ConfigError(f"Unknown mode '{text}' (valid: {valid})") from None


CONCRETE_PHASES: tuple[Phase, ...] = tuple(p for p in Phase if p.is_concrete)


def matches(configured: Phase, requested: Phase) -> bool:
    """Return True if a wrapper configured for ``configured`` runs in ``requested``."""
    return configured == requested or configured == Phase.ALL
