"""
Execution context assembly.

Every script run gets a fresh bindings dict holding the phase-specific
inputs plus two implicit entries, each under two names:

- ``mode`` (alias ``phase``): the Phase being executed
- ``container`` (alias ``config``): a read-only ConfigView of the owning wrapper
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from ..core.phases import Phase

logger = logging.getLogger(__name__)

PHASE_BINDINGS = ("mode", "phase")
CONFIG_BINDINGS = ("container", "config")

IMPLICIT_BINDINGS = frozenset(PHASE_BINDINGS + CONFIG_BINDINGS)


@dataclass(frozen=True)
class ConfigView:
    """Immutable view of a wrapper's configuration, visible to its script."""

    source: str
    mode: Phase
    version: int
    display_name: str


def build_context(
    phase: Phase, inputs: Mapping[str, Any], container: ConfigView
) -> dict[str, Any]:
    """
    Build the bindings for one script run.

    Args:
        phase: Phase being executed
        inputs: Phase-specific inputs supplied by the hook facade
        container: View of the wrapper that owns the script

    Returns:
        New dict of variable name to value
    """
    context = dict(inputs)
    for name in IMPLICIT_BINDINGS & context.keys():
        logger.warning("Input '%s' is reserved and will be replaced", name)
    for name in PHASE_BINDINGS:
        context[name] = phase
    for name in CONFIG_BINDINGS:
        context[name] = container
    return context
