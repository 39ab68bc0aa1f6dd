"""
Configuration form metadata for the script build wrapper.
"""

from __future__ import annotations

from typing import Any

from ..core.phases import Phase


class ScriptBuildWrapperDescriptor:
    """Display name, selectable modes, and default mode for the job form."""

    display_name = "Script Build Wrapper"

    def is_applicable(self, project: Any) -> bool:
        """Script wrappers can be attached to any project."""
        return True

    def mode_values(self) -> list[tuple[str, str]]:
        """(name, label) pairs for every selectable mode."""
        return [(phase.value, phase.label) for phase in Phase]

    def default_mode(self) -> Phase:
        return Phase.SETUP

    def is_selected(self, value: Any, config_value: Any, default_value: Any) -> bool:
        """
        Whether ``value`` should be pre-selected in the form.

        A value is selected when it equals the configured value, or when
        nothing is configured and it equals the default.
        """
        if value is None:
            raise ValueError("value must not be None")
        return value == config_value or (config_value is None and value == default_value)


DESCRIPTOR = ScriptBuildWrapperDescriptor()
