"""
Blocks Kernel: Control Registry

Static catalog of the control types a field can be bound to.
Each control declares its value type and a settings schema; a field's settings
are always seeded from the schema defaults.

Read-only after import. There is no registration API.
"""

from __future__ import annotations

import copy
from typing import Any

from blockengine.kernel.types import ControlType, SettingDescriptor

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class UnknownControl(Exception):
    """Control name is not registered."""

    pass


# ---------------------------------------------------------------------------
# Shared setting descriptors
# ---------------------------------------------------------------------------

_HELP = SettingDescriptor("help", "Help Text", "text", "")
_PLACEHOLDER = SettingDescriptor("placeholder", "Placeholder Text", "text", "")
_MAXLENGTH = SettingDescriptor("maxlength", "Character Limit", "number_non_negative", None)
_OPTIONS = SettingDescriptor("options", "Choices", "options", [])


def _default(type: str, value: Any = "") -> SettingDescriptor:
    return SettingDescriptor("default", "Default Value", type, value)


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

_CATALOG: tuple[ControlType, ...] = (
    ControlType("text", "Text", "string", (_HELP, _default("text"), _PLACEHOLDER, _MAXLENGTH)),
    ControlType(
        "textarea",
        "Textarea",
        "string",
        (
            _HELP,
            _default("textarea"),
            _PLACEHOLDER,
            _MAXLENGTH,
            SettingDescriptor("number_rows", "Number of Rows", "number_non_negative", 4),
            SettingDescriptor("new_lines", "New Lines", "new_line_format", "none"),
        ),
    ),
    ControlType("number", "Number", "number", (_HELP, _default("number"), _PLACEHOLDER)),
    ControlType(
        "range",
        "Range",
        "number",
        (
            _HELP,
            SettingDescriptor("min", "Minimum Value", "number", 0),
            SettingDescriptor("max", "Maximum Value", "number", 100),
            SettingDescriptor("step", "Step Size", "number_non_negative", 1),
            _default("number"),
        ),
    ),
    ControlType("email", "Email", "string", (_HELP, _default("email"), _PLACEHOLDER)),
    ControlType("url", "URL", "string", (_HELP, _default("url"), _PLACEHOLDER)),
    ControlType("select", "Select", "string", (_HELP, _OPTIONS, _default("text"))),
    ControlType("multiselect", "Multi-Select", "array", (_HELP, _OPTIONS, _default("textarea_array", []))),
    ControlType("radio", "Radio", "string", (_HELP, _OPTIONS, _default("text"))),
    ControlType("checkbox", "Checkbox", "boolean", (_HELP, _default("checkbox", 0))),
    ControlType("toggle", "Toggle", "boolean", (_HELP, _default("checkbox", 0))),
    ControlType("color", "Color", "string", (_HELP, _default("color"))),
    ControlType(
        "repeater",
        "Repeater",
        "array",
        (
            _HELP,
            SettingDescriptor("min", "Minimum Rows", "number_non_negative", None),
            SettingDescriptor("max", "Maximum Rows", "number_non_negative", None),
        ),
    ),
)

CONTROLS: dict[str, ControlType] = {c.name: c for c in _CATALOG}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def get_control(name: str) -> ControlType | None:
    """Lookup a control by name. None if not registered."""
    return CONTROLS.get(name)


def get_default_settings(name: str) -> dict[str, Any]:
    """
    The control's declared default settings.
    Returns a fresh copy: callers may mutate it.
    """
    control = CONTROLS.get(name)
    if control is None:
        raise UnknownControl(name)
    return copy.deepcopy(control.default_settings)


def list_controls() -> list[ControlType]:
    """All controls, in catalog order."""
    return list(_CATALOG)
