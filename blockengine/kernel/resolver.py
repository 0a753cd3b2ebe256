"""
Blocks Kernel: Value Resolver

Turns a field's stored runtime value (or its absence) into the two
representations a template sees:

  display : human-facing text ("Yes", "Red, Blue", "56")
  value   : what conditional/template logic works with ("1", "", ["red", "blue"])

One resolver per control. A missing value (None) falls back to
settings["default"]; an explicit value always wins, even an empty one.

Both entry points fail closed: an unknown control or a malformed value
resolves to "" and never raises, so one bad field can't blank a block.
"""

from __future__ import annotations

import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

_CHECKED_VALUES = {"1", "true", "yes", "on"}


# ---------------------------------------------------------------------------
# Resolvers
# ---------------------------------------------------------------------------


class ControlResolver:
    """Strings pass through. Base for every control."""

    def display(self, raw: Any, settings: dict[str, Any]) -> Any:
        return self.value(raw, settings)

    def value(self, raw: Any, settings: dict[str, Any]) -> Any:
        if raw is None:
            return ""
        if isinstance(raw, list | dict):
            return ""
        return str(raw)


class NumberResolver(ControlResolver):
    def value(self, raw: Any, settings: dict[str, Any]) -> Any:
        if isinstance(raw, bool) or raw is None:
            return ""
        if isinstance(raw, float) and raw.is_integer():
            return str(int(raw))
        if isinstance(raw, int | float):
            return str(raw)
        if isinstance(raw, str):
            return raw.strip()
        return ""


class TextareaResolver(ControlResolver):
    """Display honours the new_lines setting; value stays raw."""

    def display(self, raw: Any, settings: dict[str, Any]) -> Any:
        text = self.value(raw, settings)
        mode = settings.get("new_lines", "none")
        if not text or mode == "none":
            return text
        if mode == "autobr":
            return re.sub(r"\r?\n", "<br />\n", text)
        if mode == "autop":
            paragraphs = re.split(r"(?:\r?\n){2,}", text.strip())
            return "\n".join(f"<p>{p.strip()}</p>" for p in paragraphs if p.strip())
        return text


class BooleanResolver(ControlResolver):
    """checkbox, toggle: Yes/No for display, "1"/"" for value."""

    def display(self, raw: Any, settings: dict[str, Any]) -> Any:
        return "Yes" if _is_checked(raw) else "No"

    def value(self, raw: Any, settings: dict[str, Any]) -> Any:
        return "1" if _is_checked(raw) else ""


class MultiselectResolver(ControlResolver):
    """Display joins option labels; value is the list of selected values."""

    def display(self, raw: Any, settings: dict[str, Any]) -> Any:
        labels = _option_labels(settings.get("options"))
        return ", ".join(labels.get(v, v) for v in self.value(raw, settings))

    def value(self, raw: Any, settings: dict[str, Any]) -> Any:
        if raw is None or raw == "":
            return []
        if isinstance(raw, list | tuple):
            return [str(v) for v in raw if v is not None and not isinstance(v, list | dict)]
        if isinstance(raw, dict):
            return []
        return [str(raw)]


class RepeaterResolver(ControlResolver):
    """Rows are rendered by the renderer; the display itself is empty."""

    def display(self, raw: Any, settings: dict[str, Any]) -> Any:
        return ""

    def value(self, raw: Any, settings: dict[str, Any]) -> Any:
        return repeater_rows(raw)


RESOLVERS: dict[str, ControlResolver] = {
    "text": ControlResolver(),
    "textarea": TextareaResolver(),
    "number": NumberResolver(),
    "range": NumberResolver(),
    "email": ControlResolver(),
    "url": ControlResolver(),
    "select": ControlResolver(),
    "multiselect": MultiselectResolver(),
    "radio": ControlResolver(),
    "checkbox": BooleanResolver(),
    "toggle": BooleanResolver(),
    "color": ControlResolver(),
    "repeater": RepeaterResolver(),
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def resolve_field_display(field: dict[str, Any], raw: Any = None) -> Any:
    """The human-facing representation of a field's value."""
    return _resolve(field, raw, "display")


def resolve_field_value(field: dict[str, Any], raw: Any = None) -> Any:
    """The representation used by template conditionals."""
    return _resolve(field, raw, "value")


def repeater_rows(raw: Any) -> list[dict[str, Any]]:
    """
    Runtime rows for a repeater. Accepts a list of row mappings
    or the stored {"rows": [...]} shape. Anything else has no rows.
    """
    if isinstance(raw, dict):
        raw = raw.get("rows")
    if not isinstance(raw, list):
        return []
    return [row for row in raw if isinstance(row, dict)]


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _resolve(field: dict[str, Any], raw: Any, kind: str) -> Any:
    control = field.get("control")
    resolver = RESOLVERS.get(control)
    if resolver is None:
        logger.warning("resolver: unknown control %r on field %r", control, field.get("name"))
        return ""

    settings = field.get("settings") or {}
    if raw is None:
        raw = settings.get("default")

    try:
        if kind == "display":
            return resolver.display(raw, settings)
        return resolver.value(raw, settings)
    except Exception:
        logger.warning("resolver: could not resolve field %r (%s)", field.get("name"), control, exc_info=True)
        return ""


def _is_checked(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, int | float):
        return raw != 0
    if isinstance(raw, str):
        return raw.strip().lower() in _CHECKED_VALUES
    return False


def _option_labels(options: Any) -> dict[str, str]:
    """value → label from [{"label", "value"}] options. Malformed entries are skipped."""
    labels: dict[str, str] = {}
    if not isinstance(options, list):
        return labels
    for option in options:
        if isinstance(option, dict) and "value" in option:
            labels[str(option["value"])] = str(option.get("label") or option["value"])
    return labels
