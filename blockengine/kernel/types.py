"""
Blocks Kernel: Shared Types

Data classes and constants used across controls, fields, reducer, resolver,
renderer, and assembly. These are the contracts that bind the kernel together.

A block definition is a plain nested dict (the persisted document):

    {
        "name": "testimonial",
        "title": "Testimonial",
        "icon": "format_quote",
        "category": {"slug": "widgets", "title": "Widgets", "icon": None},
        "keywords": ["quote"],
        "fields": {name: FieldDefinition},
        "excluded": [],
    }

Fields are plain dicts too:

    {
        "name": "price", "label": "Price", "control": "number", "type": "number",
        "order": 0, "location": "editor", "settings": {...},
        "parent": "rows",          # only on sub-fields
        "sub_fields": {...},       # only on repeaters with children
    }
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

SLUG_PATTERN = re.compile(r"^[a-z0-9][a-z0-9_-]{0,63}$")

LOCATIONS: tuple[str, ...] = ("editor", "inspector")
DEFAULT_LOCATION = "editor"

DEFAULT_CONTROL = "text"
REPEATER_CONTROL = "repeater"

NEW_FIELD_BASE = "new-field"

# Attributes that live on the field itself rather than in its settings
FIELD_ATTRIBUTES: set[str] = {"name", "label", "location"}

# Structural keys a settings update may not touch
RESERVED_FIELD_KEYS: set[str] = {"control", "type", "order", "parent", "settings", "sub_fields", "name_counters"}

OPERATION_TYPES: set[str] = {
    "field.add",
    "field.change_control",
    "field.update",
    "field.remove",
    "field.duplicate",
    "fields.reorder",
}

# Block attributes exposed as top-level template slots
RESERVED_ATTRIBUTES: tuple[str, ...] = ("className", "align", "anchor")


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SettingDescriptor:
    """One entry of a control's settings schema."""

    name: str
    label: str
    type: str
    default: Any = None


@dataclass(frozen=True)
class ControlType:
    """A reusable field-type template."""

    name: str
    label: str
    type: str  # "string" | "array" | "number" | "boolean"
    settings_schema: tuple[SettingDescriptor, ...] = ()

    @property
    def default_settings(self) -> dict[str, Any]:
        return {s.name: s.default for s in self.settings_schema}

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "label": self.label,
            "type": self.type,
            "settings": [
                {"name": s.name, "label": s.label, "type": s.type, "default": s.default}
                for s in self.settings_schema
            ],
        }


@dataclass(frozen=True)
class FieldRef:
    """
    Points at one field in a definition.
    Top-level fields have no parent; sub-fields name their repeater.
    """

    name: str
    parent: str | None = None

    @classmethod
    def parse(cls, path: str) -> FieldRef:
        """
        Parse "name" or "parent/name".

          "price"           → FieldRef("price")
          "slides/caption"  → FieldRef("caption", parent="slides")
        """
        if "/" in path:
            parent, _, name = path.partition("/")
            return cls(name=name, parent=parent or None)
        return cls(name=path)

    @classmethod
    def from_value(cls, value: Any) -> FieldRef:
        """Accept a FieldRef, a path string, or a {"name", "parent"} mapping."""
        if isinstance(value, FieldRef):
            return value
        if isinstance(value, str):
            return cls.parse(value)
        return cls(name=value["name"], parent=value.get("parent"))

    @classmethod
    def from_field(cls, field: dict[str, Any]) -> FieldRef:
        """The ref of a field dict, read from its own name and parent."""
        return cls(name=field["name"], parent=field.get("parent"))

    @property
    def path(self) -> str:
        return f"{self.parent}/{self.name}" if self.parent else self.name

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"name": self.name}
        if self.parent is not None:
            d["parent"] = self.parent
        return d


@dataclass
class Operation:
    """
    One editor action against a block definition.
    The reducer reads only `type` and `payload`.
    """

    type: str
    payload: dict[str, Any]
    timestamp: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"type": self.type, "payload": self.payload}
        if self.timestamp is not None:
            d["timestamp"] = self.timestamp
        return d

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Operation:
        return cls(type=d["type"], payload=d.get("payload", {}), timestamp=d.get("timestamp"))


@dataclass
class Warning:
    """A non-fatal issue encountered during reduction."""

    code: str
    message: str
    details: dict[str, Any] | None = None


@dataclass
class MutationResult:
    """
    Result of applying one operation to a definition.
    The reducer never throws: it always returns one of these.
    """

    definition: dict[str, Any]
    applied: bool
    warnings: list[Warning] = field(default_factory=list)
    error: str | None = None
    field_name: str | None = None  # the field created or renamed, when there is one

    @property
    def error_code(self) -> str | None:
        if self.error is None:
            return None
        return self.error.split(":", 1)[0]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def is_valid_slug(value: Any) -> bool:
    """Field names: lowercase letters, digits, hyphens, underscores; max 64 chars."""
    return isinstance(value, str) and bool(SLUG_PATTERN.match(value))


def is_valid_location(value: Any) -> bool:
    return value in LOCATIONS


def now_iso() -> str:
    """Current UTC time as ISO 8601 string."""
    return datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")
