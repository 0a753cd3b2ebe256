"""
Blocks Kernel: Persisted Document Shape

Validation for block definitions coming back from storage (or from a client
replacing a whole definition). A document either validates completely or is
rejected with MalformedDefinition; nothing is partially applied.

Top-level keys: name, title, icon, category, keywords, fields, excluded
(+ the optional name_counters slug bookkeeping).
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from blockengine.kernel.controls import get_control
from blockengine.kernel.types import LOCATIONS, REPEATER_CONTROL, is_valid_slug

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class MalformedDefinition(Exception):
    """A block definition document fails schema validation."""

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class CategoryDocument(BaseModel):
    slug: str = ""
    title: str = ""
    icon: str | None = None


class FieldDocument(BaseModel):
    """One field. Sub-fields nest one level, under a repeater."""

    name: str
    label: str = ""
    control: str
    type: str | None = None
    order: int = Field(default=0, ge=0)
    location: str | None = None
    parent: str | None = None
    settings: dict[str, Any] = Field(default_factory=dict)
    sub_fields: dict[str, FieldDocument] | None = None
    name_counters: dict[str, int] | None = None

    @field_validator("name")
    @classmethod
    def _slug(cls, v: str) -> str:
        if not is_valid_slug(v):
            raise ValueError(f"invalid field name {v!r}")
        return v

    @field_validator("location")
    @classmethod
    def _location(cls, v: str | None) -> str | None:
        if v is not None and v not in LOCATIONS:
            raise ValueError(f"unknown location {v!r}")
        return v

    @model_validator(mode="after")
    def _control(self) -> FieldDocument:
        control = get_control(self.control)
        if control is None:
            raise ValueError(f"unknown control {self.control!r}")
        if self.type is None:
            self.type = control.type
        if self.sub_fields is not None and self.control != REPEATER_CONTROL:
            raise ValueError(f"'{self.name}' has sub_fields but is not a repeater")
        for key, child in (self.sub_fields or {}).items():
            if key != child.name:
                raise ValueError(f"sub-field key {key!r} does not match name {child.name!r}")
            if child.parent != self.name:
                raise ValueError(f"sub-field {key!r} points at parent {child.parent!r}, not {self.name!r}")
            if child.sub_fields is not None:
                raise ValueError(f"sub-field {key!r} can't own sub_fields")
        return self


FieldDocument.model_rebuild()


class BlockDocument(BaseModel):
    name: str = Field(min_length=1)
    title: str = ""
    icon: str | None = None
    category: CategoryDocument = Field(default_factory=CategoryDocument)
    keywords: list[str] = Field(default_factory=list)
    fields: dict[str, FieldDocument] = Field(default_factory=dict)
    excluded: list[str] = Field(default_factory=list)
    name_counters: dict[str, int] | None = None

    @model_validator(mode="after")
    def _top_level(self) -> BlockDocument:
        for key, f in self.fields.items():
            if key != f.name:
                raise ValueError(f"field key {key!r} does not match name {f.name!r}")
            if f.parent is not None:
                raise ValueError(f"top-level field {key!r} has a parent")
        self.excluded = sorted(set(self.excluded))
        return self


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def validate_document(data: Any) -> dict[str, Any]:
    """
    Check a persisted block definition and return it normalized
    (denormalized `type` filled in, `excluded` deduplicated and sorted).
    Raises MalformedDefinition.
    """
    if not isinstance(data, dict):
        raise MalformedDefinition("block definition must be an object")
    try:
        doc = BlockDocument.model_validate(data)
    except ValidationError as e:
        errors = [f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}" for err in e.errors()]
        raise MalformedDefinition(f"invalid block definition: {errors[0]}", errors) from e
    return _clean(doc.model_dump())


def empty_definition(name: str, title: str = "") -> dict[str, Any]:
    """A block with no fields yet."""
    return {
        "name": name,
        "title": title,
        "icon": None,
        "category": {"slug": "", "title": "", "icon": None},
        "keywords": [],
        "fields": {},
        "excluded": [],
    }


_OPTIONAL_FIELD_KEYS = ("location", "parent", "sub_fields", "name_counters")


def _clean(doc: dict[str, Any]) -> dict[str, Any]:
    """Drop optional keys that were absent, so the document keeps its original shape."""
    if doc.get("name_counters") is None:
        doc.pop("name_counters", None)
    for f in doc["fields"].values():
        for child in (f.get("sub_fields") or {}).values():
            _clean_field(child)
        _clean_field(f)
    return doc


def _clean_field(f: dict[str, Any]) -> None:
    if not f.get("sub_fields"):
        f.pop("sub_fields", None)
    for key in _OPTIONAL_FIELD_KEYS:
        if f.get(key) is None:
            f.pop(key, None)
