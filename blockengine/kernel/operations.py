"""
Blocks Kernel: Operation Construction & Validation

Every change to a block definition goes through one of six operation types.
Validation here is structural (well-formed?) not semantic (will it apply?).
The reducer handles semantic checks (does the field exist? is the name free?).
"""

from __future__ import annotations

from typing import Any

from blockengine.kernel.types import OPERATION_TYPES, FieldRef, Operation, now_iso

# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


def make_operation(type: str, payload: dict[str, Any], *, timestamp: str | None = None) -> Operation:
    """
    Build an Operation, normalizing any FieldRef in the payload to its dict form
    so the operation stays serializable.
    """
    p = dict(payload)
    if isinstance(p.get("ref"), FieldRef):
        p["ref"] = p["ref"].to_dict()
    elif isinstance(p.get("ref"), str):
        p["ref"] = FieldRef.parse(p["ref"]).to_dict()
    return Operation(type=type, payload=p, timestamp=timestamp or now_iso())


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_operation(type: str, payload: dict[str, Any]) -> list[str]:
    """
    Validate an operation's type and payload structure.
    Returns a list of error strings. Empty list = valid.

    It does NOT check whether referenced fields or controls exist.
    That's the reducer's job.
    """
    errors: list[str] = []

    if type not in OPERATION_TYPES:
        errors.append(f"Unknown operation type: {type}")
        return errors

    if not isinstance(payload, dict):
        errors.append("Payload must be a non-null object")
        return errors

    validator = _VALIDATORS.get(type)
    if validator:
        errors.extend(validator(payload))

    return errors


def _validate_ref(p: dict, op: str) -> list[str]:
    if "ref" not in p:
        return [f"{op} requires 'ref'"]
    ref = p["ref"]
    if isinstance(ref, FieldRef | str):
        return [] if ref else [f"{op}: 'ref' must not be empty"]
    if not isinstance(ref, dict):
        return [f"{op}: 'ref' must be an object"]
    errors: list[str] = []
    if not isinstance(ref.get("name"), str) or not ref.get("name"):
        errors.append(f"{op}: 'ref.name' must be a non-empty string")
    if ref.get("parent") is not None and not isinstance(ref["parent"], str):
        errors.append(f"{op}: 'ref.parent' must be a string")
    return errors


def _validate_optional_parent(p: dict, op: str) -> list[str]:
    if p.get("parent") is not None and not isinstance(p["parent"], str):
        return [f"{op}: 'parent' must be a string"]
    return []


def _validate_field_add(p: dict) -> list[str]:
    errors: list[str] = []
    if not isinstance(p.get("location"), str):
        errors.append("field.add requires 'location'")
    errors.extend(_validate_optional_parent(p, "field.add"))
    return errors


def _validate_field_change_control(p: dict) -> list[str]:
    errors = _validate_ref(p, "field.change_control")
    if not isinstance(p.get("control"), str) or not p.get("control"):
        errors.append("field.change_control requires 'control'")
    return errors


def _validate_field_update(p: dict) -> list[str]:
    errors = _validate_ref(p, "field.update")
    if "settings" not in p:
        errors.append("field.update requires 'settings'")
    elif not isinstance(p["settings"], dict):
        errors.append("'settings' must be an object")
    return errors


def _validate_field_remove(p: dict) -> list[str]:
    return _validate_ref(p, "field.remove")


def _validate_field_duplicate(p: dict) -> list[str]:
    return _validate_ref(p, "field.duplicate")


def _validate_fields_reorder(p: dict) -> list[str]:
    errors: list[str] = []
    for key in ("from_index", "to_index"):
        value = p.get(key)
        if not isinstance(value, int) or isinstance(value, bool):
            errors.append(f"fields.reorder requires integer '{key}'")
    if not isinstance(p.get("location"), str):
        errors.append("fields.reorder requires 'location'")
    errors.extend(_validate_optional_parent(p, "fields.reorder"))
    return errors


_VALIDATORS = {
    "field.add": _validate_field_add,
    "field.change_control": _validate_field_change_control,
    "field.update": _validate_field_update,
    "field.remove": _validate_field_remove,
    "field.duplicate": _validate_field_duplicate,
    "fields.reorder": _validate_fields_reorder,
}
