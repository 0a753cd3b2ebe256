"""
Blocks Kernel: Field Mutation Engine

Pure function: (definition, operation) → MutationResult
No side effects. No IO. Deterministic.

The input definition is never modified. An applied operation returns a new
definition; a rejected one returns the input untouched plus an error of the
form "CODE: detail". Callers persist the returned definition as a whole.

Invariants kept by every operation:
  - names are unique within a namespace (top-level, or one repeater's sub_fields)
  - `order` is 0..n-1 within each (location, parent) group
  - a sub-field's `parent` names the repeater holding it
  - `sub_fields` exists only while the repeater has at least one child
"""

from __future__ import annotations

import copy
from typing import Any

from blockengine.kernel.controls import get_control, get_default_settings
from blockengine.kernel.fields import (
    count_in_location,
    field_location,
    get_fields_for_location,
    next_field_name,
    rerank_location,
    set_correct_order,
)
from blockengine.kernel.operations import make_operation, validate_operation
from blockengine.kernel.types import (
    DEFAULT_CONTROL,
    DEFAULT_LOCATION,
    FIELD_ATTRIBUTES,
    NEW_FIELD_BASE,
    REPEATER_CONTROL,
    RESERVED_FIELD_KEYS,
    FieldRef,
    MutationResult,
    Operation,
    Warning,
    is_valid_location,
    is_valid_slug,
)

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def reduce(definition: dict[str, Any], operation: Operation) -> MutationResult:
    """
    Apply one operation to a block definition.
    Returns the new definition + applied flag + warnings/error.
    """
    handler = _HANDLERS.get(operation.type)
    if handler is None:
        return MutationResult(
            definition=definition,
            applied=False,
            error=f"UNKNOWN_OPERATION: {operation.type}",
        )

    errors = validate_operation(operation.type, operation.payload)
    if errors:
        return MutationResult(definition=definition, applied=False, error=f"INVALID_OPERATION: {'; '.join(errors)}")

    # Deep copy so we never mutate the input
    draft = copy.deepcopy(definition)
    draft.setdefault("fields", {})
    result = handler(draft, operation.payload)
    if not result.applied:
        # Rejections never expose a half-edited draft
        result.definition = definition
    return result


def replay(definition: dict[str, Any], operations: list[Operation]) -> dict[str, Any]:
    """
    Fold a sequence of operations over a definition, skipping rejected ones.
    replay(d, [o1, o2]) == reduce(reduce(d, o1).definition, o2).definition
    """
    current = definition
    for operation in operations:
        result = reduce(current, operation)
        if result.applied:
            current = result.definition
    return current


def add_field(
    definition: dict[str, Any],
    location: str = DEFAULT_LOCATION,
    parent: str | None = None,
) -> MutationResult:
    """Append a new text field. result.field_name holds the generated name."""
    return reduce(definition, make_operation("field.add", {"location": location, "parent": parent}))


def change_control(definition: dict[str, Any], ref: FieldRef | str, control: str) -> MutationResult:
    return reduce(definition, make_operation("field.change_control", {"ref": ref, "control": control}))


def change_field_settings(
    definition: dict[str, Any],
    ref: FieldRef | str,
    settings: dict[str, Any],
) -> MutationResult:
    """Merge settings into a field. `location` relocates it, `name` renames it."""
    return reduce(definition, make_operation("field.update", {"ref": ref, "settings": settings}))


def delete_field(definition: dict[str, Any], ref: FieldRef | str) -> MutationResult:
    return reduce(definition, make_operation("field.remove", {"ref": ref}))


def duplicate_field(definition: dict[str, Any], ref: FieldRef | str) -> MutationResult:
    """Copy a field as <name>-<n>. result.field_name holds the copy's name."""
    return reduce(definition, make_operation("field.duplicate", {"ref": ref}))


def reorder_fields(
    definition: dict[str, Any],
    from_index: int,
    to_index: int,
    location: str,
    parent: str | None = None,
) -> MutationResult:
    """Swap two positions in a location's ordered fields."""
    return reduce(
        definition,
        make_operation(
            "fields.reorder",
            {"from_index": from_index, "to_index": to_index, "location": location, "parent": parent},
        ),
    )


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _reject(draft: dict, code: str, msg: str) -> MutationResult:
    return MutationResult(definition=draft, applied=False, error=f"{code}: {msg}")


def _ok(draft: dict, warnings: list[Warning] | None = None, field_name: str | None = None) -> MutationResult:
    return MutationResult(definition=draft, applied=True, warnings=warnings or [], field_name=field_name)


def _scope(draft: dict, parent: str | None) -> tuple[dict | None, dict | None]:
    """
    (owner, siblings) for a namespace.
    owner carries the namespace's name_counters: the definition for top-level
    fields, the repeater for its children. siblings is None when the repeater
    has no sub_fields yet. (None, None) if the parent doesn't exist.
    """
    if parent is None:
        return draft, draft["fields"]
    parent_field = draft["fields"].get(parent)
    if parent_field is None:
        return None, None
    return parent_field, parent_field.get("sub_fields")


def _lookup(draft: dict, ref: FieldRef) -> tuple[dict | None, dict | None, dict | None]:
    """(owner, siblings, field) for a ref, with None where anything is missing."""
    owner, siblings = _scope(draft, ref.parent)
    if not siblings or ref.name not in siblings:
        return owner, siblings, None
    return owner, siblings, siblings[ref.name]


def _rename_key(siblings: dict, old: str, new: str) -> dict:
    """Same mapping with one key renamed, keeping its position."""
    return {(new if key == old else key): value for key, value in siblings.items()}


def _append_order(siblings: dict, location: str, exclude: str | None = None) -> int:
    """An order that sorts after every field of the location group."""
    orders = [
        f.get("order", 0)
        for name, f in siblings.items()
        if name != exclude and field_location(f) == location
    ]
    return max(orders) + 1 if orders else 0


# ---------------------------------------------------------------------------
# Operation handlers
# ---------------------------------------------------------------------------


def _handle_field_add(draft: dict, p: dict) -> MutationResult:
    location = p["location"]
    parent = p.get("parent")

    if not is_valid_location(location):
        return _reject(draft, "INVALID_LOCATION", location)

    owner, siblings = _scope(draft, parent)
    if owner is None:
        return _reject(draft, "FIELD_NOT_FOUND", f"parent '{parent}'")
    if parent is not None and owner.get("control") != REPEATER_CONTROL:
        return _reject(draft, "INVALID_PARENT", f"'{parent}' is not a repeater")

    siblings = siblings if siblings is not None else {}
    name, number = next_field_name(owner, siblings, NEW_FIELD_BASE, bare_first=True)
    control = get_control(DEFAULT_CONTROL)

    new_field: dict[str, Any] = {
        "name": name,
        "label": "New Field" if number == 1 else f"New Field {number}",
        "control": control.name,
        "type": control.type,
        "order": count_in_location(siblings, location),
        "location": location,
        "settings": get_default_settings(control.name),
    }

    if parent is not None:
        new_field["parent"] = parent
        owner.setdefault("sub_fields", {})[name] = new_field
    else:
        siblings[name] = new_field

    return _ok(draft, field_name=name)


def _handle_field_change_control(draft: dict, p: dict) -> MutationResult:
    ref = FieldRef.from_value(p["ref"])
    control = get_control(p["control"])
    if control is None:
        return _reject(draft, "UNKNOWN_CONTROL", p["control"])

    _, siblings, current = _lookup(draft, ref)
    if current is None:
        return _reject(draft, "FIELD_NOT_FOUND", ref.path)
    if ref.parent is not None and control.name == REPEATER_CONTROL:
        return _reject(draft, "INVALID_PARENT", f"sub-field '{ref.path}' can't become a repeater")

    warnings: list[Warning] = []
    new_field: dict[str, Any] = {
        "name": current["name"],
        "label": current.get("label", ""),
        "control": control.name,
        "type": control.type,
        "order": current.get("order", 0),
        "settings": get_default_settings(control.name),
    }
    if "location" in current:
        new_field["location"] = current["location"]
    if "parent" in current:
        new_field["parent"] = current["parent"]

    if current.get("control") == REPEATER_CONTROL:
        if control.name == REPEATER_CONTROL:
            for key in ("sub_fields", "name_counters"):
                if key in current:
                    new_field[key] = current[key]
        elif current.get("sub_fields"):
            warnings.append(
                Warning(
                    code="SUB_FIELDS_DISCARDED",
                    message=f"{len(current['sub_fields'])} sub-fields of '{ref.path}' removed",
                    details={"sub_fields": list(current["sub_fields"])},
                )
            )

    siblings[ref.name] = new_field
    return _ok(draft, warnings, field_name=ref.name)


def _handle_field_update(draft: dict, p: dict) -> MutationResult:
    ref = FieldRef.from_value(p["ref"])
    settings = p["settings"]
    warnings: list[Warning] = []

    owner, siblings, current = _lookup(draft, ref)
    if current is None:
        return _reject(draft, "FIELD_NOT_FOUND", ref.path)

    # 1. Validate everything before touching the draft
    if "location" in settings and not is_valid_location(settings["location"]):
        return _reject(draft, "INVALID_LOCATION", str(settings["location"]))

    if "label" in settings and not isinstance(settings["label"], str):
        return _reject(draft, "INVALID_OPERATION", f"label must be a string, not {type(settings['label']).__name__}")

    new_name = settings.get("name", ref.name)
    if "name" in settings:
        if not is_valid_slug(new_name):
            return _reject(draft, "INVALID_NAME", repr(new_name))
        if new_name != ref.name and new_name in siblings:
            return _reject(draft, "DUPLICATE_NAME", f"'{new_name}' already exists")

    # 2. Relocate: leave the old group, go last in the new one, re-rank both
    if "location" in settings:
        old_location = field_location(current)
        new_location = settings["location"]
        if new_location != old_location:
            current["order"] = _append_order(siblings, new_location, exclude=ref.name)
            current["location"] = new_location
            rerank_location(siblings, old_location)
            rerank_location(siblings, new_location)
        else:
            current["location"] = new_location

    # 3. Merge the remaining settings
    if "label" in settings:
        current["label"] = settings["label"]
    field_settings = current.setdefault("settings", {})
    for key, value in settings.items():
        if key in FIELD_ATTRIBUTES:
            continue
        if key in RESERVED_FIELD_KEYS:
            warnings.append(
                Warning(
                    code="RESERVED_KEY_IGNORED",
                    message=f"'{key}' can't be set as a setting",
                    details={"key": key},
                )
            )
            continue
        field_settings[key] = value

    # 4. Rename: new map key, new name, children follow
    if new_name != ref.name:
        current["name"] = new_name
        for child in (current.get("sub_fields") or {}).values():
            child["parent"] = new_name
        renamed = _rename_key(siblings, ref.name, new_name)
        if ref.parent is None:
            draft["fields"] = renamed
        else:
            owner["sub_fields"] = renamed

    return _ok(draft, warnings, field_name=new_name)


def _handle_field_remove(draft: dict, p: dict) -> MutationResult:
    ref = FieldRef.from_value(p["ref"])

    owner, siblings, current = _lookup(draft, ref)
    if current is None:
        return _reject(draft, "FIELD_NOT_FOUND", ref.path)

    del siblings[ref.name]
    rerank_location(siblings, field_location(current))

    # The last child takes the placeholder with it
    if ref.parent is not None and not siblings:
        del owner["sub_fields"]

    return _ok(draft)


def _handle_field_duplicate(draft: dict, p: dict) -> MutationResult:
    ref = FieldRef.from_value(p["ref"])

    owner, siblings, current = _lookup(draft, ref)
    if current is None:
        return _reject(draft, "FIELD_NOT_FOUND", ref.path)

    name, _ = next_field_name(owner, siblings, ref.name, bare_first=False)
    if not is_valid_slug(name):
        return _reject(draft, "INVALID_NAME", f"copy of '{ref.path}' would be named {name!r}")
    location = field_location(current)

    duplicate = copy.deepcopy(current)
    duplicate["name"] = name
    duplicate["order"] = count_in_location(siblings, location)
    for child in (duplicate.get("sub_fields") or {}).values():
        child["parent"] = name

    siblings[name] = duplicate
    return _ok(draft, field_name=name)


def _handle_fields_reorder(draft: dict, p: dict) -> MutationResult:
    location = p["location"]
    parent = p.get("parent")
    move_from = p["from_index"]
    move_to = p["to_index"]

    if not is_valid_location(location):
        return _reject(draft, "INVALID_LOCATION", location)
    if parent is not None and parent not in draft["fields"]:
        return _reject(draft, "FIELD_NOT_FOUND", f"parent '{parent}'")

    # The group holds the draft's own field dicts, so re-ranking it edits the draft
    group = get_fields_for_location(draft, location, parent)
    for index in (move_from, move_to):
        if not 0 <= index < len(group):
            return _reject(draft, "INVALID_INDEX", f"{index} not in 0..{len(group) - 1} for '{location}'")

    group[move_from], group[move_to] = group[move_to], group[move_from]
    set_correct_order(group)

    return _ok(draft)


_HANDLERS = {
    "field.add": _handle_field_add,
    "field.change_control": _handle_field_change_control,
    "field.update": _handle_field_update,
    "field.remove": _handle_field_remove,
    "field.duplicate": _handle_field_duplicate,
    "fields.reorder": _handle_fields_reorder,
}
