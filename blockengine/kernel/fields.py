"""
Blocks Kernel: Field Tree Model

Structural accessors over a block definition's fields.
None of these raise for a missing field: lookups return an empty sentinel
({} or []) and callers check.

Namespaces:
  - top-level fields share definition["fields"]
  - each repeater's children live in fields[parent]["sub_fields"]
"""

from __future__ import annotations

import re
from typing import Any

from blockengine.kernel.types import DEFAULT_LOCATION, FieldRef

# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


def get_siblings(definition: dict[str, Any], parent: str | None = None) -> dict[str, Any] | None:
    """
    The name-keyed mapping a field with this parent lives in.
    None if the parent doesn't exist. {} if it exists but has no children yet.
    """
    fields = definition.get("fields") or {}
    if parent is None:
        return fields
    parent_field = fields.get(parent)
    if parent_field is None:
        return None
    return parent_field.get("sub_fields") or {}


def get_field(definition: dict[str, Any], ref: FieldRef | str | dict | None) -> dict[str, Any]:
    """The field at ref, or {} if there's none."""
    if not ref or not definition.get("fields"):
        return {}
    if isinstance(ref, dict) and not isinstance(ref.get("name"), str):
        return {}
    ref = FieldRef.from_value(ref)
    siblings = get_siblings(definition, ref.parent)
    if not siblings:
        return {}
    return siblings.get(ref.name) or {}


def field_location(field: dict[str, Any]) -> str:
    """A field without a location belongs to the default location."""
    return field.get("location") or DEFAULT_LOCATION


def get_fields_for_location(
    definition: dict[str, Any],
    location: str,
    parent: str | None = None,
) -> list[dict[str, Any]]:
    """Fields at a location + parent scope, ordered by their `order`."""
    siblings = get_siblings(definition, parent)
    if not siblings:
        return []
    return [f for f in get_fields_as_array(siblings) if field_location(f) == location]


# ---------------------------------------------------------------------------
# Array / object views
# ---------------------------------------------------------------------------


def get_fields_as_array(fields: dict[str, Any] | None) -> list[dict[str, Any]]:
    """
    Name-keyed mapping → list ordered by `order`.
    Ties (and fields without an order) keep their mapping order.
    """
    if not fields:
        return []
    return sorted(fields.values(), key=lambda f: f.get("order", 0))


def get_fields_as_object(fields: list[dict[str, Any]] | None) -> dict[str, Any]:
    """List of fields → mapping keyed by each field's name, in list order."""
    return {f["name"]: f for f in fields or []}


def set_correct_order(fields: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Re-rank a sequence 0..n-1 in its current order. Mutates and returns it."""
    for index, f in enumerate(fields):
        f["order"] = index
    return fields


def rerank_location(siblings: dict[str, Any], location: str) -> None:
    """Make the orders of one location group contiguous again, in place."""
    group = [f for f in get_fields_as_array(siblings) if field_location(f) == location]
    set_correct_order(group)


def count_in_location(siblings: dict[str, Any], location: str) -> int:
    return sum(1 for f in siblings.values() if field_location(f) == location)


# ---------------------------------------------------------------------------
# Slug counters
# ---------------------------------------------------------------------------


def highest_suffix(names: list[str] | set[str], base: str) -> int:
    """
    Highest numeric suffix in use for base among names.
    The bare base name counts as 1. 0 if base isn't used at all.

      ["price", "price-2", "price-7"], "price" → 7
      ["price-2"], "price"                      → 2
      ["title"], "price"                        → 0
    """
    pattern = re.compile(rf"^{re.escape(base)}-(\d+)$")
    highest = 0
    for name in names:
        if name == base:
            highest = max(highest, 1)
            continue
        m = pattern.match(name)
        if m:
            highest = max(highest, int(m.group(1)))
    return highest


def next_field_name(
    owner: dict[str, Any],
    siblings: dict[str, Any],
    base: str,
    *,
    bare_first: bool,
) -> tuple[str, int]:
    """
    Next unused name for base in one namespace, and its number.

    Always extends past both the highest suffix among current siblings and
    the highest ever issued (recorded in owner["name_counters"]), so a freed
    slug is never handed out again. With bare_first, the very first name
    is the base itself (number 1).

    Records the issued number on owner. Mutates owner.
    """
    counters = owner.setdefault("name_counters", {})
    highest = max(highest_suffix(list(siblings), base), counters.get(base, 0))
    if highest == 0 and bare_first:
        number = 1
        name = base
    else:
        number = max(highest, 1) + 1
        name = f"{base}-{number}"
    counters[base] = number
    return name, number
