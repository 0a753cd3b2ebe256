"""
Builders and checks shared by the kernel tests.
"""

from __future__ import annotations

from typing import Any

from blockengine.kernel.controls import get_control, get_default_settings
from blockengine.kernel.document import empty_definition
from blockengine.kernel.fields import field_location, get_fields_as_array


def make_field(
    name: str,
    control: str = "text",
    *,
    order: int = 0,
    location: str = "editor",
    parent: str | None = None,
    label: str | None = None,
    sub_fields: list[dict[str, Any]] | None = None,
    **settings: Any,
) -> dict[str, Any]:
    """A field dict seeded from its control's defaults, with settings overridden."""
    field: dict[str, Any] = {
        "name": name,
        "label": label if label is not None else name.replace("-", " ").title(),
        "control": control,
        "type": get_control(control).type,
        "order": order,
        "location": location,
        "settings": {**get_default_settings(control), **settings},
    }
    if parent is not None:
        field["parent"] = parent
    if sub_fields:
        field["sub_fields"] = {f["name"]: f for f in sub_fields}
    return field


def make_definition(*fields: dict[str, Any], name: str = "gallery", title: str = "Gallery") -> dict[str, Any]:
    definition = empty_definition(name, title)
    definition["fields"] = {f["name"]: f for f in fields}
    return definition


def gallery_definition() -> dict[str, Any]:
    """
    editor:    title(0), price(1), slides(2, repeater: caption(0), link(1))
    inspector: featured(0), accent(1)
    """
    return make_definition(
        make_field("title", order=0, default="Untitled"),
        make_field("price", "number", order=1),
        make_field(
            "slides",
            "repeater",
            order=2,
            sub_fields=[
                make_field("caption", order=0, parent="slides"),
                make_field("link", "url", order=1, parent="slides"),
            ],
        ),
        make_field("featured", "toggle", order=0, location="inspector"),
        make_field("accent", "color", order=1, location="inspector"),
    )


def names_in(definition: dict[str, Any], location: str = "editor", parent: str | None = None) -> list[str]:
    """Field names of one group, in order."""
    fields = definition["fields"] if parent is None else definition["fields"][parent].get("sub_fields", {})
    return [f["name"] for f in get_fields_as_array(fields) if field_location(f) == location]


def assert_contiguous(definition: dict[str, Any]) -> None:
    """Every (location, parent) group is ranked 0..n-1."""
    scopes = [definition["fields"]]
    scopes += [f["sub_fields"] for f in definition["fields"].values() if f.get("sub_fields")]
    for scope in scopes:
        groups: dict[str, list[int]] = {}
        for f in scope.values():
            groups.setdefault(field_location(f), []).append(f["order"])
        for location, orders in groups.items():
            assert sorted(orders) == list(range(len(orders))), f"{location} orders not contiguous: {orders}"
