"""
Mutation Engine -- Adding Fields

field.add appends a text field at the end of its location group, naming it
new-field, new-field-2, ... within its namespace. Freed names are never
handed out again.
"""

import pytest

from blockengine.kernel.controls import get_default_settings
from blockengine.kernel.reducer import add_field, delete_field
from blockengine.kernel.tests.helpers import (
    assert_contiguous,
    gallery_definition,
    make_definition,
    make_field,
    names_in,
)
from blockengine.kernel.types import FieldRef


@pytest.fixture
def empty():
    return make_definition()


class TestAddNaming:
    def test_first_field_is_unsuffixed(self, empty):
        result = add_field(empty, "editor")
        assert result.applied
        assert result.field_name == "new-field"
        assert result.definition["fields"]["new-field"]["label"] == "New Field"

    def test_second_field_is_suffixed(self, empty):
        d = add_field(empty, "editor").definition
        result = add_field(d, "editor")
        assert result.field_name == "new-field-2"
        assert result.definition["fields"]["new-field-2"]["label"] == "New Field 2"

    def test_freed_slug_is_not_reused(self, empty):
        """new-field, new-field-2, delete new-field, add → new-field-3."""
        d = add_field(empty, "editor").definition
        d = add_field(d, "editor").definition
        d = delete_field(d, FieldRef("new-field")).definition
        result = add_field(d, "editor")
        assert result.field_name == "new-field-3"
        assert set(result.definition["fields"]) == {"new-field-2", "new-field-3"}

    def test_freed_slug_not_reused_after_emptying(self, empty):
        d = add_field(empty, "editor").definition
        d = delete_field(d, FieldRef("new-field")).definition
        assert add_field(d, "editor").field_name == "new-field-2"

    def test_gap_is_skipped(self):
        """Existing new-field-5 (e.g. from a loaded document) pushes past it."""
        d = make_definition(make_field("new-field"), make_field("new-field-5", order=1))
        assert add_field(d, "editor").field_name == "new-field-6"

    def test_namespaces_are_independent(self):
        d = make_definition(make_field("new-field"), make_field("rows", "repeater", order=1))
        result = add_field(d, "editor", parent="rows")
        assert result.field_name == "new-field"


class TestAddShape:
    def test_seeded_from_text_control(self, empty):
        field = add_field(empty, "inspector").definition["fields"]["new-field"]
        assert field["control"] == "text"
        assert field["type"] == "string"
        assert field["location"] == "inspector"
        assert field["settings"] == get_default_settings("text")
        assert "parent" not in field

    def test_appended_last_in_location(self):
        result = add_field(gallery_definition(), "editor")
        d = result.definition
        assert d["fields"]["new-field"]["order"] == 3
        assert names_in(d, "editor") == ["title", "price", "slides", "new-field"]
        assert names_in(d, "inspector") == ["featured", "accent"]
        assert_contiguous(d)

    def test_appended_last_in_other_location(self):
        d = add_field(gallery_definition(), "inspector").definition
        assert d["fields"]["new-field"]["order"] == 2
        assert_contiguous(d)


class TestAddToRepeater:
    def test_creates_sub_fields_lazily(self):
        d = make_definition(make_field("rows", "repeater"))
        assert "sub_fields" not in d["fields"]["rows"]
        result = add_field(d, "editor", parent="rows")
        assert result.applied
        rows = result.definition["fields"]["rows"]
        assert list(rows["sub_fields"]) == ["new-field"]
        assert rows["sub_fields"]["new-field"]["parent"] == "rows"
        assert rows["sub_fields"]["new-field"]["order"] == 0
        assert "new-field" not in result.definition["fields"]

    def test_appends_to_existing_children(self):
        d = add_field(gallery_definition(), "editor", parent="slides").definition
        assert names_in(d, "editor", parent="slides") == ["caption", "link", "new-field"]
        assert_contiguous(d)

    def test_unknown_parent_rejected(self, empty):
        result = add_field(empty, "editor", parent="rows")
        assert not result.applied
        assert result.error_code == "FIELD_NOT_FOUND"
        assert result.definition is empty

    def test_non_repeater_parent_rejected(self):
        result = add_field(gallery_definition(), "editor", parent="title")
        assert not result.applied
        assert result.error_code == "INVALID_PARENT"


class TestAddRejections:
    def test_invalid_location(self, empty):
        result = add_field(empty, "sidebar")
        assert not result.applied
        assert result.error_code == "INVALID_LOCATION"
        assert result.definition["fields"] == {}
