"""
Mutation Engine -- Changing Field Settings

field.update merges settings over a field. Two keys are special:
  location → relocation (leave the old group, go last in the new one)
  name     → rename (new map key; repeater children follow)
"""

import pytest

from blockengine.kernel.reducer import change_field_settings
from blockengine.kernel.tests.helpers import assert_contiguous, gallery_definition, names_in
from blockengine.kernel.types import FieldRef


@pytest.fixture
def gallery():
    return gallery_definition()


# ============================================================================
# Plain settings
# ============================================================================


class TestMergeSettings:
    def test_merges_over_existing(self, gallery):
        result = change_field_settings(gallery, FieldRef("title"), {"placeholder": "Headline", "maxlength": 80})
        assert result.applied
        settings = result.definition["fields"]["title"]["settings"]
        assert settings["placeholder"] == "Headline"
        assert settings["maxlength"] == 80
        assert settings["default"] == "Untitled"

    def test_label_is_a_field_attribute(self, gallery):
        d = change_field_settings(gallery, FieldRef("title"), {"label": "Headline"}).definition
        assert d["fields"]["title"]["label"] == "Headline"
        assert "label" not in d["fields"]["title"]["settings"]

    def test_sub_field(self, gallery):
        d = change_field_settings(gallery, FieldRef("caption", "slides"), {"default": "Slide"}).definition
        assert d["fields"]["slides"]["sub_fields"]["caption"]["settings"]["default"] == "Slide"

    def test_reserved_keys_ignored_with_warning(self, gallery):
        result = change_field_settings(gallery, FieldRef("title"), {"order": 9, "control": "toggle"})
        assert result.applied
        assert result.definition["fields"]["title"]["order"] == 0
        assert result.definition["fields"]["title"]["control"] == "text"
        assert [w.code for w in result.warnings] == ["RESERVED_KEY_IGNORED", "RESERVED_KEY_IGNORED"]

    def test_settings_key_is_reserved(self, gallery):
        result = change_field_settings(gallery, FieldRef("title"), {"settings": {"a": 1}})
        assert result.applied
        assert "settings" not in result.definition["fields"]["title"]["settings"]
        assert [(w.code, w.details) for w in result.warnings] == [("RESERVED_KEY_IGNORED", {"key": "settings"})]

    @pytest.mark.parametrize("label", [5, None, ["x"]])
    def test_non_string_label_rejected(self, gallery, label):
        result = change_field_settings(gallery, FieldRef("title"), {"label": label})
        assert not result.applied
        assert result.error_code == "INVALID_OPERATION"
        assert result.definition is gallery

    def test_missing_field(self, gallery):
        result = change_field_settings(gallery, FieldRef("nope"), {"default": "x"})
        assert not result.applied
        assert result.error_code == "FIELD_NOT_FOUND"


# ============================================================================
# Relocation
# ============================================================================


class TestRelocate:
    def test_editor_to_inspector(self, gallery):
        """Leaves editor re-ranked, lands last in inspector."""
        result = change_field_settings(gallery, FieldRef("title"), {"location": "inspector"})
        assert result.applied
        d = result.definition
        assert names_in(d, "editor") == ["price", "slides"]
        assert names_in(d, "inspector") == ["featured", "accent", "title"]
        assert d["fields"]["price"]["order"] == 0
        assert d["fields"]["slides"]["order"] == 1
        assert d["fields"]["title"]["order"] == 2
        assert d["fields"]["title"]["location"] == "inspector"
        assert_contiguous(d)

    def test_other_parent_scopes_untouched(self, gallery):
        d = change_field_settings(gallery, FieldRef("title"), {"location": "inspector"}).definition
        assert d["fields"]["slides"]["sub_fields"] == gallery["fields"]["slides"]["sub_fields"]

    def test_within_repeater(self, gallery):
        d = change_field_settings(gallery, FieldRef("caption", "slides"), {"location": "inspector"}).definition
        assert names_in(d, "editor", parent="slides") == ["link"]
        assert names_in(d, "inspector", parent="slides") == ["caption"]
        assert names_in(d, "editor") == ["title", "price", "slides"]
        assert_contiguous(d)

    def test_same_location_keeps_order(self, gallery):
        d = change_field_settings(gallery, FieldRef("title"), {"location": "editor"}).definition
        assert names_in(d, "editor") == ["title", "price", "slides"]

    def test_invalid_location(self, gallery):
        result = change_field_settings(gallery, FieldRef("title"), {"location": "footer"})
        assert not result.applied
        assert result.error_code == "INVALID_LOCATION"


# ============================================================================
# Rename
# ============================================================================


class TestRename:
    def test_rename_moves_key(self, gallery):
        result = change_field_settings(gallery, FieldRef("title"), {"name": "headline"})
        assert result.applied
        assert result.field_name == "headline"
        fields = result.definition["fields"]
        assert "title" not in fields
        assert fields["headline"]["name"] == "headline"
        assert fields["headline"]["settings"]["default"] == "Untitled"

    def test_rename_keeps_mapping_position(self, gallery):
        d = change_field_settings(gallery, FieldRef("price"), {"name": "cost"}).definition
        assert list(d["fields"]) == ["title", "cost", "slides", "featured", "accent"]

    def test_rename_repeater_updates_children(self, gallery):
        d = change_field_settings(gallery, FieldRef("slides"), {"name": "panels"}).definition
        children = d["fields"]["panels"]["sub_fields"]
        assert {c["parent"] for c in children.values()} == {"panels"}

    def test_rename_sub_field(self, gallery):
        d = change_field_settings(gallery, FieldRef("caption", "slides"), {"name": "heading"}).definition
        sub_fields = d["fields"]["slides"]["sub_fields"]
        assert list(sub_fields) == ["heading", "link"]
        assert sub_fields["heading"]["parent"] == "slides"

    def test_rename_into_sibling_rejected(self, gallery):
        result = change_field_settings(gallery, FieldRef("title"), {"name": "price"})
        assert not result.applied
        assert result.error_code == "DUPLICATE_NAME"
        assert result.definition["fields"]["price"]["control"] == "number"

    def test_same_name_in_other_namespace_allowed(self, gallery):
        result = change_field_settings(gallery, FieldRef("caption", "slides"), {"name": "title"})
        assert result.applied

    def test_rename_to_own_name_is_noop(self, gallery):
        result = change_field_settings(gallery, FieldRef("title"), {"name": "title"})
        assert result.applied
        assert result.definition == gallery

    @pytest.mark.parametrize("bad", ["", "Has Spaces", "UPPER", "-leading", 42])
    def test_invalid_name(self, gallery, bad):
        result = change_field_settings(gallery, FieldRef("title"), {"name": bad})
        assert not result.applied
        assert result.error_code == "INVALID_NAME"

    def test_rename_and_relocate_together(self, gallery):
        d = change_field_settings(gallery, FieldRef("title"), {"name": "headline", "location": "inspector"}).definition
        assert names_in(d, "inspector") == ["featured", "accent", "headline"]
        assert names_in(d, "editor") == ["price", "slides"]
        assert_contiguous(d)

    def test_rejection_leaves_input_untouched(self, gallery):
        """A rename collision after a valid location change applies neither."""
        result = change_field_settings(gallery, FieldRef("title"), {"location": "inspector", "name": "price"})
        assert not result.applied
        assert result.definition is gallery
        assert gallery["fields"]["title"]["location"] == "editor"
