"""
Blocks Kernel: the pure engine.

Components:
  controls  : static catalog of control types and their settings defaults
  fields    : accessors over a definition's field tree
  reducer   : (definition, operation) → definition  (pure, deterministic)
  resolver  : runtime value → display / value representations
  renderer  : definition + attributes + values → markup (chevron)
  assembly  : coordinates reducer + renderer + IO (storage, templates)
"""

from blockengine.kernel.assembly import BlockAlreadyExists, BlockAssembly, BlockNotFound
from blockengine.kernel.controls import UnknownControl, get_control, get_default_settings, list_controls
from blockengine.kernel.document import MalformedDefinition, empty_definition, validate_document
from blockengine.kernel.fields import (
    get_field,
    get_fields_as_array,
    get_fields_as_object,
    get_fields_for_location,
)
from blockengine.kernel.operations import make_operation, validate_operation
from blockengine.kernel.reducer import (
    add_field,
    change_control,
    change_field_settings,
    delete_field,
    duplicate_field,
    reduce,
    reorder_fields,
    replay,
)
from blockengine.kernel.renderer import TemplateLoader, build_context, render_block
from blockengine.kernel.resolver import resolve_field_display, resolve_field_value
from blockengine.kernel.types import FieldRef, MutationResult, Operation

__all__ = [
    "BlockAlreadyExists",
    "BlockAssembly",
    "BlockNotFound",
    "FieldRef",
    "MalformedDefinition",
    "MutationResult",
    "Operation",
    "TemplateLoader",
    "UnknownControl",
    "add_field",
    "build_context",
    "change_control",
    "change_field_settings",
    "delete_field",
    "duplicate_field",
    "empty_definition",
    "get_control",
    "get_default_settings",
    "get_field",
    "get_fields_as_array",
    "get_fields_as_object",
    "get_fields_for_location",
    "list_controls",
    "make_operation",
    "reduce",
    "render_block",
    "reorder_fields",
    "replay",
    "resolve_field_display",
    "resolve_field_value",
    "validate_document",
    "validate_operation",
]
