"""
Blocks Kernel: Template Renderer

(definition, attributes, values) → markup string

The renderer computes the bindings a block template sees and hands them to
chevron (Mustache). Template lookup is the loader's job; the renderer never
reads files itself.

Bindings, for a field named "price":
  {{field.price}}   display representation
  {{value.price}}   value representation
Repeaters expose one context per row:
  {{#rows.slides}}{{field.caption}}{{/rows.slides}}
Reserved attribute slots: {{className}}, {{align}}, {{anchor}}.
All attributes stay reachable under {{attributes.*}}.

A missing template or a failing one falls back to a plain definition list,
so rendering never aborts on one bad field.
"""

from __future__ import annotations

import logging
from html import escape as _html_escape
from pathlib import Path
from typing import Any

import chevron

from blockengine.kernel.fields import get_fields_as_array
from blockengine.kernel.resolver import repeater_rows, resolve_field_display, resolve_field_value
from blockengine.kernel.types import REPEATER_CONTROL, RESERVED_ATTRIBUTES

logger = logging.getLogger(__name__)

TEMPLATE_EXTENSION = ".mustache"


# ---------------------------------------------------------------------------
# Template lookup
# ---------------------------------------------------------------------------


class TemplateLoader:
    """
    Finds a block's template in a list of search paths.

    For a block named "hero", each search path is tried in turn for:
      blocks/hero/preview.mustache, blocks/preview-hero.mustache   (preview only)
      blocks/hero/block.mustache,   blocks/block-hero.mustache
    """

    def __init__(self, search_paths: list[str | Path] | None = None) -> None:
        self.search_paths = [Path(p) for p in search_paths or []]

    def candidates(self, block_name: str, preview: bool = False) -> list[Path]:
        names: list[str] = []
        if preview:
            names += [f"{block_name}/preview{TEMPLATE_EXTENSION}", f"preview-{block_name}{TEMPLATE_EXTENSION}"]
        names += [f"{block_name}/block{TEMPLATE_EXTENSION}", f"block-{block_name}{TEMPLATE_EXTENSION}"]
        return [root / "blocks" / name for root in self.search_paths for name in names]

    def locate(self, block_name: str, preview: bool = False) -> Path | None:
        for path in self.candidates(block_name, preview):
            if path.is_file():
                return path
        return None

    def load(self, block_name: str, preview: bool = False) -> str | None:
        """Template source, or None if no candidate exists."""
        path = self.locate(block_name, preview)
        if path is None:
            return None
        return path.read_text(encoding="utf-8")


class MemoryTemplateLoader(TemplateLoader):
    """Templates held in a dict, for tests and embedded use."""

    def __init__(self, templates: dict[str, str] | None = None) -> None:
        super().__init__()
        self.templates = dict(templates or {})

    def load(self, block_name: str, preview: bool = False) -> str | None:
        if preview and f"preview-{block_name}" in self.templates:
            return self.templates[f"preview-{block_name}"]
        return self.templates.get(block_name)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def render_block(
    definition: dict[str, Any],
    attributes: dict[str, Any] | None = None,
    values: dict[str, Any] | None = None,
    *,
    loader: TemplateLoader,
    preview: bool = False,
) -> str:
    """
    Render a block instance to markup.
    Pure apart from the loader's template read.
    """
    context = build_context(definition, attributes, values)
    name = definition.get("name", "")

    try:
        template = loader.load(name, preview)
    except OSError:
        logger.warning("renderer: could not read template for block %r", name, exc_info=True)
        template = None

    if template is None:
        logger.warning("renderer: no template for block %r, using default markup", name)
        return _default_block_html(definition, context)

    try:
        return chevron.render(template, context)
    except Exception:
        logger.warning("renderer: template for block %r failed, using default markup", name, exc_info=True)
        return _default_block_html(definition, context)


def build_context(
    definition: dict[str, Any],
    attributes: dict[str, Any] | None = None,
    values: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    The name → representation bindings for one block instance.
    values is keyed by field name; a repeater's value is its rows.
    """
    attributes = attributes or {}
    context = _scope_context(definition.get("fields") or {}, values or {})

    for slot in RESERVED_ATTRIBUTES:
        context[slot] = attributes.get(slot, "")
    context["attributes"] = attributes
    context["block"] = {"name": definition.get("name", ""), "title": definition.get("title", "")}
    return context


def escape(text: Any) -> str:
    """HTML-escape a string."""
    return _html_escape(str(text), quote=True)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _scope_context(fields: dict[str, Any], values: dict[str, Any]) -> dict[str, Any]:
    """field/value/rows bindings for one namespace (the block, or one repeater row)."""
    display: dict[str, Any] = {}
    value: dict[str, Any] = {}
    rows: dict[str, list[dict[str, Any]]] = {}

    for f in get_fields_as_array(fields):
        name = f.get("name")
        if not name:
            continue
        raw = values.get(name)
        display[name] = resolve_field_display(f, raw)
        value[name] = resolve_field_value(f, raw)

        if f.get("control") == REPEATER_CONTROL:
            sub_fields = f.get("sub_fields") or {}
            row_contexts = []
            for index, row in enumerate(repeater_rows(raw)):
                row_context = _scope_context(sub_fields, row)
                row_context["index"] = index
                row_contexts.append(row_context)
            rows[name] = row_contexts

    return {"field": display, "value": value, "rows": rows}


def _default_block_html(definition: dict[str, Any], context: dict[str, Any]) -> str:
    """Fallback markup: each field's label and display value."""
    classes = " ".join(c for c in (f"block-{definition.get('name', '')}", context.get("className", "")) if c)
    parts = [f'<div class="{escape(classes)}">', "<dl>"]
    for f in get_fields_as_array(definition.get("fields") or {}):
        name = f.get("name", "")
        if f.get("control") == REPEATER_CONTROL:
            count = len(context["rows"].get(name, []))
            shown = f"{count} row" + ("" if count == 1 else "s")
        else:
            shown = context["field"].get(name, "")
        parts.append(f"<dt>{escape(f.get('label') or name)}</dt><dd>{escape(shown)}</dd>")
    parts.append("</dl>")
    parts.append("</div>")
    return "\n".join(parts)
