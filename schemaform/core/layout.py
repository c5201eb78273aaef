"""
Layout composer.

Walks a schema's layout tree and produces a renderable structure of
plain dicts. The composer decides whether and where each field appears;
painting the field is left to a `render_field` callable (the widget
renderer), which defaults to `field_view`.

The session is passed explicitly down the recursion. Hidden fields
produce no output, but their session values are left alone.
"""

from collections.abc import Callable
from typing import Any

from schemaform.core.form_state import FormSession
from schemaform.core.schema import (
    FieldDefinition,
    FieldNode,
    GridNode,
    SectionNode,
    StackNode,
)

FieldRenderFn = Callable[[FieldDefinition, FormSession], dict[str, Any]]


class LayoutError(ValueError):
    """Raised when a layout node cannot be resolved against the schema."""


def field_view(field: FieldDefinition, session: FormSession) -> dict[str, Any]:
    """Default widget payload: everything a renderer needs to paint a field."""
    return {
        "kind": "field",
        "field_id": field.id,
        "label": field.label,
        "renderer": field.renderer.value,
        "input_type": field.input_type,
        "placeholder": field.placeholder,
        "props": dict(field.props),
        "required": field.is_required,
        "value": session.values.get(field.id),
        "touched": session.is_touched(field.id),
        "error": session.get_displayed_error(field.id),
    }


def compose_node(
    node: Any,
    session: FormSession,
    render_field: FieldRenderFn = field_view,
) -> dict[str, Any] | None:
    """Compose one layout node, or return None when it renders nothing."""
    match node:
        case FieldNode():
            return _compose_field(node, session, render_field)
        case StackNode():
            return {
                "kind": "stack",
                "spacing": node.spacing.value,
                "children": _compose_children(node.children, session, render_field),
            }
        case GridNode():
            return _compose_grid(node, session, render_field)
        case SectionNode():
            return _compose_section(node, session, render_field)

    raise LayoutError(f"Unsupported layout node: {node!r}")


def compose_layout(
    session: FormSession,
    render_field: FieldRenderFn = field_view,
) -> list[dict[str, Any]]:
    """Compose the schema's top-level layout nodes."""
    return _compose_children(session.schema.layout, session, render_field)


def compose_form(
    session: FormSession,
    render_field: FieldRenderFn = field_view,
) -> dict[str, Any]:
    """Compose the whole form: metadata, layout and submit state."""
    schema = session.schema
    return {
        "form_id": schema.id,
        "meta": schema.meta.model_dump(),
        "layout": compose_layout(session, render_field),
        "visible_fields": [f.id for f in session.get_visible_fields()],
        "errors": session.get_displayed_errors(),
    }


# -----------------------------------------------------------------
# Node builders
# -----------------------------------------------------------------


def _compose_children(
    children: list,
    session: FormSession,
    render_field: FieldRenderFn,
) -> list[dict[str, Any]]:
    composed = (compose_node(child, session, render_field) for child in children)
    return [c for c in composed if c is not None]


def _compose_field(
    node: FieldNode,
    session: FormSession,
    render_field: FieldRenderFn,
) -> dict[str, Any] | None:
    field = session.schema.get_field(node.field_id)
    if field is None:
        raise LayoutError(f"Layout references non-existent field '{node.field_id}'")

    if not session.is_visible(node.field_id):
        return None
    return render_field(field, session)


def _compose_grid(
    node: GridNode,
    session: FormSession,
    render_field: FieldRenderFn,
) -> dict[str, Any]:
    cells = []
    for child in node.children:
        composed = compose_node(child, session, render_field)
        if composed is None:
            continue
        cells.append({
            "col_span": min(child.col_span, node.cols),
            "node": composed,
        })

    return {
        "kind": "grid",
        "cols": node.cols,
        "spacing": node.spacing.value,
        "cells": cells,
    }


def _compose_section(
    node: SectionNode,
    session: FormSession,
    render_field: FieldRenderFn,
) -> dict[str, Any]:
    # Untitled sections get no heading chrome at all, divider included.
    header = None
    if node.title:
        header = {"title": node.title, "subtitle": node.subtitle}

    return {
        "kind": "section",
        "header": header,
        "divider": header is not None and node.with_divider,
        "collapsible": node.collapsible,
        "children": _compose_children(node.children, session, render_field),
    }
