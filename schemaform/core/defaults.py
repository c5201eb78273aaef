"""
Default value resolution.

Every field gets an initial value: its declared default when one was
given, otherwise the empty value its renderer implies.
"""

import copy
from typing import Any

from schemaform.core.schema import FieldDefinition, FieldRenderer, FormSchema


def empty_value_for(field: FieldDefinition) -> Any:
    """The renderer-implied empty value for a field."""
    match field.renderer:
        case FieldRenderer.CHECKBOX | FieldRenderer.SWITCH:
            return False
        case FieldRenderer.MULTISELECT:
            return []
    return ""


def resolve_default_value(field: FieldDefinition) -> Any:
    if field.has_default:
        # Copy so sessions never share a mutable default such as a list.
        return copy.deepcopy(field.default_value)
    return empty_value_for(field)


def resolve_default_values(schema: FormSchema) -> dict[str, Any]:
    """Return one initial value per field key, in schema order."""
    return {
        field_id: resolve_default_value(field)
        for field_id, field in schema.fields.items()
    }
