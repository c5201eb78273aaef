"""
Deterministic visibility evaluator for form fields.

Decides whether a field is part of the form given its `visible_when`
condition(s) and the current values. A list of conditions is an AND.
There is no precomputed dependency graph: callers re-evaluate every
field after every change.
"""

import logging
from collections.abc import Collection, Mapping
from typing import Any

from schemaform.core.schema import (
    FieldDefinition,
    VisibilityCondition,
    VisibilityOperator,
)

logger = logging.getLogger(__name__)


def is_field_visible(field: FieldDefinition, values: Mapping[str, Any]) -> bool:
    """Determine if a field should be visible given the current values.

    Args:
        field: The field definition to evaluate.
        values: Current form values keyed by field id.

    Returns:
        True if the field should be visible, False otherwise.
    """
    return evaluate_visibility(field.visible_when, values)


def evaluate_visibility(
    conditions: VisibilityCondition | list[VisibilityCondition] | None,
    values: Mapping[str, Any],
) -> bool:
    """Evaluate an absent, single or list-of conditions rule."""
    if conditions is None:
        return True

    if isinstance(conditions, list):
        return all(evaluate_condition(c, values) for c in conditions)

    return evaluate_condition(conditions, values)


def evaluate_condition(condition: VisibilityCondition, values: Mapping[str, Any]) -> bool:
    """Evaluate a single condition against the current values.

    Unknown operators fail open (the condition counts as satisfied) and
    are logged so the schema author can fix them.
    """
    field_value = values.get(condition.field)

    match condition.op:
        case VisibilityOperator.EQUALS:
            return strict_equals(field_value, condition.value)

        case VisibilityOperator.NOT_EQUALS:
            return not strict_equals(field_value, condition.value)

        case VisibilityOperator.IN:
            if isinstance(condition.value, (str, bytes, Mapping)):
                return False
            if not isinstance(condition.value, Collection):
                return False
            return any(strict_equals(field_value, item) for item in condition.value)

    logger.warning(
        "Unknown visibility operator '%s' on condition for field '%s'; treating as satisfied",
        condition.op,
        condition.field,
    )
    return True


def strict_equals(left: Any, right: Any) -> bool:
    """Equality that never mixes booleans with numbers."""
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    return left == right
