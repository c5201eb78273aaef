"""
Form session controller.

Owns the live state of one mounted form:
- The current value of every field, seeded from the schema defaults
- Which fields the user has touched
- Per-field visibility, re-evaluated after every change
- Per-field validation errors, re-computed after every change
- Submission, which hands the validated values to a completion callback

All mutation goes through this class. Every write is fully applied,
including the recompute of derived visibility and errors, before the
write returns.
"""

import logging
from collections.abc import Callable
from typing import Any

from schemaform.core.defaults import resolve_default_values
from schemaform.core.schema import FieldDefinition, FormSchema
from schemaform.core.validation import ValidationResult, compile_validation
from schemaform.core.visibility import is_field_visible

logger = logging.getLogger(__name__)

SubmitCallback = Callable[[dict[str, Any]], Any]


class UnknownFieldError(ValueError):
    """Raised when a field key is not declared in the schema."""

    def __init__(self, field_id: str):
        self.field_id = field_id
        super().__init__(f"Field '{field_id}' does not exist in the schema")


class FormSession:
    """State of a single mounted form.

    Validation runs continuously after every write; errors are only
    displayed for fields that were touched, or for every field once a
    submit has been attempted. Hidden fields keep their values but are
    left out of validation and of the submitted data.

    Args:
        schema: A validated FormSchema instance.
        on_submit: Optional default completion callback for `submit`.
    """

    def __init__(self, schema: FormSchema, on_submit: SubmitCallback | None = None):
        self.schema = schema
        self.on_submit = on_submit
        self.spec = compile_validation(schema)
        self.values: dict[str, Any] = {}
        self.touched: set[str] = set()
        self.errors: dict[str, list[str]] = {}
        self.visibility: dict[str, bool] = {}
        self.submit_attempted = False
        self.submit_count = 0
        self.reset()

    # -----------------------------------------------------------------
    # Values
    # -----------------------------------------------------------------

    def get_value(self, field_id: str) -> Any:
        self._require_field(field_id)
        return self.values.get(field_id)

    def get_values(self) -> dict[str, Any]:
        """Return a copy of all current values, hidden fields included."""
        return dict(self.values)

    def get_visible_values(self) -> dict[str, Any]:
        return {k: v for k, v in self.values.items() if self.visibility.get(k, True)}

    def set_value(self, field_id: str, value: Any) -> None:
        """Write one value, mark it touched and recompute derived state.

        Raises:
            UnknownFieldError: If the field is not declared in the schema.
        """
        self._require_field(field_id)
        logger.debug("Form '%s': set %s", self.schema.id, field_id)
        self._commit({**self.values, field_id: value}, self.touched | {field_id})

    def set_values(self, values: dict[str, Any]) -> None:
        """Write several values at once with a single recompute.

        Every key is checked before anything is written, so an unknown
        key leaves the session untouched.
        """
        for field_id in values:
            self._require_field(field_id)

        logger.debug("Form '%s': set %s", self.schema.id, ", ".join(values))
        self._commit({**self.values, **values}, self.touched | set(values))

    def touch(self, field_id: str) -> None:
        """Mark a field as touched without changing it (e.g. on blur)."""
        self._require_field(field_id)
        self.touched.add(field_id)

    def is_touched(self, field_id: str) -> bool:
        return field_id in self.touched

    def reset(self) -> None:
        """Re-seed defaults and forget touched fields, errors and submits."""
        self._commit(resolve_default_values(self.schema), set())
        self.submit_attempted = False

    # -----------------------------------------------------------------
    # Visibility
    # -----------------------------------------------------------------

    def is_visible(self, field_id: str) -> bool:
        self._require_field(field_id)
        return self.visibility[field_id]

    def get_visible_fields(self) -> list[FieldDefinition]:
        """Return visible field definitions in schema order."""
        return [
            field for field_id, field in self.schema.fields.items()
            if self.visibility[field_id]
        ]

    # -----------------------------------------------------------------
    # Validation and submit
    # -----------------------------------------------------------------

    def validate(self) -> ValidationResult:
        """Validate the visible fields against the current values."""
        visible_ids = {f.id for f in self.get_visible_fields()}
        return self.spec.validate(self.values, only=visible_ids)

    def get_errors(self) -> dict[str, list[str]]:
        """All current errors, whether or not they are displayed yet."""
        return {k: list(v) for k, v in self.errors.items()}

    def get_displayed_errors(self) -> dict[str, list[str]]:
        """Errors for touched fields, or for every field after a submit attempt."""
        return {
            k: list(v) for k, v in self.errors.items()
            if self.submit_attempted or k in self.touched
        }

    def get_displayed_error(self, field_id: str) -> str | None:
        messages = self.get_displayed_errors().get(field_id)
        return messages[0] if messages else None

    def is_valid(self) -> bool:
        return not self.errors

    def submit(self, on_submit: SubmitCallback | None = None) -> ValidationResult:
        """Validate and, if valid, hand the coerced values to the callback.

        The callback (argument, else the one given at construction) is
        invoked exactly once on success and never on failure. Whatever
        it returns or raises is not inspected here.
        """
        result = self.validate()
        self.errors = result.errors

        if not result.valid:
            self.submit_attempted = True
            logger.info(
                "Form '%s' submit rejected: %d field error(s) (%s)",
                self.schema.id,
                len(result.errors),
                ", ".join(result.errors),
            )
            return result

        self.submit_count += 1
        logger.info("Form '%s' submitted with %d field(s)", self.schema.id, len(result.data))

        callback = on_submit or self.on_submit
        if callback is not None:
            callback(dict(result.data))
        return result

    # -----------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------

    def _require_field(self, field_id: str) -> None:
        if field_id not in self.schema.fields:
            raise UnknownFieldError(field_id)

    def _commit(self, values: dict[str, Any], touched: set[str]) -> None:
        """Derive visibility and errors for `values`, then store all of it.

        Nothing is assigned until validation has finished, so a custom
        validator that raises leaves the previous state in place.
        """
        visibility = {
            field_id: is_field_visible(field, values)
            for field_id, field in self.schema.fields.items()
        }
        visible_ids = {field_id for field_id, shown in visibility.items() if shown}
        errors = self.spec.validate(values, only=visible_ids).errors

        self.values = values
        self.touched = touched
        self.visibility = visibility
        self.errors = errors
