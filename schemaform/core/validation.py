"""
Validation compiler.

Translates the declarative rule set of every field into a tagged check
variant chosen once from the field's renderer, then bundles the checks
into a ValidationSpec that validates a full value set in one pass.

Error reporting is first-failure-wins: each failing field surfaces the
message of the first rule it violates, so every error list holds one
message.
"""

import logging
import math
import re
from collections import OrderedDict
from collections.abc import Collection, Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar

from schemaform.core.schema import (
    FieldDefinition,
    FieldRenderer,
    FormSchema,
    RuleSet,
)
from schemaform.core.utils import is_blank, is_email, is_url, parse_date

logger = logging.getLogger(__name__)

MAX_CACHED_SPECS = 128


class FieldCheckError(Exception):
    """Raised inside a check when a value violates a rule."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# --- Check variants ---


@dataclass(frozen=True)
class StringCheck:
    """Checks for text-like renderers."""

    kind: ClassVar[str] = "string"

    required: bool = False
    required_message: str = "Required"
    min_length: int | None = None
    min_length_message: str | None = None
    max_length: int | None = None
    max_length_message: str | None = None
    pattern: re.Pattern | None = None
    pattern_message: str | None = None
    email: bool = False
    url: bool = False
    date: bool = False

    def run(self, value: Any) -> Any:
        if value is None or value == "":
            if self.required:
                raise FieldCheckError(self.required_message)
            return value

        if not isinstance(value, str):
            raise FieldCheckError("Expected text")

        if self.min_length is not None and len(value) < self.min_length:
            raise FieldCheckError(
                self.min_length_message
                or f"Must be at least {self.min_length} characters"
            )
        if self.max_length is not None and len(value) > self.max_length:
            raise FieldCheckError(
                self.max_length_message
                or f"Must be at most {self.max_length} characters"
            )
        if self.pattern is not None and not self.pattern.search(value):
            raise FieldCheckError(self.pattern_message or "Invalid format")
        if self.email and not is_email(value):
            raise FieldCheckError("Invalid email")
        if self.url and not is_url(value):
            raise FieldCheckError("Invalid URL")
        if self.date and parse_date(value) is None:
            raise FieldCheckError("Invalid date")
        return value


@dataclass(frozen=True)
class NumberCheck:
    """Checks for the number renderer; digit strings are coerced."""

    kind: ClassVar[str] = "number"

    required: bool = False
    required_message: str = "Required"
    min: float | None = None
    min_message: str | None = None
    max: float | None = None
    max_message: str | None = None

    def run(self, value: Any) -> Any:
        if is_blank(value):
            if self.required:
                raise FieldCheckError(self.required_message)
            return None

        number = _coerce_number(value)

        if self.min is not None and number < self.min:
            raise FieldCheckError(
                self.min_message or f"Must be at least {_format_bound(self.min)}"
            )
        if self.max is not None and number > self.max:
            raise FieldCheckError(
                self.max_message or f"Must be at most {_format_bound(self.max)}"
            )
        return number


@dataclass(frozen=True)
class BooleanCheck:
    """Checks for checkbox and switch; required means "must be ticked"."""

    kind: ClassVar[str] = "boolean"

    required: bool = False
    required_message: str = "Required"

    def run(self, value: Any) -> Any:
        if value is None:
            if self.required:
                raise FieldCheckError(self.required_message)
            return None
        if not isinstance(value, bool):
            raise FieldCheckError("Expected true or false")
        if self.required and value is not True:
            raise FieldCheckError(self.required_message)
        return value


@dataclass(frozen=True)
class SequenceCheck:
    """Checks for multiselect; required means at least one item."""

    kind: ClassVar[str] = "sequence"

    required: bool = False
    required_message: str = "Required"

    def run(self, value: Any) -> Any:
        if value is None:
            if self.required:
                raise FieldCheckError(self.required_message)
            return None
        if isinstance(value, (str, bytes, Mapping)) or not isinstance(value, Collection):
            raise FieldCheckError("Expected a list of strings")
        items = list(value)
        if any(not isinstance(item, str) for item in items):
            raise FieldCheckError("Expected a list of strings")
        if self.required and not items:
            raise FieldCheckError(self.required_message)
        return items


Check = StringCheck | NumberCheck | BooleanCheck | SequenceCheck

# Plain decimal or scientific notation, ASCII digits only
_INTEGER_TEXT = re.compile(r"[+-]?[0-9]+")
_DECIMAL_TEXT = re.compile(r"[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?")


def _coerce_number(value: Any) -> int | float:
    """Convert a raw value to int or float, or raise FieldCheckError."""
    if isinstance(value, bool):
        raise FieldCheckError("Expected a number")

    if isinstance(value, (int, float)):
        number = value
    elif isinstance(value, str):
        text = value.strip()
        if _INTEGER_TEXT.fullmatch(text):
            number = int(text)
        elif _DECIMAL_TEXT.fullmatch(text):
            number = float(text)
        else:
            raise FieldCheckError("Expected a number")
    else:
        raise FieldCheckError("Expected a number")

    if isinstance(number, float) and not math.isfinite(number):
        raise FieldCheckError("Expected a number")
    return number


def _format_bound(bound: float) -> str:
    return str(int(bound)) if float(bound).is_integer() else str(bound)


# --- Compiled field and spec ---


@dataclass(frozen=True)
class FieldCheck:
    """The compiled check of one field plus its optional custom predicate."""

    field_id: str
    check: Check
    custom: Any = None

    def run(self, value: Any, values: Mapping[str, Any]) -> tuple[Any, str | None]:
        """Return (coerced_value, error_message_or_None)."""
        try:
            coerced = self.check.run(value)
        except FieldCheckError as e:
            return value, e.message

        if self.custom is not None:
            outcome = self.custom(coerced, dict(values))
            if outcome is not True:
                if isinstance(outcome, str) and outcome:
                    return value, outcome
                return value, "Invalid value"

        return coerced, None


@dataclass
class ValidationResult:
    """Outcome of validating a value set."""

    valid: bool
    data: dict[str, Any] = field(default_factory=dict)
    errors: dict[str, list[str]] = field(default_factory=dict)


@dataclass(frozen=True)
class ValidationSpec:
    """Executable validation for one schema, keyed by field id in schema order."""

    form_id: str
    checks: dict[str, FieldCheck]

    def validate_field(self, field_id: str, values: Mapping[str, Any]) -> tuple[Any, str | None]:
        return self.checks[field_id].run(values.get(field_id), values)

    def validate(
        self,
        values: Mapping[str, Any],
        only: Collection[str] | None = None,
    ) -> ValidationResult:
        """Validate every field (or only the given ids) against `values`.

        Fields validate independently; one failure never stops the rest.
        """
        data: dict[str, Any] = {}
        errors: dict[str, list[str]] = {}

        for field_id, field_check in self.checks.items():
            if only is not None and field_id not in only:
                continue
            coerced, error = field_check.run(values.get(field_id), values)
            if error is None:
                data[field_id] = coerced
            else:
                errors[field_id] = [error]

        return ValidationResult(valid=not errors, data=data, errors=errors)


# --- Compiler ---


def compile_field(field_def: FieldDefinition) -> FieldCheck:
    """Compile one field definition into its FieldCheck."""
    rules = field_def.rules or RuleSet()
    check = _build_check(field_def, rules)
    return FieldCheck(field_id=field_def.id, check=check, custom=rules.validate_)


def _build_check(field_def: FieldDefinition, rules: RuleSet) -> Check:
    required = rules.is_required
    required_message = rules.required_message

    match field_def.renderer:
        case FieldRenderer.NUMBER:
            return NumberCheck(
                required=required,
                required_message=required_message,
                min=rules.min.value if rules.min else None,
                min_message=rules.min.message if rules.min else None,
                max=rules.max.value if rules.max else None,
                max_message=rules.max.message if rules.max else None,
            )

        case FieldRenderer.CHECKBOX | FieldRenderer.SWITCH:
            return BooleanCheck(required=required, required_message=required_message)

        case FieldRenderer.MULTISELECT:
            return SequenceCheck(required=required, required_message=required_message)

    input_type = (field_def.input_type or "").lower()
    return StringCheck(
        required=required,
        required_message=required_message,
        min_length=rules.min_length.value if rules.min_length else None,
        min_length_message=rules.min_length.message if rules.min_length else None,
        max_length=rules.max_length.value if rules.max_length else None,
        max_length_message=rules.max_length.message if rules.max_length else None,
        pattern=re.compile(rules.pattern.value) if rules.pattern else None,
        pattern_message=rules.pattern.message if rules.pattern else None,
        email=input_type == "email",
        url=input_type == "url",
        date=field_def.renderer == FieldRenderer.DATE,
    )


class _SpecCache:
    """Bounded cache of compiled specs keyed by schema identity."""

    def __init__(self, maxsize: int = MAX_CACHED_SPECS):
        self._maxsize = maxsize
        self._entries: OrderedDict[int, tuple[FormSchema, ValidationSpec]] = OrderedDict()

    def get(self, schema: FormSchema) -> ValidationSpec | None:
        entry = self._entries.get(id(schema))
        if entry is None or entry[0] is not schema:
            return None
        self._entries.move_to_end(id(schema))
        return entry[1]

    def put(self, schema: FormSchema, spec: ValidationSpec) -> None:
        self._entries[id(schema)] = (schema, spec)
        self._entries.move_to_end(id(schema))
        while len(self._entries) > self._maxsize:
            self._entries.popitem(last=False)

    def clear(self) -> None:
        self._entries.clear()


_cache = _SpecCache()


def compile_validation(schema: FormSchema) -> ValidationSpec:
    """Compile a schema into a ValidationSpec, once per schema object."""
    spec = _cache.get(schema)
    if spec is not None:
        return spec

    checks = {
        field_id: compile_field(field_def)
        for field_id, field_def in schema.fields.items()
    }
    spec = ValidationSpec(form_id=schema.id, checks=checks)
    _cache.put(schema, spec)
    logger.debug("Compiled validation for form '%s' (%d fields)", schema.id, len(checks))
    return spec


def clear_compiled_cache() -> None:
    _cache.clear()
