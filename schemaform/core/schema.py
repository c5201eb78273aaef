"""
Form schema definition models.

These Pydantic models are the declarative contract between a schema
author and the engine. The schema is the single source of truth for
field definitions, validation rules, visibility conditions and layout.
Authoring mistakes (duplicate keys, dangling references, bad regexes)
fail fast at construction time.
"""

import re
from collections.abc import Callable
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


class SchemaModel(BaseModel):
    """Base model accepting both snake_case names and camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


# --- Enums ---


class FieldRenderer(str, Enum):
    """Closed set of widget kinds a field can be rendered with."""

    TEXT = "text"
    TEXTAREA = "textarea"
    SELECT = "select"
    MULTISELECT = "multiselect"
    NUMBER = "number"
    DATE = "date"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    SWITCH = "switch"
    FILE = "file"


class VisibilityOperator(str, Enum):
    """Operators understood by the visibility evaluator.

    Conditions keep their operator as a plain string so that an
    unrecognised operator still loads; see `core.visibility`.
    """

    EQUALS = "equals"
    NOT_EQUALS = "notEquals"
    IN = "in"


class Spacing(str, Enum):
    """Spacing scale for stack and grid layouts."""

    SMALL = "sm"
    MEDIUM = "md"
    LARGE = "lg"


# --- Validation rules ---


class LengthRule(SchemaModel):
    """Minimum or maximum string length."""

    value: int = Field(..., ge=0)
    message: str | None = None


class BoundRule(SchemaModel):
    """Minimum or maximum numeric value."""

    value: float
    message: str | None = None


class PatternRule(SchemaModel):
    """Regular expression a non-empty string value must match."""

    value: str = Field(..., description="Regular expression source")
    message: str | None = None

    @field_validator("value")
    @classmethod
    def validate_regex(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as e:
            raise ValueError(f"Invalid pattern {value!r}: {e}") from e
        return value


CustomValidator = Callable[[Any, dict[str, Any]], Any]


class RuleSet(SchemaModel):
    """Per-field validation constraints. Every rule is optional."""

    required: bool | str = Field(
        default=False,
        description="True, or a custom message used when the value is empty",
    )
    min_length: LengthRule | None = None
    max_length: LengthRule | None = None
    min: BoundRule | None = None
    max: BoundRule | None = None
    pattern: PatternRule | None = None
    validate_: CustomValidator | None = Field(
        default=None,
        alias="validate",
        exclude=True,
        description="Predicate (value, values) returning True or an error message",
    )

    @property
    def is_required(self) -> bool:
        return bool(self.required)

    @property
    def required_message(self) -> str:
        if isinstance(self.required, str) and self.required:
            return self.required
        return "Required"


# --- Visibility ---


class VisibilityCondition(SchemaModel):
    """A single (field, operator, value) condition."""

    field: str = Field(..., min_length=1)
    op: str = Field(..., description="One of VisibilityOperator; unknown values fail open")
    value: Any = None


# --- Field definition ---


class FieldDefinition(SchemaModel):
    """Definition of a single form field.

    `default_value` counts as declared only if it was supplied, so an
    explicit null default is distinguishable from no default at all.
    """

    id: str | None = None
    label: str = ""
    renderer: FieldRenderer
    input_type: str | None = None
    placeholder: str | None = None
    default_value: Any = None
    props: dict[str, Any] = Field(default_factory=dict)
    rules: RuleSet | None = None
    visible_when: VisibilityCondition | list[VisibilityCondition] | None = None

    @property
    def has_default(self) -> bool:
        return "default_value" in self.model_fields_set

    @property
    def is_required(self) -> bool:
        return self.rules is not None and self.rules.is_required

    @property
    def conditions(self) -> list[VisibilityCondition]:
        """Visibility conditions as a list (empty when always visible)."""
        if self.visible_when is None:
            return []
        if isinstance(self.visible_when, list):
            return list(self.visible_when)
        return [self.visible_when]


# --- Layout ---


class LayoutNodeBase(SchemaModel):
    col_span: int = Field(default=1, ge=1, description="Columns claimed inside a grid")


class FieldNode(LayoutNodeBase):
    kind: Literal["field"] = "field"
    field_id: str = Field(..., min_length=1)


class StackNode(LayoutNodeBase):
    kind: Literal["stack"] = "stack"
    spacing: Spacing = Spacing.MEDIUM
    children: list["LayoutNode"] = Field(default_factory=list)


class GridNode(LayoutNodeBase):
    kind: Literal["grid"] = "grid"
    cols: int = Field(default=2, ge=1)
    spacing: Spacing = Spacing.MEDIUM
    children: list["LayoutNode"] = Field(default_factory=list)


class SectionNode(LayoutNodeBase):
    kind: Literal["section"] = "section"
    title: str | None = None
    subtitle: str | None = None
    with_divider: bool = True
    collapsible: bool = False
    children: list["LayoutNode"] = Field(default_factory=list)


LayoutNode = Annotated[
    Union[FieldNode, StackNode, GridNode, SectionNode],
    Field(discriminator="kind"),
]

StackNode.model_rebuild()
GridNode.model_rebuild()
SectionNode.model_rebuild()


def iter_field_nodes(nodes: list) -> list[FieldNode]:
    """Return every `field` leaf under the given nodes, depth first."""
    found: list[FieldNode] = []
    for node in nodes:
        if isinstance(node, FieldNode):
            found.append(node)
        else:
            found.extend(iter_field_nodes(node.children))
    return found


# --- Top-level form schema ---


class FormMeta(SchemaModel):
    title: str = ""
    subtitle: str | None = None
    description: str | None = None


class FormSchema(SchemaModel):
    """Top-level form schema.

    Validates key uniqueness and that every layout and visibility
    reference resolves to a declared field.
    """

    id: str = Field(..., min_length=1)
    meta: FormMeta = Field(default_factory=FormMeta)
    fields: dict[str, FieldDefinition] = Field(..., min_length=1)
    layout: list[LayoutNode] = Field(default_factory=list)

    @field_validator("fields", mode="before")
    @classmethod
    def fields_from_list(cls, value: Any) -> Any:
        """Accept a list of definitions keyed by their `id`."""
        if not isinstance(value, list):
            return value

        keyed: dict[str, Any] = {}
        for item in value:
            field_id = item.get("id") if isinstance(item, dict) else getattr(item, "id", None)
            if not field_id:
                raise ValueError("Field definitions given as a list must each have an 'id'")
            if field_id in keyed:
                raise ValueError(f"Duplicate field ID: '{field_id}'")
            keyed[field_id] = item
        return keyed

    @model_validator(mode="after")
    def validate_cross_field_references(self) -> "FormSchema":
        """Fill missing ids and check layout and visibility references."""
        for key, field in list(self.fields.items()):
            if field.id is None:
                self.fields[key] = field.model_copy(update={"id": key})
            elif field.id != key:
                raise ValueError(
                    f"Field '{key}' declares a different id '{field.id}'"
                )

        for node in iter_field_nodes(self.layout):
            if node.field_id not in self.fields:
                raise ValueError(
                    f"Layout references non-existent field '{node.field_id}'"
                )

        for key, field in self.fields.items():
            for condition in field.conditions:
                if condition.field not in self.fields:
                    raise ValueError(
                        f"Field '{key}' has visible_when referencing "
                        f"non-existent field '{condition.field}'"
                    )
                if condition.field == key:
                    raise ValueError(
                        f"Field '{key}' has visible_when referencing itself"
                    )

        return self

    def get_field(self, field_id: str) -> FieldDefinition | None:
        return self.fields.get(field_id)
