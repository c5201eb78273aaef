"""
Shared test fixtures and helpers for the SchemaForm test suite.
"""

from pathlib import Path
from typing import Any

import pytest

from schemaform.core.loader import load_schema
from schemaform.core.schema import FormSchema
from schemaform.core.validation import clear_compiled_cache

SCHEMAS_DIR = Path(__file__).parent / "schemas"


def build_schema(fields: dict[str, Any], layout: list[dict] | None = None, **overrides) -> FormSchema:
    """Build a FormSchema from field dicts, laying every field out in a stack by default."""
    if layout is None:
        layout = [{
            "kind": "stack",
            "children": [{"kind": "field", "field_id": key} for key in fields],
        }]
    data = {"id": "test_form", "meta": {"title": "Test"}, "fields": fields, "layout": layout}
    data.update(overrides)
    return FormSchema.model_validate(data)


@pytest.fixture(autouse=True)
def _fresh_compile_cache():
    clear_compiled_cache()
    yield
    clear_compiled_cache()


@pytest.fixture
def contact_schema() -> FormSchema:
    return load_schema(SCHEMAS_DIR / "contact.json")


@pytest.fixture
def insurance_schema() -> FormSchema:
    return load_schema(SCHEMAS_DIR / "insurance_quote.yaml")


@pytest.fixture
def signup_schema() -> FormSchema:
    """Email plus newsletter opt-in."""
    return build_schema({
        "email": {
            "label": "Email",
            "renderer": "text",
            "input_type": "email",
            "rules": {"required": True},
        },
        "newsletter": {"label": "Newsletter", "renderer": "checkbox"},
    })
