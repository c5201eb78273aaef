"""
Unit tests for the layout composer.

Tests cover:
- Field leaves resolve to a widget payload, or nothing when hidden
- Stack spacing and child order
- Grid columns and column spans (clamped to the column count)
- Section headers and dividers, untitled sections
- Custom field renderers
- Dangling references in unvalidated schemas
"""

import pytest

from schemaform.core.form_state import FormSession
from schemaform.core.layout import (
    LayoutError,
    compose_form,
    compose_layout,
    compose_node,
    field_view,
)
from schemaform.core.schema import FieldNode, FormSchema


@pytest.fixture
def contact(contact_schema) -> FormSession:
    return FormSession(contact_schema)


@pytest.fixture
def insurance(insurance_schema) -> FormSession:
    return FormSession(insurance_schema)


def field_ids(node) -> list[str]:
    """Collect field ids of a composed node tree in render order."""
    if node["kind"] == "field":
        return [node["field_id"]]
    if node["kind"] == "grid":
        return [fid for cell in node["cells"] for fid in field_ids(cell["node"])]
    return [fid for child in node["children"] for fid in field_ids(child)]


# =============================================================
# Test: Field leaves
# =============================================================


class TestFieldLeaves:

    def test_field_view_payload(self, contact):
        field = contact.schema.fields["name"]
        view = field_view(field, contact)
        assert view == {
            "kind": "field",
            "field_id": "name",
            "label": "Full name",
            "renderer": "text",
            "input_type": None,
            "placeholder": "Jane Doe",
            "props": {},
            "required": True,
            "value": "",
            "touched": False,
            "error": None,
        }

    def test_error_shown_once_touched(self, contact):
        contact.set_value("name", "J")
        view = field_view(contact.schema.fields["name"], contact)
        assert view["touched"] is True
        assert view["error"] == "Name is too short"

    def test_hidden_field_renders_nothing(self, contact):
        node = FieldNode(field_id="other_topic")
        assert compose_node(node, contact) is None

    def test_field_appears_when_visible(self, contact):
        contact.set_value("topic", "other")
        composed = compose_node(FieldNode(field_id="other_topic"), contact)
        assert composed["field_id"] == "other_topic"

    def test_dangling_reference_raises(self):
        schema = FormSchema.model_construct(
            id="broken",
            fields={},
            layout=[FieldNode(field_id="ghost")],
        )
        session = FormSession.__new__(FormSession)
        session.schema = schema
        with pytest.raises(LayoutError, match="ghost"):
            compose_layout(session)


# =============================================================
# Test: Containers
# =============================================================


class TestContainers:

    def test_stack(self, contact):
        stack = compose_layout(contact)[1]["children"][0]
        assert stack["kind"] == "stack"
        assert stack["spacing"] == "lg"
        assert field_ids(stack) == ["topic", "message", "newsletter"]

    def test_stack_includes_revealed_field_in_order(self, contact):
        contact.set_value("topic", "other")
        stack = compose_layout(contact)[1]["children"][0]
        assert field_ids(stack) == ["topic", "other_topic", "message", "newsletter"]

    def test_grid(self, contact):
        grid = compose_layout(contact)[0]["children"][0]
        assert grid["kind"] == "grid"
        assert grid["cols"] == 2
        assert grid["spacing"] == "md"
        assert [cell["col_span"] for cell in grid["cells"]] == [1, 1]

    def test_grid_span_clamped_to_cols(self, insurance):
        insurance.set_value("plan", "pro")
        policy_grid = compose_layout(insurance)[1]["children"][0]
        spans = {cell["node"]["field_id"]: cell["col_span"] for cell in policy_grid["cells"]}
        assert spans == {"plan": 1, "fleet_size": 1, "coverage": 2, "start_date": 1}

    def test_grid_drops_hidden_cells(self, insurance):
        applicant_grid = compose_layout(insurance)[0]["children"][0]
        assert applicant_grid["cols"] == 3
        assert applicant_grid["spacing"] == "sm"
        assert field_ids(applicant_grid) == ["country", "has_ssn"]

    def test_titled_section(self, contact):
        section = compose_layout(contact)[0]
        assert section["header"] == {"title": "About you", "subtitle": None}
        assert section["divider"] is True
        assert section["collapsible"] is False

    def test_untitled_section_has_no_chrome(self, contact):
        section = compose_layout(contact)[1]
        assert section["header"] is None
        assert section["divider"] is False

    def test_section_without_divider(self, insurance):
        section = compose_layout(insurance)[0]
        assert section["header"] == {"title": "Applicant", "subtitle": "Where you live"}
        assert section["divider"] is False

    def test_collapsible_section(self, insurance):
        assert compose_layout(insurance)[1]["collapsible"] is True

    def test_top_level_field_node(self, insurance):
        last = compose_layout(insurance)[-1]
        assert last["kind"] == "field"
        assert last["field_id"] == "accept_terms"


# =============================================================
# Test: Whole form
# =============================================================


class TestComposeForm:

    def test_form_envelope(self, contact):
        form = compose_form(contact)
        assert form["form_id"] == "contact"
        assert form["meta"] == {
            "title": "Contact Us",
            "subtitle": "We usually reply within a day",
            "description": None,
        }
        assert form["visible_fields"] == ["name", "email", "topic", "message", "newsletter"]
        assert form["errors"] == {}
        assert len(form["layout"]) == 2

    def test_errors_after_failed_submit(self, contact):
        contact.submit()
        form = compose_form(contact)
        assert set(form["errors"]) == {"name", "email", "topic"}

    def test_custom_renderer(self, contact):
        def render(field, session):
            return {"kind": "field", "field_id": field.id, "html": f"<input name={field.id}>"}

        form = compose_form(contact, render_field=render)
        grid = form["layout"][0]["children"][0]
        assert grid["cells"][0]["node"]["html"] == "<input name=name>"

    def test_hidden_values_survive_composition(self, contact):
        contact.set_values({"topic": "other", "other_topic": "Billing"})
        contact.set_value("topic", "sales")
        form = compose_form(contact)
        assert "other_topic" not in form["visible_fields"]
        assert contact.get_value("other_topic") == "Billing"
