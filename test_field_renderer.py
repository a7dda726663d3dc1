"""
Unit tests for the presentation-agnostic field rendering contract.
"""

import pytest

from record_editor.exceptions import InvalidValue
from record_editor.field_renderer import (
    CHOICE_PLACEHOLDER,
    accept_value,
    choice_options,
    describe_field,
    describe_record,
    display_value,
)
from record_editor.schema_model import FieldDefinition, FieldKind

COMMANDS = FieldDefinition.model_validate({
    "key": "commands",
    "label": "Commands",
    "type": "table",
    "columns": [
        {"key": "command", "type": "choice", "options": ["POWER_ON", "SELECT_INPUT"]},
        {"key": "code", "type": "text",
         "hideIf": {"referenceFieldKey": "command", "requiredValue": "SELECT_INPUT"}},
        {"key": "timeout", "type": "number"},
    ]
})


class TestDisplayValue:
    """Test cases for stored-to-widget value conversion."""

    def test_number_empty_is_none(self):
        """Test that empty numbers display as None."""
        number = FieldDefinition.model_validate({"key": "n", "type": "number"})

        assert display_value(number, "") is None
        assert display_value(number, None) is None
        assert display_value(number, 0) == 0
        assert display_value(number, "7") == 7
        assert display_value(number, "abc") is None

    def test_text_and_choice_are_strings(self):
        """Test display values of text and choice fields."""
        text = FieldDefinition.model_validate({"key": "t"})

        assert display_value(text, None) == ""
        assert display_value(text, 5) == "5"

    def test_table_non_list_is_empty(self):
        """Test that a malformed table value displays as no rows."""
        assert display_value(COMMANDS, "oops") == []


class TestDescribeField:
    """Test cases for FieldView construction."""

    def test_scalar_field_view(self):
        """Test the view of a scalar field."""
        view = describe_field(FieldDefinition.model_validate({"key": "name", "label": "Name"}), "Acme")

        assert view.key == "name"
        assert view.label == "Name"
        assert view.kind == FieldKind.TEXT
        assert view.value == "Acme"
        assert view.visible is True

    def test_table_view_marks_hidden_cells(self):
        """Test that hidden table cells are marked per row."""
        rows = [{"command": "SELECT_INPUT", "timeout": 5}, {"command": "POWER_ON", "code": "x"}]

        view = describe_field(COMMANDS, rows)

        assert [column.key for column in view.columns] == ["command", "code", "timeout"]
        assert [cell.visible for cell in view.rows[0]] == [True, False, True]
        assert [cell.visible for cell in view.rows[1]] == [True, True, True]
        assert view.rows[1][2].value is None
        assert view.is_empty_table is False

    def test_empty_table(self):
        """Test the view of a table without rows."""
        assert describe_field(COMMANDS, []).is_empty_table is True

    def test_describe_record_visibility(self):
        """Test that hidden fields are left out of a record view."""
        fields = [
            FieldDefinition.model_validate({"key": "kind", "type": "choice", "options": ["A", "B"]}),
            FieldDefinition.model_validate({
                "key": "extra", "showIf": {"referenceFieldKey": "kind", "requiredValue": "B"}
            }),
        ]

        views = describe_record(fields, {"kind": "A"})

        assert [view.visible for view in views] == [True, False]


class TestAcceptValue:
    """Test cases for widget-to-stored value conversion."""

    def test_placeholder_maps_to_empty(self):
        """Test that the choice placeholder is stored as empty."""
        choice = COMMANDS.columns[0]

        assert accept_value(choice, CHOICE_PLACEHOLDER) == ""
        assert accept_value(choice, "POWER_ON") == "POWER_ON"

    def test_integral_float_becomes_int(self):
        """Test that whole floats from widgets become ints."""
        number = COMMANDS.columns[2]

        assert accept_value(number, 3.0) == 3
        assert isinstance(accept_value(number, 3.0), int)
        assert accept_value(number, 2.5) == 2.5
        assert accept_value(number, None) == ""

    def test_invalid_choice_raises(self):
        """Test that a value outside the options is rejected."""
        with pytest.raises(InvalidValue):
            accept_value(COMMANDS.columns[0], "REBOOT")

    def test_choice_options_lead_with_placeholder(self):
        """Test the placeholder leading the choice options."""
        assert choice_options(COMMANDS.columns[0]) == [CHOICE_PLACEHOLDER, "POWER_ON", "SELECT_INPUT"]
