"""
Unit tests for the schema model: parsing, aliases, validation and lookups.
"""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from record_editor.schema_model import (
    ClassDefinition,
    FieldDefinition,
    FieldKind,
    SchemaRoot,
    check_acyclic,
    find_field,
    iter_class_paths,
    node_path_key,
    resolve_chain,
    resolve_class,
    resolve_node,
    schema_from_document,
    schema_to_document,
    split_node_path,
)

DEFAULT_SCHEMA_PATH = Path(__file__).parent / "schemas" / "default_schema.json"


def _tree_schema():
    return schema_from_document({
        "classes": [
            {
                "id": "root",
                "label": "Root",
                "fields": [{"key": "name", "type": "text"}],
                "subClasses": [
                    {
                        "id": "a",
                        "fields": [{"key": "x", "type": "number"}],
                        "subClasses": [{"id": "a1"}, {"id": "a2"}]
                    },
                    {"id": "b"}
                ]
            },
            {"id": "flat", "fields": [{"key": "title", "type": "text"}]}
        ]
    })


class TestParsing:
    """Test cases for reading schema documents."""

    def test_camel_case_document(self):
        """Test parsing a camelCase schema document."""
        schema = _tree_schema()

        assert [cls.id for cls in schema.classes] == ["root", "flat"]
        root = schema.classes[0]
        assert root.display_label == "Root"
        assert [child.id for child in root.children] == ["a", "b"]
        assert root.field_list[0].type == FieldKind.TEXT

    def test_legacy_dropdown_and_condition_spelling(self):
        """Test legacy type and condition spellings."""
        field = FieldDefinition.model_validate({
            "key": "code",
            "type": "dropdown",
            "options": ["X", "Y"],
            "hideIf": {"field": "command", "equals": "SELECT_INPUT"}
        })

        assert field.type == FieldKind.CHOICE
        assert field.hide_if.reference_field_key == "command"
        assert field.hide_if.required_value == "SELECT_INPUT"

    def test_missing_label_falls_back_to_key(self):
        """Test labels falling back to keys and ids."""
        field = FieldDefinition.model_validate({"key": "modelId", "type": "text"})
        cls = ClassDefinition.model_validate({"id": "model"})

        assert field.display_label == "modelId"
        assert cls.display_label == "model"

    def test_has_records_defaults_to_enabled(self):
        """Test the default of hasRecords."""
        schema = _tree_schema()
        grouping = ClassDefinition.model_validate({"id": "group", "hasRecords": False})

        assert schema.classes[0].records_enabled is True
        assert grouping.records_enabled is False

    def test_bundled_default_schema_loads(self):
        """Test parsing the bundled default schema."""
        with open(DEFAULT_SCHEMA_PATH, 'r', encoding='utf-8') as f:
            schema = schema_from_document(json.load(f))

        tv = resolve_class(schema, "tvSwitching")
        assert tv is not None
        assert tv.records_enabled is False
        manufacturer = resolve_node(schema, ("tvSwitching", "manufacturer"))
        commands = find_field(manufacturer.field_list, "standardCommands")
        assert commands.prepopulate_from == "command"
        assert find_field(commands.columns, "inputMappings").show_if.required_value == "SELECT_INPUT"


class TestValidation:
    """Test cases for rejected schema documents."""

    def test_choice_without_options_rejected(self):
        """Test a choice field without options."""
        with pytest.raises(ValidationError):
            FieldDefinition.model_validate({"key": "c", "type": "choice"})

    def test_table_without_columns_rejected(self):
        """Test a table field without columns."""
        with pytest.raises(ValidationError):
            FieldDefinition.model_validate({"key": "t", "type": "table"})

    def test_unknown_type_rejected(self):
        """Test an unsupported field type."""
        with pytest.raises(ValidationError):
            FieldDefinition.model_validate({"key": "d", "type": "date"})

    def test_duplicate_field_keys_rejected(self):
        """Test duplicate field keys in one class."""
        with pytest.raises(ValidationError):
            ClassDefinition.model_validate({
                "id": "c",
                "fields": [{"key": "a"}, {"key": "a"}]
            })

    def test_duplicate_sibling_ids_rejected(self):
        """Test duplicate ids among sibling classes."""
        with pytest.raises(ValidationError):
            SchemaRoot.model_validate({"classes": [{"id": "x"}, {"id": "x"}]})

    def test_id_with_separator_rejected(self):
        """Test a class id containing the path separator."""
        with pytest.raises(ValidationError):
            ClassDefinition.model_validate({"id": "a/b"})

    def test_choice_default_outside_options_rejected(self):
        """Test a choice default that is not an option."""
        with pytest.raises(ValidationError) as exc_info:
            FieldDefinition.model_validate({
                "key": "mode", "type": "choice", "options": ["A", "B"], "defaultValue": "Z"
            })

        assert "not one of its options" in str(exc_info.value)

    def test_number_default_must_be_numeric(self):
        """Test number defaults that are not finite numbers."""
        for default in ("many", True, "nan"):
            with pytest.raises(ValidationError):
                FieldDefinition.model_validate({"key": "n", "type": "number", "defaultValue": default})

    def test_valid_defaults_accepted(self):
        """Test defaults that match their field types."""
        choice = FieldDefinition.model_validate({
            "key": "mode", "type": "choice", "options": ["A", "B"], "defaultValue": "B"
        })
        number = FieldDefinition.model_validate({"key": "n", "type": "number", "defaultValue": "2.5"})

        assert choice.default_value == "B"
        assert number.default_value == "2.5"

    def test_cycle_in_assembled_schema_detected(self):
        """Test cycle detection in a schema built in code."""
        parent = ClassDefinition(id="parent")
        child = ClassDefinition(id="child", sub_classes=[parent])
        parent.sub_classes = [child]

        with pytest.raises(ValueError):
            check_acyclic(SchemaRoot(classes=[parent]))


class TestSerialization:
    """Test cases for writing schema documents."""

    def test_round_trip_uses_canonical_names(self):
        """Test serializing with canonical names."""
        schema = schema_from_document({
            "classes": [{
                "id": "c",
                "fields": [
                    {"key": "kind", "type": "dropdown", "options": ["A", "B"]},
                    {"key": "extra", "type": "text", "showIf": {"field": "kind", "equals": "B"}}
                ]
            }]
        })

        document = schema_to_document(schema)
        fields = document["classes"][0]["fields"]

        assert fields[0]["type"] == "choice"
        assert fields[1]["showIf"] == {"referenceFieldKey": "kind", "requiredValue": "B"}
        assert "hideIf" not in fields[1]
        assert schema_from_document(document) == schema


class TestResolution:
    """Test cases for class, chain and node path lookups."""

    def test_resolve_unknown_class(self):
        """Test resolving an unknown class id."""
        assert resolve_class(_tree_schema(), "missing") is None
        assert resolve_class(_tree_schema(), None) is None

    def test_chain_defaults_to_first_sub_class(self):
        """Test the chain with first sub-class defaulting."""
        chain = resolve_chain(_tree_schema(), "root")

        assert [node.id for node in chain] == ["a", "a1"]

    def test_chain_follows_selections(self):
        """Test the chain along chosen sub-classes."""
        chain = resolve_chain(_tree_schema(), "root", ["a", "a2"])

        assert [node.id for node in chain] == ["a", "a2"]

    def test_chain_without_default_stops_at_unselected_level(self):
        """Test that the chain stops at an unselected level."""
        chain = resolve_chain(_tree_schema(), "root", ["a"], default_first=False)

        assert [node.id for node in chain] == ["a"]

    def test_chain_stops_at_unknown_selection(self):
        """Test that the chain stops at a stale id."""
        chain = resolve_chain(_tree_schema(), "root", ["a", "gone"])

        assert [node.id for node in chain] == ["a"]

    def test_chain_of_leaf_class_is_empty(self):
        """Test the chain of classes without sub-classes."""
        assert resolve_chain(_tree_schema(), "flat") == []
        assert resolve_chain(_tree_schema(), "missing") == []

    def test_node_path_key_round_trip(self):
        """Test flattening and splitting node paths."""
        path = ("root", "a", "a1")

        assert node_path_key(path) == "root/a/a1"
        assert split_node_path("root/a/a1") == path

    def test_resolve_node(self):
        """Test resolving full node paths."""
        schema = _tree_schema()

        assert resolve_node(schema, ("root", "a", "a2")).id == "a2"
        assert resolve_node(schema, ("root", "zzz")) is None
        assert resolve_node(schema, ()) is None

    def test_iter_class_paths_depth_first(self):
        """Test depth-first iteration of node paths."""
        paths = [path for path, _ in iter_class_paths(_tree_schema())]

        assert paths == [
            ("root",),
            ("root", "a"),
            ("root", "a", "a1"),
            ("root", "a", "a2"),
            ("root", "b"),
            ("flat",),
        ]
