"""
Tests for the schema analyzer and schema records.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from gensonnet.errors import SchemaError
from gensonnet.readers import ExtractedSchema
from gensonnet.schema import SchemaAnalyzer, SchemaRecord, analyze_schema


class TestSchemaAnalyzer:
    """Structure and constraint extraction"""

    def test_object_with_required_string_field(self):
        schema = {
            "type": "object",
            "required": ["a"],
            "properties": {
                "a": {"type": "string", "minLength": 2, "maxLength": 5},
                "b": {"type": "integer"},
            },
        }
        analysis = analyze_schema(schema)

        assert analysis.schema_type == "object"
        assert analysis.required == ["a"]

        a = analysis.fields["a"]
        assert a.field_type == "string"
        assert a.validation_rules.min_length == 2
        assert a.validation_rules.max_length == 5

        b = analysis.fields["b"]
        assert b.field_type == "integer"
        assert b.validation_rules.min_length is None
        assert b.validation_rules.max_length is None
        assert b.validation_rules.pattern is None

    def test_empty_object_schema(self):
        analysis = analyze_schema({"type": "object"})
        assert analysis.schema_type == "object"
        assert analysis.fields == {}
        assert analysis.required == []

    def test_root_without_type_is_object(self):
        assert analyze_schema({}).schema_type == "object"

    def test_untyped_nested_field_passes_through(self):
        analysis = analyze_schema({"properties": {"x": {"description": "anything goes"}}})
        x = analysis.fields["x"]
        assert x.field_type == ""
        assert x.validation_rules.description == "anything goes"
        assert x.fields == {}

    def test_infers_object_and_array_from_markers(self):
        analysis = analyze_schema(
            {
                "properties": {
                    "o": {"properties": {"p": {"type": "string"}}},
                    "l": {"items": {"type": "integer"}},
                }
            }
        )
        assert analysis.fields["o"].field_type == "object"
        assert analysis.fields["o"].fields["p"].field_type == "string"
        assert analysis.fields["l"].field_type == "array"
        assert analysis.fields["l"].array_item_type.field_type == "integer"

    def test_fields_only_populated_for_objects(self):
        analysis = analyze_schema({"type": "object", "properties": {"s": {"type": "string", "properties": {"x": {}}}}})
        assert analysis.fields["s"].fields == {}

    def test_arrays_of_arrays_recurse(self):
        schema = {"type": "string"}
        for _ in range(40):
            schema = {"type": "array", "items": schema}
        analysis = analyze_schema({"type": "object", "properties": {"deep": schema}})

        node = analysis.fields["deep"]
        depth = 0
        while node.field_type == "array":
            node = node.array_item_type
            depth += 1
        assert depth == 40
        assert node.field_type == "string"
        assert node.path == "deep" + "[]" * 40

    def test_field_paths(self):
        analysis = analyze_schema({"properties": {"spec": {"properties": {"name": {"type": "string"}}}}})
        assert analysis.fields["spec"].fields["name"].path == "spec.name"

    def test_enum_values_recorded_as_strings(self):
        analysis = analyze_schema({"properties": {"e": {"enum": ["a", 1, True, None]}}})
        assert analysis.fields["e"].validation_rules.enum_values == ["a", "1", "true", "null"]

    def test_numeric_constraints(self):
        rules = analyze_schema({"properties": {"n": {"type": "number", "minimum": 1, "maximum": 9, "exclusiveMaximum": True, "multipleOf": 0.5}}}).fields["n"].validation_rules
        assert rules.minimum == 1
        assert rules.maximum == 9
        assert rules.exclusive_maximum is True
        assert rules.exclusive_minimum is None
        assert rules.multiple_of == 0.5

    def test_numeric_exclusive_bound(self):
        rules = analyze_schema({"properties": {"n": {"type": "number", "exclusiveMinimum": 0}}}).fields["n"].validation_rules
        assert rules.minimum == 0
        assert rules.exclusive_minimum is True

    def test_verbatim_annotations(self):
        rules = analyze_schema(
            {"properties": {"m": {"type": "object", "format": "custom", "default": {"a": 1}, "additionalProperties": {"type": "string"}}}}
        ).fields["m"].validation_rules
        assert rules.format == "custom"
        assert rules.has_default is True
        assert rules.default_value == {"a": 1}
        assert rules.additional_properties == {"type": "string"}

    def test_explicit_null_default_is_kept(self):
        rules = analyze_schema({"properties": {"m": {"type": "string", "default": None}}}).fields["m"].validation_rules
        assert rules.has_default is True
        assert rules.default_value is None

    def test_nullable_type_list(self):
        analysis = analyze_schema({"properties": {"s": {"type": ["string", "null"]}, "u": {"type": ["string", "integer"]}}})
        assert analysis.fields["s"].field_type == "string"
        assert analysis.fields["u"].field_type == ""

    def test_self_reference_is_not_expanded(self):
        analysis = analyze_schema({"type": "object", "properties": {"child": {"$ref": "#"}}})
        child = analysis.fields["child"]
        assert child.reference == "#"
        assert child.fields == {}
        assert child.composition() == ("reference", "#")

    def test_only_first_composition_marker_is_kept(self):
        analysis = analyze_schema({"oneOf": [{"type": "string"}], "anyOf": [{"type": "integer"}]})
        assert analysis.one_of == [{"type": "string"}]
        assert analysis.any_of is None
        assert analysis.all_of is None

    def test_required_under_composition_is_not_checked(self):
        analysis = analyze_schema({"allOf": [{"$ref": "#/definitions/Base"}], "required": ["name"]})
        assert analysis.required == ["name"]
        assert analysis.fields == {}

    def test_analyzer_keeps_no_state(self):
        analyzer = SchemaAnalyzer()
        first = analyzer.analyze({"properties": {"a": {"type": "string"}}})
        second = analyzer.analyze({"properties": {"b": {"type": "string"}}})
        assert list(first.fields) == ["a"]
        assert list(second.fields) == ["b"]


class TestSchemaAnalyzerErrors:
    """Malformed constraints raise SchemaError with the field path"""

    @pytest.mark.parametrize(
        "schema,message",
        [
            ({"type": "string", "minLength": "two"}, "minLength"),
            ({"type": "string", "minLength": True}, "minLength"),
            ({"type": "string", "maxLength": -1}, "maxLength"),
            ({"type": "string", "minLength": 5, "maxLength": 2}, "greater than maxLength"),
            ({"type": "number", "minimum": 10, "maximum": 1}, "greater than maximum"),
            ({"type": "number", "minimum": "0"}, "minimum"),
            ({"type": "number", "multipleOf": 0}, "multipleOf"),
            ({"type": "string", "pattern": 5}, "pattern"),
            ({"type": "string", "enum": []}, "enum"),
            ({"type": "object", "required": ["zz"], "properties": {"a": {}}}, "zz"),
            ({"type": "object", "required": "a"}, "required"),
            ({"type": "object", "required": ["a"]}, "not declared"),
            ({"required": ["a"], "properties": {}}, "not declared"),
            ({"type": "widget"}, "unsupported type"),
            ({"type": 3}, "type must be a string"),
            ({"$ref": 7}, r"\$ref"),
            ({"oneOf": {"type": "string"}}, "oneOf"),
        ],
    )
    def test_malformed_constraint(self, schema, message):
        with pytest.raises(SchemaError, match=message):
            analyze_schema(schema)

    def test_error_carries_field_path(self):
        schema = {"properties": {"spec": {"properties": {"name": {"type": "string", "maxLength": -1}}}}}
        with pytest.raises(SchemaError) as exc_info:
            analyze_schema(schema)
        assert exc_info.value.path == "spec.name"
        assert str(exc_info.value).startswith("spec.name: ")

    def test_non_mapping_document(self):
        with pytest.raises(SchemaError, match="mapping"):
            analyze_schema(["not", "a", "schema"])


def _extracted(metadata: dict, schema: dict | None = None) -> ExtractedSchema:
    return ExtractedSchema(
        name="widgets.example.com",
        schema_type="crd",
        metadata=metadata,
        source_path=Path("widgets.yaml"),
        schema=schema or {"type": "object", "properties": {"spec": {"type": "object", "properties": {"size": {"type": "string"}}}}},
    )


class TestSchemaRecord:
    def test_from_extracted(self):
        record = SchemaRecord.from_extracted(_extracted({"group": "example.com", "version": "v1", "kind": "Widget"}))
        assert record.api_version == "example.com/v1"
        assert record.identity == ("widgets.example.com", "example.com", "v1")
        assert record.schema_analysis.schema_type == "object"
        assert list(record.spec_analysis.fields) == ["size"]

    def test_core_group_api_version(self):
        record = SchemaRecord.from_extracted(_extracted({"group": "", "version": "v1", "kind": "Pod"}))
        assert record.api_version == "v1"

    def test_declared_api_version_must_match(self):
        with pytest.raises(SchemaError, match="api_version"):
            SchemaRecord.from_extracted(_extracted({"group": "example.com", "version": "v1", "kind": "Widget", "api_version": "other/v1"}))

    @pytest.mark.parametrize("missing", ["version", "kind"])
    def test_missing_identity(self, missing):
        metadata = {"group": "example.com", "version": "v1", "kind": "Widget"}
        del metadata[missing]
        with pytest.raises(SchemaError, match=missing):
            SchemaRecord.from_extracted(_extracted(metadata))

    def test_spec_analysis_falls_back_to_root(self):
        record = SchemaRecord.from_extracted(_extracted({"version": "v1", "kind": "User"}, {"type": "object", "properties": {"email": {"type": "string"}}}))
        assert list(record.spec_analysis.fields) == ["email"]
