"""
Schema analyzer that turns a schema document into a typed model.

Walks an OpenAPI v3 / JSON Schema document recursively and builds a
SchemaAnalysis tree. Composition markers ($ref, allOf, oneOf, anyOf) are
recorded as opaque values and never expanded, so self-referencing
documents cannot recurse forever.

The analyzer is pure: it performs no I/O and keeps no state between calls,
so independent documents can be analyzed in parallel.
"""

from __future__ import annotations

import json
from typing import Any

from ..errors import SchemaError
from .types import SCHEMA_TYPES, FieldAnalysis, SchemaAnalysis, ValidationRules

# Composition markers in precedence order: only the first present one is kept
COMPOSITION_KEYS = (
    ("$ref", "reference"),
    ("allOf", "all_of"),
    ("oneOf", "one_of"),
    ("anyOf", "any_of"),
)


class SchemaAnalyzer:
    """Analyzes schema documents into SchemaAnalysis trees."""

    def analyze(self, schema: Any, path: str = "") -> SchemaAnalysis:
        """
        Analyze a root schema document.

        Args:
            schema: The schema document (a mapping)
            path: Field path of the document root, used in error messages

        Returns:
            SchemaAnalysis for the document

        Raises:
            SchemaError: If a constraint has the wrong shape or contradicts another
        """
        if not isinstance(schema, dict):
            raise SchemaError(path, f"schema document must be a mapping, got {type(schema).__name__}")

        analysis = SchemaAnalysis(path=path, schema_type=self._resolve_type(schema, path, is_root=True))
        self._populate(analysis, analysis.schema_type, schema, path)
        return analysis

    def analyze_field(self, schema: Any, path: str) -> FieldAnalysis:
        """
        Analyze a nested field schema.

        A field without a type marker is not an error; it is kept as an
        untyped pass-through node.
        """
        if not isinstance(schema, dict):
            # `true`/`false` schemas and other non-mapping payloads carry no structure
            return FieldAnalysis(path=path, field_type="")

        analysis = FieldAnalysis(path=path, field_type=self._resolve_type(schema, path, is_root=False))
        self._populate(analysis, analysis.field_type, schema, path)
        return analysis

    def _populate(self, analysis: SchemaAnalysis | FieldAnalysis, node_type: str, schema: dict[str, Any], path: str) -> None:
        """Fill rules, children and composition markers of an analysis node."""
        analysis.validation_rules = self.extract_validation_rules(schema, path)

        if node_type == "object":
            properties = schema.get("properties") or {}
            for name, prop_schema in properties.items():
                analysis.fields[name] = self.analyze_field(prop_schema, _child_path(path, name))
            analysis.required = list(analysis.validation_rules.required)

        if node_type == "array" and "items" in schema:
            items = schema["items"]
            # Tuple-style item lists are kept opaque in validation_rules.items
            if not isinstance(items, list):
                analysis.array_item_type = self.analyze_field(items, f"{path}[]")

        self._extract_composition(analysis, schema, path)

    def _resolve_type(self, schema: dict[str, Any], path: str, is_root: bool) -> str:
        """Determine the node type from the type marker, or infer it."""
        type_value = schema.get("type")

        if type_value is None:
            if "properties" in schema:
                return "object"
            if "items" in schema:
                return "array"
            # A bare root document describes an object resource
            return "object" if is_root else ""

        if isinstance(type_value, list):
            candidates = [t for t in type_value if t != "null"]
            if len(candidates) != 1:
                return ""
            type_value = candidates[0]

        if not isinstance(type_value, str):
            raise SchemaError(path, f"type must be a string, got {type(type_value).__name__}")
        if type_value == "null":
            return ""
        if type_value not in SCHEMA_TYPES or type_value == "":
            raise SchemaError(path, f"unsupported type {type_value!r}")
        return type_value

    def _extract_composition(self, analysis: SchemaAnalysis | FieldAnalysis, schema: dict[str, Any], path: str) -> None:
        for key, attr in COMPOSITION_KEYS:
            if key not in schema:
                continue
            value = schema[key]
            if key == "$ref":
                if not isinstance(value, str):
                    raise SchemaError(path, f"$ref must be a string, got {type(value).__name__}")
            elif not isinstance(value, list):
                raise SchemaError(path, f"{key} must be a list, got {type(value).__name__}")
            setattr(analysis, attr, value)
            return

    def extract_validation_rules(self, schema: dict[str, Any], path: str = "") -> ValidationRules:
        """
        Extract the scalar constraints of one schema level.

        Args:
            schema: The schema mapping
            path: Field path, used in error messages

        Returns:
            ValidationRules for this level (children are not visited)

        Raises:
            SchemaError: If a constraint value has the wrong shape
        """
        rules = ValidationRules()

        rules.min_length = _non_negative_int(schema, "minLength", path)
        rules.max_length = _non_negative_int(schema, "maxLength", path)
        if rules.min_length is not None and rules.max_length is not None and rules.min_length > rules.max_length:
            raise SchemaError(path, f"minLength {rules.min_length} is greater than maxLength {rules.max_length}")

        rules.pattern = _string(schema, "pattern", path)

        rules.minimum = _number(schema, "minimum", path)
        rules.maximum = _number(schema, "maximum", path)
        # OpenAPI v3.0 uses boolean flags, JSON Schema 2019+ uses numeric bounds
        rules.exclusive_minimum, bound = _exclusive_bound(schema, "exclusiveMinimum", path)
        if bound is not None:
            rules.minimum = bound
        rules.exclusive_maximum, bound = _exclusive_bound(schema, "exclusiveMaximum", path)
        if bound is not None:
            rules.maximum = bound
        if rules.minimum is not None and rules.maximum is not None and rules.minimum > rules.maximum:
            raise SchemaError(path, f"minimum {rules.minimum} is greater than maximum {rules.maximum}")

        rules.multiple_of = _number(schema, "multipleOf", path)
        if rules.multiple_of is not None and rules.multiple_of <= 0:
            raise SchemaError(path, f"multipleOf must be positive, got {rules.multiple_of}")

        if "enum" in schema:
            values = schema["enum"]
            if not isinstance(values, list) or not values:
                raise SchemaError(path, "enum must be a non-empty list")
            rules.enum_values = [_enum_repr(v) for v in values]

        rules.format = _string(schema, "format", path)
        rules.description = _string(schema, "description", path)

        if "default" in schema:
            rules.default_value = schema["default"]
            rules.has_default = True

        rules.additional_properties = schema.get("additionalProperties")
        rules.items = schema.get("items")

        if "properties" in schema:
            if not isinstance(schema["properties"], dict):
                raise SchemaError(path, "properties must be a mapping")
            rules.properties = schema["properties"]

        if "required" in schema:
            required = schema["required"]
            if not isinstance(required, list) or not all(isinstance(r, str) for r in required):
                raise SchemaError(path, "required must be a list of strings")
            # Fields contributed by unresolved composition cannot be checked
            if not any(key in schema for key, _ in COMPOSITION_KEYS):
                declared = rules.properties or {}
                unknown = [r for r in required if r not in declared]
                if unknown:
                    raise SchemaError(path, f"required fields not declared in properties: {', '.join(unknown)}")
            rules.required = list(required)

        return rules


def analyze_schema(schema: Any, path: str = "") -> SchemaAnalysis:
    """Analyze a root schema document with a fresh analyzer."""
    return SchemaAnalyzer().analyze(schema, path)


def _child_path(path: str, name: str) -> str:
    return f"{path}.{name}" if path else name


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _non_negative_int(schema: dict[str, Any], key: str, path: str) -> int | None:
    if key not in schema:
        return None
    value = schema[key]
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise SchemaError(path, f"{key} must be a non-negative integer, got {value!r}")
    return value


def _number(schema: dict[str, Any], key: str, path: str) -> float | None:
    if key not in schema:
        return None
    value = schema[key]
    if not _is_number(value):
        raise SchemaError(path, f"{key} must be a number, got {value!r}")
    return value


def _string(schema: dict[str, Any], key: str, path: str) -> str | None:
    if key not in schema:
        return None
    value = schema[key]
    if not isinstance(value, str):
        raise SchemaError(path, f"{key} must be a string, got {type(value).__name__}")
    return value


def _exclusive_bound(schema: dict[str, Any], key: str, path: str) -> tuple[bool | None, float | None]:
    """Return (exclusive flag, numeric bound) for exclusiveMinimum/Maximum."""
    if key not in schema:
        return None, None
    value = schema[key]
    if isinstance(value, bool):
        return value, None
    if _is_number(value):
        return True, value
    raise SchemaError(path, f"{key} must be a boolean or a number, got {value!r}")


def _enum_repr(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, sort_keys=True, default=str)
