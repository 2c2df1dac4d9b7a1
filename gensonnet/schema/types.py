"""
Typed model produced by the schema analyzer.

These dataclasses mirror the structure of an OpenAPI v3 / JSON Schema
document: one node per schema level, with the scalar constraints pulled
out into ValidationRules and composition markers kept as opaque values.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# Values accepted for SchemaAnalysis.schema_type / FieldAnalysis.field_type
SCHEMA_TYPES = ("object", "array", "string", "number", "integer", "boolean", "")


@dataclass
class ValidationRules:
    """Scalar constraints extracted from a single schema level."""

    # String constraints
    min_length: int | None = None
    max_length: int | None = None
    pattern: str | None = None

    # Numeric constraints
    minimum: float | None = None
    maximum: float | None = None
    exclusive_minimum: bool | None = None
    exclusive_maximum: bool | None = None
    multiple_of: float | None = None

    # Allowed values, recorded as strings
    enum_values: list[str] = field(default_factory=list)

    format: str | None = None
    description: str | None = None
    default_value: Any = None
    has_default: bool = False
    additional_properties: Any = None

    # Raw nested payloads, kept verbatim
    items: Any = None
    properties: Any = None

    required: list[str] = field(default_factory=list)

    def has_constraints(self) -> bool:
        """Check whether any checkable constraint is set."""
        return (
            self.min_length is not None
            or self.max_length is not None
            or self.pattern is not None
            or self.minimum is not None
            or self.maximum is not None
            or self.multiple_of is not None
            or bool(self.enum_values)
            or bool(self.required)
        )


@dataclass
class _AnalysisNode:
    """Fields shared by the root analysis and nested field analyses."""

    # Dotted path of this node inside the schema document
    path: str = ""

    validation_rules: ValidationRules = field(default_factory=ValidationRules)

    # Populated only for object types
    fields: dict[str, FieldAnalysis] = field(default_factory=dict)
    required: list[str] = field(default_factory=list)

    # Populated only for array types
    array_item_type: FieldAnalysis | None = None

    # Unresolved composition markers, at most one is set
    one_of: list[Any] | None = None
    any_of: list[Any] | None = None
    all_of: list[Any] | None = None
    reference: str | None = None

    def composition(self) -> tuple[str, Any] | None:
        """Return the composition marker name and payload, if any."""
        for name in ("reference", "all_of", "one_of", "any_of"):
            value = getattr(self, name)
            if value is not None:
                return name, value
        return None


@dataclass
class FieldAnalysis(_AnalysisNode):
    """Analysis of a nested field schema."""

    field_type: str = ""


@dataclass
class SchemaAnalysis(_AnalysisNode):
    """Analysis of a root schema document."""

    schema_type: str = ""
