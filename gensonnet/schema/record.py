"""
Schema records: an analyzed schema together with its resource identity.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ..errors import SchemaError
from .analyzer import SchemaAnalyzer
from .types import SchemaAnalysis, ValidationRules

if TYPE_CHECKING:
    from ..readers.base import ExtractedSchema


@dataclass
class SchemaRecord:
    """A parsed resource schema (e.g. one version of a CRD).

    `api_version` is always derived from group and version; name, group and
    version together identify the source manifest.
    """

    name: str
    group: str
    version: str
    kind: str
    source_path: Path
    schema: dict[str, Any] = field(default_factory=dict)
    validation_rules: ValidationRules = field(default_factory=ValidationRules)
    schema_analysis: SchemaAnalysis = field(default_factory=SchemaAnalysis)

    @property
    def api_version(self) -> str:
        if not self.group:
            return self.version
        return f"{self.group}/{self.version}"

    @property
    def identity(self) -> tuple[str, str, str]:
        return (self.name, self.group, self.version)

    @property
    def spec_analysis(self) -> SchemaAnalysis:
        """The analysis of the resource's `spec`, or the whole schema if it has none."""
        spec = self.schema_analysis.fields.get("spec")
        if spec is not None and spec.field_type == "object":
            return SchemaAnalysis(
                path=spec.path,
                schema_type=spec.field_type,
                validation_rules=spec.validation_rules,
                fields=spec.fields,
                required=spec.required,
                one_of=spec.one_of,
                any_of=spec.any_of,
                all_of=spec.all_of,
                reference=spec.reference,
            )
        return self.schema_analysis

    @staticmethod
    def from_extracted(extracted: ExtractedSchema, analyzer: SchemaAnalyzer | None = None) -> SchemaRecord:
        """
        Build a record from reader output and analyze its schema.

        Args:
            extracted: Record handed over by a reader adapter
            analyzer: Analyzer to use (a fresh one by default)

        Returns:
            SchemaRecord with validation rules and analysis populated

        Raises:
            SchemaError: If identity metadata is missing or inconsistent, or the
                schema is malformed
        """
        analyzer = analyzer or SchemaAnalyzer()
        metadata = extracted.metadata
        location = str(extracted.source_path)

        for key in ("version", "kind"):
            if not isinstance(metadata.get(key), str) or not metadata[key]:
                raise SchemaError(location, f"schema {extracted.name!r} is missing metadata.{key}")
        group = metadata.get("group", "")
        if not isinstance(group, str):
            raise SchemaError(location, f"schema {extracted.name!r} has a non-string metadata.group")

        record = SchemaRecord(
            name=extracted.name,
            group=group,
            version=metadata["version"],
            kind=metadata["kind"],
            source_path=Path(extracted.source_path),
            schema=extracted.schema,
        )

        declared = metadata.get("api_version")
        if declared is not None and declared != record.api_version:
            raise SchemaError(
                location,
                f"schema {extracted.name!r} declares api_version {declared!r}, expected {record.api_version!r}",
            )

        record.schema_analysis = analyzer.analyze(extracted.schema)
        record.validation_rules = record.schema_analysis.validation_rules
        return record
