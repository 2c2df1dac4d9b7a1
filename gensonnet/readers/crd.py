"""
Reader for Kubernetes CustomResourceDefinition manifests.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from ..errors import SchemaError
from .base import ExtractedSchema, SourceReader

CRD_KIND = "CustomResourceDefinition"


class CrdReader(SourceReader):
    """Extracts one schema record per served version of each CRD.

    Documents of any other kind in the same file are skipped, so mixed
    manifest bundles can be pointed at directly.
    """

    KIND = "crd"
    SUFFIXES = (".yaml", ".yml")

    def extract(self, path: Path) -> list[ExtractedSchema]:
        records: list[ExtractedSchema] = []
        for doc in self._load_documents(path):
            if not isinstance(doc, dict) or doc.get("kind") != CRD_KIND:
                continue
            records.extend(self._extract_crd(doc, path))
        return records

    def _extract_crd(self, doc: dict[str, Any], path: Path) -> list[ExtractedSchema]:
        name = _require_str(doc.get("metadata"), "name", path, "CRD metadata")

        spec = doc.get("spec")
        if not isinstance(spec, dict):
            raise SchemaError(path, f"CRD {name!r} has no spec")
        group = _require_str(spec, "group", path, f"CRD {name!r} spec")

        names = spec.get("names")
        kind = names.get("kind") if isinstance(names, dict) else None
        if not isinstance(kind, str) or not kind:
            kind = name

        versions = spec.get("versions")
        if not isinstance(versions, list) or not versions:
            raise SchemaError(path, f"CRD {name!r} declares no versions")

        records = []
        for entry in versions:
            version = _require_str(entry, "name", path, f"CRD {name!r} version")
            schema = entry.get("schema")
            schema = schema.get("openAPIV3Schema") if isinstance(schema, dict) else None
            if not isinstance(schema, dict):
                raise SchemaError(path, f"CRD {name!r} version {version!r} has no openAPIV3Schema")

            records.append(
                ExtractedSchema(
                    name=name,
                    schema_type=self.KIND,
                    metadata={
                        "group": group,
                        "version": version,
                        "kind": kind,
                        "api_version": f"{group}/{version}",
                    },
                    source_path=Path(path),
                    schema=schema,
                )
            )
        return records


def _require_str(mapping: Any, key: str, path: Path, what: str) -> str:
    value = mapping.get(key) if isinstance(mapping, dict) else None
    if not isinstance(value, str) or not value:
        raise SchemaError(path, f"{what} is missing {key!r}")
    return value
