"""
Reader for OpenAPI 3 and Swagger 2 documents.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from ..errors import SchemaError
from .base import ExtractedSchema, SourceReader

GVK_EXTENSION = "x-kubernetes-group-version-kind"


class OpenApiReader(SourceReader):
    """Extracts one record per named schema of an API document.

    Schemas come from `components.schemas` (OpenAPI 3) or `definitions`
    (Swagger 2). Identity is taken from the Kubernetes group-version-kind
    extension when present; otherwise the schema name is the kind, the
    group is empty and the version is the document's `info.version`.
    """

    KIND = "openapi"

    def extract(self, path: Path) -> list[ExtractedSchema]:
        records: list[ExtractedSchema] = []
        for doc in self._load_documents(path):
            if not isinstance(doc, dict) or not ("openapi" in doc or "swagger" in doc):
                continue
            records.extend(self._extract_document(doc, path))
        return records

    def _extract_document(self, doc: dict[str, Any], path: Path) -> list[ExtractedSchema]:
        components = doc.get("components")
        if isinstance(components, dict) and "schemas" in components:
            schemas = components["schemas"]
        else:
            schemas = doc.get("definitions", {})
        if not isinstance(schemas, dict):
            raise SchemaError(path, "schema definitions must be a mapping")

        info = doc.get("info")
        info_version = info.get("version") if isinstance(info, dict) else None
        if info_version is not None:
            info_version = str(info_version)

        records = []
        for name, schema in schemas.items():
            if not isinstance(schema, dict):
                raise SchemaError(path, f"schema {name!r} must be a mapping")
            metadata = self._identity(name, schema, info_version, path)
            records.append(
                ExtractedSchema(
                    name=str(name),
                    schema_type=self.KIND,
                    metadata=metadata,
                    source_path=Path(path),
                    schema=schema,
                )
            )
        return records

    def _identity(self, name: str, schema: dict[str, Any], info_version: str | None, path: Path) -> dict[str, Any]:
        gvk = schema.get(GVK_EXTENSION)
        if isinstance(gvk, list) and gvk:
            gvk = gvk[0]
        if isinstance(gvk, dict):
            return {
                "group": gvk.get("group", ""),
                "version": gvk.get("version"),
                "kind": gvk.get("kind"),
            }

        if not info_version:
            raise SchemaError(path, f"schema {name!r} has no group-version-kind and the document has no info.version")
        return {"group": "", "version": info_version, "kind": str(name)}
