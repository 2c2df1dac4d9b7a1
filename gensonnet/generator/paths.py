"""
Output path derivation for generated artifacts.
"""

from __future__ import annotations

from pathlib import Path

from ..config import OrganizationStrategy, OutputConfig
from ..schema import SchemaRecord

# Directory name used for resources of the core (empty) API group
CORE_GROUP = "core"

VALIDATION_LIBRARY = "_validation.libsonnet"


def output_path(record: SchemaRecord, output: OutputConfig) -> Path:
    """
    Resolve the artifact path of a schema record.

    Args:
        record: The schema record
        output: Output configuration (base path, organization, extension)

    Returns:
        Path of the artifact under the base path
    """
    base = Path(output.base_path)
    group = record.group or CORE_GROUP
    kind = record.kind.lower()
    ext = output.extension

    organization = OrganizationStrategy(output.organization)
    if organization == OrganizationStrategy.FLAT:
        return base / f"{kind}{ext}"
    if organization == OrganizationStrategy.HIERARCHICAL:
        return base / group / kind / f"{record.version}{ext}"
    return base / group / record.version / f"{kind}{ext}"


def validation_library_path(output: OutputConfig) -> Path:
    """Path of the shared validation helper library."""
    return Path(output.base_path) / VALIDATION_LIBRARY
