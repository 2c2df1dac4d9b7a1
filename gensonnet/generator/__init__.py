"""
Generator - schema records to Jsonnet libraries.

1. Model: build an artifact model (defaults + checks) per schema record
2. Merge: combine models sharing an output path in configured source order
3. Render: render each model with the Jinja2 templates
4. Write: write files atomically, plus the shared validation library
"""

from __future__ import annotations

from .atomic_writer import AtomicWriter
from .generator import ArtifactModel, JsonnetGenerator, SourceBatch, field_segments, to_jsonnet
from .merge import deep_merge
from .paths import CORE_GROUP, VALIDATION_LIBRARY, output_path, validation_library_path
from .result import GenerationResult, GenerationStatistics, SourceResult, SourceStatus

__all__ = [
    "AtomicWriter",
    "ArtifactModel",
    "JsonnetGenerator",
    "SourceBatch",
    "field_segments",
    "to_jsonnet",
    "deep_merge",
    "CORE_GROUP",
    "VALIDATION_LIBRARY",
    "output_path",
    "validation_library_path",
    "GenerationResult",
    "GenerationStatistics",
    "SourceResult",
    "SourceStatus",
]
