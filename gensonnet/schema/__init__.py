"""
Schema analysis: typed model, analyzer and schema records.
"""

from __future__ import annotations

from .analyzer import SchemaAnalyzer, analyze_schema
from .record import SchemaRecord
from .types import FieldAnalysis, SchemaAnalysis, ValidationRules

__all__ = [
    "SchemaAnalyzer",
    "analyze_schema",
    "SchemaRecord",
    "FieldAnalysis",
    "SchemaAnalysis",
    "ValidationRules",
]
