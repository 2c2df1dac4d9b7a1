"""
Per-source results and aggregate statistics of a generation run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class SourceStatus(str, Enum):
    GENERATED = "generated"
    UP_TO_DATE = "up_to_date"
    FAILED = "failed"


@dataclass
class SourceResult:
    """Outcome of processing one configured source."""

    source_name: str
    source_type: str
    status: SourceStatus = SourceStatus.GENERATED
    generated_files: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    processing_time_ms: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.status != SourceStatus.FAILED

    def fail(self, message: str) -> None:
        self.errors.append(message)
        self.status = SourceStatus.FAILED

    def to_dict(self) -> dict:
        return {
            "source_name": self.source_name,
            "source_type": self.source_type,
            "status": self.status.value,
            "generated_files": list(self.generated_files),
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "processing_time_ms": round(self.processing_time_ms, 3),
        }


@dataclass
class GenerationStatistics:
    total_processing_time_ms: float = 0.0
    sources_processed: int = 0
    files_generated: int = 0
    error_count: int = 0
    warning_count: int = 0
    cache_hit_rate: float = 0.0

    @staticmethod
    def from_results(results: list[SourceResult], total_processing_time_ms: float) -> GenerationStatistics:
        """Aggregate statistics; the cache-hit rate is the share of up-to-date sources."""
        total = len(results)
        hits = sum(1 for r in results if r.status == SourceStatus.UP_TO_DATE)
        written = {path for r in results if r.status == SourceStatus.GENERATED for path in r.generated_files}
        return GenerationStatistics(
            total_processing_time_ms=total_processing_time_ms,
            sources_processed=total,
            files_generated=len(written),
            error_count=sum(len(r.errors) for r in results),
            warning_count=sum(len(r.warnings) for r in results),
            cache_hit_rate=hits / total if total else 0.0,
        )

    def to_dict(self) -> dict:
        return {
            "total_processing_time_ms": round(self.total_processing_time_ms, 3),
            "sources_processed": self.sources_processed,
            "files_generated": self.files_generated,
            "error_count": self.error_count,
            "warning_count": self.warning_count,
            "cache_hit_rate": self.cache_hit_rate,
        }


@dataclass
class GenerationResult:
    """Aggregate result of a run.

    `results` are ordered by configured source order, never by completion
    order. `aborted` is set when fail-fast stopped the run; `error` then
    carries the error that stopped it.
    """

    results: list[SourceResult] = field(default_factory=list)
    statistics: GenerationStatistics = field(default_factory=GenerationStatistics)
    aborted: bool = False
    error: str | None = None

    @property
    def failed_sources(self) -> list[str]:
        return [r.source_name for r in self.results if r.status == SourceStatus.FAILED]

    @property
    def ok(self) -> bool:
        return not self.aborted and not self.failed_sources

    def result_for(self, source_name: str) -> SourceResult | None:
        for result in self.results:
            if result.source_name == source_name:
                return result
        return None

    def to_dict(self) -> dict:
        return {
            "results": [r.to_dict() for r in self.results],
            "statistics": self.statistics.to_dict(),
            "aborted": self.aborted,
            "error": self.error,
        }
