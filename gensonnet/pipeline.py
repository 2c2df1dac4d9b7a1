"""
Run orchestration.

A run moves through these phases while holding the lockfile lock:

1. Plan: fingerprint every source and compare against the lockfile
2. Extract: read and analyze the stale sources in a worker pool
3. Promote: pull in up-to-date sources that share an output path
4. Generate: merge, render and write artifacts in configured order
5. Commit: record the successful sources and persist the lockfile
"""

from __future__ import annotations

import fnmatch
import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

from .config import Config, SourceConfig
from .errors import GensonnetError
from .generator import GenerationResult, GenerationStatistics, JsonnetGenerator, SourceBatch, SourceResult, SourceStatus, validation_library_path
from .lockfile import CleanupReport, IncrementalPlan, LockfileStore, cleanup, commit, plan
from .readers import iter_source_files, reader_for
from .schema import SchemaAnalyzer, SchemaRecord

logger = logging.getLogger(__name__)


@dataclass
class RunResult(GenerationResult):
    """GenerationResult plus the plan the run was based on."""

    plan: IncrementalPlan = field(default_factory=IncrementalPlan)
    promoted: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["plan"] = self.plan.to_dict()
        d["promoted"] = list(self.promoted)
        return d


def extract_source(source: SourceConfig, analyzer: SchemaAnalyzer | None = None) -> SourceBatch:
    """
    Read, analyze and filter the records of one source.

    Errors are collected on the batch rather than raised, so one bad
    source never takes down the worker pool.
    """
    start = time.perf_counter()
    analyzer = analyzer or SchemaAnalyzer()
    batch = SourceBatch(source_name=source.name, source_type=source.type.value)

    try:
        reader = reader_for(source.type)
        for path in iter_source_files(Path(source.path), reader):
            for extracted in reader.extract(path):
                record = SchemaRecord.from_extracted(extracted, analyzer)
                if matches_filters(record, source.filters):
                    batch.records.append(record)
                else:
                    logger.debug("Source %s: %s filtered out", source.name, record.api_version)
    except GensonnetError as e:
        batch.errors.append(f"{source.name}: {e}")
        batch.records = []

    batch.elapsed_ms = (time.perf_counter() - start) * 1000
    logger.debug("Extracted %d record(s) from %s in %.1f ms", len(batch.records), source.name, batch.elapsed_ms)
    return batch


def matches_filters(record: SchemaRecord, filters: list[str]) -> bool:
    """Check a record's api_version against glob filters (empty accepts all)."""
    if not filters:
        return True
    return any(fnmatch.fnmatchcase(record.api_version, pattern) for pattern in filters)


class Gensonnet:
    """Runs generation, status and cleanup for one configuration."""

    def __init__(self, config: Config, lockfile_path: Path | str | None = None):
        """
        Initialize a runner.

        Args:
            config: Validated configuration
            lockfile_path: Overrides the configured lockfile path
        """
        self.config = config
        self.store = LockfileStore(lockfile_path or config.lockfile)
        self.generator = JsonnetGenerator(config.output, config.generation)

    def status(self) -> IncrementalPlan:
        """Compute the current plan without writing anything."""
        self.store.load_or_create()
        return plan(self.config.sources, self.store)

    def generate(self, force: bool = False) -> RunResult:
        """
        Run a generation.

        Args:
            force: Regenerate every source regardless of checksums

        Returns:
            RunResult with one SourceResult per configured source

        Raises:
            ConfigError: If the lockfile has an unsupported version
            LockCorruptionError: If the lockfile cannot be read or parsed
            IoError: If the lockfile cannot be written
        """
        start = time.perf_counter()
        with self.store.locked():
            self.store.load_or_create()
            current = plan(self.config.sources, self.store)
            if force:
                current = IncrementalPlan(
                    to_regenerate=tuple(n for n in self.config.source_names() if n not in current.errors),
                    up_to_date=(),
                    errors=current.errors,
                    checksums=current.checksums,
                )
            logger.info(
                "Plan: %d to regenerate, %d up to date, %d failed",
                len(current.to_regenerate),
                len(current.up_to_date),
                len(current.errors),
            )

            promoted: list[str] = []
            if current.errors and self.config.generation.fail_fast:
                first = next(s.name for s in self.config.sources if s.name in current.errors)
                generated = GenerationResult(aborted=True, error=current.errors[first])
            else:
                selected = set(current.to_regenerate)
                batches = self._extract(selected)
                promoted = self._promote(current, selected, batches)

                ordered = [batches[s.name] for s in self.config.sources if s.name in batches]
                generated = self.generator.generate(ordered) if ordered else GenerationResult()

            committed = commit(self.store, current, generated.results)
            logger.debug("Committed sources: %s", committed)

        results = self._collect_results(current, generated)
        elapsed = (time.perf_counter() - start) * 1000
        result = RunResult(
            results=results,
            statistics=GenerationStatistics.from_results(results, elapsed),
            aborted=generated.aborted,
            error=generated.error,
            plan=current,
            promoted=promoted,
        )
        if result.aborted:
            logger.error("Run aborted: %s", result.error)
        return result

    def cleanup(self, max_age_hours: float, dry_run: bool = False) -> CleanupReport:
        """Report, and unless dry-running remove, orphaned lockfile entries."""
        return cleanup(self.store, self.config.source_names(), max_age_hours, dry_run)

    def _extract(self, names: set[str]) -> dict[str, SourceBatch]:
        """Extract the named sources in parallel, honoring fail-fast."""
        sources = [s for s in self.config.sources if s.name in names]
        batches: dict[str, SourceBatch] = {}
        if not sources:
            return batches

        workers = min(self.config.generation.max_workers, len(sources))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="gensonnet") as executor:
            futures: dict[str, Future] = {s.name: executor.submit(extract_source, s) for s in sources}
            # Collected in configured order so fail-fast stops at the first failing source
            for source in sources:
                batch = futures[source.name].result()
                batches[source.name] = batch
                if batch.errors and self.config.generation.fail_fast:
                    for future in futures.values():
                        future.cancel()
                    break
        return batches

    def _promote(self, current: IncrementalPlan, selected: set[str], batches: dict[str, SourceBatch]) -> list[str]:
        """Add up-to-date sources that co-own an output path with a selected one.

        Repeats until no new source is pulled in, so every contributor of a
        merged artifact is regenerated together.
        """
        promoted: list[str] = []
        lockfile = self.store.lockfile
        library = validation_library_path(self.config.output).as_posix()
        while True:
            if self.config.generation.fail_fast and any(b.errors for b in batches.values()):
                return promoted

            targets = set()
            for name in selected:
                batch = batches.get(name)
                if batch is None or batch.errors:
                    continue
                targets.update(self.generator.output_path(r).as_posix() for r in batch.records)
                # Paths the source wrote last time must be rebuilt without it
                entry = lockfile.entries.get(name)
                if entry is not None:
                    targets.update(f for f in entry.generated_files if f != library)

            new = [
                name
                for name in current.up_to_date
                if name not in selected and any(f in targets for f in lockfile.entries[name].generated_files)
            ]
            if not new:
                return promoted

            logger.info("Regenerating co-owning source(s): %s", ", ".join(new))
            selected.update(new)
            promoted.extend(new)
            batches.update(self._extract(set(new)))

    def _collect_results(self, current: IncrementalPlan, generated: GenerationResult) -> list[SourceResult]:
        """One result per configured source, in configured order."""
        results = []
        for source in self.config.sources:
            result = generated.result_for(source.name)
            if result is None:
                result = SourceResult(source_name=source.name, source_type=source.type.value)
                if source.name in current.errors:
                    result.fail(current.errors[source.name])
                elif source.name in current.up_to_date:
                    result.status = SourceStatus.UP_TO_DATE
                    entry = self.store.lockfile.entries.get(source.name)
                    result.generated_files = list(entry.generated_files) if entry else []
                else:
                    result.fail(f"{source.name}: not processed, run aborted")
            results.append(result)
        return results
