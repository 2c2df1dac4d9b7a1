"""
Incremental planning, commit and cleanup over a LockfileStore.

Staleness is a flat per-source comparison: the checksum of a source's
resolved input now versus the checksum recorded after its last successful
generation.
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from ..config import SourceConfig, SourceKind
from ..errors import ConfigError, GensonnetError, IoError
from ..generator.result import SourceResult, SourceStatus
from ..readers import SourceReader, iter_source_files, reader_for
from .store import LockfileStore
from .types import Checksum, LockfileEntry, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IncrementalPlan:
    """Partition of the configured sources for one run.

    A plan is computed fresh for every run and never updated afterwards.
    Sources whose checksum could not be computed are neither stale nor up
    to date; they are listed in `errors` instead.
    """

    to_regenerate: tuple[str, ...] = ()
    up_to_date: tuple[str, ...] = ()
    errors: dict[str, str] = field(default_factory=dict)
    checksums: dict[str, Checksum] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.to_regenerate) + len(self.up_to_date) + len(self.errors)

    def to_dict(self) -> dict:
        return {
            "to_regenerate": list(self.to_regenerate),
            "up_to_date": list(self.up_to_date),
            "errors": dict(self.errors),
        }


@dataclass
class CleanupReport:
    max_age_hours: float
    dry_run: bool
    stale_sources: list[str] = field(default_factory=list)
    stale_files: list[str] = field(default_factory=list)
    total_sources_removed: int = 0
    total_files_removed: int = 0
    lockfile_path: str = ""

    def to_dict(self) -> dict:
        return {
            "max_age_hours": self.max_age_hours,
            "dry_run": self.dry_run,
            "stale_sources": list(self.stale_sources),
            "stale_files": list(self.stale_files),
            "total_sources_removed": self.total_sources_removed,
            "total_files_removed": self.total_files_removed,
            "lockfile_path": self.lockfile_path,
        }


def source_checksum(source: SourceConfig, reader: SourceReader | None = None) -> Checksum:
    """
    Fingerprint a source's resolved input.

    The digest covers the reader kind, the filters and, for every input
    file in sorted order, its relative path and bytes.

    Raises:
        IoError: If the source path or one of its files cannot be read
    """
    reader = reader or reader_for(source.type)
    root = Path(source.path)

    digest = hashlib.sha256()
    digest.update(f"type={SourceKind(source.type).value}\n".encode())
    digest.update(f"filters={json.dumps(list(source.filters))}\n".encode())

    for file in iter_source_files(root, reader):
        relative = file.name if file == root else file.relative_to(root).as_posix()
        try:
            data = file.read_bytes()
        except OSError as e:
            raise IoError(file, f"cannot read for checksum: {e.strerror or e}") from e
        digest.update(relative.encode() + b"\0" + str(len(data)).encode() + b"\0")
        digest.update(data)

    return Checksum(digest=digest.hexdigest())


def plan(sources: Iterable[SourceConfig], store: LockfileStore) -> IncrementalPlan:
    """
    Classify sources as needing regeneration or up to date.

    Reads the store's in-memory lockfile and the sources' files; nothing is
    written.

    Args:
        sources: Configured sources, in configured order
        store: Store whose lockfile was loaded for this run

    Returns:
        A fresh IncrementalPlan
    """
    to_regenerate: list[str] = []
    up_to_date: list[str] = []
    errors: dict[str, str] = {}
    checksums: dict[str, Checksum] = {}

    for source in sources:
        try:
            checksum = source_checksum(source)
        except GensonnetError as e:
            errors[source.name] = str(e)
            logger.error("Cannot fingerprint source %s: %s", source.name, e)
            continue

        checksums[source.name] = checksum
        entry = store.lockfile.entries.get(source.name)
        if entry is not None and entry.checksum == checksum:
            up_to_date.append(source.name)
        else:
            to_regenerate.append(source.name)
            logger.debug("Source %s is %s", source.name, "new" if entry is None else "changed")

    return IncrementalPlan(
        to_regenerate=tuple(to_regenerate),
        up_to_date=tuple(up_to_date),
        errors=errors,
        checksums=checksums,
    )


def commit(store: LockfileStore, incremental_plan: IncrementalPlan, results: Iterable[SourceResult], now: datetime | None = None) -> list[str]:
    """
    Record the successfully regenerated sources and persist the store.

    Each generated source's entry is replaced with its planned checksum, the
    current time and the exact list of files the generator reported. Failed
    and up-to-date sources are left untouched. Nothing is written when no
    source was regenerated.

    Returns:
        Names of the committed sources
    """
    now = now or utc_now()
    with store.locked():
        lockfile = store.load_or_create()
        committed = []
        for result in results:
            if result.status != SourceStatus.GENERATED:
                continue
            checksum = incremental_plan.checksums.get(result.source_name)
            if checksum is None:
                continue
            lockfile.entries[result.source_name] = LockfileEntry(
                checksum=checksum,
                last_seen=now,
                generated_files=list(result.generated_files),
            )
            committed.append(result.source_name)

        if committed:
            store.save()
            logger.info("Committed %d source(s): %s", len(committed), ", ".join(committed))
    return committed


def cleanup(
    store: LockfileStore,
    configured_names: Iterable[str],
    max_age_hours: float,
    dry_run: bool = False,
    now: datetime | None = None,
) -> CleanupReport:
    """
    Find, and unless dry-running remove, orphaned lockfile entries.

    An entry is stale when it has not been refreshed for at least
    `max_age_hours` and its source is no longer configured. Its files are
    reported (and deleted) except those still listed by a retained entry.

    Raises:
        ConfigError: If max_age_hours is negative
        IoError: If a stale file exists but cannot be deleted
    """
    if max_age_hours < 0:
        raise ConfigError(f"max_age_hours must not be negative, got {max_age_hours}")

    now = now or utc_now()
    configured = set(configured_names)
    report = CleanupReport(max_age_hours=max_age_hours, dry_run=dry_run, lockfile_path=str(store.path))

    with store.locked():
        lockfile = store.load_or_create()

        for name, entry in lockfile.entries.items():
            if name not in configured and entry.age_hours(now) >= max_age_hours:
                report.stale_sources.append(name)

        retained_files = {f for name, entry in lockfile.entries.items() if name not in report.stale_sources for f in entry.generated_files}
        for name in report.stale_sources:
            for file in lockfile.entries[name].generated_files:
                if file not in retained_files and file not in report.stale_files:
                    report.stale_files.append(file)

        if dry_run or not report.stale_sources:
            return report

        for file in report.stale_files:
            try:
                Path(file).unlink()
                report.total_files_removed += 1
            except FileNotFoundError:
                logger.debug("Stale file %s already removed", file)
            except OSError as e:
                raise IoError(file, f"cannot delete stale file: {e.strerror or e}") from e

        for name in report.stale_sources:
            del lockfile.entries[name]
            report.total_sources_removed += 1
        store.save()

    logger.info(
        "Removed %d stale source(s) and %d file(s)",
        report.total_sources_removed,
        report.total_files_removed,
    )
    return report
