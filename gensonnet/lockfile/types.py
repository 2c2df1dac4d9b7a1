"""
Lockfile data model.

The persisted shape is::

    version: "1.0"
    tool_version: "<gensonnet version>"
    entries:
      <source name>:
        checksum: {algorithm: sha256, digest: <hex>}
        last_seen: <ISO 8601 UTC timestamp>
        generated_files: [<path>, ...]
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from .. import __version__
from ..errors import LockCorruptionError

LOCKFILE_VERSION = "1.0"
CHECKSUM_ALGORITHM = "sha256"


def utc_now() -> datetime:
    """Current time, truncated to whole seconds so it survives a round trip unchanged."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO 8601 timestamp; naive values are taken as UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise ValueError(f"expected a timestamp, got {type(value).__name__}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class Checksum:
    """Content fingerprint of a source's resolved input."""

    digest: str
    algorithm: str = CHECKSUM_ALGORITHM

    @staticmethod
    def from_dict(d: dict) -> Checksum:
        return Checksum(digest=str(d["digest"]), algorithm=str(d.get("algorithm", CHECKSUM_ALGORITHM)))

    def to_dict(self) -> dict:
        return {"algorithm": self.algorithm, "digest": self.digest}

    def __str__(self) -> str:
        return f"{self.algorithm}:{self.digest}"


@dataclass
class LockfileEntry:
    """What a source's last successful generation produced, and from what.

    Every path in `generated_files` was written by that generation.
    """

    checksum: Checksum
    last_seen: datetime = field(default_factory=utc_now)
    generated_files: list[str] = field(default_factory=list)

    def age_hours(self, now: datetime | None = None) -> float:
        now = now or utc_now()
        return (now - self.last_seen).total_seconds() / 3600

    @staticmethod
    def from_dict(d: dict) -> LockfileEntry:
        files = d.get("generated_files") or []
        if not isinstance(files, list):
            raise ValueError("generated_files must be a list")
        return LockfileEntry(
            checksum=Checksum.from_dict(d["checksum"]),
            last_seen=parse_timestamp(d["last_seen"]),
            generated_files=[str(f) for f in files],
        )

    def to_dict(self) -> dict:
        return {
            "checksum": self.checksum.to_dict(),
            "last_seen": format_timestamp(self.last_seen),
            "generated_files": list(self.generated_files),
        }


@dataclass
class Lockfile:
    """Persisted build state: source name to LockfileEntry, in insertion order."""

    version: str = LOCKFILE_VERSION
    tool_version: str = f"gensonnet {__version__}"
    entries: dict[str, LockfileEntry] = field(default_factory=dict)

    @staticmethod
    def from_dict(d: Any, path: str = "") -> Lockfile:
        """Build a lockfile from parsed YAML.

        Raises:
            LockCorruptionError: If the structure does not match the lockfile shape
        """
        if not isinstance(d, dict):
            raise LockCorruptionError(path, "lockfile must contain a mapping")
        try:
            raw_entries = d.get("entries") or {}
            if not isinstance(raw_entries, dict):
                raise ValueError("entries must be a mapping")
            entries = {str(name): LockfileEntry.from_dict(entry) for name, entry in raw_entries.items()}
            return Lockfile(
                version=str(d["version"]),
                tool_version=str(d.get("tool_version", "")),
                entries=entries,
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise LockCorruptionError(path, f"malformed lockfile: {e}") from e

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "tool_version": self.tool_version,
            "entries": {name: entry.to_dict() for name, entry in self.entries.items()},
        }
