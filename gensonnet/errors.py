"""
Exception taxonomy for gensonnet.

Every error raised by the library derives from GensonnetError so callers
can catch the whole family at the run boundary.
"""

from __future__ import annotations


class GensonnetError(Exception):
    """Base class for all gensonnet errors."""

    pass


class ConfigError(GensonnetError):
    """Raised when configuration is invalid.

    This can happen when:
    - The configuration file has an unsupported version
    - A source, output or generation option is missing or malformed
    - The lockfile was written by an unsupported lockfile version
    """

    pass


class _LocatedError(GensonnetError):
    """An error tied to a location (field path or file path)."""

    def __init__(self, path: str, reason: str):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"{self.path}: {reason}" if self.path else reason)


class SchemaError(_LocatedError):
    """Raised when a schema constraint is malformed or contradictory.

    Attributes:
        path: Field path inside the schema document (e.g. "spec.replicas")
        reason: Human readable description of the problem
    """


class IoError(_LocatedError):
    """Raised when reading, writing or hashing a file fails."""


class MergeConflictError(_LocatedError):
    """Raised when two trees cannot be merged (e.g. object vs scalar)."""


class LockCorruptionError(_LocatedError):
    """Raised when the lockfile exists but cannot be read or parsed."""
