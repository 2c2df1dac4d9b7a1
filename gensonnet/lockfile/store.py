"""
Lockfile store: loading, persisting and locking the build state.

A store is an explicitly owned object bound to one lockfile path. Writers
serialize on an advisory lock held on a sidecar `<lockfile>.lock` file, so
separate processes (and separate stores on the same path) never interleave
a plan/commit or cleanup cycle.
"""

from __future__ import annotations

import fcntl
import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import yaml

from ..errors import ConfigError, IoError, LockCorruptionError
from ..generator.atomic_writer import AtomicWriter
from .types import LOCKFILE_VERSION, Lockfile

logger = logging.getLogger(__name__)


class LockfileStore:
    """Owns the in-memory lockfile for one path on disk."""

    def __init__(self, path: Path | str, writer: AtomicWriter | None = None):
        self.path = Path(path)
        self.lock_path = self.path.with_name(self.path.name + ".lock")
        self.writer = writer or AtomicWriter()
        self.lockfile = Lockfile()

        self._mutex = threading.RLock()
        self._depth = 0
        self._lock_file = None

    def load_or_create(self) -> Lockfile:
        """
        Load the lockfile from disk, or start an empty one if there is none.

        Returns:
            The loaded (or new) lockfile, also kept on the store

        Raises:
            LockCorruptionError: If the file exists but cannot be read or parsed
            ConfigError: If the file has an unsupported version
        """
        if not self.path.exists():
            logger.debug("No lockfile at %s, starting empty", self.path)
            self.lockfile = Lockfile()
            return self.lockfile

        try:
            text = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise LockCorruptionError(self.path, f"cannot read lockfile: {e}") from e

        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise LockCorruptionError(self.path, f"cannot parse lockfile: {e}") from e

        if isinstance(data, dict) and "version" in data and str(data["version"]) != LOCKFILE_VERSION:
            raise ConfigError(
                f"{self.path}: unsupported lockfile version {data['version']!r} "
                f"(expected {LOCKFILE_VERSION!r}); delete it and regenerate"
            )

        self.lockfile = Lockfile.from_dict(data, str(self.path))
        logger.debug("Loaded lockfile %s with %d entries", self.path, len(self.lockfile.entries))
        return self.lockfile

    def save(self) -> None:
        """Persist the lockfile atomically.

        Raises:
            IoError: If the file cannot be written
        """
        content = yaml.safe_dump(self.lockfile.to_dict(), sort_keys=False, default_flow_style=False)
        self.writer.write(self.path, content)
        logger.info("Saved lockfile %s (%d entries)", self.path, len(self.lockfile.entries))

    @contextmanager
    def locked(self) -> Iterator[LockfileStore]:
        """Hold the store's exclusive lock for the duration of the block.

        The lock is reentrant within one store, so a run holding it can call
        commit or cleanup without deadlocking.
        """
        with self._mutex:
            if self._depth == 0:
                self._acquire()
            self._depth += 1
            try:
                yield self
            finally:
                self._depth -= 1
                if self._depth == 0:
                    self._release()

    def _acquire(self) -> None:
        try:
            self.lock_path.parent.mkdir(parents=True, exist_ok=True)
            lock_file = open(self.lock_path, "a")
        except OSError as e:
            raise IoError(self.lock_path, f"cannot open lock file: {e.strerror or e}") from e
        try:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
        except OSError as e:
            lock_file.close()
            raise IoError(self.lock_path, f"cannot lock: {e.strerror or e}") from e
        self._lock_file = lock_file
        logger.debug("Acquired lock %s", self.lock_path)

    def _release(self) -> None:
        lock_file, self._lock_file = self._lock_file, None
        if lock_file is None:
            return
        try:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)
        finally:
            lock_file.close()
        logger.debug("Released lock %s", self.lock_path)
