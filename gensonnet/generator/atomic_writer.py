"""
Atomic file writer for generated artifacts and the lockfile.

Ensures that an interrupted write never leaves a partially written file
behind.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from ..errors import IoError

logger = logging.getLogger(__name__)


class AtomicWriter:
    """Writes files through a temporary sibling and an atomic replace.

    1. Write to a temporary file in the same directory
    2. Flush it to disk
    3. Atomically replace the target file
    """

    def __init__(self, fsync: bool = True):
        """Initialize the atomic writer.

        Args:
            fsync: Whether to flush the temporary file to disk before the replace
        """
        self.fsync = fsync

    def write(self, path: Path, content: str) -> None:
        """Write content to file atomically.

        Args:
            path: Target file path
            content: Content to write

        Raises:
            IoError: If any file operation fails
        """
        path = Path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            # Same directory ensures the rename stays on one filesystem
            temp_fd, temp_path_str = tempfile.mkstemp(
                dir=path.parent,
                prefix=f".{path.name}.",
                suffix=".tmp",
                text=True,
            )
        except OSError as e:
            raise IoError(path, f"cannot create output file: {e.strerror or e}") from e

        temp_path = Path(temp_path_str)
        try:
            with open(temp_fd, "w", encoding="utf-8", newline="\n") as f:
                f.write(content)
                if self.fsync:
                    f.flush()
                    os.fsync(f.fileno())
            temp_path.replace(path)
        except OSError as e:
            _remove_quietly(temp_path)
            raise IoError(path, f"cannot write file: {e.strerror or e}") from e
        except BaseException:
            _remove_quietly(temp_path)
            raise

        logger.debug("Wrote %s (%d bytes)", path, len(content))

    def write_if_changed(self, path: Path, content: str) -> bool:
        """Write content unless the file already holds exactly that content.

        Returns:
            True if the file was written
        """
        path = Path(path)
        try:
            if path.is_file() and path.read_text(encoding="utf-8") == content:
                return False
        except (OSError, UnicodeDecodeError):
            pass  # Unreadable existing file: overwrite it
        self.write(path, content)
        return True


def _remove_quietly(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("Could not remove temporary file %s: %s", path, e)
