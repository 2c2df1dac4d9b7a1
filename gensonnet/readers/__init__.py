"""
Source reader adapters.

The set of readers is closed: each SourceKind maps to exactly one reader
class implementing the SourceReader contract.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

from ..config import SourceKind
from ..errors import ConfigError, IoError
from .base import ExtractedSchema, SourceReader
from .crd import CrdReader
from .openapi import OpenApiReader

READERS: dict[SourceKind, type[SourceReader]] = {
    SourceKind.CRD: CrdReader,
    SourceKind.OPENAPI: OpenApiReader,
}


def reader_for(kind: SourceKind | str) -> SourceReader:
    """Return a reader instance for a source kind.

    Raises:
        ConfigError: If no reader exists for the kind
    """
    try:
        return READERS[SourceKind(kind)]()
    except (KeyError, ValueError) as e:
        raise ConfigError(f"No reader available for source type {kind!r}") from e


def iter_source_files(path: Path, reader: SourceReader) -> Iterator[Path]:
    """
    Yield the files of a source in a stable order.

    A file path is yielded as is. A directory is walked recursively and the
    files the reader can handle are yielded sorted by relative path.

    Raises:
        IoError: If the path does not exist
    """
    path = Path(path)
    if path.is_file():
        yield path
        return
    if not path.is_dir():
        raise IoError(path, "source path does not exist")

    files = [p for p in path.rglob("*") if p.is_file() and reader.can_handle(p)]
    yield from sorted(files, key=lambda p: p.relative_to(path).as_posix())


__all__ = [
    "ExtractedSchema",
    "SourceReader",
    "CrdReader",
    "OpenApiReader",
    "READERS",
    "reader_for",
    "iter_source_files",
]
