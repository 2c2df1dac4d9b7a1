"""
Base class for source reader adapters.

Each reader understands one input format and hands back schema documents
together with the identity metadata the rest of the system needs.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from ..errors import IoError, SchemaError

logger = logging.getLogger(__name__)


@dataclass
class ExtractedSchema:
    """A schema document extracted by a reader.

    Attributes:
        name: Name of the defining manifest (e.g. the CRD name)
        schema_type: Reader kind that produced the record
        metadata: Identity metadata, minimally group, version and kind
        source_path: File the schema was read from
        schema: The raw schema document
    """

    name: str
    schema_type: str
    metadata: dict[str, Any] = field(default_factory=dict)
    source_path: Path = Path()
    schema: dict[str, Any] = field(default_factory=dict)


class SourceReader(ABC):
    """Capability contract implemented by every reader adapter."""

    # Reader kind, matching a config.SourceKind value
    KIND: str = ""

    # File suffixes the reader will look at
    SUFFIXES: tuple[str, ...] = (".yaml", ".yml", ".json")

    def can_handle(self, path: Path) -> bool:
        """Check whether the file looks like something this reader accepts."""
        return Path(path).suffix.lower() in self.SUFFIXES

    @abstractmethod
    def extract(self, path: Path) -> list[ExtractedSchema]:
        """
        Extract schema records from a file.

        Args:
            path: File to read

        Returns:
            Records in document order (possibly empty)

        Raises:
            IoError: If the file cannot be read
            SchemaError: If the file is malformed
        """
        pass

    def _load_documents(self, path: Path) -> list[Any]:
        """Read a YAML (or JSON) file and return its non-empty documents."""
        try:
            with open(path, encoding="utf-8") as f:
                text = f.read()
        except OSError as e:
            raise IoError(path, f"cannot read source file: {e.strerror or e}") from e

        try:
            documents = [doc for doc in yaml.safe_load_all(text) if doc is not None]
        except yaml.YAMLError as e:
            raise SchemaError(path, f"cannot parse document: {e}") from e

        logger.debug("Loaded %d document(s) from %s", len(documents), path)
        return documents
