"""
Configuration for gensonnet runs.

A run is described by a list of sources, an output layout and generation
options. Configuration files are YAML documents with the same structure
as Config.to_dict().
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError

CONFIG_VERSION = "1.0"
DEFAULT_LOCKFILE = "gensonnet.lock"


class SourceKind(str, Enum):
    """Format of a source, selecting the reader adapter."""

    CRD = "crd"
    OPENAPI = "openapi"


class OrganizationStrategy(str, Enum):
    """How output files are laid out under the base path."""

    API_VERSION = "api_version"  # base/<group>/<version>/<kind>.libsonnet
    FLAT = "flat"  # base/<kind>.libsonnet
    HIERARCHICAL = "hierarchical"  # base/<group>/<kind>/<version>.libsonnet


class MergeStrategy(str, Enum):
    """How schemas resolving to the same output path are combined."""

    DEFAULT = "default"  # Recursive merge, later wins on leaves
    REPLACE = "replace"  # Later replaces whole conflicting subtrees
    APPEND = "append"  # Like default, but arrays are concatenated


@dataclass
class SourceConfig:
    """A configured source of schema definitions.

    Attributes:
        name: Unique source name, used as the lockfile key
        type: Reader adapter to use
        path: File or directory holding the definitions
        filters: Glob patterns matched against api_version (empty = all)
    """

    name: str
    type: SourceKind = SourceKind.CRD
    path: Path = Path(".")
    filters: list[str] = field(default_factory=list)

    @staticmethod
    def from_dict(d: dict) -> SourceConfig:
        if not isinstance(d, dict):
            raise ConfigError(f"Source entry must be a mapping, got {type(d).__name__}")
        name = d.get("name", "")
        filters = d.get("filters") or []
        if not isinstance(filters, list):
            raise ConfigError(f"Source {name!r}: filters must be a list")
        return SourceConfig(
            name=name,
            type=_enum(SourceKind, d.get("type", SourceKind.CRD.value), f"source {name!r} type"),
            path=_path(d.get("path", ""), f"source {name!r} path"),
            filters=[str(f) for f in filters],
        )

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "type": self.type.value,
            "path": str(self.path),
            "filters": list(self.filters),
        }

    def validate(self) -> None:
        if not self.name:
            raise ConfigError("Source name cannot be empty")
        if str(self.path) in ("", "."):
            raise ConfigError(f"Source {self.name!r}: path cannot be empty")


@dataclass
class OutputConfig:
    """Configuration for output file layout.

    Attributes:
        base_path: Directory receiving all generated files
        organization: Layout strategy for artifact paths
        extension: File extension of generated artifacts
    """

    base_path: Path = Path("./generated")
    organization: OrganizationStrategy = OrganizationStrategy.API_VERSION
    extension: str = ".libsonnet"

    def validate(self) -> None:
        # Path("") normalizes to "."
        if str(self.base_path) in ("", "."):
            raise ConfigError("Output base path cannot be empty")
        if not isinstance(self.extension, str) or not self.extension.startswith("."):
            raise ConfigError(f"Output extension must start with '.', got {self.extension!r}")


@dataclass
class GenerationConfig:
    """Configuration for the generation step."""

    # Abort the whole run on the first per-source error
    fail_fast: bool = False

    # Strategy for schemas sharing an output path
    merge_strategy: MergeStrategy = MergeStrategy.DEFAULT

    # Emit a validation helper in each artifact
    include_validation: bool = True

    # Worker threads used for per-source extraction and analysis
    max_workers: int = 4

    def validate(self) -> None:
        if self.max_workers < 1:
            raise ConfigError(f"max_workers must be at least 1, got {self.max_workers}")


@dataclass
class Config:
    """Top-level run configuration."""

    version: str = CONFIG_VERSION
    sources: list[SourceConfig] = field(default_factory=list)
    output: OutputConfig = field(default_factory=OutputConfig)
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    lockfile: Path = Path(DEFAULT_LOCKFILE)

    def source_names(self) -> list[str]:
        return [source.name for source in self.sources]

    def find_source(self, name: str) -> SourceConfig | None:
        for source in self.sources:
            if source.name == name:
                return source
        return None

    def validate(self) -> None:
        """Validate the configuration.

        Raises:
            ConfigError: If any part of the configuration is invalid
        """
        if self.version != CONFIG_VERSION:
            raise ConfigError(f"Unsupported configuration version: {self.version}")
        if not self.sources:
            raise ConfigError("At least one source must be configured")

        seen: set[str] = set()
        for source in self.sources:
            source.validate()
            if source.name in seen:
                raise ConfigError(f"Duplicate source name: {source.name}")
            seen.add(source.name)

        self.output.validate()
        self.generation.validate()

    @staticmethod
    def from_dict(d: dict) -> Config:
        """Create a config from a dictionary."""
        if not isinstance(d, dict):
            raise ConfigError(f"Configuration must be a mapping, got {type(d).__name__}")

        config = Config()
        for k, v in d.items():
            if k == "version":
                config.version = str(v)
            elif k == "sources":
                if not isinstance(v, list):
                    raise ConfigError("sources must be a list")
                config.sources = [SourceConfig.from_dict(s) for s in v]
            elif k == "output" and isinstance(v, dict):
                config.output = OutputConfig(
                    base_path=_path(v.get("base_path", "./generated"), "output base_path"),
                    organization=_enum(OrganizationStrategy, v.get("organization", "api_version"), "output organization"),
                    extension=v.get("extension", ".libsonnet"),
                )
            elif k == "generation" and isinstance(v, dict):
                config.generation = GenerationConfig(
                    fail_fast=bool(v.get("fail_fast", False)),
                    merge_strategy=_enum(MergeStrategy, v.get("merge_strategy", "default"), "merge strategy"),
                    include_validation=bool(v.get("include_validation", True)),
                    max_workers=_int(v.get("max_workers", 4), "generation max_workers"),
                )
            elif k == "lockfile":
                config.lockfile = _path(v, "lockfile path")
        return config

    @staticmethod
    def from_file(path: Path | str) -> Config:
        """Load and validate a YAML configuration file.

        Raises:
            ConfigError: If the file cannot be read, parsed or validated
        """
        path = Path(path)
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise ConfigError(f"Cannot read configuration {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Cannot parse configuration {path}: {e}") from e

        config = Config.from_dict(data or {})
        config.validate()
        return config

    def to_dict(self) -> dict:
        """Convert config to a dictionary."""
        return {
            "version": self.version,
            "sources": [source.to_dict() for source in self.sources],
            "output": {
                "base_path": str(self.output.base_path),
                "organization": self.output.organization.value,
                "extension": self.output.extension,
            },
            "generation": {
                "fail_fast": self.generation.fail_fast,
                "merge_strategy": self.generation.merge_strategy.value,
                "include_validation": self.generation.include_validation,
                "max_workers": self.generation.max_workers,
            },
            "lockfile": str(self.lockfile),
        }


def _enum(enum_cls: type[Enum], value: Any, what: str) -> Any:
    try:
        return enum_cls(value)
    except ValueError as e:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ConfigError(f"Invalid {what} {value!r} (expected one of: {allowed})") from e


def _int(value: Any, what: str) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"Invalid {what} {value!r} (expected an integer)")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid {what} {value!r} (expected an integer)") from e


def _path(value: Any, what: str) -> Path:
    if not isinstance(value, (str, Path)):
        raise ConfigError(f"Invalid {what} {value!r} (expected a string)")
    return Path(value)
