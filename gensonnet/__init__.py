"""gensonnet

Generates Jsonnet libraries from Kubernetes CRDs and OpenAPI schemas,
with a lockfile so repeated runs only regenerate sources that changed.
"""

__version__ = "0.1.0"

from .config import Config, GenerationConfig, MergeStrategy, OrganizationStrategy, OutputConfig, SourceConfig, SourceKind
from .errors import ConfigError, GensonnetError, IoError, LockCorruptionError, MergeConflictError, SchemaError
from .pipeline import Gensonnet, RunResult

__all__ = [
    "Config",
    "GenerationConfig",
    "MergeStrategy",
    "OrganizationStrategy",
    "OutputConfig",
    "SourceConfig",
    "SourceKind",
    "ConfigError",
    "GensonnetError",
    "IoError",
    "LockCorruptionError",
    "MergeConflictError",
    "SchemaError",
    "Gensonnet",
    "RunResult",
]
