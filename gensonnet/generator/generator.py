"""
Jsonnet code generator.

Turns analyzed schema records into one Jsonnet library per output path.
Each library exports a `new(metadata, spec)` constructor and, when
validation is enabled, a `validate(spec)` helper built from the schema's
constraints. Records of several sources that resolve to the same path are
merged in the order the sources are given.
"""

from __future__ import annotations

import copy
import json
import logging
import re
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jinja2

from .. import __version__
from ..config import GenerationConfig, MergeStrategy, OutputConfig
from ..errors import GensonnetError
from ..schema import SchemaRecord
from ..schema.types import FieldAnalysis, SchemaAnalysis
from .atomic_writer import AtomicWriter
from .merge import deep_merge
from .paths import output_path, validation_library_path
from .result import GenerationResult, GenerationStatistics, SourceResult, SourceStatus
from .validation_rules import RULE_CLASSES, rule_params, rules_for, rules_from_params

logger = logging.getLogger(__name__)

COMPOSITION_NAMES = {
    "reference": "$ref",
    "all_of": "allOf",
    "one_of": "oneOf",
    "any_of": "anyOf",
}


@dataclass
class SourceBatch:
    """The analyzed records of one source, ready for generation.

    Errors collected while reading or analyzing the source are carried
    along so the generator can apply fail-fast in configured order.
    """

    source_name: str
    source_type: str
    records: list[SchemaRecord] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    elapsed_ms: float = 0.0


@dataclass
class ArtifactModel:
    """Content of one generated library before rendering.

    Attributes:
        path: Output path of the library
        api_version: apiVersion emitted by the constructor
        kind: kind emitted by the constructor
        sources: Names of the contributing sources, in merge order
        defaults: Tree of explicit schema defaults under `spec`
        checks: Validation parameters keyed by field path relative to `spec`
    """

    path: Path
    api_version: str
    kind: str
    sources: list[str] = field(default_factory=list)
    defaults: dict[str, Any] = field(default_factory=dict)
    checks: dict[str, dict[str, Any]] = field(default_factory=dict)

    def merge(self, later: ArtifactModel, strategy: MergeStrategy) -> ArtifactModel:
        """Merge a later model into this one, returning a new model."""
        sources = list(self.sources)
        sources.extend(s for s in later.sources if s not in sources)
        return ArtifactModel(
            path=self.path,
            api_version=later.api_version,
            kind=later.kind,
            sources=sources,
            defaults=deep_merge(self.defaults, later.defaults, strategy, "spec"),
            checks=deep_merge(self.checks, later.checks, strategy, "checks"),
        )


class JsonnetGenerator:
    """Generates Jsonnet libraries from schema records."""

    def __init__(self, output: OutputConfig, generation: GenerationConfig, writer: AtomicWriter | None = None):
        """
        Initialize the generator.

        Args:
            output: Output layout configuration
            generation: Generation options (merge strategy, fail-fast, validation)
            writer: File writer (an AtomicWriter by default)
        """
        self.output = output
        self.generation = generation
        self.writer = writer or AtomicWriter()
        self._setup_templates()

    def _setup_templates(self) -> None:
        """Set up Jinja2 templates."""
        template_dir = Path(__file__).parent.parent / "templates" / "jsonnet"
        self.jinja_env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(template_dir)),
            lstrip_blocks=True,
            trim_blocks=True,
            keep_trailing_newline=True,
        )
        self.jinja_env.filters["jsonnet"] = to_jsonnet

        self.resource_template = self.jinja_env.get_template("resource.libsonnet.jinja2")
        self.validation_template = self.jinja_env.get_template("_validation.libsonnet.jinja2")

    def output_path(self, record: SchemaRecord) -> Path:
        return output_path(record, self.output)

    def build_model(self, record: SchemaRecord, source_name: str) -> tuple[ArtifactModel, list[str]]:
        """
        Build the artifact model of a single record.

        Args:
            record: Analyzed schema record
            source_name: Name of the source the record belongs to

        Returns:
            Tuple of (model, warnings)
        """
        spec = record.spec_analysis
        warnings: list[str] = []
        checks: dict[str, dict[str, Any]] = {}
        self._collect_checks(spec, "", checks, warnings, record)

        model = ArtifactModel(
            path=self.output_path(record),
            api_version=record.api_version,
            kind=record.kind,
            sources=[source_name],
            defaults=_collect_defaults(spec),
            checks=checks,
        )
        return model, warnings

    def _collect_checks(
        self,
        node: SchemaAnalysis | FieldAnalysis,
        path: str,
        checks: dict[str, dict[str, Any]],
        warnings: list[str],
        record: SchemaRecord,
    ) -> None:
        composition = node.composition()
        if composition is not None:
            marker = COMPOSITION_NAMES[composition[0]]
            warnings.append(f"{record.kind} {record.api_version}: {path or 'spec'} uses {marker}, which is not resolved or validated")

        if self.generation.include_validation and node.validation_rules.has_constraints():
            rules = rules_for(path, node.validation_rules)
            if rules:
                checks[path] = rule_params(rules)

        for name, child in node.fields.items():
            self._collect_checks(child, f"{path}.{name}" if path else name, checks, warnings, record)
        if node.array_item_type is not None:
            self._collect_checks(node.array_item_type, f"{path}[]", checks, warnings, record)

    def render_artifact(self, model: ArtifactModel) -> str:
        """Render the Jsonnet library for a model."""
        checks = []
        for path, params in model.checks.items():
            descriptions = "; ".join(rule.describe() for rule in rules_from_params(path, params))
            checks.append(
                {
                    "description": _comment_safe(f"{path or 'spec'}: {descriptions}"),
                    "segments": field_segments(path),
                    "rules": params,
                }
            )
        return self.resource_template.render(
            tool_version=__version__,
            api_version=model.api_version,
            kind=model.kind,
            sources=model.sources,
            defaults=model.defaults,
            checks=checks if self.generation.include_validation else [],
        )

    def render_validation_library(self) -> str:
        return self.validation_template.render(tool_version=__version__, rule_order=list(RULE_CLASSES))

    def generate(self, batches: list[SourceBatch]) -> GenerationResult:
        """
        Generate the libraries of the given sources.

        Batches are processed in the given order, which is also the merge
        order for shared output paths. A failing source contributes nothing;
        with fail-fast set, the first failure stops the run and only the
        sources processed before it are written.

        Args:
            batches: Analyzed sources in configured order

        Returns:
            GenerationResult with one SourceResult per processed batch
        """
        start = time.perf_counter()
        strategy = MergeStrategy(self.generation.merge_strategy)
        fail_fast = self.generation.fail_fast

        results: list[SourceResult] = []
        artifacts: dict[Path, ArtifactModel] = {}
        owned: dict[str, list[Path]] = {}
        aborted = False
        error: str | None = None

        for batch in batches:
            result = SourceResult(
                source_name=batch.source_name,
                source_type=batch.source_type,
                warnings=list(batch.warnings),
                processing_time_ms=batch.elapsed_ms,
            )
            results.append(result)

            for message in batch.errors:
                result.fail(message)

            if result.succeeded:
                t0 = time.perf_counter()
                staged = dict(artifacts)
                paths: list[Path] = []
                try:
                    for record in batch.records:
                        model, warnings = self.build_model(record, batch.source_name)
                        result.warnings.extend(warnings)
                        existing = staged.get(model.path)
                        staged[model.path] = existing.merge(model, strategy) if existing else model
                        if model.path not in paths:
                            paths.append(model.path)
                except GensonnetError as e:
                    result.fail(str(e))
                else:
                    artifacts = staged
                    owned[batch.source_name] = paths
                    if not paths:
                        result.warnings.append(f"{batch.source_name}: no schemas to generate")
                result.processing_time_ms += (time.perf_counter() - t0) * 1000

            if not result.succeeded:
                logger.error("Source %s failed: %s", batch.source_name, "; ".join(result.errors))
                if fail_fast:
                    aborted = True
                    error = result.errors[0]
                    break

        written, write_errors = self._write_artifacts(artifacts, stop_on_error=fail_fast)
        library_path = validation_library_path(self.output)

        for result in results:
            if not result.succeeded:
                continue
            paths = owned.get(result.source_name, [])
            failures = [write_errors[p] for p in paths + ([library_path] if paths else []) if p in write_errors]
            unwritten = [p for p in paths if p not in written]
            if failures or unwritten:
                for message in failures or [f"{result.source_name}: run aborted before all files were written"]:
                    result.fail(message)
                if fail_fast and not aborted:
                    aborted = True
                    error = result.errors[0]
                continue

            result.status = SourceStatus.GENERATED
            result.generated_files = [p.as_posix() for p in paths]
            if paths:
                result.generated_files.append(library_path.as_posix())

        elapsed = (time.perf_counter() - start) * 1000
        return GenerationResult(
            results=results,
            statistics=GenerationStatistics.from_results(results, elapsed),
            aborted=aborted,
            error=error,
        )

    def _write_artifacts(self, artifacts: dict[Path, ArtifactModel], stop_on_error: bool) -> tuple[set[Path], dict[Path, str]]:
        """Write every artifact plus the shared helper library.

        Returns:
            Tuple of (paths written, mapping of path to error message for failed files)
        """
        written: set[Path] = set()
        errors: dict[Path, str] = {}
        if not artifacts:
            return written, errors

        library_path = validation_library_path(self.output)
        pending: list[tuple[Path, str]] = [(library_path, self.render_validation_library())]
        for path in sorted(artifacts, key=lambda p: p.as_posix()):
            pending.append((path, self.render_artifact(artifacts[path])))

        for path, content in pending:
            try:
                changed = self.writer.write_if_changed(path, content)
            except GensonnetError as e:
                errors[path] = str(e)
                logger.error("Failed to write %s: %s", path, e)
                if stop_on_error:
                    break
                continue
            written.add(path)
            logger.debug("%s %s", "Wrote" if changed else "Unchanged", path)

        logger.info("Generated %d file(s) under %s", len(written), self.output.base_path)
        return written, errors


def _collect_defaults(node: SchemaAnalysis | FieldAnalysis) -> dict[str, Any]:
    """Tree of explicit defaults below an object node."""
    defaults: dict[str, Any] = {}
    for name, child in node.fields.items():
        if child.validation_rules.has_default:
            defaults[name] = copy.deepcopy(child.validation_rules.default_value)
        elif child.field_type == "object":
            nested = _collect_defaults(child)
            if nested:
                defaults[name] = nested
    return defaults


def field_segments(path: str) -> list[str]:
    """Split a field path such as `a.b[].c` into ["a", "b", "[]", "c"]."""
    return re.findall(r"\[\]|[^.\[\]]+", path)


def to_jsonnet(value: Any, indent: int | None = None) -> str:
    """Render a value as a Jsonnet literal (JSON is valid Jsonnet)."""
    return json.dumps(value, indent=indent, sort_keys=True, default=str)


def _comment_safe(text: str) -> str:
    return " ".join(text.splitlines())
