from __future__ import annotations

import shutil
from pathlib import Path

import pytest
import yaml

from gensonnet.config import Config, GenerationConfig, OutputConfig, SourceConfig, SourceKind

TEST_DATA = Path(__file__).parent / "test_data"


def _write_crd(path: Path, name: str, group: str, kind: str, version: str, spec_properties: dict) -> Path:
    manifest = {
        "apiVersion": "apiextensions.k8s.io/v1",
        "kind": "CustomResourceDefinition",
        "metadata": {"name": name},
        "spec": {
            "group": group,
            "names": {"kind": kind},
            "versions": [
                {
                    "name": version,
                    "schema": {
                        "openAPIV3Schema": {
                            "type": "object",
                            "properties": {"spec": {"type": "object", "properties": spec_properties}},
                        }
                    },
                }
            ],
        },
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(manifest), encoding="utf-8")
    return path


@pytest.fixture
def write_crd():
    """Write a single-version CRD manifest whose spec has the given properties."""
    return _write_crd


@pytest.fixture
def make_config(tmp_path: Path):
    """Build a Config writing under tmp_path for the given sources."""

    def factory(sources: list[SourceConfig], **generation) -> Config:
        return Config(
            sources=sources,
            output=OutputConfig(base_path=tmp_path / "generated"),
            generation=GenerationConfig(**generation),
            lockfile=tmp_path / "gensonnet.lock",
        )

    return factory


@pytest.fixture
def crd_dir(tmp_path: Path) -> Path:
    """A writable copy of the sample CRD manifests."""
    target = tmp_path / "crds"
    shutil.copytree(TEST_DATA / "crds", target)
    return target


@pytest.fixture
def openapi_file(tmp_path: Path) -> Path:
    target = tmp_path / "openapi" / "api.yaml"
    target.parent.mkdir(parents=True)
    shutil.copy(TEST_DATA / "openapi" / "api.yaml", target)
    return target


@pytest.fixture
def sample_config(make_config, crd_dir: Path, openapi_file: Path) -> Config:
    return make_config(
        [
            SourceConfig(name="crds", type=SourceKind.CRD, path=crd_dir),
            SourceConfig(name="api", type=SourceKind.OPENAPI, path=openapi_file),
        ]
    )
