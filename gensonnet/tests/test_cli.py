from __future__ import annotations

import json

import pytest
import yaml
from click.testing import CliRunner

from gensonnet import __version__
from gensonnet.cli import cli
from gensonnet.config import SourceConfig, SourceKind


@pytest.fixture
def config_file(tmp_path, sample_config):
    path = tmp_path / "gensonnet.yaml"
    path.write_text(yaml.safe_dump(sample_config.to_dict()))
    return path


def run(*args):
    return CliRunner().invoke(cli, [str(a) for a in args])


class TestCli:
    def test_version(self):
        result = run("--version")
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_validate(self, config_file):
        result = run("-c", config_file, "validate")
        assert result.exit_code == 0, result.output
        assert "Configuration OK: 2 sources" in result.output

    def test_missing_config(self, tmp_path):
        result = run("-c", tmp_path / "missing.yaml", "validate")
        assert result.exit_code == 1
        assert "Cannot read configuration" in result.output

    def test_invalid_config(self, tmp_path):
        path = tmp_path / "gensonnet.yaml"
        path.write_text("sources: []\n")
        result = run("-c", path, "generate")
        assert result.exit_code == 1
        assert "At least one source" in result.output

    def test_generate_then_status(self, tmp_path, config_file):
        result = run("-c", config_file, "status")
        assert result.exit_code == 0, result.output
        assert "stale       crds" in result.output
        assert "stale       api" in result.output

        result = run("-c", config_file, "generate")
        assert result.exit_code == 0, result.output
        assert "crds: generated (4 files)" in result.output
        assert "api: generated (3 files)" in result.output
        assert (tmp_path / "generated" / "example.com" / "v1" / "widget.libsonnet").is_file()

        result = run("-c", config_file, "status")
        assert "up-to-date  crds" in result.output
        assert "up-to-date  api" in result.output

        result = run("-c", config_file, "generate")
        assert "crds: up_to_date" in result.output
        assert "cache hit rate 100%" in result.output

    def test_generate_json(self, config_file):
        result = run("-c", config_file, "generate", "--json")
        assert result.exit_code == 0, result.output
        data = json.loads(result.output[result.output.index("{") :])
        assert [r["status"] for r in data["results"]] == ["generated", "generated"]
        assert data["plan"]["to_regenerate"] == ["crds", "api"]
        assert data["aborted"] is False

    def test_lockfile_override(self, tmp_path, config_file):
        override = tmp_path / "other.lock"
        result = run("-c", config_file, "--lockfile", override, "generate")
        assert result.exit_code == 0, result.output
        assert override.is_file()
        assert not (tmp_path / "gensonnet.lock").exists()

    def test_partial_failure_exits_nonzero(self, tmp_path, make_config, crd_dir):
        broken = tmp_path / "broken"
        broken.mkdir()
        (broken / "bad.yaml").write_text("kind: CustomResourceDefinition\nmetadata: {name: bad}\n")
        config = make_config(
            [
                SourceConfig(name="crds", type=SourceKind.CRD, path=crd_dir),
                SourceConfig(name="broken", type=SourceKind.CRD, path=broken),
            ]
        )
        path = tmp_path / "gensonnet.yaml"
        path.write_text(yaml.safe_dump(config.to_dict()))

        result = run("-c", path, "generate")
        assert result.exit_code == 1
        assert "crds: generated" in result.output
        assert "broken: failed" in result.output
        assert "Failed sources: broken" in result.output

    def test_cleanup(self, tmp_path, config_file, sample_config):
        assert run("-c", config_file, "generate").exit_code == 0

        reduced = sample_config.to_dict()
        reduced["sources"] = reduced["sources"][:1]
        config_file.write_text(yaml.safe_dump(reduced))

        result = run("-c", config_file, "cleanup", "--max-age", "0", "--dry-run")
        assert result.exit_code == 0, result.output
        assert "stale source  api" in result.output
        assert "Would remove 1 sources and 2 files" in result.output
        assert (tmp_path / "generated" / "core" / "v1" / "user.libsonnet").exists()

        result = run("-c", config_file, "cleanup", "--max-age", "0")
        assert result.exit_code == 0, result.output
        assert "Removed 1 sources and 2 files" in result.output
        assert not (tmp_path / "generated" / "core" / "v1" / "user.libsonnet").exists()
        assert (tmp_path / "generated" / "_validation.libsonnet").exists()

    def test_cleanup_rejects_negative_age(self, config_file):
        result = run("-c", config_file, "cleanup", "--max-age", "-1")
        assert result.exit_code == 2
