from __future__ import annotations

from pathlib import Path

import pytest

from gensonnet.config import Config, MergeStrategy, OrganizationStrategy, SourceConfig, SourceKind
from gensonnet.errors import ConfigError

CONFIG_YAML = """
version: "1.0"
sources:
  - name: widgets
    type: crd
    path: ./crds
    filters: ["example.com/*"]
  - name: api
    type: openapi
    path: ./api.yaml
output:
  base_path: ./out
  organization: hierarchical
generation:
  fail_fast: true
  merge_strategy: append
  max_workers: 2
lockfile: build.lock
"""


class TestConfig:
    def test_from_file(self, tmp_path):
        path = tmp_path / "gensonnet.yaml"
        path.write_text(CONFIG_YAML)
        config = Config.from_file(path)

        assert config.source_names() == ["widgets", "api"]
        assert config.sources[0].type == SourceKind.CRD
        assert config.sources[0].filters == ["example.com/*"]
        assert config.sources[1].path == Path("./api.yaml")
        assert config.output.base_path == Path("./out")
        assert config.output.organization == OrganizationStrategy.HIERARCHICAL
        assert config.output.extension == ".libsonnet"
        assert config.generation.fail_fast is True
        assert config.generation.merge_strategy == MergeStrategy.APPEND
        assert config.generation.include_validation is True
        assert config.generation.max_workers == 2
        assert config.lockfile == Path("build.lock")

    def test_defaults(self):
        config = Config.from_dict({"sources": [{"name": "a", "path": "crds"}]})
        config.validate()
        assert config.sources[0].type == SourceKind.CRD
        assert config.output.organization == OrganizationStrategy.API_VERSION
        assert config.generation.merge_strategy == MergeStrategy.DEFAULT
        assert config.lockfile == Path("gensonnet.lock")

    def test_to_dict_round_trip(self, tmp_path):
        path = tmp_path / "gensonnet.yaml"
        path.write_text(CONFIG_YAML)
        config = Config.from_file(path)
        assert Config.from_dict(config.to_dict()) == config

    def test_find_source(self):
        config = Config(sources=[SourceConfig(name="a", path=Path("x"))])
        assert config.find_source("a").path == Path("x")
        assert config.find_source("b") is None

    @pytest.mark.parametrize(
        "data,message",
        [
            ({"version": "2.0", "sources": [{"name": "a", "path": "p"}]}, "version"),
            ({"sources": []}, "At least one source"),
            ({"sources": [{"name": "", "path": "p"}]}, "name cannot be empty"),
            ({"sources": [{"name": "a"}]}, "path cannot be empty"),
            ({"sources": [{"name": "a", "path": "p"}, {"name": "a", "path": "q"}]}, "Duplicate"),
            ({"sources": [{"name": "a", "path": "p"}], "generation": {"max_workers": 0}}, "max_workers"),
            ({"sources": [{"name": "a", "path": "p"}], "output": {"base_path": ""}}, "base path"),
            ({"sources": [{"name": "a", "path": "p"}], "output": {"extension": "libsonnet"}}, "extension"),
        ],
    )
    def test_invalid(self, data, message):
        with pytest.raises(ConfigError, match=message):
            Config.from_dict(data).validate()

    @pytest.mark.parametrize(
        "data",
        [
            {"sources": [{"name": "a", "path": "p", "type": "go_ast"}]},
            {"sources": [{"name": "a", "path": "p"}], "output": {"organization": "by_kind"}},
            {"sources": [{"name": "a", "path": "p"}], "generation": {"merge_strategy": "union"}},
        ],
    )
    def test_unknown_enum_values(self, data):
        with pytest.raises(ConfigError, match="expected one of"):
            Config.from_dict(data)

    @pytest.mark.parametrize(
        "data,message",
        [
            ({"sources": [{"name": "a", "path": "p"}], "generation": {"max_workers": "many"}}, "max_workers"),
            ({"sources": [{"name": "a", "path": "p"}], "generation": {"max_workers": None}}, "max_workers"),
            ({"sources": [{"name": "a", "path": "p"}], "output": {"extension": 5}}, "extension"),
            ({"sources": [{"name": "a", "path": 3}]}, "path"),
            ({"sources": [{"name": "a", "path": "p"}], "output": {"base_path": ["x"]}}, "base_path"),
            ({"sources": [{"name": "a", "path": "p"}], "lockfile": {"file": "x"}}, "lockfile"),
        ],
    )
    def test_wrongly_typed_values(self, data, message):
        with pytest.raises(ConfigError, match=message):
            Config.from_dict(data).validate()

    def test_wrongly_typed_file_value(self, tmp_path):
        path = tmp_path / "gensonnet.yaml"
        path.write_text("sources: [{name: a, path: p}]\ngeneration: {max_workers: lots}\n")
        with pytest.raises(ConfigError, match="expected an integer"):
            Config.from_file(path)

    def test_unreadable_file(self, tmp_path):
        with pytest.raises(ConfigError, match="Cannot read"):
            Config.from_file(tmp_path / "missing.yaml")

    def test_unparseable_file(self, tmp_path):
        path = tmp_path / "gensonnet.yaml"
        path.write_text("sources: [unclosed\n")
        with pytest.raises(ConfigError, match="Cannot parse"):
            Config.from_file(path)
