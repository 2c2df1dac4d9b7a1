from __future__ import annotations

import copy

import pytest

from gensonnet.config import MergeStrategy
from gensonnet.errors import MergeConflictError
from gensonnet.generator import deep_merge


class TestMergeStrategies:
    def test_default_later_wins_on_leaves(self):
        assert deep_merge({"x": 1, "y": [1]}, {"x": 2, "y": [2]}, MergeStrategy.DEFAULT) == {"x": 2, "y": [2]}

    def test_append_concatenates_arrays(self):
        assert deep_merge({"x": 1, "y": [1]}, {"x": 2, "y": [2]}, MergeStrategy.APPEND) == {"x": 2, "y": [1, 2]}

    def test_replace_overwrites_whole_subtree(self):
        assert deep_merge({"x": {"p": 1, "q": 1}}, {"x": {"q": 2}}, MergeStrategy.REPLACE) == {"x": {"q": 2}}

    def test_default_merges_subtree_recursively(self):
        assert deep_merge({"x": {"p": 1, "q": 1}}, {"x": {"q": 2}}, MergeStrategy.DEFAULT) == {"x": {"p": 1, "q": 2}}

    def test_append_merges_nested_arrays(self):
        merged = deep_merge({"a": {"l": ["x"]}}, {"a": {"l": ["y"], "k": 1}}, "append")
        assert merged == {"a": {"l": ["x", "y"], "k": 1}}

    def test_keys_only_in_one_side_are_kept(self):
        assert deep_merge({"a": 1}, {"b": 2}) == {"a": 1, "b": 2}

    def test_inputs_are_not_mutated(self):
        base = {"x": {"p": [1]}}
        overlay = {"x": {"p": [2], "q": 1}}
        base_before = copy.deepcopy(base)
        overlay_before = copy.deepcopy(overlay)

        for strategy in MergeStrategy:
            deep_merge(base, overlay, strategy)

        assert base == base_before
        assert overlay == overlay_before


class TestMergeConflicts:
    def test_object_against_scalar(self):
        with pytest.raises(MergeConflictError) as exc_info:
            deep_merge({"x": {"p": 1}}, {"x": 1})
        assert exc_info.value.path == "x"

    def test_conflict_path_is_nested(self):
        with pytest.raises(MergeConflictError) as exc_info:
            deep_merge({"a": {"b": 1}}, {"a": {"b": {"c": 1}}}, path="spec")
        assert exc_info.value.path == "spec.a.b"

    def test_append_array_against_scalar(self):
        with pytest.raises(MergeConflictError):
            deep_merge({"y": [1]}, {"y": 2}, MergeStrategy.APPEND)

    def test_default_replaces_array_with_scalar(self):
        assert deep_merge({"y": [1]}, {"y": 2}) == {"y": 2}

    def test_replace_never_conflicts(self):
        assert deep_merge({"x": {"p": 1}}, {"x": 1}, MergeStrategy.REPLACE) == {"x": 1}
