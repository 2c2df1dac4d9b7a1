"""
Merging of artifact models that resolve to the same output path.

Merges never mutate their inputs; a new tree is returned each time.
"""

from __future__ import annotations

import copy
from typing import Any

from ..config import MergeStrategy
from ..errors import MergeConflictError


def deep_merge(base: dict[str, Any], overlay: dict[str, Any], strategy: MergeStrategy | str = MergeStrategy.DEFAULT, path: str = "") -> dict[str, Any]:
    """
    Merge `overlay` (the later schema) into `base`.

    Args:
        base: Tree produced by the earlier source
        overlay: Tree produced by the later source
        strategy: DEFAULT merges objects recursively and lets the later value
            win on leaves; REPLACE lets the later value replace each
            conflicting top-level subtree whole; APPEND behaves like DEFAULT
            but concatenates arrays
        path: Dotted path of the trees, used in error messages

    Returns:
        The merged tree

    Raises:
        MergeConflictError: If an object meets a non-object (or, under
            APPEND, an array meets a non-array)
    """
    strategy = MergeStrategy(strategy)
    if not isinstance(base, dict) or not isinstance(overlay, dict):
        raise MergeConflictError(path, "only object trees can be merged")

    if strategy == MergeStrategy.REPLACE:
        merged = copy.deepcopy(base)
        merged.update(copy.deepcopy(overlay))
        return merged

    return _merge_objects(base, overlay, strategy, path)


def _merge_objects(base: dict[str, Any], overlay: dict[str, Any], strategy: MergeStrategy, path: str) -> dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in overlay.items():
        if key not in merged:
            merged[key] = copy.deepcopy(value)
            continue
        merged[key] = _merge_values(merged[key], value, strategy, f"{path}.{key}" if path else str(key))
    return merged


def _merge_values(old: Any, new: Any, strategy: MergeStrategy, path: str) -> Any:
    old_is_object = isinstance(old, dict)
    new_is_object = isinstance(new, dict)
    if old_is_object and new_is_object:
        return _merge_objects(old, new, strategy, path)
    if old_is_object != new_is_object:
        raise MergeConflictError(path, f"cannot merge {_shape(old)} with {_shape(new)}")

    if strategy == MergeStrategy.APPEND:
        old_is_array = isinstance(old, list)
        new_is_array = isinstance(new, list)
        if old_is_array and new_is_array:
            return copy.deepcopy(old) + copy.deepcopy(new)
        if old_is_array != new_is_array:
            raise MergeConflictError(path, f"cannot append {_shape(new)} to {_shape(old)}")

    return copy.deepcopy(new)


def _shape(value: Any) -> str:
    if isinstance(value, dict):
        return "object"
    if isinstance(value, list):
        return "array"
    return "scalar"
