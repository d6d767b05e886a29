"""
Merge Engine

Pure functions that combine layered configuration trees. Dicts merge key by
key; every other value (lists included) is replaced wholesale by the higher
layer. Inputs are never mutated.
"""

import copy
from typing import Any, Dict, Iterable, Mapping, Optional

ConfigTree = Dict[str, Any]

_MISSING = object()


def deep_merge(base: Mapping[str, Any], overlay: Mapping[str, Any]) -> ConfigTree:
    """
    Merge ``overlay`` on top of ``base``.

    Args:
        base: Lower precedence tree
        overlay: Higher precedence tree

    Returns:
        A new tree; neither argument is modified
    """
    result = copy.deepcopy(dict(base))

    for key, value in overlay.items():
        current = result.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            result[key] = deep_merge(current, value)
        else:
            result[key] = copy.deepcopy(value)

    return result


def merge_layers(layers: Iterable[Optional[Mapping[str, Any]]]) -> ConfigTree:
    """Fold ``deep_merge`` over layers ordered lowest precedence first."""
    merged: ConfigTree = {}
    for layer in layers:
        if layer:
            merged = deep_merge(merged, layer)
    return merged


def get_path(tree: Mapping[str, Any], path: str, default: Any = None) -> Any:
    """
    Look up a dotted path such as ``"address.city"``.

    Missing keys, and paths that run through a non-mapping value, return
    ``default``.
    """
    if not path:
        return default

    node: Any = tree
    for part in path.split('.'):
        if not isinstance(node, Mapping):
            return default
        node = node.get(part, _MISSING)
        if node is _MISSING:
            return default
    return node
