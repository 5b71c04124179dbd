from __future__ import annotations

from typing import Any, FrozenSet, Mapping, Optional


def _same_value(a: Any, b: Any) -> bool:
    # bool is a subclass of int; the document store never treats true as 1
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b

    if isinstance(a, Mapping) or isinstance(b, Mapping):
        if not (isinstance(a, Mapping) and isinstance(b, Mapping)):
            return False
        if set(a.keys()) != set(b.keys()):
            return False
        return all(_same_value(a[k], b[k]) for k in a)

    if isinstance(a, (list, tuple)) or isinstance(b, (list, tuple)):
        if not (isinstance(a, (list, tuple)) and isinstance(b, (list, tuple))):
            return False
        if len(a) != len(b):
            return False
        return all(_same_value(x, y) for x, y in zip(a, b))

    if isinstance(a, (int, float)) and isinstance(b, (int, float)):
        return a == b
    return type(a) is type(b) and a == b


def diff_keys(existing: Optional[Mapping[str, Any]], proposed: Optional[Mapping[str, Any]]) -> FrozenSet[str]:
    """
    Field keys that differ between two document snapshots.

    Added, removed and changed keys are all reported. An absent side means
    every key of the other side changed. Values are compared structurally.
    """
    if existing is None and proposed is None:
        return frozenset()
    if existing is None:
        return frozenset(proposed.keys())
    if proposed is None:
        return frozenset(existing.keys())

    changed = set(existing.keys()) ^ set(proposed.keys())
    for key in set(existing.keys()) & set(proposed.keys()):
        if not _same_value(existing[key], proposed[key]):
            changed.add(key)
    return frozenset(changed)
