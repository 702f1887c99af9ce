"""
Reference resolution for document trees.

A reference marker is any mapping with a string ``_ref`` field. Resolution
replaces markers with the tree of the document they point to, following
references recursively up to a caller-supplied depth.

Invariants:
    - The input tree is never mutated; the result is a structural clone
    - A marker whose target is missing is returned unchanged (never None)
    - The depth bound is the only protection against reference cycles

Depth accounting:
    Every mapping field, sequence element and followed reference consumes
    one level. A marker at ``depth`` is followed only while
    ``depth <= max_depth``; sequences past that depth are returned as-is.
    References found directly in a document's fields sit at depth 1, so
    ``max_depth=0`` leaves them unresolved.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Optional

REF_FIELD = "_ref"

Lookup = Callable[[str], Optional[Mapping[str, Any]]]


def is_reference(value: Any) -> bool:
    return isinstance(value, Mapping) and isinstance(value.get(REF_FIELD), str)


def resolve_references(value: Any, depth: int, max_depth: int, lookup: Lookup) -> Any:
    """Resolve reference markers in ``value``.

    Args:
        value: Document tree (mapping, list, or scalar)
        depth: Depth of ``value`` in the traversal
        max_depth: Deepest level at which references are still followed
        lookup: Maps a referenced id to the target document, or None

    Returns:
        A cloned tree with references resolved
    """
    if isinstance(value, list):
        if depth > max_depth:
            return value
        return [resolve_references(item, depth + 1, max_depth, lookup) for item in value]

    if not isinstance(value, Mapping):
        return value

    if is_reference(value):
        target = lookup(value[REF_FIELD])
        if target is None or depth > max_depth:
            return value
        return resolve_references(target, depth + 1, max_depth, lookup)

    return {
        key: resolve_references(item, depth + 1, max_depth, lookup)
        for key, item in value.items()
    }


def maybe_resolve_reference(item: Any, lookup: Lookup) -> Any:
    """Follow a single reference one level, leaving anything else alone."""
    if is_reference(item):
        return lookup(item[REF_FIELD])
    return item
