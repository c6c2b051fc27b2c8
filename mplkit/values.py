"""Value-semantic helpers for configuration trees.

Configuration trees are nested mappings, sequences and scalars. They are acyclic
by construction; neither helper detects cycles. Both walk the tree with an
explicit work stack, so nesting depth is not bounded by the recursion limit.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping, MutableMapping, MutableSequence, Sequence
from typing import Any

_TEXT_TYPES = (str, bytes, bytearray)


class ValueKind(enum.Enum):
    MAPPING = "mapping"
    SEQUENCE = "sequence"
    SCALAR = "scalar"


def value_kind(value: Any) -> ValueKind:
    if isinstance(value, Mapping):
        return ValueKind.MAPPING
    # Text is a sequence in Python but a scalar in a config tree.
    if isinstance(value, _TEXT_TYPES):
        return ValueKind.SCALAR
    if isinstance(value, (Sequence, MutableSequence)):
        return ValueKind.SEQUENCE
    return ValueKind.SCALAR


def clone_value(value: Any) -> Any:
    """Deep copy mappings and sequences; scalars are returned as-is.

    Mappings become dicts, tuples stay tuples and every other sequence becomes a
    list, so the result never shares a mutable container with the input at any
    depth.
    """

    holder: list[Any] = [value]
    pending: list[tuple[Any, Any, Any]] = [(holder, 0, value)]
    # Tuples are filled as lists first and frozen once their items are cloned.
    tuples: list[tuple[Any, Any, list[Any]]] = []

    while pending:
        target, slot, source = pending.pop()
        kind = value_kind(source)
        if kind is ValueKind.MAPPING:
            mapping_copy: dict[Any, Any] = dict(source.items())
            target[slot] = mapping_copy
            pending.extend((mapping_copy, key, item) for key, item in mapping_copy.items())
        elif kind is ValueKind.SEQUENCE:
            sequence_copy = list(source)
            target[slot] = sequence_copy
            pending.extend((sequence_copy, idx, item) for idx, item in enumerate(sequence_copy))
            if isinstance(source, tuple):
                tuples.append((target, slot, sequence_copy))
        else:
            target[slot] = source

    # Inner tuples were recorded after their parents; freeze them first.
    for target, slot, items in reversed(tuples):
        target[slot] = tuple(items)
    return holder[0]


def _writable(node: Mapping[Any, Any]) -> MutableMapping[Any, Any]:
    if isinstance(node, MutableMapping):
        return node
    return dict(node)


def merge_config(base: Any, overlay: Any) -> Any:
    """Overlay `overlay` onto `base` in place and return `base`.

    Mapping-aware overwrite: a key recurses only when both sides hold mappings;
    any other overlay value (sequences included) replaces the base value whole.
    A non-mapping `base` starts over as an empty dict. A non-mapping `overlay`
    is returned unchanged. Read-only mappings inside `base` are replaced by
    merged dict copies.
    """

    if value_kind(base) is not ValueKind.MAPPING:
        base = {}
    if value_kind(overlay) is not ValueKind.MAPPING:
        return overlay

    root = _writable(base)
    pending: list[tuple[MutableMapping[Any, Any], Mapping[Any, Any]]] = [(root, overlay)]
    while pending:
        target, layer = pending.pop()
        for key, overlay_value in layer.items():
            existing = target.get(key)
            if value_kind(existing) is ValueKind.MAPPING and value_kind(overlay_value) is ValueKind.MAPPING:
                node = _writable(existing)
                target[key] = node
                pending.append((node, overlay_value))
            else:
                target[key] = overlay_value
    return root
