import logging
from collections.abc import Mapping
from typing import Any, FrozenSet, Iterable, Optional, Tuple

from .. import config
from ..models import DedupOptions, MetadataRecord

_MISSING = object()
SIZE_NODE = '.size'


class FieldComparator:
    """
    Tolerant structural diff of two metadata records.

    Walks both sides in lock-step over the union of their keys and reports
    (differences, leaves checked). Nothing is mutated, so the same pair
    always yields the same counts in either argument order.
    """

    def __init__(self,
                 options: Optional[DedupOptions] = None,
                 omit_fields: Iterable[str] = config.OMIT_FIELDS):
        self.close_size = bool(options and options.close_size)
        self.omit_fields: FrozenSet[str] = frozenset(omit_fields)

    def compare(self, a: Any, b: Any) -> Tuple[int, int]:
        diffs, checks = self._compare_nodes("", self._view(a), self._view(b))
        logging.log(config.TRACE, f"Compared {checks} fields, {diffs} differences")
        return diffs, checks

    @staticmethod
    def is_candidate(diffs: int, checks: int) -> bool:
        return diffs == 0 and checks > config.MIN_FIELDS_CHECKED

    def _view(self, node: Any) -> Any:
        if isinstance(node, MetadataRecord):
            return node.comparable()
        return node

    def _compare_nodes(self, name: str, n1: Any, n2: Any) -> Tuple[int, int]:
        nested1 = _is_nested(n1)
        nested2 = _is_nested(n2)

        if nested1 and nested2:
            diffs = checks = 0
            for key in _union_keys(n1, n2):
                if key in self.omit_fields:
                    logging.log(config.TRACE, f"...not comparing {key}")
                    continue
                d, c = self._compare_nodes(f"{name}.{key}", _child(n1, key), _child(n2, key))
                diffs += d
                checks += c
            return diffs, checks

        if nested1 or nested2:
            logging.debug(f"{name} {'SOURCE' if nested1 else 'DEST'} ONLY")
            return 1, 1

        # the record size is compared but is not a metadata field, so it never
        # counts towards the fields-checked floor
        counted = 0 if name == SIZE_NODE else 1

        if _leaf_equal(n1, n2):
            return 0, counted

        if name == SIZE_NODE and self.close_size and _within_ratio(n1, n2):
            logging.debug(f"{name} CLOSE SIZE (not dif): {n1} within 0.1% of {n2}")
            return 0, counted
        if name.rsplit('.', 1)[-1] == config.WARNING_FIELD:
            logging.debug(f"Ignoring warning: ({_show(n1)}) - ({_show(n2)})")
            return 0, counted

        logging.debug(f"{name} DIF: {_show(n1)} <=> {_show(n2)}")
        return 1, counted


def _is_nested(node: Any) -> bool:
    return isinstance(node, (Mapping, list, tuple))


def _union_keys(n1: Any, n2: Any) -> list:
    keys = list(_keys(n1))
    seen = set(keys)
    for k in _keys(n2):
        if k not in seen:
            keys.append(k)
    return keys


def _keys(node: Any) -> Iterable:
    if isinstance(node, Mapping):
        return node.keys()
    return range(len(node))


def _child(node: Any, key: Any) -> Any:
    if isinstance(node, Mapping):
        return node.get(key, _MISSING)
    if isinstance(key, int) and key < len(node):
        return node[key]
    return _MISSING


def _leaf_equal(n1: Any, n2: Any) -> bool:
    if n1 is _MISSING or n2 is _MISSING:
        return n1 is n2
    # bool is an int subclass; True must not equal 1 here
    if isinstance(n1, bool) != isinstance(n2, bool):
        return False
    return n1 == n2


def _within_ratio(n1: Any, n2: Any) -> bool:
    numeric = (int, float)
    if not isinstance(n1, numeric) or not isinstance(n2, numeric):
        return False
    if isinstance(n1, bool) or isinstance(n2, bool):
        return False
    largest = max(abs(n1), abs(n2))
    if largest == 0:
        return True
    return abs(n1 - n2) / largest < config.CLOSE_SIZE_RATIO


def _show(value: Any) -> Any:
    return 'undefined' if value is _MISSING else value
