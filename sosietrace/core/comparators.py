from __future__ import annotations
from typing import Protocol, Any, Dict, Optional
import re

_IDENTITY_HASH = re.compile(r"^([\w.$<>\[\]]+)@[0-9a-fA-F]+$")


class ValueComparator(Protocol):
    def compare(self, a: Optional[str], b: Optional[str], key: str) -> bool: ...


def _split_items(body: str) -> list[str]:
    return [] if not body else body.split(", ")


def normalize_value(value: Optional[str]) -> Any:
    """
    Canonical form of a serialized value.

    Strips identity-hash suffixes ("Foo@1b6d3586" -> "Foo"), turns "[a, b]"
    into a list and "{a, b}" into an order-insensitive set, recursively.
    """
    if value is None:
        return None
    if value.startswith("{") and value.endswith("}"):
        items = [normalize_value(s) for s in _split_items(value[1:-1])]
        return ("set", tuple(sorted({repr(i) for i in items})))
    if value.startswith("[") and value.endswith("]"):
        return ("list", tuple(normalize_value(s) for s in _split_items(value[1:-1])))
    m = _IDENTITY_HASH.match(value)
    if m:
        return m.group(1)
    return value


class ExactEqualityComparator:
    def compare(self, a: Optional[str], b: Optional[str], key: str) -> bool:
        return a == b


class NormalizedValueComparator:
    def compare(self, a: Optional[str], b: Optional[str], key: str) -> bool:
        if a == b:
            return True
        return normalize_value(a) == normalize_value(b)


class AlwaysTrueComparator:
    def compare(self, a: Optional[str], b: Optional[str], key: str) -> bool:
        return True


def get_comparator_for_key(
    default: ValueComparator,
    comparator_map: Dict[str, ValueComparator] | None,
    key: str
) -> ValueComparator:
    """
    Resolve which comparator to use for a given variable key.
    Falls back to the default comparator if no per-key override exists.
    """
    if comparator_map and key in comparator_map:
        return comparator_map[key]
    return default
