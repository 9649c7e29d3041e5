from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from sosietrace.core.errors import MalformedRecord


class PointKind(str, Enum):
    CALL_ENTRY = "call-entry"
    CALL_EXIT = "call-exit"
    BRANCH = "branch"
    VARIABLE = "variable"


_KIND_ALIASES: Dict[str, PointKind] = {
    "call-entry": PointKind.CALL_ENTRY,
    "entry": PointKind.CALL_ENTRY,
    "call-exit": PointKind.CALL_EXIT,
    "exit": PointKind.CALL_EXIT,
    "branch": PointKind.BRANCH,
    "conditional": PointKind.BRANCH,
    "variable": PointKind.VARIABLE,
    "var": PointKind.VARIABLE,
}

Variables = Tuple[Tuple[str, str], ...]


@dataclass(frozen=True)
class Point:
    """
    One recorded execution event.

    The kind discriminator makes this a closed tagged union:
      - call-entry / call-exit carry a call depth (a "stack trace call"),
      - branch / variable carry a variable snapshot (a "conditional point").
    `frame` is the full index of the enclosing call-entry in the owning
    sequence (-1 at top level).
    """
    owner: str
    tag: str
    kind: PointKind
    index: int = -1
    depth: Optional[int] = None
    frame: int = -1
    variables: Variables = ()

    @property
    def location(self) -> str:
        return f"{self.owner}.{self.tag}"

    @property
    def is_call(self) -> bool:
        return self.kind in (PointKind.CALL_ENTRY, PointKind.CALL_EXIT)

    @property
    def is_variable(self) -> bool:
        return self.kind is PointKind.VARIABLE

    @property
    def is_conditional(self) -> bool:
        return self.kind in (PointKind.BRANCH, PointKind.VARIABLE)

    def identity(self) -> Tuple[str, str, str]:
        return (self.owner, self.tag, self.kind.value)

    def same_point(self, other: "Point") -> bool:
        # location and kind only; values, depth and index never take part
        return self.identity() == other.identity()

    def variable_key(self, name: str) -> str:
        return f"{self.location}:{name}"

    def variable_map(self) -> Dict[str, str]:
        return {self.variable_key(name): value for name, value in self.variables}

    def to_record(self) -> Dict[str, Any]:
        rec: Dict[str, Any] = {"owner": self.owner, "tag": self.tag, "kind": self.kind.value}
        if self.depth is not None:
            rec["depth"] = self.depth
        if self.variables:
            rec["variables"] = [[n, v] for n, v in self.variables]
        return rec


def _parse_variables(raw: Any, position: Optional[int]) -> Variables:
    if raw is None:
        return ()
    if isinstance(raw, dict):
        raw = list(raw.items())
    if not isinstance(raw, (list, tuple)):
        raise MalformedRecord("variables must be a list of (name, value) pairs", position)
    out = []
    for item in raw:
        if not isinstance(item, (list, tuple)) or len(item) not in (1, 2):
            raise MalformedRecord(f"bad variable entry {item!r}", position)
        name = item[0]
        if not isinstance(name, str) or not name:
            raise MalformedRecord(f"bad variable name {name!r}", position)
        # a bare name records an empty value
        value = "" if len(item) == 1 or item[1] is None else str(item[1])
        out.append((name, value))
    return tuple(out)


def point_from_record(record: Any, position: Optional[int] = None) -> Point:
    """Convert one raw record into a Point; index and frame are set by the owning sequence."""
    if not isinstance(record, dict):
        raise MalformedRecord(f"expected a mapping, got {type(record).__name__}", position)
    owner = record.get("owner")
    tag = record.get("tag")
    if not isinstance(owner, str) or not owner:
        raise MalformedRecord("missing owner", position)
    if not isinstance(tag, str) or not tag:
        raise MalformedRecord("missing tag", position)

    kind = _KIND_ALIASES.get(str(record.get("kind", "")).lower())
    if kind is None:
        raise MalformedRecord(f"unknown kind {record.get('kind')!r}", position)

    depth = record.get("depth")
    if depth is not None:
        if isinstance(depth, bool) or not isinstance(depth, int) or depth < 0:
            raise MalformedRecord(f"bad depth {depth!r}", position)
    elif kind in (PointKind.CALL_ENTRY, PointKind.CALL_EXIT):
        raise MalformedRecord("call record without depth", position)

    variables = _parse_variables(record.get("variables"), position)
    if variables and kind in (PointKind.CALL_ENTRY, PointKind.CALL_EXIT):
        raise MalformedRecord("call records cannot carry variables", position)

    return Point(owner=owner, tag=tag, kind=kind, depth=depth, variables=variables)
