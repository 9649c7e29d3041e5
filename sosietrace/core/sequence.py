from __future__ import annotations
from bisect import bisect_left
from dataclasses import replace
from typing import Any, Dict, Iterable, Iterator, List, Optional, Set, Tuple

from sosietrace.core.errors import EndOfSequence, OutOfRangeAccess
from sosietrace.core.point import Point, PointKind, point_from_record


def _index_points(points: Iterable[Point]) -> List[Point]:
    """Assign full indices and enclosing-frame back-references."""
    out: List[Point] = []
    # open call-entries as (full index, depth, frame)
    stack: List[Tuple[int, int, int]] = []
    for i, p in enumerate(points):
        depth = p.depth or 0
        if p.kind is PointKind.CALL_ENTRY:
            while stack and stack[-1][1] >= depth:
                stack.pop()
            frame = stack[-1][0] if stack else -1
            stack.append((i, depth, frame))
        elif p.kind is PointKind.CALL_EXIT:
            while stack and stack[-1][1] > depth:
                stack.pop()
            if stack and stack[-1][1] == depth:
                frame = stack.pop()[2]
            else:
                frame = stack[-1][0] if stack else -1
        else:
            frame = stack[-1][0] if stack else -1
        out.append(replace(p, index=i, frame=frame))
    return out


class PointSequence:
    """
    Ordered points of one (test, variant) execution.

    Content is immutable once built. The cursor (full index, -1 before the
    first point) and the accumulated variable state are mutated by the aligner
    during one comparison. Moving the cursor onto or over a branch/variable
    point folds its snapshot into the state.
    """

    def __init__(self, points: Iterable[Point] | None = None, name: str = "") -> None:
        self.name = name
        self._points: List[Point] = _index_points(points or [])
        self._call_indices: List[int] = [p.index for p in self._points if not p.is_variable]
        self._deep: List[int] = []
        current = 0
        for p in self._points:
            if p.is_call:
                current = p.depth or 0
            self._deep.append(current)
        self.reset()

    @classmethod
    def from_records(cls, records: Iterable[Any], name: str = "") -> "PointSequence":
        return cls([point_from_record(r, pos) for pos, r in enumerate(records)], name=name)

    def to_records(self) -> List[Dict[str, Any]]:
        return [p.to_record() for p in self._points]

    # -- content -----------------------------------------------------------

    def get(self, i: int) -> Point:
        if i < 0 or i >= len(self._points):
            raise OutOfRangeAccess(f"{self.name or 'sequence'}: index {i} outside [0, {len(self._points)})")
        return self._points[i]

    def get_call_point(self, i: int) -> Point:
        if i < 0 or i >= len(self._call_indices):
            raise OutOfRangeAccess(f"{self.name or 'sequence'}: call index {i} outside [0, {len(self._call_indices)})")
        return self._points[self._call_indices[i]]

    def size(self) -> int:
        return len(self._points)

    def call_size(self) -> int:
        return len(self._call_indices)

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self) -> Iterator[Point]:
        return iter(self._points)

    def call_position(self, i: int) -> int:
        """Call-only index of the first call-level point at or after full index `i`."""
        return bisect_left(self._call_indices, i)

    def first_call_at(self, i: int) -> Optional[int]:
        pos = self.call_position(i)
        if pos >= len(self._call_indices):
            return None
        return self._call_indices[pos]

    # -- cursor ------------------------------------------------------------

    @property
    def cursor(self) -> int:
        return self._cursor

    def reset(self) -> None:
        self._cursor = -1
        self._state: Dict[str, str] = {}
        self._changed_keys: Set[str] = set()
        self._changed = False

    def has_next(self) -> bool:
        return self._cursor < len(self._points) - 1

    def has_next_call(self) -> bool:
        return self.call_position(self._cursor + 1) < len(self._call_indices)

    def next(self) -> Point:
        if not self.has_next():
            raise EndOfSequence(f"{self.name or 'sequence'}: no point after {self._cursor}")
        self._cursor += 1
        self._absorb(self._cursor)
        return self._points[self._cursor]

    def next_call(self) -> Point:
        """Advance to the next call-level point, folding skipped snapshots into the state."""
        while self.next_is_var():
            self.next()
        return self.next()

    def previous(self) -> Point:
        # the variable state keeps last known values
        if self._cursor <= 0:
            raise OutOfRangeAccess(f"{self.name or 'sequence'}: no point before {self._cursor}")
        self._cursor -= 1
        return self._points[self._cursor]

    def seek(self, i: int) -> Point:
        if i < 0 or i >= len(self._points):
            raise OutOfRangeAccess(f"{self.name or 'sequence'}: cannot seek to {i}")
        if i < self._cursor:
            self.reset()
        for k in range(self._cursor + 1, i + 1):
            self._absorb(k)
        self._cursor = i
        return self._points[i]

    def get_top(self) -> Point:
        if self._cursor < 0:
            raise OutOfRangeAccess(f"{self.name or 'sequence'}: cursor before the first point")
        return self._points[self._cursor]

    def get_deep(self) -> int:
        if self._cursor < 0:
            return 0
        return self._deep[self._cursor]

    def next_is_var(self) -> bool:
        return self.has_next() and self._points[self._cursor + 1].is_variable

    # -- variable state ----------------------------------------------------

    def _absorb(self, i: int) -> None:
        p = self._points[i]
        if not p.is_conditional:
            return
        for key, value in p.variable_map().items():
            if self._state.get(key) != value:
                self._state[key] = value
                self._changed_keys.add(key)
                self._changed = True

    @property
    def variables(self) -> Dict[str, str]:
        return dict(self._state)

    def value_of(self, key: str) -> Optional[str]:
        return self._state.get(key)

    def get_variables_value_change(self) -> bool:
        changed = self._changed
        self._changed = False
        return changed

    def pop_changed_keys(self) -> Set[str]:
        keys = self._changed_keys
        self._changed_keys = set()
        return keys

    def merge_variables(self, other: "PointSequence") -> None:
        """Fold the state accumulated by `other` into this one; values from `other` win."""
        for key, value in other._state.items():
            if self._state.get(key) != value:
                self._state[key] = value
                self._changed_keys.add(key)
                self._changed = True

    def copy(self, other: "PointSequence", keep_cursor: bool = False) -> None:
        """Take cursor position and accumulated state from `other`, or only the state with `keep_cursor`."""
        if not keep_cursor:
            if other._cursor >= len(self._points):
                raise OutOfRangeAccess(f"{self.name or 'sequence'}: cannot copy cursor {other._cursor}")
            self._cursor = other._cursor
        self._state = dict(other._state)
        self._changed_keys = set(other._changed_keys)
        self._changed = other._changed

    def __repr__(self) -> str:
        return f"PointSequence(name={self.name!r}, size={len(self._points)}, calls={len(self._call_indices)}, cursor={self._cursor})"
