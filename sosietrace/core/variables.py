from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sosietrace.core.comparators import ValueComparator, NormalizedValueComparator, get_comparator_for_key
from sosietrace.core.errors import UnsynchronizableTrace
from sosietrace.core.exclusion import ExclusionSet, ExclusionSnapshot
from sosietrace.core.point import Point
from sosietrace.core.sequence import PointSequence


@dataclass(frozen=True)
class VariableDiff:
    """A variable whose resolved value differs at a matched pair of positions. Compared by key only."""
    key: str
    reference_value: Optional[str] = field(default=None, compare=False)
    candidate_value: Optional[str] = field(default=None, compare=False)
    reference_index: int = field(default=-1, compare=False)
    candidate_index: int = field(default=-1, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "reference_value": self.reference_value,
            "candidate_value": self.candidate_value,
            "reference_index": self.reference_index,
            "candidate_index": self.candidate_index,
        }


class VariableDiffExtractor:
    def __init__(self,
                 exclusions: Optional[ExclusionSet] = None,
                 comparator: ValueComparator | None = None,
                 comparator_map: Optional[Dict[str, ValueComparator]] = None) -> None:
        self.exclusions = exclusions if exclusions is not None else ExclusionSnapshot()
        self.comparator = comparator or NormalizedValueComparator()
        self.comparator_map = comparator_map or {}

    def extract(self,
                reference: PointSequence,
                candidate: PointSequence,
                tops: Optional[Tuple[Point, Point]] = None) -> List[VariableDiff]:
        """
        Diff the variable state of both sequences at their current (aligned) tops.

        Only keys changed on either side since the previous extraction are
        looked at; each resolves to the last value recorded for it, or None.

        `tops` names the aligned pair the diffs are attributed to when the
        cursors have moved past it; it defaults to the current tops.
        """
        ref_top, cand_top = tops if tops is not None else (reference.get_top(), candidate.get_top())
        if not ref_top.same_point(cand_top):
            raise UnsynchronizableTrace(
                f"cannot diff variables of unaligned points {ref_top.location}@{ref_top.index} "
                f"and {cand_top.location}@{cand_top.index}"
            )
        keys = reference.pop_changed_keys() | candidate.pop_changed_keys()
        diffs: List[VariableDiff] = []
        for key in sorted(keys):
            ref_val = reference.value_of(key)
            cand_val = candidate.value_of(key)
            if get_comparator_for_key(self.comparator, self.comparator_map, key).compare(ref_val, cand_val, key):
                continue
            if self.exclusions.contains(key):
                continue
            diffs.append(VariableDiff(
                key=key,
                reference_value=ref_val,
                candidate_value=cand_val,
                reference_index=ref_top.index,
                candidate_index=cand_top.index,
            ))
        return diffs

    def extract_trail(self,
                      reference: PointSequence,
                      candidate: PointSequence,
                      trail: Sequence[Tuple[int, int]]) -> List[VariableDiff]:
        """Replay a stored alignment trail and collect diffs, first occurrence per key."""
        reference.reset()
        candidate.reset()
        found: Dict[str, VariableDiff] = {}
        for ref_idx, cand_idx in trail:
            reference.seek(ref_idx)
            candidate.seek(cand_idx)
            for d in self.extract(reference, candidate):
                found.setdefault(d.key, d)
        if trail:
            tops = (reference.get_top(), candidate.get_top())
            for seq in (reference, candidate):
                while seq.next_is_var():
                    seq.next()
            for d in self.extract(reference, candidate, tops=tops):
                found.setdefault(d.key, d)
        return list(found.values())
