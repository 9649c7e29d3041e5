from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Set, Tuple
import logging

from sosietrace.core.errors import UnsynchronizableTrace
from sosietrace.core.point import Point
from sosietrace.core.sequence import PointSequence
from sosietrace.core.variables import VariableDiff, VariableDiffExtractor

logger = logging.getLogger(__name__)

Pair = Tuple[int, int]


@dataclass(frozen=True)
class CallPair:
    reference_index: int
    candidate_index: int
    reference_location: str
    candidate_location: str

    @staticmethod
    def of(ref: Point, cand: Point) -> "CallPair":
        return CallPair(ref.index, cand.index, ref.location, cand.location)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reference_index": self.reference_index,
            "candidate_index": self.candidate_index,
            "reference_location": self.reference_location,
            "candidate_location": self.candidate_location,
        }


@dataclass
class AlignmentResult:
    trail: List[Pair]
    same_calls: List[CallPair] = field(default_factory=list)
    different_calls: List[CallPair] = field(default_factory=list)
    variable_diffs: List[VariableDiff] = field(default_factory=list)


class SequenceAligner(Protocol):
    def align(self, reference: PointSequence, candidate: PointSequence,
              start: Pair = (0, 0), presync: bool = False) -> AlignmentResult: ...


class _Walk:
    """Bookkeeping for one alignment run."""

    def __init__(self) -> None:
        self.trail: List[Pair] = []
        self.same: List[CallPair] = []
        self.different: List[CallPair] = []
        self._seen_same: Set[Pair] = set()
        self._seen_different: Set[Pair] = set()
        self.diffs: Dict[str, VariableDiff] = {}
        self.reference_lagging = False
        self.candidate_lagging = False

    def mark_same(self, ref: Point, cand: Point) -> None:
        key = (ref.index, cand.index)
        if key in self._seen_same or key in self._seen_different:
            return
        self._seen_same.add(key)
        self.same.append(CallPair.of(ref, cand))

    def mark_different(self, ref: Point, cand: Point) -> None:
        key = (ref.index, cand.index)
        if key in self._seen_different:
            return
        self._seen_different.add(key)
        self.different.append(CallPair.of(ref, cand))

    def add_diffs(self, diffs: List[VariableDiff]) -> None:
        for d in diffs:
            self.diffs.setdefault(d.key, d)

    def result(self) -> AlignmentResult:
        return AlignmentResult(
            trail=list(self.trail),
            same_calls=list(self.same),
            different_calls=list(self.different),
            variable_diffs=list(self.diffs.values()),
        )


class ResyncAligner:
    """
    Walks two point sequences call point by call point and realigns them
    after local noise (extra or missing calls, recursion detours) with a
    bounded window search.

    Each sequence carries a sticky "lagging" flag: the reference lags when it
    is shallower than the candidate at a step, and the candidate lags when it
    is shallower than the reference. A matched pair at unequal depth is a
    transient mismatch; an identity mismatch, or both sides having lagged
    since the last equal-depth match, is a divergence and triggers the
    window search.
    """

    def __init__(self, window: int, extractor: Optional[VariableDiffExtractor] = None) -> None:
        if isinstance(window, bool) or not isinstance(window, int) or window < 1:
            raise ValueError(f"sync window must be a positive integer, got {window!r}")
        self.window = window
        self.extractor = extractor

    def find_resync(self,
                    reference: PointSequence,
                    candidate: PointSequence,
                    ref_index: int,
                    cand_index: int,
                    skip_start: bool = False) -> Optional[Pair]:
        """
        First pair of call points with the same identity in the window
        starting at the given full indices, scanning reference-major: every
        candidate offset is tried for a reference offset before the next
        reference offset. The window counts call-level points only.
        """
        ri = reference.call_position(ref_index)
        ci = candidate.call_position(cand_index)
        r_end = min(ri + self.window + 1, reference.call_size())
        c_end = min(ci + self.window + 1, candidate.call_size())
        for i in range(ri, r_end):
            ref_point = reference.get_call_point(i)
            for j in range(ci, c_end):
                if skip_start and i == ri and j == ci:
                    continue
                cand_point = candidate.get_call_point(j)
                if ref_point.same_point(cand_point):
                    return ref_point.index, cand_point.index
        return None

    def align(self, reference: PointSequence, candidate: PointSequence,
              start: Pair = (0, 0), presync: bool = False) -> AlignmentResult:
        """
        Align both sequences from the given start offsets.

        With `presync`, the candidate is taken to start recording part way
        through the execution: the reference is first walked to the
        candidate's first call point and both sides share the variable state
        the reference accumulated until then.
        """
        if reference.call_size() == 0 or candidate.call_size() == 0:
            raise UnsynchronizableTrace(
                f"nothing to align: {reference.call_size()} and {candidate.call_size()} call points"
            )
        reference.reset()
        candidate.reset()
        r0 = reference.first_call_at(start[0])
        c0 = candidate.first_call_at(start[1])
        if r0 is None or c0 is None:
            raise UnsynchronizableTrace(f"no call point at or after start offsets {start}")
        reference.seek(r0)
        candidate.seek(c0)
        if presync:
            self._presync(reference, candidate)

        walk = _Walk()
        self._visit(reference, candidate, walk)
        while reference.has_next_call() and candidate.has_next_call():
            reference.next_call()
            candidate.next_call()
            self._visit(reference, candidate, walk)
        self._flush(reference, candidate, walk)

        logger.debug(
            "aligned %s / %s: %d pairs, %d different, %d variable diffs",
            reference.name, candidate.name, len(walk.trail), len(walk.different), len(walk.diffs),
        )
        return walk.result()

    def _presync(self, reference: PointSequence, candidate: PointSequence) -> None:
        target = candidate.get_top()
        while not reference.get_top().same_point(target):
            if not reference.has_next_call():
                raise UnsynchronizableTrace(
                    f"{target.location} ({target.kind.value}) never occurs in {reference.name or 'reference'}"
                )
            reference.next_call()
        logger.debug("presynchronized at %s: reference@%d / candidate@%d",
                     target.location, reference.cursor, candidate.cursor)
        candidate.merge_variables(reference)
        reference.copy(candidate, keep_cursor=True)

    def _flush(self, reference: PointSequence, candidate: PointSequence, walk: _Walk) -> None:
        # snapshots recorded after the last call point belong to the final pair
        tops = (reference.get_top(), candidate.get_top())
        for seq in (reference, candidate):
            while seq.next_is_var():
                seq.next()
        ref_changed = reference.get_variables_value_change()
        cand_changed = candidate.get_variables_value_change()
        if self.extractor is None or not (ref_changed or cand_changed):
            return
        if tops[0].same_point(tops[1]):
            walk.add_diffs(self.extractor.extract(reference, candidate, tops=tops))

    def _visit(self, reference: PointSequence, candidate: PointSequence, walk: _Walk) -> None:
        ref_top, cand_top = reference.get_top(), candidate.get_top()
        ref_deep, cand_deep = reference.get_deep(), candidate.get_deep()
        same = ref_top.same_point(cand_top)

        if same and ref_deep == cand_deep:
            walk.reference_lagging = walk.candidate_lagging = False
        elif ref_deep < cand_deep:
            walk.reference_lagging = True
        elif ref_deep > cand_deep:
            walk.candidate_lagging = True

        if not same or (walk.reference_lagging and walk.candidate_lagging):
            walk.mark_different(ref_top, cand_top)
            found = self.find_resync(reference, candidate, ref_top.index, cand_top.index, skip_start=same)
            if found is None:
                logger.debug(
                    "no resynchronization within %d call points from %s@%d / %s@%d",
                    self.window, ref_top.location, ref_top.index, cand_top.location, cand_top.index,
                )
                raise UnsynchronizableTrace(
                    f"{reference.name or 'reference'} and {candidate.name or 'candidate'} diverge at "
                    f"{ref_top.location}@{ref_top.index} / {cand_top.location}@{cand_top.index} "
                    f"with no match within {self.window} call points",
                    walk.trail,
                )
            logger.debug("resynchronized (%d, %d) -> (%d, %d)", ref_top.index, cand_top.index, *found)
            ref_top, cand_top = reference.seek(found[0]), candidate.seek(found[1])
            ref_deep, cand_deep = reference.get_deep(), candidate.get_deep()
            if ref_deep == cand_deep:
                walk.reference_lagging = walk.candidate_lagging = False

        walk.trail.append((ref_top.index, cand_top.index))
        if ref_deep != cand_deep or walk.reference_lagging or walk.candidate_lagging:
            walk.mark_different(ref_top, cand_top)
            return

        walk.mark_same(ref_top, cand_top)
        ref_changed = reference.get_variables_value_change()
        cand_changed = candidate.get_variables_value_change()
        if self.extractor is not None and (ref_changed or cand_changed):
            walk.add_diffs(self.extractor.extract(reference, candidate))
