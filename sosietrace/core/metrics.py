from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple
from sosietrace.core.sequence import PointSequence
from sosietrace.core.variables import VariableDiff
import numpy as np

@dataclass
class MetricResult:
    name: str
    score: float
    binary_pass: Optional[bool] = None
    details: Dict[str, Any] = None

class Metric(Protocol):
    def evaluate(self, *args, **kwargs) -> MetricResult: ...

def _skipped(positions: np.ndarray, call_size: int) -> int:
    # call points never visited: before the first pair, between pairs, after the last pair
    inner = int(np.sum(np.maximum(np.diff(positions) - 1, 0))) if positions.size > 1 else 0
    return int(positions[0]) + inner + int(call_size - 1 - positions[-1])

class TrailMetric:
    """
    How much of both call streams the alignment trail accounts for.
    Score is the mean coverage of the two call-only index spaces;
    binary pass iff every call point of both sequences is on the trail.
    """
    def evaluate(self,
                 trail: Optional[Sequence[Tuple[int, int]]],
                 reference: PointSequence,
                 candidate: PointSequence) -> MetricResult:
        if not trail:
            return MetricResult(
                name="trail",
                score=0.0,
                binary_pass=False,
                details={"reason": "no alignment trail", "pairs": 0},
            )
        arr = np.asarray(trail, dtype=int)
        ref_pos = np.array([reference.call_position(int(i)) for i in arr[:, 0]], dtype=int)
        cand_pos = np.array([candidate.call_position(int(j)) for j in arr[:, 1]], dtype=int)

        ref_cov = np.unique(ref_pos).size / reference.call_size() if reference.call_size() else 1.0
        cand_cov = np.unique(cand_pos).size / candidate.call_size() if candidate.call_size() else 1.0
        ref_skipped = _skipped(ref_pos, reference.call_size())
        cand_skipped = _skipped(cand_pos, candidate.call_size())
        score = float((ref_cov + cand_cov) / 2.0)

        return MetricResult(
            name="trail",
            score=score,
            binary_pass=(ref_skipped == 0 and cand_skipped == 0),
            details={
                "pairs": int(arr.shape[0]),
                "reference_coverage": float(ref_cov),
                "candidate_coverage": float(cand_cov),
                "reference_skipped": ref_skipped,
                "candidate_skipped": cand_skipped,
            },
        )

class DivergenceMetric:
    """Share of classified call pairs that matched at equal depth."""
    def evaluate(self, same_calls: Sequence[Any], different_calls: Sequence[Any]) -> MetricResult:
        same = len(same_calls)
        different = len(different_calls)
        total = same + different
        rate = (same / total) if total else 1.0
        return MetricResult(
            name="divergence",
            score=rate,
            binary_pass=(different == 0),
            details={"same_calls": same, "different_calls": different},
        )

class VariableMetric:
    """
    Score = exp(-n_diffs / scale); binary pass iff no variable differs.
    """
    def __init__(self, scale: float = 3.0) -> None:
        self.scale = scale

    def evaluate(self, diffs: List[VariableDiff]) -> MetricResult:
        n = len(diffs)
        score = float(np.exp(-n / self.scale))
        return MetricResult(
            name="variables",
            score=score,
            binary_pass=(n == 0),
            details={"variable_diffs": n, "keys": [d.key for d in diffs]},
        )
