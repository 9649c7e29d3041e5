from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Optional, List, Sequence
import logging
from sosietrace.core.sequence import PointSequence
from sosietrace.core.alignment import ResyncAligner, CallPair, Pair
from sosietrace.core.comparators import ValueComparator, NormalizedValueComparator
from sosietrace.core.errors import UnsynchronizableTrace
from sosietrace.core.exclusion import ExclusionService, ExclusionSnapshot
from sosietrace.core.metrics import TrailMetric, DivergenceMetric, VariableMetric, MetricResult
from sosietrace.core.scoring import WeightedAggregator, BinaryDecision
from sosietrace.core.variables import VariableDiff, VariableDiffExtractor

logger = logging.getLogger(__name__)

DEFAULT_SYNC_WINDOW = 20

@dataclass
class CompareRequest:
    reference: PointSequence
    candidate: PointSequence
    sync_window: int = DEFAULT_SYNC_WINDOW
    # full indices where both walks begin
    start: Pair = (0, 0)
    # candidate recording starts part way through the reference execution
    presync: bool = False
    comparator: ValueComparator = field(default_factory=NormalizedValueComparator)
    comparators_by_key: Optional[Dict[str, ValueComparator]] = None
    # shared campaign state; the comparison only reads a snapshot of it
    exclusions: Optional[ExclusionService] = None

@dataclass
class CompareResult:
    synchronized: bool
    trail: Optional[List[Pair]]
    same_calls: List[CallPair]
    different_calls: List[CallPair]
    variable_diffs: List[VariableDiff]
    metrics: Dict[str, MetricResult]
    score: float
    equivalent: bool
    reason: Optional[str] = None

class Evaluator:
    def __init__(self,
                 aggregator: Optional[WeightedAggregator] = None,
                 decision: Optional[BinaryDecision] = None) -> None:
        self.aggregator = aggregator or WeightedAggregator()
        self.decision = decision or BinaryDecision()

    def evaluate(self, req: CompareRequest) -> CompareResult:
        snapshot = req.exclusions.snapshot() if req.exclusions is not None else ExclusionSnapshot()
        extractor = VariableDiffExtractor(
            exclusions=snapshot,
            comparator=req.comparator,
            comparator_map=req.comparators_by_key,
        )
        aligner = ResyncAligner(req.sync_window, extractor=extractor)

        try:
            alignment = aligner.align(req.reference, req.candidate, start=req.start, presync=req.presync)
        except UnsynchronizableTrace as e:
            logger.info("%s vs %s: unsynchronizable (%s)", req.reference.name, req.candidate.name, e)
            metrics = {
                "trail": TrailMetric().evaluate(None, req.reference, req.candidate),
            }
            return CompareResult(
                synchronized=False,
                trail=None,
                same_calls=[],
                different_calls=[],
                variable_diffs=[],
                metrics=metrics,
                score=0.0,
                equivalent=False,
                reason=str(e),
            )

        metrics: Dict[str, MetricResult] = {
            "trail": TrailMetric().evaluate(alignment.trail, req.reference, req.candidate),
            "divergence": DivergenceMetric().evaluate(alignment.same_calls, alignment.different_calls),
            "variables": VariableMetric().evaluate(alignment.variable_diffs),
        }
        score = self.aggregator.aggregate(metrics)
        equivalent = self.decision.decide(metrics, synchronized=True)
        logger.info(
            "%s vs %s: equivalent=%s score=%.3f (%d different calls, %d variable diffs)",
            req.reference.name, req.candidate.name, equivalent, score,
            len(alignment.different_calls), len(alignment.variable_diffs),
        )
        return CompareResult(
            synchronized=True,
            trail=alignment.trail,
            same_calls=alignment.same_calls,
            different_calls=alignment.different_calls,
            variable_diffs=alignment.variable_diffs,
            metrics=metrics,
            score=score,
            equivalent=equivalent,
        )

    def calibrate(self,
                  runs: Sequence[PointSequence],
                  exclusions: ExclusionService,
                  sync_window: int = DEFAULT_SYNC_WINDOW,
                  comparator: ValueComparator | None = None) -> List[str]:
        """
        Learn noise from repeated runs of the unmodified program.

        Any variable that differs between two runs of the same test cannot be
        blamed on a variant, so every such key is merged into `exclusions`.
        Successive runs are compared pairwise; returns the newly excluded keys.
        """
        added: List[str] = []
        for first, second in zip(runs, runs[1:]):
            req = CompareRequest(
                reference=first,
                candidate=second,
                sync_window=sync_window,
                comparator=comparator or NormalizedValueComparator(),
                exclusions=exclusions,
            )
            res = self.evaluate(req)
            if not res.synchronized:
                logger.warning("calibration runs %s and %s do not synchronize: %s", first.name, second.name, res.reason)
                continue
            added.extend(exclusions.merge(d.key for d in res.variable_diffs))
        return added

    @staticmethod
    def default() -> "Evaluator":
        return Evaluator()
