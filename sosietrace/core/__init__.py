from .errors import SosieTraceError, UnsynchronizableTrace, MalformedRecord, OutOfRangeAccess, EndOfSequence
from .point import Point, PointKind, point_from_record
from .sequence import PointSequence
from .comparators import (
    ValueComparator,
    ExactEqualityComparator,
    NormalizedValueComparator,
    AlwaysTrueComparator,
    get_comparator_for_key,
    normalize_value,
)
from .exclusion import ExclusionSet, ExclusionSnapshot, ExclusionService
from .variables import VariableDiff, VariableDiffExtractor
from .alignment import SequenceAligner, ResyncAligner, AlignmentResult, CallPair
from .metrics import MetricResult, Metric, TrailMetric, DivergenceMetric, VariableMetric
from .scoring import WeightedAggregator, BinaryDecision
from .evaluator import Evaluator, CompareRequest, CompareResult, DEFAULT_SYNC_WINDOW

__all__ = [
    "SosieTraceError",
    "UnsynchronizableTrace",
    "MalformedRecord",
    "OutOfRangeAccess",
    "EndOfSequence",
    "Point",
    "PointKind",
    "point_from_record",
    "PointSequence",
    "ValueComparator",
    "ExactEqualityComparator",
    "NormalizedValueComparator",
    "AlwaysTrueComparator",
    "get_comparator_for_key",
    "normalize_value",
    "ExclusionSet",
    "ExclusionSnapshot",
    "ExclusionService",
    "VariableDiff",
    "VariableDiffExtractor",
    "SequenceAligner",
    "ResyncAligner",
    "AlignmentResult",
    "CallPair",
    "MetricResult",
    "Metric",
    "TrailMetric",
    "DivergenceMetric",
    "VariableMetric",
    "WeightedAggregator",
    "BinaryDecision",
    "Evaluator",
    "CompareRequest",
    "CompareResult",
    "DEFAULT_SYNC_WINDOW",
]
