import math

from sosietrace.core.alignment import CallPair
from sosietrace.core.metrics import MetricResult, TrailMetric, DivergenceMetric, VariableMetric
from sosietrace.core.scoring import WeightedAggregator, BinaryDecision
from sosietrace.core.sequence import PointSequence
from sosietrace.core.variables import VariableDiff


def calls(*tags):
    return PointSequence.from_records([
        {"owner": "C", "tag": t, "kind": "call-entry", "depth": 1} for t in tags
    ])


def test_trail_metric_counts_skipped_call_points():
    ref = calls("a", "b", "c", "d")
    cand = calls("a", "b", "x", "c", "d")
    m = TrailMetric().evaluate([(0, 0), (1, 1), (2, 3), (3, 4)], ref, cand)
    assert m.details["reference_coverage"] == 1.0
    assert abs(m.details["candidate_coverage"] - 0.8) < 1e-9
    assert m.details["reference_skipped"] == 0
    assert m.details["candidate_skipped"] == 1
    assert abs(m.score - 0.9) < 1e-9
    assert m.binary_pass is False


def test_trail_metric_ignores_variable_points_in_coverage():
    ref = PointSequence.from_records([
        {"owner": "C", "tag": "a", "kind": "call-entry", "depth": 1},
        {"owner": "C", "tag": "a", "kind": "variable", "variables": [["v", "1"]]},
        {"owner": "C", "tag": "b", "kind": "call-entry", "depth": 1},
    ])
    m = TrailMetric().evaluate([(0, 0), (2, 2)], ref, ref)
    assert m.score == 1.0
    assert m.binary_pass is True


def test_trail_metric_without_trail():
    m = TrailMetric().evaluate(None, calls("a"), calls("a"))
    assert m.score == 0.0
    assert m.binary_pass is False


def test_divergence_metric():
    same = [CallPair(0, 0, "C.a", "C.a"), CallPair(1, 1, "C.b", "C.b"), CallPair(3, 4, "C.d", "C.d")]
    different = [CallPair(2, 2, "C.c", "C.x")]
    m = DivergenceMetric().evaluate(same, different)
    assert m.score == 0.75
    assert m.binary_pass is False
    assert DivergenceMetric().evaluate([], []).score == 1.0


def test_variable_metric_decays_with_diffs():
    assert VariableMetric().evaluate([]).score == 1.0
    m = VariableMetric(scale=2.0).evaluate([VariableDiff("a"), VariableDiff("b")])
    assert abs(m.score - math.exp(-1.0)) < 1e-9
    assert m.binary_pass is False
    assert m.details["keys"] == ["a", "b"]


def metrics(trail=1.0, divergence=1.0, variables=1.0, variables_pass=True, divergence_pass=True):
    return {
        "trail": MetricResult("trail", trail, True),
        "divergence": MetricResult("divergence", divergence, divergence_pass),
        "variables": MetricResult("variables", variables, variables_pass),
    }


def test_weighted_aggregator_defaults_and_formula():
    m = metrics(trail=0.5, divergence=1.0, variables=0.0)
    assert abs(WeightedAggregator().aggregate(m) - (0.4 * 0.5 + 0.3)) < 1e-9
    assert WeightedAggregator(weights={"trail": 1.0}).aggregate(m) == 0.5
    assert WeightedAggregator(weights={"missing": 1.0}).aggregate(m) == 0.0
    agg = WeightedAggregator(formula=lambda ms: min(x.score for x in ms.values()))
    assert agg.aggregate(m) == 0.0


def test_binary_decision_checks():
    dec = BinaryDecision()
    assert dec.checks(metrics(), synchronized=True) == {"synchronized": True, "variables": True}
    assert dec.decide(metrics(), synchronized=True) is True
    assert dec.decide(metrics(), synchronized=False) is False
    assert dec.decide(metrics(variables_pass=False), synchronized=True) is False
    # different calls alone are tolerated unless asked for
    assert dec.decide(metrics(divergence_pass=False), synchronized=True) is True
    strict = BinaryDecision(require_same_calls=True)
    assert strict.decide(metrics(divergence_pass=False), synchronized=True) is False
    assert BinaryDecision(required_metric_names=["timing"]).decide(metrics(), synchronized=True) is False
