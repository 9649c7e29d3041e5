import math

from sosietrace.core.evaluator import Evaluator, CompareRequest
from sosietrace.core.exclusion import ExclusionService
from sosietrace.core.sequence import PointSequence


def run(seed="1", y="2", name="run"):
    return PointSequence.from_records([
        {"owner": "Foo", "tag": "bar", "kind": "call-entry", "depth": 1},
        {"owner": "Foo", "tag": "bar#if0", "kind": "branch", "variables": [["seed", seed], ["y", y]]},
        {"owner": "Foo", "tag": "bar", "kind": "call-exit", "depth": 1},
    ], name=name)


def test_evaluator_identical_runs_are_equivalent():
    ev = Evaluator.default()
    res = ev.evaluate(CompareRequest(reference=run(), candidate=run()))
    assert res.synchronized is True
    assert res.equivalent is True
    assert abs(res.score - 1.0) < 1e-9
    assert res.trail == [(0, 0), (1, 1), (2, 2)]
    assert res.metrics["trail"].binary_pass is True
    assert res.metrics["divergence"].score == 1.0
    assert res.variable_diffs == []


def test_evaluator_variable_diff_breaks_equivalence():
    res = Evaluator.default().evaluate(CompareRequest(reference=run(y="2"), candidate=run(y="3")))
    assert res.synchronized is True
    assert res.equivalent is False
    assert [d.key for d in res.variable_diffs] == ["Foo.bar#if0:y"]
    assert abs(res.score - (0.7 + 0.3 * math.exp(-1 / 3))) < 1e-9


def test_evaluator_respects_exclusions():
    req = CompareRequest(reference=run(y="2"), candidate=run(y="3"),
                         exclusions=ExclusionService(["Foo.bar#if0:y"]))
    res = Evaluator.default().evaluate(req)
    assert res.equivalent is True


def test_evaluator_reports_unsynchronizable_pair():
    ref = PointSequence.from_records([
        {"owner": "C", "tag": t, "kind": "call-entry", "depth": 1} for t in ("a", "b", "c")
    ])
    cand = PointSequence.from_records([
        {"owner": "C", "tag": t, "kind": "call-entry", "depth": 1} for t in ("a", "x", "y", "z", "w")
    ])
    res = Evaluator.default().evaluate(CompareRequest(reference=ref, candidate=cand, sync_window=1))
    assert res.synchronized is False
    assert res.equivalent is False
    assert res.trail is None
    assert res.score == 0.0
    assert res.reason
    assert list(res.metrics) == ["trail"]


def test_calibrate_merges_noise_across_runs():
    exclusions = ExclusionService()
    runs = [run(seed="1", name="r1"), run(seed="7", name="r2"), run(seed="7", name="r3")]
    added = Evaluator.default().calibrate(runs, exclusions)
    assert added == ["Foo.bar#if0:seed"]
    assert exclusions.keys() == ["Foo.bar#if0:seed"]

    res = Evaluator.default().evaluate(
        CompareRequest(reference=run(seed="1"), candidate=run(seed="99"), exclusions=exclusions))
    assert res.equivalent is True


def test_calibrate_skips_unsynchronized_runs():
    other = PointSequence.from_records([
        {"owner": "Bar", "tag": "q", "kind": "call-entry", "depth": 1},
        {"owner": "Bar", "tag": "r", "kind": "call-entry", "depth": 1},
    ], name="other")
    exclusions = ExclusionService()
    added = Evaluator.default().calibrate([run(seed="1"), run(seed="2"), other], exclusions)
    assert added == ["Foo.bar#if0:seed"]
    assert len(exclusions) == 1


def test_evaluator_presync_for_partial_candidate():
    full = PointSequence.from_records([
        {"owner": "Foo", "tag": "setUp", "kind": "call-entry", "depth": 1},
        {"owner": "Foo", "tag": "setUp#if0", "kind": "branch", "variables": [["seed", "3"]]},
        {"owner": "Foo", "tag": "bar", "kind": "call-entry", "depth": 1},
        {"owner": "Foo", "tag": "bar#if0", "kind": "branch", "variables": [["y", "2"]]},
    ], name="full")
    partial = PointSequence.from_records([
        {"owner": "Foo", "tag": "bar", "kind": "call-entry", "depth": 1},
        {"owner": "Foo", "tag": "bar#if0", "kind": "branch", "variables": [["y", "2"]]},
    ], name="partial")
    ev = Evaluator.default()
    assert ev.evaluate(CompareRequest(reference=full, candidate=partial)).equivalent is False
    res = ev.evaluate(CompareRequest(reference=full, candidate=partial, presync=True))
    assert res.synchronized is True
    assert res.equivalent is True
    assert res.trail == [(2, 0), (3, 1)]
