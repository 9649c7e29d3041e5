from sosietrace.core import (
    PointSequence, Evaluator, CompareRequest,
    ExclusionService, ExactEqualityComparator,
)
from sosietrace.reporting import format_text_report


def call(owner, tag, depth, kind="call-entry"):
    return {"owner": owner, "tag": tag, "kind": kind, "depth": depth}


def branch(owner, tag, **variables):
    return {"owner": owner, "tag": tag, "kind": "branch", "variables": [[k, v] for k, v in variables.items()]}


def main():
    # Reference run of a test (abridged)
    reference = PointSequence.from_records([
        call("StackTest", "testPush", 1),
        call("Stack", "push", 2),
        branch("Stack", "push#if0", size="0", top="null"),
        call("Stack", "push", 2, kind="call-exit"),
        call("Stack", "peek", 2),
        branch("Stack", "peek#if0", size="1", top="Item@1b6d3586"),
        call("Stack", "peek", 2, kind="call-exit"),
        call("StackTest", "testPush", 1, kind="call-exit"),
    ], name="reference")

    # Candidate: the variant calls an extra helper inside push and stores a different size
    candidate = PointSequence.from_records([
        call("StackTest", "testPush", 1),
        call("Stack", "push", 2),
        call("Stack", "ensureCapacity", 3),
        call("Stack", "ensureCapacity", 3, kind="call-exit"),
        branch("Stack", "push#if0", size="0", top="null"),
        call("Stack", "push", 2, kind="call-exit"),
        call("Stack", "peek", 2),
        branch("Stack", "peek#if0", size="2", top="Item@4554617c"),
        call("Stack", "peek", 2, kind="call-exit"),
        call("StackTest", "testPush", 1, kind="call-exit"),
    ], name="candidate")

    # Identity hashes are normalized by default; nothing is excluded yet
    exclusions = ExclusionService()
    req = CompareRequest(reference=reference, candidate=candidate, sync_window=5, exclusions=exclusions)
    ev = Evaluator.default()
    res = ev.evaluate(req)
    print(format_text_report(res, evaluator=ev, req=req, title="SosieTrace Worked Example"))

    # With exact comparison the identity hash of `top` counts as a difference too
    strict = CompareRequest(reference=reference, candidate=candidate, sync_window=5,
                            comparator=ExactEqualityComparator(), exclusions=exclusions)
    res = ev.evaluate(strict)
    print(f"exact comparison: {[d.key for d in res.variable_diffs]}")

    # Once `size` and `top` are known noise, the candidate is accepted
    exclusions.merge(["Stack.peek#if0:size", "Stack.peek#if0:top"])
    res = ev.evaluate(strict)
    print(f"after exclusions: equivalent={res.equivalent}, diffs={len(res.variable_diffs)}")


if __name__ == "__main__":
    main()
