import pytest

from sosietrace.core.errors import MalformedRecord
from sosietrace.core.point import Point, PointKind, point_from_record


def test_record_conversion():
    p = point_from_record({"owner": "A", "tag": "m", "kind": "entry", "depth": 3})
    assert p.kind is PointKind.CALL_ENTRY
    assert p.depth == 3
    assert p.location == "A.m"
    assert p.is_call and not p.is_conditional

    b = point_from_record({"owner": "A", "tag": "m#if1", "kind": "conditional", "variables": [["x", 1], ["y"]]})
    assert b.kind is PointKind.BRANCH
    assert b.variables == (("x", "1"), ("y", ""))
    assert b.variable_map() == {"A.m#if1:x": "1", "A.m#if1:y": ""}


def test_identity_ignores_values_and_depth():
    a = Point("A", "m", PointKind.BRANCH, index=1, variables=(("x", "1"),))
    b = Point("A", "m", PointKind.BRANCH, index=9, variables=(("x", "2"),))
    assert a.same_point(b)
    assert Point("A", "m", PointKind.CALL_ENTRY, depth=1).same_point(Point("A", "m", PointKind.CALL_ENTRY, depth=4))
    assert not Point("A", "m", PointKind.CALL_ENTRY, depth=1).same_point(Point("A", "m", PointKind.CALL_EXIT, depth=1))


@pytest.mark.parametrize("record", [
    "not a mapping",
    {"tag": "m", "kind": "entry", "depth": 1},
    {"owner": "A", "kind": "entry", "depth": 1},
    {"owner": "A", "tag": "m", "kind": "jump", "depth": 1},
    {"owner": "A", "tag": "m", "kind": "entry"},
    {"owner": "A", "tag": "m", "kind": "exit", "depth": -1},
    {"owner": "A", "tag": "m", "kind": "exit", "depth": "2"},
    {"owner": "A", "tag": "m", "kind": "branch", "variables": "x=1"},
    {"owner": "A", "tag": "m", "kind": "branch", "variables": [[1, "x"]]},
    {"owner": "A", "tag": "m", "kind": "entry", "depth": 1, "variables": [["x", "1"]]},
])
def test_malformed_records(record):
    with pytest.raises(MalformedRecord):
        point_from_record(record)


def test_malformed_record_names_position():
    with pytest.raises(MalformedRecord) as ei:
        point_from_record({"owner": "A"}, position=4)
    assert ei.value.position == 4
    assert "record 4" in str(ei.value)
