import pytest

from sosietrace.core.errors import EndOfSequence, OutOfRangeAccess
from sosietrace.core.point import PointKind
from sosietrace.core.sequence import PointSequence


def build():
    return PointSequence.from_records([
        {"owner": "T", "tag": "main", "kind": "call-entry", "depth": 1},
        {"owner": "T", "tag": "a", "kind": "call-entry", "depth": 2},
        {"owner": "T", "tag": "a#if0", "kind": "branch", "variables": [["x", "1"]]},
        {"owner": "T", "tag": "a", "kind": "variable", "variables": [["y", "2"]]},
        {"owner": "T", "tag": "a", "kind": "call-exit", "depth": 2},
        {"owner": "T", "tag": "b", "kind": "call-entry", "depth": 2},
        {"owner": "T", "tag": "main", "kind": "call-exit", "depth": 1},
    ], name="t")


def test_sizes_and_call_view():
    s = build()
    assert s.size() == len(s) == 7
    assert s.call_size() == 6
    assert s.get_call_point(3).index == 4
    assert s.get(3).kind is PointKind.VARIABLE
    assert s.call_position(3) == 3
    assert s.first_call_at(3) == 4
    assert s.first_call_at(7) is None


@pytest.mark.parametrize("i", [-1, 7, 100])
def test_get_out_of_range(i):
    with pytest.raises(OutOfRangeAccess):
        build().get(i)


def test_get_call_point_out_of_range_is_index_error():
    with pytest.raises(IndexError):
        build().get_call_point(6)


def test_indices_and_frames():
    s = build()
    assert [p.index for p in s] == list(range(7))
    assert [p.frame for p in s] == [-1, 0, 1, 1, 0, 0, -1]


def test_cursor_walk_and_depth():
    s = build()
    assert s.cursor == -1
    assert s.get_deep() == 0
    with pytest.raises(OutOfRangeAccess):
        s.get_top()
    assert s.next().tag == "main"
    assert s.get_deep() == 1
    s.next()
    s.next()
    assert s.get_top().kind is PointKind.BRANCH
    assert s.get_deep() == 2
    assert s.next_is_var()
    assert s.next_call().index == 4
    assert s.previous().index == 3
    s.seek(6)
    assert not s.has_next()
    assert not s.has_next_call()
    with pytest.raises(EndOfSequence):
        s.next()


def test_previous_before_start():
    s = build()
    s.next()
    with pytest.raises(OutOfRangeAccess):
        s.previous()


def test_variable_state_and_change_flag():
    s = build()
    s.seek(1)
    assert not s.get_variables_value_change()
    s.next()
    assert s.variables == {"T.a#if0:x": "1"}
    assert s.get_variables_value_change()
    assert not s.get_variables_value_change()
    s.next_call()
    assert s.variables == {"T.a#if0:x": "1", "T.a:y": "2"}
    assert s.pop_changed_keys() == {"T.a#if0:x", "T.a:y"}
    assert s.pop_changed_keys() == set()


def test_seek_backwards_replays_state():
    s = build()
    s.seek(5)
    s.seek(2)
    assert s.cursor == 2
    assert s.variables == {"T.a#if0:x": "1"}
    with pytest.raises(OutOfRangeAccess):
        s.seek(7)


def test_copy_takes_cursor_and_state():
    src, dst = build(), build()
    src.seek(3)
    dst.copy(src)
    assert dst.cursor == 3
    assert dst.variables == src.variables
    assert dst.value_of("T.a:y") == "2"
    src.next()
    assert dst.cursor == 3


def test_records_round_trip():
    s = build()
    again = PointSequence.from_records(s.to_records())
    assert [p.identity() for p in again] == [p.identity() for p in s]
    assert [p.variables for p in again] == [p.variables for p in s]


def test_merge_variables_and_state_only_copy():
    src = build()
    src.seek(3)
    dst = build()
    dst.seek(2)
    dst.pop_changed_keys()
    dst.get_variables_value_change()
    dst.merge_variables(src)
    assert dst.cursor == 2
    assert dst.variables == src.variables
    assert dst.pop_changed_keys() == {"T.a:y"}
    assert dst.get_variables_value_change()

    fresh = build()
    fresh.seek(0)
    fresh.copy(src, keep_cursor=True)
    assert fresh.cursor == 0
    assert fresh.variables == src.variables
