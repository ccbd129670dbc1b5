import pytest

from pmboard.errors import PolicyViolation
from pmboard.models import KanbanColumn, Status, WipState
from pmboard.projection import (
    check_wip,
    default_columns,
    filtered_columns,
    place_task,
    rebuild_columns,
    wip_state,
)


def test_default_columns_cover_every_status():
    cols = default_columns()
    assert [c.id for c in cols] == list(Status)
    limits = {c.id: c.wip_limit for c in cols}
    assert limits[Status.IN_PROGRESS] == 3
    assert limits[Status.REVIEW] == 2
    assert limits[Status.BACKLOG] is None


def test_default_columns_accept_overrides():
    cols = default_columns({Status.BACKLOG: 10})
    assert cols[0].wip_limit == 10


def test_wip_state_thresholds():
    col = KanbanColumn(id=Status.REVIEW, title="Review", color="#fff", wip_limit=2)
    assert wip_state(col) == WipState.OK
    col.task_ids = ["a", "b"]
    assert wip_state(col) == WipState.AT_CAPACITY
    col.task_ids.append("c")
    assert wip_state(col) == WipState.OVER_CAPACITY


def test_unlimited_column_is_always_ok():
    col = KanbanColumn(id=Status.BACKLOG, title="Backlog", color="#fff", task_ids=list("abcdefgh"))
    assert wip_state(col) == WipState.OK
    check_wip(col)


def test_check_wip_raises_at_capacity():
    col = KanbanColumn(id=Status.REVIEW, title="Review", color="#fff", wip_limit=1, task_ids=["a"])
    with pytest.raises(PolicyViolation) as exc:
        check_wip(col)
    assert "Review" in str(exc.value)


def test_place_task_moves_between_columns():
    cols = default_columns()
    place_task(cols, "t1", Status.BACKLOG)
    place_task(cols, "t1", Status.DONE)
    place_task(cols, "t1", Status.DONE)
    by_id = {c.id: c.task_ids for c in cols}
    assert by_id[Status.BACKLOG] == []
    assert by_id[Status.DONE] == ["t1"]


def test_rebuild_keeps_existing_order(build_task):
    a, b, c = build_task("a"), build_task("b"), build_task("c")
    cols = default_columns()
    cols[0].task_ids = [c.id, "stale", a.id]

    rebuild_columns(cols, [a, b, c])

    assert cols[0].task_ids == [c.id, a.id, b.id]
    assert all(col.task_ids == [] for col in cols[1:])


def test_filtered_columns_are_copies():
    cols = default_columns()
    cols[0].task_ids = ["a", "b"]
    view = filtered_columns(cols, ["b"])
    assert view[0].task_ids == ["b"]
    assert cols[0].task_ids == ["a", "b"]
