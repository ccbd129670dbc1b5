from datetime import timedelta

import pytest

from pmboard.errors import NotFound, PolicyViolation, ValidationError
from pmboard.models import ActivityType, Priority, ProjectStatus, Status, Tag, WipState


def test_create_task_places_it_and_logs_creation(board, make_task, alice):
    task = make_task("Write onboarding guide")

    assert board.get_task(task.id) is task
    assert board.column(Status.BACKLOG).task_ids == [task.id]
    assert [e.type for e in task.activity_log] == [ActivityType.CREATED]
    assert task.activity_log[0].user == alice
    assert set(task.time_in_status) == set(Status)
    assert all(d == timedelta(0) for d in task.time_in_status.values())
    assert task.stuck_since == board.now()


def test_create_task_rejects_blank_title(board, alice):
    with pytest.raises(ValidationError) as exc:
        board.create_task("   ", created_by=alice, deadline=board.now())
    assert exc.value.field == "title"
    assert board.tasks() == []


def test_move_task_records_transition(board, make_task, clock, bob):
    task = make_task()
    clock.advance(hours=2)

    moved = board.move_task(task.id, Status.IN_PROGRESS, "picking this up", user=bob)

    assert moved is task
    assert task.status == Status.IN_PROGRESS
    assert task.updated_at == clock.now
    assert task.stuck_since == clock.now
    assert task.time_in_status[Status.BACKLOG] == timedelta(hours=2)
    entry = task.activity_log[-1]
    assert entry.type == ActivityType.STATUS_CHANGE
    assert entry.previous_value == "Backlog"
    assert entry.new_value == "In Progress"
    assert entry.comment == "picking this up"
    assert entry.user == bob
    assert entry.timestamp == clock.now


def test_move_task_keeps_columns_in_step(board, make_task, bob):
    first = make_task("first")
    second = make_task("second")

    board.move_task(first.id, Status.REVIEW, user=bob)

    assert board.column(Status.BACKLOG).task_ids == [second.id]
    assert board.column(Status.REVIEW).task_ids == [first.id]
    for col in board.columns():
        expected = [t.id for t in board.tasks() if t.status == col.id]
        assert sorted(col.task_ids) == sorted(expected)


def test_time_in_status_sums_to_elapsed_time(board, make_task, clock, bob):
    task = make_task()
    start = task.updated_at
    path = [Status.IN_PROGRESS, Status.BLOCKED, Status.IN_PROGRESS, Status.REVIEW, Status.DONE]
    for i, status in enumerate(path, start=1):
        clock.advance(minutes=37 * i)
        board.move_task(task.id, status, user=bob)

    assert sum(task.time_in_status.values(), timedelta(0)) == clock.now - start
    assert task.time_in_status[Status.IN_PROGRESS] == timedelta(minutes=37 * 2 + 37 * 4)
    assert all(d >= timedelta(0) for d in task.time_in_status.values())


def test_move_unknown_task_is_a_noop(board, make_task, bob):
    task = make_task()
    assert board.move_task("missing", Status.DONE, user=bob) is None
    assert task.status == Status.BACKLOG
    assert board.column(Status.DONE).task_ids == []


def test_move_to_current_status_changes_nothing(board, make_task, clock, bob):
    task = make_task()
    clock.advance(hours=5)

    result = board.move_task(task.id, Status.BACKLOG, user=bob)

    assert result is task
    assert len(task.activity_log) == 1
    assert task.time_in_status[Status.BACKLOG] == timedelta(0)
    assert task.updated_at != clock.now


def test_move_rejects_unknown_status(board, make_task, bob):
    task = make_task()
    with pytest.raises(ValidationError):
        board.move_task(task.id, "Archived", user=bob)


def test_move_accepts_status_value_string(board, make_task, bob):
    task = make_task()
    board.move_task(task.id, "In Progress", user=bob)
    assert task.status == Status.IN_PROGRESS


def _fill_in_progress(board, make_task, bob, count):
    tasks = [make_task(f"t{i}") for i in range(count)]
    for t in tasks:
        board.move_task(t.id, Status.IN_PROGRESS, user=bob)
    return tasks


def test_wip_limit_blocks_move_and_leaves_board_untouched(board, make_task, bob):
    board.set_wip_limit(Status.IN_PROGRESS, 3)
    _fill_in_progress(board, make_task, bob, 3)
    fourth = make_task("fourth")
    before = list(board.column(Status.IN_PROGRESS).task_ids)

    with pytest.raises(PolicyViolation) as exc:
        board.move_task(fourth.id, Status.IN_PROGRESS, user=bob)

    assert exc.value.limit == 3
    assert exc.value.count == 3
    assert board.column(Status.IN_PROGRESS).task_ids == before
    assert fourth.status == Status.BACKLOG
    assert fourth.id in board.column(Status.BACKLOG).task_ids
    assert len(fourth.activity_log) == 1


def test_forced_move_goes_over_capacity(board, make_task, bob):
    board.set_wip_limit(Status.IN_PROGRESS, 3)
    _fill_in_progress(board, make_task, bob, 3)
    assert board.wip_states()[Status.IN_PROGRESS] == WipState.AT_CAPACITY

    fourth = make_task("fourth")
    board.move_task(fourth.id, Status.IN_PROGRESS, user=bob, force=True)

    assert fourth.status == Status.IN_PROGRESS
    assert board.wip_states()[Status.IN_PROGRESS] == WipState.OVER_CAPACITY


def test_lowering_limit_shows_over_capacity(board, make_task, bob):
    _fill_in_progress(board, make_task, bob, 3)
    board.set_wip_limit(Status.IN_PROGRESS, 2)
    assert board.wip_states()[Status.IN_PROGRESS] == WipState.OVER_CAPACITY


def test_set_wip_limit_rejects_non_positive(board):
    with pytest.raises(ValidationError):
        board.set_wip_limit(Status.REVIEW, 0)


def test_create_task_respects_wip_limit(board, make_task):
    board.set_wip_limit(Status.REVIEW, 1)
    make_task("one", status=Status.REVIEW)
    with pytest.raises(PolicyViolation):
        make_task("two", status=Status.REVIEW)
    assert len(board.tasks()) == 1


def test_leaving_done_counts_as_reopen(board, make_task, bob):
    task = make_task()
    board.move_task(task.id, Status.DONE, user=bob)
    assert task.reopen_count == 0

    board.move_task(task.id, Status.REVIEW, user=bob)
    assert task.reopen_count == 1


def test_update_task_logs_each_kind_of_change(board, make_task, alice, bob):
    task = make_task(priority=Priority.LOW)

    board.update_task(
        task.id,
        user=alice,
        priority=Priority.HIGH,
        assignee=bob,
        description="now with details",
        tags=[Tag.BUG],
    )

    types = [e.type for e in task.activity_log[1:]]
    assert types == [ActivityType.PRIORITY_CHANGE, ActivityType.ASSIGNEE_CHANGE, ActivityType.EDITED]
    prio, assignee, edited = task.activity_log[1:]
    assert (prio.previous_value, prio.new_value) == ("Low", "High")
    assert (assignee.previous_value, assignee.new_value) == ("Unassigned", "Bob Ito")
    assert edited.new_value == "description, tags"
    assert task.tags == [Tag.BUG]


def test_update_task_does_not_move_the_status_clock(board, make_task, clock, alice):
    task = make_task()
    clock.advance(hours=1)
    board.update_task(task.id, user=alice, scope="Q3 only", project_status=ProjectStatus.ONGOING)
    assert task.updated_at == task.created_at
    assert task.project_status == ProjectStatus.ONGOING


def test_update_task_with_same_values_logs_nothing(board, make_task, alice):
    task = make_task(priority=Priority.HIGH)
    board.update_task(task.id, user=alice, priority="High", title=task.title)
    assert len(task.activity_log) == 1


def test_update_task_rejects_status_and_unknown_fields(board, make_task, alice):
    task = make_task()
    with pytest.raises(ValidationError):
        board.update_task(task.id, user=alice, status=Status.DONE)
    with pytest.raises(ValidationError):
        board.update_task(task.id, user=alice, colour="red")
    with pytest.raises(ValidationError):
        board.update_task(task.id, user=alice, title=" ")
    assert len(task.activity_log) == 1


def test_update_unknown_task_is_a_noop(board, alice):
    assert board.update_task("missing", user=alice, title="x") is None


def test_micro_update_goes_to_history(board, make_task, bob):
    task = make_task()
    entry = board.add_micro_update(task.id, "API contract agreed", user=bob)
    assert entry.type == ActivityType.MICRO_UPDATE
    assert task.activity_log[-1] is entry
    assert task.comments == []
    with pytest.raises(ValidationError):
        board.add_micro_update(task.id, "", user=bob)


def test_require_task_raises_not_found(board):
    with pytest.raises(NotFound):
        board.require_task("nope")


def test_create_retrospective_assigns_id_and_timestamp(board, make_task, alice):
    done = make_task("shipped")
    retro = board.create_retrospective(
        "Q2",
        created_by=alice,
        lessons_learned=["Smaller PRs", "  "],
        blockers=[""],
        wins=["Launched on time"],
        related_task_ids=[done.id],
    )

    assert retro.id
    assert retro.created_at == board.now()
    assert retro.lessons_learned == ("Smaller PRs",)
    assert retro.blockers == ()
    assert retro.related_task_ids == frozenset({done.id})
    assert board.retrospectives == (retro,)
    assert board.retrospectives_for("Q2") == [retro]
    assert board.retrospectives_for("Q3") == []


def test_retrospective_validation(board, alice):
    with pytest.raises(ValidationError):
        board.create_retrospective(" ", created_by=alice)
    with pytest.raises(ValidationError):
        board.create_retrospective("Q1", created_by=alice, related_task_ids=["ghost"])
    assert board.retrospectives == ()


def test_retrospective_ledger_is_read_only(board, alice):
    board.create_retrospective("Q1", created_by=alice, wins=["a"])
    ledger = board.retrospectives
    assert isinstance(ledger, tuple)
    with pytest.raises(AttributeError):
        ledger[0].period = "Q9"


def test_add_task_normalises_naive_timestamps(board, build_task):
    task = build_task()
    task.deadline = task.deadline.replace(tzinfo=None)
    board.add_task(task)
    assert task.deadline.tzinfo is not None
    with pytest.raises(ValidationError):
        board.add_task(task)
