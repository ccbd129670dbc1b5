from datetime import timedelta

import pytest

from pmboard.config import reset_config
from pmboard.energy import compute_team_energy
from pmboard.models import Status, User
from pmboard.ui import (
    CURRENT_USER_KEY,
    current_user,
    get_board,
    get_directory,
    get_ledger,
    get_timelines,
    tag_badge_html,
    task_card_html,
    tasks_to_df,
    time_in_status_df,
)

from conftest import T0


@pytest.fixture
def state(monkeypatch):
    monkeypatch.delenv("PMBOARD_DATABASE_URL", raising=False)
    monkeypatch.delenv("PLATFORM_DATABASE_URL", raising=False)
    reset_config()
    yield {}
    reset_config()


def test_board_is_seeded_once(state):
    board = get_board(state)
    assert get_board(state) is board
    assert len(board.tasks()) == 7
    assert len(board.column(Status.IN_PROGRESS).task_ids) == 2
    assert len(get_directory(state).users()) == 3
    assert len(get_directory(state).tags()) == 6


def test_seeded_board_has_something_to_show(state):
    board = get_board(state)
    assert any(t.reopen_count >= 3 for t in board.tasks())
    assert compute_team_energy(board.tasks()).factors.task_load > 0


def test_unseeded_board_is_empty(state):
    assert get_board(state, seed=False).tasks() == []


def test_current_user_follows_selection(state):
    get_board(state)
    users = get_directory(state).users()
    assert current_user(state) == users[0]
    state[CURRENT_USER_KEY] = users[1].id
    assert current_user(state) == users[1]


def test_current_user_without_directory(state):
    user = current_user(state)
    assert user.id == "system"


def test_session_singletons(state):
    ledger = get_ledger(state)
    try:
        assert get_ledger(state) is ledger
        assert get_timelines(state) is get_timelines(state)
    finally:
        ledger.dispose()


def test_tasks_to_df(make_task, board, bob):
    task = make_task("Late one", deadline=T0 - timedelta(days=1))
    board.move_task(task.id, Status.IN_PROGRESS, user=bob)

    df = tasks_to_df(board.tasks(), now=T0)

    assert list(df["title"]) == ["Late one"]
    assert bool(df["overdue"].iloc[0]) is True
    assert df["assignee"].iloc[0] == "Unassigned"
    assert tasks_to_df([], now=T0).empty


def test_time_in_status_df(make_task, board, clock, bob):
    task = make_task()
    clock.advance(hours=3)
    board.move_task(task.id, Status.REVIEW, user=bob)

    df = time_in_status_df(task).set_index("status")

    assert df.loc["Backlog", "hours"] == 3.0
    assert len(df) == len(Status)


def test_card_markup_escapes_user_text(make_task, board):
    task = make_task("<script>alert(1)</script>")
    task.assignee = User(id="x", name="<b>Eve</b>", email="e@x.io", role="Dev")

    card = task_card_html(task, now=T0)

    assert "<script>" not in card
    assert "&lt;script&gt;" in card
    assert "&lt;b&gt;Eve&lt;/b&gt;" in card


def test_tag_badge_escapes_name():
    directory = get_directory({})
    tag = directory.add_tag('"><img src=x>', "#fff")
    assert "<img" not in tag_badge_html(tag)


def test_deleting_acting_user_falls_back_to_first(state):
    get_board(state)
    directory = get_directory(state)
    first, second = directory.users()[:2]
    state[CURRENT_USER_KEY] = second.id

    directory.delete_user(second.id)

    assert current_user(state) == first
