import pytest

from pmboard.errors import ValidationError
from pmboard.models import ActivityType


def test_regular_comment_is_logged(board, make_task, bob):
    task = make_task()
    comment = board.add_comment(task.id, "Looks good", user=bob)

    assert task.comments == [comment]
    assert comment.timestamp == board.now()
    assert len(task.activity_log) == 2
    assert task.activity_log[-1].type == ActivityType.COMMENT
    assert task.activity_log[-1].comment == "Looks good"


def test_quick_comment_stays_out_of_history(board, make_task, bob):
    task = make_task()
    board.add_comment(task.id, "ping", user=bob, quick=True)
    assert len(task.comments) == 1
    assert len(task.activity_log) == 1


def test_reply_attaches_to_parent(board, make_task, alice, bob):
    task = make_task()
    parent = board.add_comment(task.id, "Question?", user=alice)

    reply = board.add_reply(task.id, parent.id, "Answer.", user=bob)

    assert parent.replies == [reply]
    assert reply.user == bob
    assert len(task.comments) == 1


def test_reply_to_missing_parent_is_ignored(board, make_task, bob):
    task = make_task()
    board.add_comment(task.id, "hello", user=bob)
    before = [(c.id, list(c.replies)) for c in task.comments]

    assert board.add_reply(task.id, "no-such-comment", "hi", user=bob) is None
    assert [(c.id, list(c.replies)) for c in task.comments] == before


def test_replies_cannot_be_nested(board, make_task, bob):
    task = make_task()
    parent = board.add_comment(task.id, "top", user=bob)
    reply = board.add_reply(task.id, parent.id, "child", user=bob)
    assert board.add_reply(task.id, reply.id, "grandchild", user=bob) is None
    assert reply.replies == []


def test_comment_on_unknown_task_returns_none(board, bob):
    assert board.add_comment("missing", "hi", user=bob) is None


def test_blank_comment_is_rejected(board, make_task, bob):
    task = make_task()
    with pytest.raises(ValidationError):
        board.add_comment(task.id, "   ", user=bob)
    parent = board.add_comment(task.id, "x", user=bob)
    with pytest.raises(ValidationError):
        board.add_reply(task.id, parent.id, "", user=bob)
