from datetime import datetime, timedelta, timezone

import pytest

from pmboard.board import TaskBoard
from pmboard.models import Priority, Status, Task, User


T0 = datetime(2025, 5, 1, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, start=T0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def alice():
    return User(id="u-alice", name="Alice Moreau", email="alice@example.com", role="Product Manager")


@pytest.fixture
def bob():
    return User(id="u-bob", name="Bob Ito", email="bob@example.com", role="Developer")


@pytest.fixture
def board(clock):
    return TaskBoard(clock=clock)


@pytest.fixture
def make_task(board, alice):
    def _make(title="Task", **kwargs):
        kwargs.setdefault("deadline", board.now() + timedelta(days=30))
        return board.create_task(title, created_by=alice, **kwargs)
    return _make


@pytest.fixture
def build_task():
    """Standalone Task objects for the pure functions (no board involved)."""
    def _build(title="Task", *, status=Status.BACKLOG, priority=Priority.MEDIUM,
               deadline=None, stuck_since=None, reopen_count=0, **kwargs):
        return Task(
            title=title,
            status=status,
            priority=priority,
            deadline=deadline or T0 + timedelta(days=30),
            created_at=T0 - timedelta(days=1),
            updated_at=T0 - timedelta(days=1),
            stuck_since=stuck_since,
            reopen_count=reopen_count,
            **kwargs,
        )
    return _build
