"""Helpers shared by the Streamlit pages.

The board lives in ``st.session_state`` for the length of a browser
session, the same lifetime the original dashboard's component state had.
Helpers take the session state mapping explicitly so they can be exercised
with a plain dict.
"""

from __future__ import annotations

import html
import os
from datetime import datetime, timedelta
from typing import Any, Iterable, List, MutableMapping, Optional

import pandas as pd

from .board import TaskBoard
from .config import get_config
from .directory import Directory
from .ledger import AlertLedger
from .logs import ensure_logging
from .models import Priority, ProjectStatus, Status, Tag, TagDefinition, Task, User, _utcnow


BOARD_KEY = "pm_board"
DIRECTORY_KEY = "pm_directory"
LEDGER_KEY = "pm_alert_ledger"
TIMELINES_KEY = "pm_public_timelines"
CURRENT_USER_KEY = "pm_current_user_id"

PRIORITY_COLORS = {
    Priority.HIGH: "#e17055",
    Priority.MEDIUM: "#0984e3",
    Priority.LOW: "#00b894",
}

DEMO_USERS = (
    ("user1", "John Doe", "john@example.com", "Product Manager", "#3B82F6"),
    ("user2", "Jane Smith", "jane@example.com", "Developer", "#8B5CF6"),
    ("user3", "Alex Kim", "alex@example.com", "Designer", "#10B981"),
)


def set_theme(page_title: str = "Product Board", page_icon: str = "📋", layout: str = "wide"):
    """Configure the Streamlit page and inject the board stylesheet.

    Safe to call once at the top of each page.
    """
    import streamlit as st
    from streamlit.errors import StreamlitAPIException

    try:
        st.set_page_config(page_title=page_title, page_icon=page_icon, layout=layout)
    except StreamlitAPIException:
        # set_page_config can only be called once per run.
        pass

    theme_file = os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "assets", "board_theme.css")
    try:
        with open(theme_file, "r", encoding="utf-8") as f:
            st.markdown(f"<style>{f.read()}</style>", unsafe_allow_html=True)
    except FileNotFoundError:
        st.error(f"Theme file not found at {theme_file}. Please check the file path.")


def seed_demo(board: TaskBoard, directory: Directory, now: Optional[datetime] = None) -> None:
    """Fill an empty board with a handful of sample tasks."""
    now = now or _utcnow()
    users = [directory.adopt_user(User(id=i, name=n, email=e, role=r, color=c)) for i, n, e, r, c in DEMO_USERS]
    pm, dev, designer = users
    for name in ("Bug", "Feature", "Documentation", "Research", "Design", "Testing"):
        directory.add_tag(name)
    for name, perms in (
        ("Product Owner", ("create_task", "edit_task", "delete_task", "manage_users", "manage_roles", "manage_tags")),
        ("Product Manager", ("create_task", "edit_task", "delete_task", "manage_tags")),
        ("Developer", ("create_task", "edit_task")),
        ("Tester", ("create_task", "edit_task")),
    ):
        directory.add_role(name, perms)

    samples = [
        ("Implement user authentication", Status.IN_PROGRESS, Priority.HIGH, dev, [Tag.FEATURE], 5, 10, 0),
        ("Design landing page", Status.REVIEW, Priority.MEDIUM, designer, [Tag.DESIGN], 2, 12, 1),
        ("Fix checkout rounding bug", Status.BLOCKED, Priority.HIGH, dev, [Tag.BUG], -3, 20, 0),
        ("Write API documentation", Status.BACKLOG, Priority.LOW, pm, [Tag.DOCUMENTATION], 30, 4, 0),
        ("User research interviews", Status.DONE, Priority.MEDIUM, pm, [Tag.RESEARCH], -10, 25, 3),
        ("Set up regression suite", Status.IN_PROGRESS, Priority.MEDIUM, dev, [Tag.TESTING], 14, 9, 0),
        ("Pricing page copy", Status.BACKLOG, Priority.HIGH, designer, [Tag.DESIGN, Tag.FEATURE], 45, 2, 0),
    ]
    for title, status, priority, assignee, tags, due_in, age_days, reopens in samples:
        created = now - timedelta(days=age_days)
        task = Task(
            title=title,
            description=f"{title} for the next release.",
            status=status,
            project_status=ProjectStatus.DONE if status == Status.DONE else ProjectStatus.ONGOING,
            priority=priority,
            assignee=assignee,
            product_owner=pm,
            tags=list(tags),
            deadline=now + timedelta(days=due_in),
            created_at=created,
            updated_at=created,
            stuck_since=created,
            reopen_count=reopens,
        )
        board.add_task(task)


def get_directory(state: MutableMapping[str, Any]) -> Directory:
    if DIRECTORY_KEY not in state:
        state[DIRECTORY_KEY] = Directory()
    return state[DIRECTORY_KEY]


def get_board(state: MutableMapping[str, Any], *, seed: bool = True) -> TaskBoard:
    if BOARD_KEY not in state:
        config = get_config()
        ensure_logging(config.log_level, config.log_format)
        board = TaskBoard()
        if seed:
            seed_demo(board, get_directory(state))
        state[BOARD_KEY] = board
    return state[BOARD_KEY]


def get_ledger(state: MutableMapping[str, Any]) -> AlertLedger:
    if LEDGER_KEY not in state:
        state[LEDGER_KEY] = AlertLedger()
    return state[LEDGER_KEY]


def get_timelines(state: MutableMapping[str, Any]) -> list:
    return state.setdefault(TIMELINES_KEY, [])


def current_user(state: MutableMapping[str, Any]) -> User:
    directory = get_directory(state)
    users = directory.users()
    if not users:
        return directory.adopt_user(User(id="system", name="System", email="system@example.com", role="Stakeholder"))
    user = directory.get_user(state.get(CURRENT_USER_KEY) or "")
    return user or users[0]


def tasks_to_df(tasks: Iterable[Task], now: Optional[datetime] = None) -> pd.DataFrame:
    now = now or _utcnow()
    rows: List[dict] = []
    for t in tasks:
        rows.append({
            "id": t.id,
            "title": t.title,
            "status": t.status.value,
            "priority": t.priority.value,
            "assignee": t.assignee.name if t.assignee else "Unassigned",
            "tags": ", ".join(tag.value for tag in t.tags),
            "deadline": t.deadline.date(),
            "overdue": t.is_overdue(now),
            "reopen_count": t.reopen_count,
        })
    if not rows:
        return pd.DataFrame(columns=["id", "title", "status", "priority", "assignee", "tags", "deadline", "overdue", "reopen_count"])
    return pd.DataFrame(rows)


def time_in_status_df(task: Task) -> pd.DataFrame:
    return pd.DataFrame(
        [{"status": s.value, "hours": round(d.total_seconds() / 3600, 1)} for s, d in task.time_in_status.items()]
    )


def task_card_html(task: Task, now: Optional[datetime] = None) -> str:
    """Card markup for the board. Task text is escaped; it comes from users."""
    now = now or _utcnow()
    overdue_cls = " pmb-overdue" if task.is_overdue(now) else ""
    badge = f'<span class="pmb-badge" style="background:{PRIORITY_COLORS[task.priority]};">{task.priority.value}</span>'
    owner = html.escape(task.assignee.name) if task.assignee else "Unassigned"
    return (
        f'<div class="pmb-card{overdue_cls}"><div class="pmb-card-title">{html.escape(task.title)} {badge}</div>'
        f'<div class="pmb-card-meta">{owner} • due {task.deadline:%b %d}</div></div>'
    )


def tag_badge_html(tag: TagDefinition) -> str:
    return f'<span class="pmb-badge" style="background:{html.escape(tag.color)};">{html.escape(tag.name)}</span>'
