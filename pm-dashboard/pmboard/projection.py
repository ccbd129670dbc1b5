"""Column projection and WIP policy.

Column ``task_ids`` are a materialized view of task status. Only the board
rebuilds or moves ids between them; callers read them.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from .errors import PolicyViolation
from .models import KanbanColumn, Status, Task, WipState


# Original board defaults: limits on the two "active" columns only.
DEFAULT_WIP_LIMITS: Dict[Status, Optional[int]] = {
    Status.BACKLOG: None,
    Status.IN_PROGRESS: 3,
    Status.REVIEW: 2,
    Status.DONE: None,
    Status.BLOCKED: None,
}

COLUMN_COLORS: Dict[Status, str] = {
    Status.BACKLOG: "#F1F5F9",
    Status.IN_PROGRESS: "#DBEAFE",
    Status.REVIEW: "#E0F2FE",
    Status.DONE: "#DCFCE7",
    Status.BLOCKED: "#FEE2E2",
}


def default_columns(wip_limits: Optional[Dict[Status, Optional[int]]] = None) -> List[KanbanColumn]:
    limits = dict(DEFAULT_WIP_LIMITS)
    if wip_limits:
        limits.update(wip_limits)
    return [
        KanbanColumn(id=s, title=s.value, color=COLUMN_COLORS[s], wip_limit=limits.get(s))
        for s in Status
    ]


def rebuild_columns(columns: Iterable[KanbanColumn], tasks: Iterable[Task]) -> None:
    """Recompute every column's ids from task status.

    Ids already in the right column keep their position; ids new to a
    column are appended in task order.
    """
    by_status: Dict[Status, List[str]] = {}
    for t in tasks:
        by_status.setdefault(t.status, []).append(t.id)

    for col in columns:
        wanted = by_status.get(col.id, [])
        wanted_set = set(wanted)
        kept = [tid for tid in col.task_ids if tid in wanted_set]
        kept_set = set(kept)
        col.task_ids = kept + [tid for tid in wanted if tid not in kept_set]


def place_task(columns: Iterable[KanbanColumn], task_id: str, status: Status) -> None:
    """Remove ``task_id`` from every column, then append it to ``status``'s column."""
    for col in columns:
        if col.id == status:
            if task_id not in col.task_ids:
                col.task_ids.append(task_id)
        elif task_id in col.task_ids:
            col.task_ids.remove(task_id)


def wip_state(column: KanbanColumn) -> WipState:
    if column.wip_limit is None:
        return WipState.OK
    count = len(column.task_ids)
    if count > column.wip_limit:
        return WipState.OVER_CAPACITY
    if count == column.wip_limit:
        return WipState.AT_CAPACITY
    return WipState.OK


def would_exceed(column: KanbanColumn) -> bool:
    return column.wip_limit is not None and len(column.task_ids) >= column.wip_limit


def check_wip(column: KanbanColumn) -> None:
    """Raise PolicyViolation if one more task would break the column's limit."""
    if would_exceed(column):
        raise PolicyViolation(column.title, int(column.wip_limit), len(column.task_ids))


def filtered_columns(columns: Iterable[KanbanColumn], visible_ids: Iterable[str]) -> List[KanbanColumn]:
    """Copies of ``columns`` restricted to ``visible_ids`` (for a filtered board)."""
    visible = set(visible_ids)
    return [
        KanbanColumn(
            id=col.id,
            title=col.title,
            color=col.color,
            wip_limit=col.wip_limit,
            task_ids=[tid for tid in col.task_ids if tid in visible],
        )
        for col in columns
    ]
