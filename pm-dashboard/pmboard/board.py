"""Task board arena and transition engine.

``TaskBoard`` owns every task, the column views and the retrospective
ledger. All operations take ids and mutate in one pass: validation and
policy checks run first, then every change is applied, so a failed call
leaves the board untouched.

Unknown task or comment ids are logged and ignored rather than raised;
the UI only offers ids it has just rendered.

``updated_at`` is the status clock: only status moves advance it, so that
``sum(time_in_status) + (now - updated_at)`` stays equal to the task's age.
Edits and comments are visible through the activity log instead.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import structlog

from .errors import NotFound, ValidationError
from .models import (
    ActivityLogEntry,
    ActivityType,
    KanbanColumn,
    Priority,
    ProjectStatus,
    RetrospectiveEntry,
    Status,
    Tag,
    Task,
    ThreadedComment,
    User,
    WipState,
    _utcnow,
    as_utc,
)
from .projection import (
    check_wip,
    default_columns,
    place_task,
    rebuild_columns,
    wip_state,
    would_exceed,
)


log = structlog.get_logger()

EDITABLE_FIELDS = (
    "title",
    "description",
    "priority",
    "project_status",
    "assignee",
    "product_owner",
    "tags",
    "deadline",
    "scope",
)


def _user_label(user: Optional[User]) -> str:
    return user.name if user else "Unassigned"


def _coerce(enum_cls, value, field_name: str):
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(f"Invalid {field_name}: {value!r}", field=field_name) from None


def _coerce_change(name: str, value: Any) -> Any:
    if name == "title":
        value = str(value or "").strip()
        if not value:
            raise ValidationError("Title is required.", field="title")
        return value
    if name == "priority":
        return _coerce(Priority, value, "priority")
    if name == "project_status":
        return _coerce(ProjectStatus, value, "project_status")
    if name == "tags":
        return [_coerce(Tag, t, "tags") for t in value or []]
    if name == "deadline":
        if not isinstance(value, datetime):
            raise ValidationError("Deadline must be a datetime.", field="deadline")
        return as_utc(value)
    if name in ("description", "scope"):
        return str(value or "")
    return value


class TaskBoard:
    """In-memory board: tasks by id, status columns and the retrospective ledger."""

    def __init__(
        self,
        columns: Optional[Iterable[KanbanColumn]] = None,
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        cols = list(columns) if columns is not None else default_columns()
        self._columns: Dict[Status, KanbanColumn] = {c.id: c for c in cols}
        missing = [s.value for s in Status if s not in self._columns]
        if missing:
            raise ValidationError(f"Board is missing columns: {', '.join(missing)}", field="columns")
        self._tasks: Dict[str, Task] = {}
        self._retrospectives: List[RetrospectiveEntry] = []
        self._clock = clock or _utcnow

    # -------------------- lookup --------------------
    def now(self) -> datetime:
        return self._clock()

    def tasks(self) -> List[Task]:
        return list(self._tasks.values())

    def get_task(self, task_id: str) -> Optional[Task]:
        return self._tasks.get(task_id)

    def require_task(self, task_id: str) -> Task:
        task = self._tasks.get(task_id)
        if task is None:
            raise NotFound("task", task_id)
        return task

    def _lookup(self, task_id: str, operation: str) -> Optional[Task]:
        try:
            return self.require_task(task_id)
        except NotFound:
            log.warning("task.not_found", task_id=task_id, operation=operation)
            return None

    def columns(self) -> List[KanbanColumn]:
        return list(self._columns.values())

    def column(self, status: Status) -> KanbanColumn:
        return self._columns[Status(status)]

    def wip_states(self) -> Dict[Status, WipState]:
        return {s: wip_state(c) for s, c in self._columns.items()}

    def set_wip_limit(self, status: Status, limit: Optional[int]) -> None:
        """Change a column limit. Lowering it below the current count is allowed
        and shows up as ``over_capacity``."""
        if limit is not None and limit < 1:
            raise ValidationError("WIP limit must be a positive integer.", field="wip_limit")
        self.column(status).wip_limit = limit

    def rebuild_columns(self) -> None:
        rebuild_columns(self._columns.values(), self._tasks.values())

    @property
    def retrospectives(self) -> Tuple[RetrospectiveEntry, ...]:
        return tuple(self._retrospectives)

    # -------------------- task lifecycle --------------------
    def add_task(self, task: Task) -> Task:
        """Adopt an already-built task (e.g. loaded or seeded elsewhere)."""
        if task.id in self._tasks:
            raise ValidationError(f"Task '{task.id}' already exists.", field="id")
        task.deadline = as_utc(task.deadline)
        task.created_at = as_utc(task.created_at)
        task.updated_at = as_utc(task.updated_at)
        if task.stuck_since is not None:
            task.stuck_since = as_utc(task.stuck_since)
        for s in Status:
            task.time_in_status.setdefault(s, timedelta(0))
        self._tasks[task.id] = task
        place_task(self._columns.values(), task.id, task.status)
        return task

    def create_task(
        self,
        title: str,
        *,
        created_by: User,
        deadline: datetime,
        description: str = "",
        status: Status = Status.BACKLOG,
        priority: Priority = Priority.MEDIUM,
        project_status: ProjectStatus = ProjectStatus.PLANNED,
        assignee: Optional[User] = None,
        product_owner: Optional[User] = None,
        tags: Iterable[Tag] = (),
        scope: str = "",
        force: bool = False,
    ) -> Task:
        title = _coerce_change("title", title)
        status = _coerce(Status, status, "status")
        if not force:
            check_wip(self._columns[status])

        now = self.now()
        task = Task(
            title=title,
            description=description or "",
            status=status,
            project_status=_coerce(ProjectStatus, project_status, "project_status"),
            priority=_coerce(Priority, priority, "priority"),
            assignee=assignee,
            product_owner=product_owner,
            tags=_coerce_change("tags", tags),
            deadline=_coerce_change("deadline", deadline),
            created_at=now,
            updated_at=now,
            scope=scope or "",
            stuck_since=now,
        )
        task.activity_log.append(ActivityLogEntry(
            task_id=task.id,
            type=ActivityType.CREATED,
            user=created_by,
            timestamp=now,
            new_value=status.value,
        ))
        self.add_task(task)
        log.info("task.created", task_id=task.id, status=status.value, by=created_by.id)
        return task

    def move_task(
        self,
        task_id: str,
        new_status: Status,
        comment: Optional[str] = None,
        *,
        user: User,
        force: bool = False,
    ) -> Optional[Task]:
        """Move a task to ``new_status`` and keep the columns in step.

        Raises PolicyViolation when the target column is at its WIP limit,
        unless ``force`` is set (the user confirmed the breach). Moving a
        task to the status it already has changes nothing.
        """
        new_status = _coerce(Status, new_status, "status")
        task = self._lookup(task_id, "move")
        if task is None:
            return None

        old_status = task.status
        if old_status == new_status:
            log.debug("task.move_skipped", task_id=task_id, status=new_status.value)
            return task

        target = self._columns[new_status]
        if would_exceed(target):
            if not force:
                log.warning(
                    "wip.limit_blocked",
                    task_id=task_id,
                    column=target.title,
                    limit=target.wip_limit,
                    count=len(target.task_ids),
                )
                check_wip(target)
            log.warning("wip.limit_overridden", task_id=task_id, column=target.title, limit=target.wip_limit)

        now = self.now()
        elapsed = now - task.updated_at
        if elapsed < timedelta(0):
            elapsed = timedelta(0)

        task.time_in_status[old_status] = task.time_in_status.get(old_status, timedelta(0)) + elapsed
        task.status = new_status
        task.updated_at = now
        task.stuck_since = now
        if old_status == Status.DONE:
            task.reopen_count += 1
        task.activity_log.append(ActivityLogEntry(
            task_id=task.id,
            type=ActivityType.STATUS_CHANGE,
            user=user,
            timestamp=now,
            previous_value=old_status.value,
            new_value=new_status.value,
            comment=comment or None,
        ))
        place_task(self._columns.values(), task.id, new_status)

        log.info(
            "task.moved",
            task_id=task_id,
            from_status=old_status.value,
            to_status=new_status.value,
            by=user.id,
        )
        return task

    def update_task(self, task_id: str, *, user: User, **changes: Any) -> Optional[Task]:
        """Edit task fields, logging assignee/priority changes individually and
        everything else as one ``edited`` entry."""
        if "status" in changes:
            raise ValidationError("Status changes go through move_task.", field="status")
        unknown = sorted(set(changes) - set(EDITABLE_FIELDS))
        if unknown:
            raise ValidationError(f"Unknown task fields: {', '.join(unknown)}", field=unknown[0])
        coerced = {name: _coerce_change(name, value) for name, value in changes.items()}

        task = self._lookup(task_id, "update")
        if task is None:
            return None

        now = self.now()
        entries: List[ActivityLogEntry] = []
        edited: List[str] = []
        for name, value in coerced.items():
            current = getattr(task, name)
            if value == current:
                continue
            if name == "assignee":
                entries.append(ActivityLogEntry(
                    task_id=task.id,
                    type=ActivityType.ASSIGNEE_CHANGE,
                    user=user,
                    timestamp=now,
                    previous_value=_user_label(current),
                    new_value=_user_label(value),
                ))
            elif name == "priority":
                entries.append(ActivityLogEntry(
                    task_id=task.id,
                    type=ActivityType.PRIORITY_CHANGE,
                    user=user,
                    timestamp=now,
                    previous_value=current.value,
                    new_value=value.value,
                ))
            else:
                edited.append(name)
            setattr(task, name, value)

        if edited:
            entries.append(ActivityLogEntry(
                task_id=task.id,
                type=ActivityType.EDITED,
                user=user,
                timestamp=now,
                new_value=", ".join(edited),
            ))
        task.activity_log.extend(entries)
        if entries:
            log.info("task.updated", task_id=task_id, fields=sorted(coerced), by=user.id)
        return task

    def add_micro_update(self, task_id: str, note: str, *, user: User) -> Optional[ActivityLogEntry]:
        """Short progress note that goes to the history feed only."""
        note = (note or "").strip()
        if not note:
            raise ValidationError("Update text is required.", field="note")
        task = self._lookup(task_id, "micro_update")
        if task is None:
            return None
        entry = ActivityLogEntry(
            task_id=task.id,
            type=ActivityType.MICRO_UPDATE,
            user=user,
            timestamp=self.now(),
            comment=note,
        )
        task.activity_log.append(entry)
        return entry

    # -------------------- comments --------------------
    def add_comment(
        self,
        task_id: str,
        content: str,
        *,
        user: User,
        quick: bool = False,
    ) -> Optional[ThreadedComment]:
        """Append a top-level comment.

        Quick comments stay in the thread only; regular comments are also
        recorded in the activity log.
        """
        content = (content or "").strip()
        if not content:
            raise ValidationError("Comment text is required.", field="content")
        task = self._lookup(task_id, "comment")
        if task is None:
            return None

        now = self.now()
        comment = ThreadedComment(task_id=task.id, content=content, user=user, timestamp=now)
        task.comments.append(comment)
        if not quick:
            task.activity_log.append(ActivityLogEntry(
                task_id=task.id,
                type=ActivityType.COMMENT,
                user=user,
                timestamp=now,
                comment=content,
            ))
        log.info("comment.added", task_id=task_id, comment_id=comment.id, quick=quick)
        return comment

    def add_reply(
        self,
        task_id: str,
        parent_comment_id: str,
        content: str,
        *,
        user: User,
    ) -> Optional[ThreadedComment]:
        """Reply to a top-level comment. Unknown parents are ignored."""
        content = (content or "").strip()
        if not content:
            raise ValidationError("Reply text is required.", field="content")
        task = self._lookup(task_id, "reply")
        if task is None:
            return None

        parent = task.find_comment(parent_comment_id)
        if parent is None:
            log.warning("comment.parent_not_found", task_id=task_id, parent_id=parent_comment_id)
            return None

        reply = ThreadedComment(task_id=task.id, content=content, user=user, timestamp=self.now())
        parent.replies.append(reply)
        log.info("comment.reply_added", task_id=task_id, parent_id=parent_comment_id, reply_id=reply.id)
        return reply

    # -------------------- retrospectives --------------------
    def create_retrospective(
        self,
        period: str,
        *,
        created_by: User,
        lessons_learned: Iterable[str] = (),
        blockers: Iterable[str] = (),
        wins: Iterable[str] = (),
        related_task_ids: Iterable[str] = (),
    ) -> RetrospectiveEntry:
        """Append a retrospective. The ledger has no edit or delete."""
        period = (period or "").strip()
        if not period:
            raise ValidationError("Period is required.", field="period")
        related = frozenset(related_task_ids)
        unknown = sorted(tid for tid in related if tid not in self._tasks)
        if unknown:
            raise ValidationError(f"Unknown related tasks: {', '.join(unknown)}", field="related_task_ids")

        def _clean(items: Iterable[str]) -> tuple:
            return tuple(s.strip() for s in items if s and s.strip())

        entry = RetrospectiveEntry(
            period=period,
            lessons_learned=_clean(lessons_learned),
            blockers=_clean(blockers),
            wins=_clean(wins),
            related_task_ids=related,
            created_at=self.now(),
            created_by=created_by,
        )
        self._retrospectives.append(entry)
        log.info("retrospective.created", retrospective_id=entry.id, period=period, by=created_by.id)
        return entry

    def retrospectives_for(self, period: str) -> List[RetrospectiveEntry]:
        return [r for r in self._retrospectives if r.period == period]
