"""Roadmap summaries and public timeline sharing."""

from __future__ import annotations

import hmac
import uuid
from datetime import datetime
from typing import Dict, Iterable, List, Optional

import structlog

from .errors import ValidationError
from .models import (
    ProjectStatus,
    PublicTimelineSettings,
    QuarterSummary,
    Status,
    Task,
    User,
    _utcnow,
    as_utc,
)


log = structlog.get_logger()

QUARTERS = ("Q1", "Q2", "Q3", "Q4")
NEAR_DEADLINE_DAYS = 7


def quarter_of(value: datetime) -> str:
    return QUARTERS[(value.month - 1) // 3]


def quarter_summaries(
    tasks: Iterable[Task],
    *,
    now: Optional[datetime] = None,
    year: Optional[int] = None,
) -> List[QuarterSummary]:
    """Per-quarter roll-up of task deadlines, keyed on project status.

    Without ``year`` every deadline is bucketed by its month alone.
    """
    now = as_utc(now or _utcnow())
    summaries: Dict[str, QuarterSummary] = {q: QuarterSummary(name=q) for q in QUARTERS}

    for task in tasks:
        deadline = as_utc(task.deadline)
        if year is not None and deadline.year != year:
            continue
        s = summaries[quarter_of(deadline)]
        s.total_tasks += 1
        s.by_status[task.project_status] += 1
        if task.project_status == ProjectStatus.DONE:
            continue
        if deadline < now:
            s.overdue_tasks += 1
        elif (deadline - now).days <= NEAR_DEADLINE_DAYS:
            s.near_deadline += 1

    return [summaries[q] for q in QUARTERS]


def generate_access_key() -> str:
    return uuid.uuid4().hex[:8]


def create_public_timeline(
    title: str,
    *,
    created_by: User,
    visible_columns: Iterable[Status],
    hidden_tasks: Iterable[str] = (),
    description: str = "",
    expires_at: Optional[datetime] = None,
    password: Optional[str] = None,
    allowed_filters: bool = True,
    access_key: Optional[str] = None,
    now: Optional[datetime] = None,
) -> PublicTimelineSettings:
    title = (title or "").strip()
    if not title:
        raise ValidationError("Please provide a title for the shared timeline.", field="title")
    if password is not None and not password.strip():
        raise ValidationError(
            "Please provide a password or disable password protection.", field="password"
        )
    try:
        columns = [Status(c) for c in visible_columns]
    except ValueError as exc:
        raise ValidationError(str(exc), field="visible_columns") from None
    if not columns:
        raise ValidationError("Please select at least one column to display.", field="visible_columns")

    settings = PublicTimelineSettings(
        access_key=access_key or generate_access_key(),
        title=title,
        description=description or "",
        created_by=created_by,
        created_at=now or _utcnow(),
        expires_at=as_utc(expires_at) if expires_at else None,
        allowed_filters=allowed_filters,
        visible_columns=columns,
        hidden_tasks=list(dict.fromkeys(hidden_tasks)),
        is_password_protected=password is not None,
        password=password,
    )
    log.info(
        "timeline.shared",
        timeline_id=settings.id,
        access_key=settings.access_key,
        protected=settings.is_password_protected,
    )
    return settings


def is_expired(settings: PublicTimelineSettings, now: Optional[datetime] = None) -> bool:
    if settings.expires_at is None:
        return False
    return as_utc(settings.expires_at) < as_utc(now or _utcnow())


def check_password(settings: PublicTimelineSettings, candidate: str) -> bool:
    if not settings.is_password_protected:
        return True
    if settings.password is None or candidate is None:
        return False
    return hmac.compare_digest(settings.password.encode(), candidate.encode())


def find_timeline(
    timelines: Iterable[PublicTimelineSettings], access_key: str
) -> Optional[PublicTimelineSettings]:
    for t in timelines:
        if t.access_key == access_key and t.is_public:
            return t
    return None


def public_tasks(settings: PublicTimelineSettings, tasks: Iterable[Task]) -> List[Task]:
    """Tasks a visitor may see: visible columns only, minus hidden tasks."""
    visible = set(settings.visible_columns)
    hidden = set(settings.hidden_tasks)
    return [t for t in tasks if t.status in visible and t.id not in hidden]
