"""Board domain model.

Entities are plain dataclasses held by the board arena. Every entity has a
``to_dict()`` that produces JSON-friendly values for the Streamlit pages
(timestamps as ISO strings, durations as milliseconds).
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _generate_id() -> str:
    return str(uuid.uuid4())


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC; convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Status(str, Enum):
    BACKLOG = "Backlog"
    IN_PROGRESS = "In Progress"
    REVIEW = "Review"
    DONE = "Done"
    BLOCKED = "Blocked"


class ProjectStatus(str, Enum):
    PLANNED = "Planned"
    ONGOING = "Ongoing"
    DONE = "Done"


class Priority(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class Tag(str, Enum):
    BUG = "Bug"
    FEATURE = "Feature"
    DOCUMENTATION = "Documentation"
    RESEARCH = "Research"
    DESIGN = "Design"
    TESTING = "Testing"


class ActivityType(str, Enum):
    CREATED = "created"
    STATUS_CHANGE = "status_change"
    ASSIGNEE_CHANGE = "assignee_change"
    PRIORITY_CHANGE = "priority_change"
    COMMENT = "comment"
    EDITED = "edited"
    MICRO_UPDATE = "micro_update"


class EnergyLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AlertType(str, Enum):
    STUCK = "stuck"
    DEADLINE_APPROACHING = "deadline_approaching"
    FREQUENT_REOPENS = "frequent_reopens"


class AlertSeverity(str, Enum):
    WARNING = "warning"
    CRITICAL = "critical"


class WipState(str, Enum):
    OK = "ok"
    AT_CAPACITY = "at_capacity"
    OVER_CAPACITY = "over_capacity"


def empty_time_in_status() -> Dict[Status, timedelta]:
    return {s: timedelta(0) for s in Status}


def derive_initials(name: str) -> str:
    return "".join(part[0] for part in name.split() if part).upper()


@dataclass(frozen=True)
class User:
    id: str
    name: str
    email: str
    role: str
    color: str = "#3B82F6"

    @property
    def initials(self) -> str:
        return derive_initials(self.name)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "initials": self.initials,
            "color": self.color,
        }


@dataclass(frozen=True)
class ActivityLogEntry:
    task_id: str
    type: ActivityType
    user: User
    timestamp: datetime
    previous_value: Optional[str] = None
    new_value: Optional[str] = None
    comment: Optional[str] = None
    id: str = field(default_factory=_generate_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "task_id": self.task_id,
            "timestamp": _iso(self.timestamp),
            "type": self.type.value,
            "previous_value": self.previous_value,
            "new_value": self.new_value,
            "comment": self.comment,
            "user": self.user.to_dict(),
        }


@dataclass
class ThreadedComment:
    task_id: str
    content: str
    user: User
    timestamp: datetime
    replies: List["ThreadedComment"] = field(default_factory=list)
    id: str = field(default_factory=_generate_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "task_id": self.task_id,
            "content": self.content,
            "timestamp": _iso(self.timestamp),
            "user": self.user.to_dict(),
            "replies": [r.to_dict() for r in self.replies],
        }


@dataclass
class Task:
    title: str
    deadline: datetime
    created_at: datetime
    updated_at: datetime
    description: str = ""
    status: Status = Status.BACKLOG
    project_status: ProjectStatus = ProjectStatus.PLANNED
    priority: Priority = Priority.MEDIUM
    assignee: Optional[User] = None
    product_owner: Optional[User] = None
    tags: List[Tag] = field(default_factory=list)
    scope: str = ""
    activity_log: List[ActivityLogEntry] = field(default_factory=list)
    time_in_status: Dict[Status, timedelta] = field(default_factory=empty_time_in_status)
    comments: List[ThreadedComment] = field(default_factory=list)
    reopen_count: int = 0
    stuck_since: Optional[datetime] = None
    id: str = field(default_factory=_generate_id)

    def is_overdue(self, now: datetime) -> bool:
        return as_utc(self.deadline) < as_utc(now) and self.status != Status.DONE

    def find_comment(self, comment_id: str) -> Optional[ThreadedComment]:
        for c in self.comments:
            if c.id == comment_id:
                return c
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "project_status": self.project_status.value,
            "priority": self.priority.value,
            "assignee": self.assignee.to_dict() if self.assignee else None,
            "product_owner": self.product_owner.to_dict() if self.product_owner else None,
            "tags": [t.value for t in self.tags],
            "deadline": _iso(self.deadline),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "scope": self.scope,
            "activity_log": [e.to_dict() for e in self.activity_log],
            "time_in_status": {
                s.value: int(d.total_seconds() * 1000) for s, d in self.time_in_status.items()
            },
            "comments": [c.to_dict() for c in self.comments],
            "reopen_count": self.reopen_count,
            "stuck_since": _iso(self.stuck_since),
        }


@dataclass
class KanbanColumn:
    id: Status
    title: str
    color: str
    wip_limit: Optional[int] = None
    task_ids: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id.value,
            "title": self.title,
            "task_ids": list(self.task_ids),
            "wip_limit": self.wip_limit,
            "color": self.color,
        }


@dataclass(frozen=True)
class RetrospectiveEntry:
    period: str
    lessons_learned: tuple
    blockers: tuple
    wins: tuple
    related_task_ids: frozenset
    created_at: datetime
    created_by: User
    id: str = field(default_factory=_generate_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "period": self.period,
            "lessons_learned": list(self.lessons_learned),
            "blockers": list(self.blockers),
            "wins": list(self.wins),
            "related_task_ids": sorted(self.related_task_ids),
            "created_at": _iso(self.created_at),
            "created_by": self.created_by.to_dict(),
        }


@dataclass(frozen=True)
class EnergyFactors:
    task_load: int
    wip_breaches: int
    stuck_tasks: int
    reopened_tasks: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "task_load": self.task_load,
            "wip_breaches": self.wip_breaches,
            "stuck_tasks": self.stuck_tasks,
            "reopened_tasks": self.reopened_tasks,
        }


@dataclass(frozen=True)
class TeamEnergySnapshot:
    level: EnergyLevel
    score: float
    factors: EnergyFactors
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level.value,
            "score": self.score,
            "factors": self.factors.to_dict(),
            "timestamp": _iso(self.timestamp),
        }


@dataclass
class PublicTimelineSettings:
    access_key: str
    title: str
    created_by: User
    created_at: datetime
    visible_columns: List[Status]
    hidden_tasks: List[str] = field(default_factory=list)
    description: str = ""
    expires_at: Optional[datetime] = None
    allowed_filters: bool = True
    is_password_protected: bool = False
    password: Optional[str] = None
    is_public: bool = True
    id: str = field(default_factory=_generate_id)

    def to_dict(self) -> Dict[str, Any]:
        # The password never leaves the engine.
        return {
            "id": self.id,
            "access_key": self.access_key,
            "title": self.title,
            "description": self.description,
            "created_by": self.created_by.to_dict(),
            "created_at": _iso(self.created_at),
            "expires_at": _iso(self.expires_at),
            "allowed_filters": self.allowed_filters,
            "visible_columns": [s.value for s in self.visible_columns],
            "hidden_tasks": list(self.hidden_tasks),
            "is_password_protected": self.is_password_protected,
            "is_public": self.is_public,
        }


@dataclass
class TimeIntelligenceAlert:
    id: str
    task_id: str
    type: AlertType
    severity: AlertSeverity
    message: str
    created_at: datetime
    acknowledged: bool = False
    acknowledged_by: Optional[str] = None
    acknowledged_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "task_id": self.task_id,
            "type": self.type.value,
            "severity": self.severity.value,
            "message": self.message,
            "created_at": _iso(self.created_at),
            "acknowledged": self.acknowledged,
            "acknowledged_by": self.acknowledged_by,
            "acknowledged_at": _iso(self.acknowledged_at),
        }


@dataclass(frozen=True)
class DateRange:
    start: Optional[date] = None
    end: Optional[date] = None


@dataclass(frozen=True)
class FilterState:
    """What the filter bar currently constrains. Empty values mean no constraint."""

    assignee: Optional[str] = None
    priority: Optional[Priority] = None
    tags: frozenset = frozenset()
    search: str = ""
    date_range: DateRange = DateRange()

    def is_active(self) -> bool:
        return bool(
            self.assignee
            or self.priority
            or self.tags
            or self.search.strip()
            or self.date_range.start
            or self.date_range.end
        )


@dataclass
class QuarterSummary:
    name: str
    total_tasks: int = 0
    by_status: Dict[ProjectStatus, int] = field(
        default_factory=lambda: {s: 0 for s in ProjectStatus}
    )
    overdue_tasks: int = 0
    near_deadline: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "total_tasks": self.total_tasks,
            "by_status": {s.value: n for s, n in self.by_status.items()},
            "overdue_tasks": self.overdue_tasks,
            "near_deadline": self.near_deadline,
        }


@dataclass
class TagDefinition:
    name: str
    color: str
    id: str = field(default_factory=_generate_id)


@dataclass
class RoleDefinition:
    name: str
    permissions: List[str] = field(default_factory=list)
    id: str = field(default_factory=_generate_id)
