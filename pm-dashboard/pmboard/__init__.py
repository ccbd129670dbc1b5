"""pmboard - task state and metrics engine for the product board dashboard.

This package provides:
- The in-memory board arena (tasks, status columns, retrospectives)
- Status transitions with activity logging and time-in-status accounting
- WIP-limit policy, task filtering and the team energy estimate
- Time-intelligence alerts with a SQLAlchemy acknowledgement ledger
- Roadmap summaries, public timeline sharing and directory administration
"""

from .board import TaskBoard
from .energy import compute_team_energy, energy_insights
from .errors import BoardError, NotFound, PolicyViolation, ValidationError
from .filters import apply_filters
from .models import (
    ActivityType,
    FilterState,
    Priority,
    ProjectStatus,
    Status,
    Tag,
    Task,
    User,
)

__all__ = [
    "TaskBoard",
    "compute_team_energy",
    "energy_insights",
    "apply_filters",
    "BoardError",
    "NotFound",
    "PolicyViolation",
    "ValidationError",
    "ActivityType",
    "FilterState",
    "Priority",
    "ProjectStatus",
    "Status",
    "Tag",
    "Task",
    "User",
]
