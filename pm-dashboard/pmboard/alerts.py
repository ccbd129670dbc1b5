"""Time-intelligence alerts.

Alerts are derived from the current task list on every call and carry a
stable id (``"<type>:<task_id>"``) so that acknowledgements stored in the
``AlertLedger`` attach to the same alert the next time it is derived.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional

from .config import BoardConfig
from .energy import is_stuck
from .models import (
    AlertSeverity,
    AlertType,
    Status,
    Task,
    TimeIntelligenceAlert,
    _utcnow,
    as_utc,
)


def alert_id(alert_type: AlertType, task_id: str) -> str:
    return f"{alert_type.value}:{task_id}"


def _plural(n: int, word: str) -> str:
    return f"{n} {word}" if n == 1 else f"{n} {word}s"


def _stuck_alert(task: Task, now: datetime, stuck_days: int) -> Optional[TimeIntelligenceAlert]:
    if not is_stuck(task, now, stuck_days):
        return None
    days = (as_utc(now) - as_utc(task.stuck_since)).days
    severity = AlertSeverity.CRITICAL if days > 2 * stuck_days else AlertSeverity.WARNING
    return TimeIntelligenceAlert(
        id=alert_id(AlertType.STUCK, task.id),
        task_id=task.id,
        type=AlertType.STUCK,
        severity=severity,
        message=f"'{task.title}' has been in {task.status.value} for {_plural(days, 'day')}.",
        created_at=now,
    )


def _deadline_alert(task: Task, now: datetime, warning_days: int) -> Optional[TimeIntelligenceAlert]:
    deadline, now = as_utc(task.deadline), as_utc(now)
    if task.status == Status.DONE or deadline < now:
        return None
    days = (deadline - now).days
    if days > warning_days:
        return None
    severity = AlertSeverity.CRITICAL if days < 1 else AlertSeverity.WARNING
    when = "within a day" if days < 1 else f"in {_plural(days, 'day')}"
    return TimeIntelligenceAlert(
        id=alert_id(AlertType.DEADLINE_APPROACHING, task.id),
        task_id=task.id,
        type=AlertType.DEADLINE_APPROACHING,
        severity=severity,
        message=f"'{task.title}' is due {when}.",
        created_at=now,
    )


def _reopen_alert(task: Task, now: datetime, threshold: int) -> Optional[TimeIntelligenceAlert]:
    if task.reopen_count < threshold:
        return None
    severity = AlertSeverity.CRITICAL if task.reopen_count >= 2 * threshold else AlertSeverity.WARNING
    return TimeIntelligenceAlert(
        id=alert_id(AlertType.FREQUENT_REOPENS, task.id),
        task_id=task.id,
        type=AlertType.FREQUENT_REOPENS,
        severity=severity,
        message=f"'{task.title}' has been reopened {_plural(task.reopen_count, 'time')}.",
        created_at=now,
    )


def derive_alerts(
    tasks: Iterable[Task],
    *,
    now: Optional[datetime] = None,
    config: Optional[BoardConfig] = None,
) -> List[TimeIntelligenceAlert]:
    """All alerts that currently hold, grouped per task in task order."""
    now = now or _utcnow()
    config = config or BoardConfig()
    alerts: List[TimeIntelligenceAlert] = []
    for task in tasks:
        for alert in (
            _stuck_alert(task, now, config.stuck_days),
            _deadline_alert(task, now, config.deadline_warning_days),
            _reopen_alert(task, now, config.reopen_threshold),
        ):
            if alert is not None:
                alerts.append(alert)
    return alerts
