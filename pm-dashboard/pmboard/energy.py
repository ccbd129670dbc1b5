"""Team energy estimator.

The snapshot is recomputed from the full task list every time it is asked
for. Nothing here is cached or stored.

Score weights (lower is better for every factor):

- task load (0-100)            x 0.40
- WIP breaches x 10, cap 100   x 0.25
- stuck tasks x 15, cap 100    x 0.25
- reopened tasks x 20, cap 100 x 0.10
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from .models import (
    EnergyFactors,
    EnergyLevel,
    Priority,
    Status,
    Task,
    TeamEnergySnapshot,
    _utcnow,
    as_utc,
)


DEFAULT_WIP_LIMIT = 5
DEFAULT_STUCK_DAYS = 7

LEVEL_LABELS: Dict[EnergyLevel, str] = {
    EnergyLevel.LOW: "Energized",
    EnergyLevel.MEDIUM: "Moderate Load",
    EnergyLevel.HIGH: "High Load",
    EnergyLevel.CRITICAL: "Critical Load",
}


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(value, high))


def is_stuck(task: Task, now: datetime, stuck_days: int = DEFAULT_STUCK_DAYS) -> bool:
    if task.stuck_since is None or task.status == Status.DONE:
        return False
    return (as_utc(now) - as_utc(task.stuck_since)).days > stuck_days


def compute_factors(
    tasks: Iterable[Task],
    *,
    now: datetime,
    wip_limit: int = DEFAULT_WIP_LIMIT,
    stuck_days: int = DEFAULT_STUCK_DAYS,
) -> EnergyFactors:
    tasks = list(tasks)
    # A task that is both High and overdue counts once.
    loaded = sum(1 for t in tasks if t.priority == Priority.HIGH or t.is_overdue(now))
    task_load = int(_clamp(_round_half_up(100 * loaded / max(len(tasks), 1))))

    in_progress = sum(1 for t in tasks if t.status == Status.IN_PROGRESS)

    return EnergyFactors(
        task_load=task_load,
        wip_breaches=max(0, in_progress - wip_limit),
        stuck_tasks=sum(1 for t in tasks if is_stuck(t, now, stuck_days)),
        reopened_tasks=sum(1 for t in tasks if t.reopen_count > 0),
    )


def energy_score(factors: EnergyFactors) -> float:
    total = (
        factors.task_load * 0.4
        + min(factors.wip_breaches * 10, 100) * 0.25
        + min(factors.stuck_tasks * 15, 100) * 0.25
        + min(factors.reopened_tasks * 20, 100) * 0.1
    )
    return _clamp(total)


def energy_level(score: float) -> EnergyLevel:
    if score < 30:
        return EnergyLevel.LOW
    if score < 60:
        return EnergyLevel.MEDIUM
    if score < 80:
        return EnergyLevel.HIGH
    return EnergyLevel.CRITICAL


def energy_label(level: EnergyLevel) -> str:
    return LEVEL_LABELS[level]


def compute_team_energy(
    tasks: Iterable[Task],
    *,
    now: Optional[datetime] = None,
    wip_limit: int = DEFAULT_WIP_LIMIT,
    stuck_days: int = DEFAULT_STUCK_DAYS,
) -> TeamEnergySnapshot:
    now = now or _utcnow()
    factors = compute_factors(tasks, now=now, wip_limit=wip_limit, stuck_days=stuck_days)
    score = energy_score(factors)
    return TeamEnergySnapshot(level=energy_level(score), score=score, factors=factors, timestamp=now)


def energy_insights(snapshot: TeamEnergySnapshot) -> List[Dict[str, str]]:
    """Human-readable observations for the energy page, most urgent first."""
    f = snapshot.factors
    insights: List[Dict[str, str]] = []

    if f.task_load > 70:
        insights.append({
            "severity": "high",
            "text": "High task load detected. Consider redistributing work or adjusting deadlines.",
        })
    if f.wip_breaches > 3:
        insights.append({
            "severity": "medium",
            "text": f"WIP limit breached by {f.wip_breaches} tasks. Team is taking on too much concurrent work.",
        })
    if f.stuck_tasks > 2:
        insights.append({
            "severity": "high",
            "text": f"{f.stuck_tasks} tasks are stuck for over a week. Immediate attention required.",
        })
    if f.reopened_tasks > 3:
        insights.append({
            "severity": "medium",
            "text": "Multiple tasks being reopened. Consider improving requirements gathering.",
        })

    if not insights:
        insights.append({
            "severity": "low",
            "text": "Team energy levels are healthy. Keep up the good work!",
        })
    return insights
