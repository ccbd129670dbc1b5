"""Alert acknowledgement ledger (SQLAlchemy).

The only state the alert feature keeps: who acknowledged which alert and
when. Acknowledging is one-way; there is no operation to undo it.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

import structlog
from sqlalchemy import Column, DateTime, String, select
from sqlalchemy.orm import declarative_base

from .config import get_config
from .db import create_db_engine, get_engine, is_in_memory, make_sessionmaker
from .models import TimeIntelligenceAlert, User, _utcnow, as_utc


log = structlog.get_logger()

Base = declarative_base()


class AlertAcknowledgement(Base):
    __tablename__ = "alert_acknowledgements"

    alert_id = Column(String(128), primary_key=True)
    task_id = Column(String(64), nullable=False, index=True)
    alert_type = Column(String(32), nullable=False)
    acknowledged_by = Column(String(64), nullable=False)
    acknowledged_by_name = Column(String(256), nullable=True)
    acknowledged_at = Column(DateTime, nullable=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "alert_id": self.alert_id,
            "task_id": self.task_id,
            "alert_type": self.alert_type,
            "acknowledged_by": self.acknowledged_by,
            "acknowledged_by_name": self.acknowledged_by_name,
            "acknowledged_at": as_utc(self.acknowledged_at).isoformat() if self.acknowledged_at else None,
        }


def _overlay(alert: TimeIntelligenceAlert, row: AlertAcknowledgement) -> TimeIntelligenceAlert:
    alert.acknowledged = True
    alert.acknowledged_by = row.acknowledged_by
    alert.acknowledged_at = as_utc(row.acknowledged_at)
    return alert


class AlertLedger:
    """Stores alert acknowledgements.

    Defaults to the configured database URL; an in-memory SQLite URL gives
    each ledger its own private database.
    """

    def __init__(
        self,
        database_url: Optional[str] = None,
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        database_url = database_url or get_config().database_url
        if is_in_memory(database_url):
            self._engine = create_db_engine(database_url)
        else:
            self._engine = get_engine(database_url)
        Base.metadata.create_all(self._engine)
        self._sessions = make_sessionmaker(self._engine)
        self._clock = clock or _utcnow

    def acknowledge(self, alert: TimeIntelligenceAlert, user: User) -> TimeIntelligenceAlert:
        """Mark ``alert`` acknowledged by ``user``. Repeat calls keep the first acknowledger."""
        with self._sessions() as s:
            row = s.get(AlertAcknowledgement, alert.id)
            if row is None:
                # Stored naive; SQLite drops the offset anyway.
                now = as_utc(self._clock()).replace(tzinfo=None)
                row = AlertAcknowledgement(
                    alert_id=alert.id,
                    task_id=alert.task_id,
                    alert_type=alert.type.value,
                    acknowledged_by=user.id,
                    acknowledged_by_name=user.name,
                    acknowledged_at=now,
                )
                s.add(row)
                s.commit()
                log.info("alert.acknowledged", alert_id=alert.id, task_id=alert.task_id, by=user.id)
            else:
                log.debug("alert.already_acknowledged", alert_id=alert.id, by=row.acknowledged_by)
            return _overlay(alert, row)

    def get(self, alert_id: str) -> Optional[Dict[str, Any]]:
        with self._sessions() as s:
            row = s.get(AlertAcknowledgement, alert_id)
            return row.to_dict() if row else None

    def list_acknowledgements(self, task_id: Optional[str] = None) -> List[Dict[str, Any]]:
        with self._sessions() as s:
            q = select(AlertAcknowledgement).order_by(AlertAcknowledgement.acknowledged_at.asc())
            if task_id:
                q = q.where(AlertAcknowledgement.task_id == str(task_id))
            return [r.to_dict() for r in s.execute(q).scalars().all()]

    def apply(self, alerts: Iterable[TimeIntelligenceAlert]) -> List[TimeIntelligenceAlert]:
        """Overlay stored acknowledgements onto freshly derived alerts."""
        alerts = list(alerts)
        if not alerts:
            return alerts
        with self._sessions() as s:
            q = select(AlertAcknowledgement).where(
                AlertAcknowledgement.alert_id.in_([a.id for a in alerts])
            )
            rows = {r.alert_id: r for r in s.execute(q).scalars().all()}
        for a in alerts:
            row = rows.get(a.id)
            if row is not None:
                _overlay(a, row)
        return alerts

    def active(self, alerts: Iterable[TimeIntelligenceAlert]) -> List[TimeIntelligenceAlert]:
        return [a for a in self.apply(alerts) if not a.acknowledged]

    def dispose(self) -> None:
        self._engine.dispose()
