"""Operator event log service."""

import logging
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError
from app.models.event_log import EventLog

logger = logging.getLogger(__name__)

LEVELS = ("info", "warning", "error")


class EventLogService:
    """Persist and query events an operator has to look at."""

    async def record(
        self,
        db: AsyncSession,
        level: str,
        source: str,
        message: str,
        metadata: dict[str, Any] | None = None,
    ) -> EventLog:
        """Add an event to the session. The caller owns the commit.

        Args:
            db: Database session
            level: One of info, warning, error
            source: Subsystem that raised it (e.g. "stripe-webhook")
            message: Human-readable summary
            metadata: JSON-serialisable context

        Returns:
            The pending event log row
        """
        if level not in LEVELS:
            raise ValueError(f"Unknown event level: {level}")
        event = EventLog(level=level, source=source, message=message, event_metadata=metadata)
        db.add(event)
        return event

    async def list_events(
        self,
        db: AsyncSession,
        level: str | None = None,
        unacknowledged_only: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[EventLog], int]:
        query = select(EventLog)
        if level:
            query = query.where(EventLog.level == level)
        if unacknowledged_only:
            query = query.where(EventLog.acknowledged_at.is_(None))

        total = await db.scalar(select(func.count()).select_from(query.subquery()))
        result = await db.execute(
            query.order_by(EventLog.created_at.desc()).limit(limit).offset(offset)
        )
        return list(result.scalars().all()), total or 0

    async def acknowledge(self, db: AsyncSession, event_id: UUID) -> EventLog:
        # Acknowledging twice keeps the first timestamp
        await db.execute(
            update(EventLog)
            .where(EventLog.id == event_id, EventLog.acknowledged_at.is_(None))
            .values(acknowledged_at=datetime.now(UTC))
            .execution_options(synchronize_session=False)
        )
        event = await db.get(EventLog, event_id, populate_existing=True)
        if event is None:
            raise NotFoundError("Event log", str(event_id))
        return event


event_log_service = EventLogService()
