"""Admin panel endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_admin, get_db
from app.models.event_log import EventLog
from app.models.fees import FeeOverride
from app.models.user import User
from app.schemas.admin import (
    EventLogListResponse,
    EventLogResponse,
    FeeOverrideResponse,
    FeeOverrideUpdate,
)
from app.services.event_log_service import event_log_service
from app.services.fee_service import fee_service

router = APIRouter()


# ============ BROKER FEES ============


@router.get("/broker-fees", response_model=list[FeeOverrideResponse])
async def list_broker_fees(
    admin: Annotated[User, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[FeeOverride]:
    """Brokers with a non-default platform fee."""
    return await fee_service.list_overrides(db)


@router.put("/broker-fees", response_model=FeeOverrideResponse)
async def upsert_broker_fee(
    body: FeeOverrideUpdate,
    admin: Annotated[User, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> FeeOverride:
    return await fee_service.upsert_override(db, body.user_id, body.fee_percent)


@router.delete("/broker-fees/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_broker_fee(
    user_id: UUID,
    admin: Annotated[User, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> None:
    """Revert a broker to the platform default fee."""
    await fee_service.delete_override(db, user_id)


# ============ EVENT LOGS ============


@router.get("/event-logs", response_model=EventLogListResponse)
async def list_event_logs(
    admin: Annotated[User, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
    level: str | None = Query(None, pattern="^(info|warning|error)$"),
    unacknowledged: bool = False,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
) -> EventLogListResponse:
    items, total = await event_log_service.list_events(
        db, level=level, unacknowledged_only=unacknowledged, limit=limit, offset=offset
    )
    return EventLogListResponse(
        items=[EventLogResponse.model_validate(e) for e in items],
        total=total,
    )


@router.post("/event-logs/{event_id}/acknowledge", response_model=EventLogResponse)
async def acknowledge_event_log(
    event_id: UUID,
    admin: Annotated[User, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> EventLog:
    return await event_log_service.acknowledge(db, event_id)
