"""Platform fee configuration per broker."""

import logging
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import NotFoundError, ValidationError
from app.domain.fees import normalize_fee_percent
from app.models.fees import FeeOverride
from app.models.user import User

logger = logging.getLogger(__name__)


class FeeService:
    """Resolve and manage broker fee overrides."""

    @property
    def default_fee_percent(self) -> int:
        return normalize_fee_percent(settings.default_fee_percent, default=10)

    async def resolve_fee_percent(self, db: AsyncSession, broker_id: UUID) -> int:
        """Fee percent for a broker: their override, or the platform default.

        A stored value outside [0, 100] is treated as absent.
        """
        stored = await db.scalar(
            select(FeeOverride.fee_percent).where(FeeOverride.user_id == broker_id)
        )
        return normalize_fee_percent(stored, default=self.default_fee_percent)

    async def upsert_override(
        self,
        db: AsyncSession,
        broker_id: UUID,
        fee_percent: int,
    ) -> FeeOverride:
        if normalize_fee_percent(fee_percent, default=-1) != fee_percent:
            raise ValidationError("fee_percent must be an integer between 0 and 100")

        broker = await db.get(User, broker_id)
        if broker is None or not broker.is_broker:
            raise NotFoundError("Broker", str(broker_id))

        override = await db.scalar(select(FeeOverride).where(FeeOverride.user_id == broker_id))
        if override is None:
            override = FeeOverride(user_id=broker_id, fee_percent=fee_percent)
            db.add(override)
        else:
            override.fee_percent = fee_percent
        await db.flush()
        await db.refresh(override)
        logger.info(f"Fee override for broker {broker_id} set to {fee_percent}%")
        return override

    async def delete_override(self, db: AsyncSession, broker_id: UUID) -> None:
        result = await db.execute(delete(FeeOverride).where(FeeOverride.user_id == broker_id))
        if result.rowcount == 0:
            raise NotFoundError("Fee override", str(broker_id))
        logger.info(f"Fee override for broker {broker_id} removed")

    async def list_overrides(self, db: AsyncSession) -> list[FeeOverride]:
        result = await db.execute(select(FeeOverride).order_by(FeeOverride.updated_at.desc()))
        return list(result.scalars().all())


fee_service = FeeService()
