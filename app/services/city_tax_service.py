"""City-wide tourist tax defaults."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.fees import CityTaxDefault

logger = logging.getLogger(__name__)


class CityTaxService:
    async def list_defaults(self, db: AsyncSession) -> list[CityTaxDefault]:
        result = await db.execute(
            select(CityTaxDefault).order_by(CityTaxDefault.country, CityTaxDefault.city)
        )
        return list(result.scalars().all())

    async def upsert_default(
        self,
        db: AsyncSession,
        city: str,
        country: str,
        amount: int,
        max_nights: int | None,
    ) -> CityTaxDefault:
        """One row per (city, country); a second PUT replaces the first."""
        row = await db.scalar(
            select(CityTaxDefault).where(
                CityTaxDefault.city == city,
                CityTaxDefault.country == country,
            )
        )
        if row is None:
            row = CityTaxDefault(city=city, country=country, amount=amount, max_nights=max_nights)
            db.add(row)
        else:
            row.amount = amount
            row.max_nights = max_nights
        await db.flush()
        logger.info(f"City tax for {city}, {country} set to {amount} (max nights {max_nights})")
        return row


city_tax_service = CityTaxService()
