"""Server-side pricing of a stay at a property."""

import logging
from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.encryption import decrypt_api_key
from app.core.exceptions import (
    BelowMinimumStay,
    DateRangeUnavailable,
    NotFoundError,
    ValidationError,
)
from app.domain import additional_costs
from app.domain.availability import validate_stay
from app.domain.pricing import BookingQuote, calculate_quote, resolve_city_tax_rule
from app.domain.rates import RateMap, count_nights
from app.models.fees import CityTaxDefault
from app.models.property import PmsIntegration, Property
from app.schemas.smoobu import MAX_GUESTS_ERROR, MIN_STAY_ERROR
from app.services.fee_service import FeeService, fee_service
from app.services.pms_service import SmoobuClient, smoobu_client

logger = logging.getLogger(__name__)


class QuoteService:
    """Glue between the PMS feed, the property's cost rules and the price calculator."""

    def __init__(self, pms: SmoobuClient | None = None, fees: FeeService | None = None) -> None:
        self.pms = pms or smoobu_client
        self.fees = fees or fee_service

    async def get_property(
        self,
        db: AsyncSession,
        property_id: UUID,
        published_only: bool = True,
    ) -> Property:
        prop = await db.get(Property, property_id)
        if prop is None or (published_only and not prop.is_published):
            raise NotFoundError("Property", str(property_id))
        return prop

    async def get_pms_api_key(self, db: AsyncSession, prop: Property) -> tuple[str, PmsIntegration]:
        integration = await db.scalar(
            select(PmsIntegration).where(PmsIntegration.user_id == prop.owner_id)
        )
        if integration is None or prop.smoobu_property_id is None:
            raise ValidationError("This property is not connected to a PMS")
        return decrypt_api_key(integration.api_key_encrypted), integration

    async def get_rates(
        self,
        db: AsyncSession,
        prop: Property,
        start: date,
        end: date,
    ) -> RateMap:
        api_key, _ = await self.get_pms_api_key(db, prop)
        return await self.pms.fetch_rates(api_key, prop.smoobu_property_id, start, end)

    async def get_city_tax_default(self, db: AsyncSession, prop: Property) -> CityTaxDefault | None:
        return await db.scalar(
            select(CityTaxDefault).where(
                CityTaxDefault.city == prop.city,
                CityTaxDefault.country == prop.country,
            )
        )

    async def build_quote(
        self,
        db: AsyncSession,
        prop: Property,
        check_in: date,
        check_out: date,
        guests: int,
        extras: list[int] | None = None,
    ) -> BookingQuote:
        """Fetch rates, validate the stay and price it.

        Raises:
            InvalidRange, MissingRateData, NightUnavailable, BelowMinimumStay:
                the stay cannot be booked as requested
            ValidationError: too many guests, or the property has no PMS
            UpstreamUnavailable: the PMS feed failed
        """
        if guests > prop.max_guests:
            raise ValidationError(f"This property hosts at most {prop.max_guests} guests")

        rates = await self.get_rates(db, prop, check_in, check_out)
        nights = validate_stay(rates, check_in, check_out, max_nights=settings.max_stay_nights)

        line_items = additional_costs.compute_additional_costs(
            prop.additional_costs, nights, guests, prop.currency
        ) + additional_costs.compute_extras(
            prop.extras, extras or [], nights, guests, prop.currency
        )

        city_tax_rule = resolve_city_tax_rule(prop, await self.get_city_tax_default(db, prop))
        fee_percent = await self.fees.resolve_fee_percent(db, prop.owner_id)

        return calculate_quote(
            rates,
            check_in,
            check_out,
            guests,
            city_tax_rule=city_tax_rule,
            extras_cents=additional_costs.total_cents(line_items),
            fee_percent=fee_percent,
            withholding_percent=settings.withholding_tax_percent,
            currency=prop.currency,
            line_items=line_items,
        )

    async def confirm_availability(
        self,
        db: AsyncSession,
        prop: Property,
        check_in: date,
        check_out: date,
        guests: int,
    ) -> None:
        """Re-check the stay against the live PMS calendar.

        Quotes are priced from cached rates; a night sold on another channel
        since then only shows up here.

        Raises:
            BelowMinimumStay: the PMS asks for a longer stay
            ValidationError: the PMS refuses the guest count, or the broker
                has no PMS user id
            DateRangeUnavailable: the apartment is taken for these dates
            UpstreamUnavailable: the PMS call failed
        """
        api_key, integration = await self.get_pms_api_key(db, prop)
        if integration.pms_user_id is None:
            raise ValidationError("This property is not connected to a PMS")

        apartment_id = prop.smoobu_property_id
        result = await self.pms.check_availability(
            api_key, apartment_id, integration.pms_user_id, check_in, check_out, guests=guests
        )
        if result.is_available(apartment_id):
            return

        error = result.error_for(apartment_id)
        if error is not None and error.error_code == MIN_STAY_ERROR and error.minimum_length_of_stay:
            raise BelowMinimumStay(error.minimum_length_of_stay, count_nights(check_in, check_out))
        if error is not None and error.error_code == MAX_GUESTS_ERROR:
            raise ValidationError(
                f"This property hosts at most {error.number_of_guest or prop.max_guests} guests"
            )
        logger.warning(
            f"PMS refused property {prop.id} for {check_in} - {check_out}: "
            f"{error.message if error else 'no reason given'}"
        )
        raise DateRangeUnavailable()


quote_service = QuoteService()
