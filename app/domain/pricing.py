"""Stay price calculation.

Everything here works in integer minor units; the PMS float prices are
converted once, at the adapter boundary. The platform fee and withholding
tax are reported on the quote for transparency but are carved out of the
guest total, never added to it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING

from app.core.exceptions import InvalidRange, MissingRateData, NightUnavailable
from app.domain.additional_costs import PriceLineItem
from app.domain.fees import (
    DEFAULT_FEE_PERCENT,
    DEFAULT_WITHHOLDING_PERCENT,
    split_revenue,
    withholding_tax,
)
from app.domain.rates import RateMap, count_nights, iter_nights

if TYPE_CHECKING:
    from app.models import CityTaxDefault, Property


@dataclass(frozen=True)
class CityTaxRule:
    """Tourist tax in minor units per guest per night, optionally capped."""

    amount: int
    max_nights: int | None = None

    def charge(self, nights: int, guests: int) -> int:
        if self.amount <= 0:
            return 0
        taxed_nights = min(nights, self.max_nights) if self.max_nights is not None else nights
        return taxed_nights * self.amount * guests


@dataclass(frozen=True)
class BookingQuote:
    check_in: date
    check_out: date
    nights: int
    guests: int
    base_total_cents: int
    extras_cents: int
    city_tax_cents: int
    platform_fee_cents: int
    broker_net_cents: int
    withholding_tax_cents: int
    total_cents: int
    fee_percent: int
    currency: str
    nightly: list[tuple[date, int]] = field(default_factory=list)
    line_items: list[PriceLineItem] = field(default_factory=list)


def resolve_city_tax_rule(
    prop: Property,
    default: CityTaxDefault | None,
) -> CityTaxRule | None:
    """The property's own rule wins over the city-wide default."""
    if prop.city_tax_amount is not None:
        return CityTaxRule(amount=prop.city_tax_amount, max_nights=prop.city_tax_max_nights)
    if default is not None:
        return CityTaxRule(amount=default.amount, max_nights=default.max_nights)
    return None


def calculate_quote(
    rate_map: RateMap,
    check_in: date,
    check_out: date,
    guests: int,
    city_tax_rule: CityTaxRule | None = None,
    extras_cents: int = 0,
    fee_percent: int = DEFAULT_FEE_PERCENT,
    withholding_percent: int = DEFAULT_WITHHOLDING_PERCENT,
    currency: str = "eur",
    line_items: list[PriceLineItem] | None = None,
) -> BookingQuote:
    """Price a stay from per-night rates.

    Args:
        rate_map: Rates keyed by night, must cover every night of the stay
        check_in: First night
        check_out: Departure day (not charged)
        guests: Number of guests, used for city tax
        city_tax_rule: Applicable tourist tax, if any
        extras_cents: Additional costs and selected extras
        fee_percent: Platform fee percentage on the nightly base
        withholding_percent: Withholding tax percentage on the nightly base
        currency: ISO currency code of all amounts
        line_items: Itemisation of ``extras_cents``, echoed on the quote

    Raises:
        InvalidRange: check_out is not after check_in
        MissingRateData: a night has no rate or a null price
        NightUnavailable: a night is not available
    """
    if check_in >= check_out:
        raise InvalidRange()

    nightly: list[tuple[date, int]] = []
    for night in iter_nights(check_in, check_out):
        rate = rate_map.get(night)
        if rate is None:
            raise MissingRateData(night)
        # A blocked night is unavailable even when the feed leaves its price null
        if not rate.available:
            raise NightUnavailable(night)
        if rate.price is None:
            raise MissingRateData(night)
        nightly.append((night, rate.price))

    nights = count_nights(check_in, check_out)
    base_total = sum(price for _, price in nightly)
    city_tax = city_tax_rule.charge(nights, guests) if city_tax_rule else 0
    split = split_revenue(base_total, fee_percent)

    return BookingQuote(
        check_in=check_in,
        check_out=check_out,
        nights=nights,
        guests=guests,
        base_total_cents=base_total,
        extras_cents=extras_cents,
        city_tax_cents=city_tax,
        platform_fee_cents=split.platform_fee_cents,
        broker_net_cents=split.broker_net_cents,
        withholding_tax_cents=withholding_tax(base_total, withholding_percent),
        total_cents=base_total + extras_cents + city_tax,
        fee_percent=fee_percent,
        currency=currency,
        nightly=nightly,
        line_items=list(line_items or []),
    )
