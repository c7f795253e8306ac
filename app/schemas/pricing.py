"""Rate and quote schemas."""

from datetime import date

from pydantic import BaseModel, Field, field_validator


class RateDayResponse(BaseModel):
    night: date
    price: int | None  # minor units, null when the PMS has no price
    min_stay: int
    available: bool


class RatesResponse(BaseModel):
    property_id: str
    currency: str
    start: date
    end: date
    rates: list[RateDayResponse]


class QuoteRequest(BaseModel):
    """Schema for requesting a price quote."""

    check_in: date
    check_out: date
    guests: int = Field(default=1, ge=1, le=50)
    extras: list[int] = Field(default_factory=list, max_length=50)

    @field_validator("extras")
    @classmethod
    def validate_extras(cls, v: list[int]) -> list[int]:
        if any(i < 0 for i in v):
            raise ValueError("extras must be non-negative indices")
        return v


class PriceLineItemResponse(BaseModel):
    label: str
    amount_cents: int
    detail: str | None = None


class NightlyPrice(BaseModel):
    night: date
    price_cents: int


class QuoteResponse(BaseModel):
    check_in: date
    check_out: date
    nights: int
    guests: int
    base_total_cents: int
    extras_cents: int
    city_tax_cents: int
    fee_percent: int
    platform_fee_cents: int
    broker_net_cents: int
    withholding_tax_cents: int
    total_cents: int
    currency: str
    nightly: list[NightlyPrice]
    line_items: list[PriceLineItemResponse]
