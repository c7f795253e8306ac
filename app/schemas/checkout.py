"""Checkout schemas."""

from datetime import date
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator


class GuestDetails(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: str | None = Field(None, max_length=30)
    note: str | None = Field(None, max_length=1000)


class CheckoutRequest(BaseModel):
    """Schema for starting a checkout."""

    property_id: UUID
    check_in: date
    check_out: date
    adults: int = Field(default=1, ge=1, le=50)
    children: int = Field(default=0, ge=0, le=20)
    extras: list[int] = Field(default_factory=list, max_length=50)
    guest: GuestDetails
    # Total the guest was shown; rejected if the server price differs
    expected_total_cents: int | None = Field(None, ge=0)

    @field_validator("check_out")
    @classmethod
    def validate_checkout(cls, v: date, info) -> date:
        check_in = info.data.get("check_in")
        if check_in and v <= check_in:
            raise ValueError("check_out must be after check_in")
        return v

    @model_validator(mode="after")
    def validate_extras(self) -> "CheckoutRequest":
        if any(i < 0 for i in self.extras):
            raise ValueError("extras must be non-negative indices")
        return self

    @property
    def guests(self) -> int:
        return self.adults + self.children


class CheckoutResponse(BaseModel):
    booking_id: UUID
    booking_number: str
    checkout_url: str
    session_id: str
    total_cents: int
    currency: str
