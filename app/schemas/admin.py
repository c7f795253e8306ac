"""Back-office and admin schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FeeOverrideUpdate(BaseModel):
    user_id: UUID
    fee_percent: int = Field(..., ge=0, le=100, strict=True)


class FeeOverrideResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: UUID
    fee_percent: int
    updated_at: datetime | None = None


class CityTaxUpdate(BaseModel):
    city: str = Field(..., min_length=1, max_length=100)
    country: str = Field(..., min_length=2, max_length=2)
    amount: int = Field(..., ge=0)  # cents per guest per night
    max_nights: int | None = Field(None, ge=1)

    @field_validator("city")
    @classmethod
    def normalize_city(cls, v: str) -> str:
        return v.strip()

    @field_validator("country")
    @classmethod
    def normalize_country(cls, v: str) -> str:
        return v.upper()


class CityTaxResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    city: str
    country: str
    amount: int
    max_nights: int | None


class EventLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    level: str
    source: str
    message: str
    event_metadata: dict | None
    acknowledged_at: datetime | None
    created_at: datetime


class EventLogListResponse(BaseModel):
    items: list[EventLogResponse]
    total: int
