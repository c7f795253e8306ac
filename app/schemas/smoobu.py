"""Pydantic schemas for Smoobu API payloads."""

from datetime import date

from pydantic import BaseModel, ConfigDict, Field, field_serializer


class SmoobuModel(BaseModel):
    """Smoobu adds fields without notice; ignore what we do not read."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


# ==================== RATES ====================


class SmoobuRateDay(SmoobuModel):
    price: float | None = Field(ge=0)
    min_length_of_stay: int | None = None
    available: int = Field(ge=0, le=1)


class SmoobuRatesResponse(SmoobuModel):
    # apartment id -> date -> rate
    data: dict[str, dict[date, SmoobuRateDay]]


# ==================== AVAILABILITY ====================

# errorCode values returned by checkApartmentAvailability
MIN_STAY_ERROR = 1
MAX_GUESTS_ERROR = 2


class SmoobuAvailabilityRequest(SmoobuModel):
    arrival_date: date = Field(serialization_alias="arrivalDate")
    departure_date: date = Field(serialization_alias="departureDate")
    apartments: list[int]
    customer_id: int = Field(serialization_alias="customerId")
    guests: int | None = None

    @field_serializer("arrival_date", "departure_date")
    def serialize_date(self, value: date) -> str:
        return value.isoformat()


class SmoobuPrice(SmoobuModel):
    price: float
    currency: str


class SmoobuAvailabilityError(SmoobuModel):
    error_code: int = Field(alias="errorCode")
    message: str
    minimum_length_of_stay: int | None = Field(default=None, alias="minimumLengthOfStay")
    number_of_guest: int | None = Field(default=None, alias="numberOfGuest")


class SmoobuAvailabilityResponse(SmoobuModel):
    available_apartments: list[int] = Field(alias="availableApartments")
    prices: dict[str, SmoobuPrice] = Field(default_factory=dict)
    # Smoobu sends [] instead of {} when there are no errors
    error_messages: dict[str, SmoobuAvailabilityError] | list = Field(
        default_factory=dict, alias="errorMessages"
    )

    def is_available(self, apartment_id: int) -> bool:
        return apartment_id in self.available_apartments

    def error_for(self, apartment_id: int) -> SmoobuAvailabilityError | None:
        if isinstance(self.error_messages, dict):
            return self.error_messages.get(str(apartment_id))
        return None


# ==================== RESERVATIONS ====================


class SmoobuReservationRequest(SmoobuModel):
    arrival_date: date = Field(serialization_alias="arrivalDate")
    departure_date: date = Field(serialization_alias="departureDate")
    channel_id: int = Field(serialization_alias="channelId")
    apartment_id: int = Field(serialization_alias="apartmentId")
    first_name: str | None = Field(default=None, serialization_alias="firstName")
    last_name: str | None = Field(default=None, serialization_alias="lastName")
    email: str | None = None
    phone: str | None = None
    notice: str | None = None
    adults: int | None = None
    children: int | None = None
    price: float | None = None
    price_status: int | None = Field(default=None, serialization_alias="priceStatus")
    language: str | None = None

    @field_serializer("arrival_date", "departure_date")
    def serialize_date(self, value: date) -> str:
        return value.isoformat()


class SmoobuReservationResponse(SmoobuModel):
    id: int
