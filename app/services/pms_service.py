"""Smoobu PMS client.

Rates are normalised at this boundary: float prices become integer cents,
``available`` 0/1 becomes a bool and a missing or non-positive minimum stay
becomes 1. A ``null`` price is kept as ``None`` so downstream code can tell
a gap in the feed apart from a blocked night.
"""

import logging
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import TypeVar

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from app.config import settings
from app.core.cache import TTLCache
from app.core.exceptions import UpstreamUnavailable
from app.domain.rates import RateDay, RateMap
from app.schemas.smoobu import (
    SmoobuAvailabilityRequest,
    SmoobuAvailabilityResponse,
    SmoobuRateDay,
    SmoobuRatesResponse,
    SmoobuReservationRequest,
    SmoobuReservationResponse,
)

logger = logging.getLogger(__name__)

SERVICE_NAME = "smoobu"

ModelT = TypeVar("ModelT", bound=BaseModel)


def to_cents(amount: float) -> int:
    """Convert a major-unit amount to cents, rounding half-up.

    Goes through ``str`` so 19.99 stays 19.99 instead of 19.989999...
    """
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_rate_day(raw: SmoobuRateDay) -> RateDay:
    min_stay = raw.min_length_of_stay
    if min_stay is None or min_stay < 1:
        min_stay = 1
    return RateDay(
        price=to_cents(raw.price) if raw.price is not None else None,
        min_stay=min_stay,
        available=raw.available == 1,
    )


class SmoobuClient:
    """Async client for the Smoobu endpoints the booking flow needs."""

    def __init__(
        self,
        base_url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        cache: TTLCache | None = None,
    ) -> None:
        self.base_url = (base_url or settings.smoobu_base_url).rstrip("/")
        self._http_client = http_client
        self.cache = cache if cache is not None else TTLCache(settings.rate_cache_ttl_seconds)

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Lazy-load HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=settings.pms_timeout_seconds)
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        api_key: str,
        *,
        params: dict | None = None,
        json: dict | None = None,
    ) -> httpx.Response:
        headers = {"Api-Key": api_key, "Cache-Control": "no-cache"}
        try:
            response = await self.http_client.request(
                method,
                f"{self.base_url}{path}",
                headers=headers,
                params=params,
                json=json,
            )
        except httpx.HTTPError as e:
            logger.warning(f"Smoobu {method} {path} transport error: {e}")
            raise UpstreamUnavailable(SERVICE_NAME, "request failed")

        if response.is_error:
            logger.warning(
                f"Smoobu {method} {path} returned {response.status_code}: {response.text[:200]}"
            )
            raise UpstreamUnavailable(SERVICE_NAME, f"HTTP {response.status_code}")
        return response

    def _parse(self, response: httpx.Response, schema: type[ModelT], what: str) -> ModelT:
        try:
            return schema.model_validate_json(response.content)
        except PydanticValidationError as e:
            logger.error(f"Invalid Smoobu {what} response: {e.errors(include_url=False)}")
            raise UpstreamUnavailable(SERVICE_NAME, f"invalid {what} response")

    # ==================== RATES ====================

    async def fetch_rates(
        self,
        api_key: str,
        apartment_id: int,
        start: date,
        end: date,
    ) -> RateMap:
        """Per-night rates for ``[start, end]``.

        Raises:
            UpstreamUnavailable: transport error, non-2xx or malformed payload
        """
        cache_key = (apartment_id, start, end)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        response = await self._request(
            "GET",
            "/api/rates",
            api_key,
            params={
                "apartments[]": apartment_id,
                "start_date": start.isoformat(),
                "end_date": end.isoformat(),
            },
        )
        parsed = self._parse(response, SmoobuRatesResponse, "rates")

        raw_days = parsed.data.get(str(apartment_id), {})
        rates = {night: to_rate_day(raw) for night, raw in raw_days.items()}
        self.cache.set(cache_key, rates)
        return rates

    # ==================== AVAILABILITY ====================

    async def check_availability(
        self,
        api_key: str,
        apartment_id: int,
        customer_id: int,
        arrival: date,
        departure: date,
        guests: int | None = None,
    ) -> SmoobuAvailabilityResponse:
        """Ask Smoobu live whether the apartment can take the stay.

        A refusal also clears the cached rate windows.
        """
        body = SmoobuAvailabilityRequest(
            arrival_date=arrival,
            departure_date=departure,
            apartments=[apartment_id],
            customer_id=customer_id,
            guests=guests,
        )
        response = await self._request(
            "POST",
            "/booking/checkApartmentAvailability",
            api_key,
            json=body.model_dump(by_alias=True, exclude_none=True),
        )
        parsed = self._parse(response, SmoobuAvailabilityResponse, "availability")
        if not parsed.is_available(apartment_id):
            self.cache.clear()
        return parsed

    # ==================== RESERVATIONS ====================

    async def create_reservation(
        self,
        api_key: str,
        reservation: SmoobuReservationRequest,
    ) -> int:
        """Push a confirmed booking into the broker's calendar and return its id."""
        response = await self._request(
            "POST",
            "/api/reservations",
            api_key,
            json=reservation.model_dump(by_alias=True, exclude_none=True),
        )
        parsed = self._parse(response, SmoobuReservationResponse, "reservation")
        # Calendar changed; cached windows may now be stale
        self.cache.clear()
        return parsed.id

    async def cancel_reservation(self, api_key: str, reservation_id: int) -> None:
        await self._request("DELETE", f"/api/reservations/{reservation_id}", api_key)
        self.cache.clear()


smoobu_client = SmoobuClient()
