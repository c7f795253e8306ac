"""Shared fixtures: in-memory database, stubbed Smoobu, fake Stripe and mailer."""

from __future__ import annotations

import json
import os
from datetime import date, timedelta

# Configure before the app (and its settings) are imported
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENVIRONMENT"] = "test"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.api.deps import (
    get_booking_service,
    get_checkout_service,
    get_payment_gateway,
    get_quote_service,
    get_settlement_service,
)
from app.core.cache import TTLCache
from app.core.encryption import encrypt_api_key
from app.database import Base, get_db
from app.gateways.base import (
    CheckoutSessionRequest,
    CheckoutSessionResult,
    PaymentGateway,
    RefundResult,
)
from app.main import app
from app.models import Booking, PmsIntegration, Property, User
from app.services.booking_service import BookingService
from app.services.checkout_service import CheckoutService
from app.services.event_log_service import EventLogService
from app.services.fee_service import FeeService
from app.services.notification_service import NotificationService
from app.services.pms_service import SmoobuClient
from app.services.quote_service import QuoteService
from app.services.settlement_service import SettlementService

SMOOBU_API_KEY = "smoobu-test-key"
SMOOBU_USER_ID = 4242
APARTMENT_ID = 1001
NIGHTLY_PRICE = 110.0  # EUR, 11000 cents

CHECK_IN = date(2030, 6, 10)
CHECK_OUT = date(2030, 6, 12)


# ==================== FAKES ====================


class SmoobuStub:
    """httpx.MockTransport handler imitating the Smoobu endpoints we call."""

    def __init__(self) -> None:
        self.price: float | None = NIGHTLY_PRICE
        self.overrides: dict[date, dict] = {}
        self.missing: set[date] = set()
        self.fail_status: int | None = None
        self.transport_error = False
        self.rates_body: dict | None = None
        self.availability_error: dict | None = None
        self.requests: list[httpx.Request] = []
        self.reservations: dict[int, dict] = {}
        self._next_id = 5000

    @property
    def rate_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == "/api/rates"]

    @property
    def availability_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == "/booking/checkApartmentAvailability"]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.transport_error:
            raise httpx.ConnectError("connection refused", request=request)
        if self.fail_status:
            return httpx.Response(self.fail_status, json={"detail": "upstream exploded"})

        path = request.url.path
        if request.method == "GET" and path == "/api/rates":
            if self.rates_body is not None:
                return httpx.Response(200, json=self.rates_body)
            return httpx.Response(200, json={"data": self._rates(request)})

        if request.method == "POST" and path == "/api/reservations":
            self._next_id += 1
            self.reservations[self._next_id] = json.loads(request.content)
            return httpx.Response(200, json={"id": self._next_id})

        if request.method == "DELETE" and path.startswith("/api/reservations/"):
            self.reservations.pop(int(path.rsplit("/", 1)[1]), None)
            return httpx.Response(200, json={})

        if request.method == "POST" and path == "/booking/checkApartmentAvailability":
            return httpx.Response(200, json=self._availability(json.loads(request.content)))

        return httpx.Response(404, json={"detail": "not found"})

    def _rates(self, request: httpx.Request) -> dict:
        apartment = request.url.params["apartments[]"]
        start = date.fromisoformat(request.url.params["start_date"])
        end = date.fromisoformat(request.url.params["end_date"])
        days = {}
        night = start
        while night <= end:
            if night not in self.missing:
                day = {"price": self.price, "min_length_of_stay": 1, "available": 1}
                day.update(self.overrides.get(night, {}))
                days[night.isoformat()] = day
            night += timedelta(days=1)
        return {apartment: days}

    def _availability(self, body: dict) -> dict:
        [apartment] = body["apartments"]
        error = self.availability_error
        if error is None:
            night = date.fromisoformat(body["arrivalDate"])
            departure = date.fromisoformat(body["departureDate"])
            while night < departure:
                if self.overrides.get(night, {}).get("available") == 0:
                    error = {"errorCode": 3, "message": "The apartment is not available"}
                night += timedelta(days=1)
        if error is not None:
            return {"availableApartments": [], "prices": {}, "errorMessages": {str(apartment): error}}
        return {"availableApartments": [apartment], "prices": {}, "errorMessages": []}


class FakeGateway(PaymentGateway):
    """Records what would have been sent to Stripe."""

    def __init__(self) -> None:
        self.sessions: list[CheckoutSessionRequest] = []
        self.refunds: list[tuple[str, int | None, str]] = []
        self.fail_checkout = False
        self.fail_refund = False

    async def create_checkout_session(self, request: CheckoutSessionRequest) -> CheckoutSessionResult:
        self.sessions.append(request)
        if self.fail_checkout:
            return CheckoutSessionResult(success=False, error_message="card_declined")
        n = len(self.sessions)
        return CheckoutSessionResult(
            success=True,
            session_id=f"cs_test_{n}",
            checkout_url=f"https://checkout.stripe.test/c/pay/cs_test_{n}",
        )

    async def process_refund(self, payment_intent_id: str, amount: int | None, reason: str) -> RefundResult:
        self.refunds.append((payment_intent_id, amount, reason))
        if self.fail_refund:
            return RefundResult(success=False, error_message="charge_already_refunded")
        return RefundResult(success=True, refund_id=f"re_test_{len(self.refunds)}")

    def verify_webhook(self, payload: bytes, signature: str) -> dict | None:
        if signature != "valid":
            return None
        return json.loads(payload)


class FakeNotifier(NotificationService):
    def __init__(self) -> None:
        super().__init__()
        self.confirmations: list[str] = []
        self.cancellations: list[str] = []
        self.fail = False

    async def send_booking_confirmation(self, booking: Booking, property_title: str) -> bool:
        if self.fail:
            raise RuntimeError("mail server on fire")
        self.confirmations.append(booking.booking_number)
        return True

    async def send_booking_cancellation(self, booking: Booking, property_title: str) -> bool:
        self.cancellations.append(booking.booking_number)
        return True


# ==================== DATABASE ====================


@pytest.fixture
async def engine():
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


# ==================== SERVICES ====================


@pytest.fixture
def smoobu():
    return SmoobuStub()


@pytest.fixture
async def pms_client(smoobu):
    client = SmoobuClient(
        base_url="https://smoobu.test",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(smoobu.handler)),
        cache=TTLCache(ttl_seconds=300),
    )
    yield client
    await client.close()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def quotes(pms_client):
    return QuoteService(pms=pms_client, fees=FeeService())


@pytest.fixture
def checkout(gateway, quotes):
    return CheckoutService(gateway=gateway, quotes=quotes)


@pytest.fixture
def settlement(notifier, pms_client):
    return SettlementService(
        fees=FeeService(), notifier=notifier, pms=pms_client, events=EventLogService()
    )


@pytest.fixture
def bookings(gateway, pms_client, notifier):
    return BookingService(
        gateway=gateway, pms=pms_client, notifier=notifier, events=EventLogService()
    )


# ==================== DATA ====================


async def _create_user(db: AsyncSession, email: str, role: str, **kwargs) -> User:
    user = User(email=email, role=role, **kwargs)
    db.add(user)
    await db.commit()
    return user


@pytest.fixture
async def broker(db):
    return await _create_user(
        db, "broker@example.com", "broker",
        first_name="Bruna", stripe_connected_account_id="acct_broker",
    )


@pytest.fixture
async def other_broker(db):
    return await _create_user(
        db, "other@example.com", "broker", stripe_connected_account_id="acct_other",
    )


@pytest.fixture
async def admin(db):
    return await _create_user(db, "admin@example.com", "admin")


@pytest.fixture
async def guest_user(db):
    return await _create_user(db, "guest@example.com", "guest")


@pytest.fixture
async def property_(db, broker):
    prop = Property(
        owner_id=broker.id,
        title="Attico Trastevere",
        city="Roma",
        country="IT",
        currency="eur",
        max_guests=4,
        smoobu_property_id=APARTMENT_ID,
        status="published",
    )
    db.add(prop)
    db.add(
        PmsIntegration(
            user_id=broker.id,
            api_key_encrypted=encrypt_api_key(SMOOBU_API_KEY),
            pms_user_id=SMOOBU_USER_ID,
        )
    )
    await db.commit()
    return prop


@pytest.fixture
def booking_factory(db, property_):
    counter = {"n": 0}

    async def create(
        check_in: date = CHECK_IN,
        check_out: date = CHECK_OUT,
        status: str = "pending",
        prop: Property | None = None,
        **kwargs,
    ) -> Booking:
        counter["n"] += 1
        n = counter["n"]
        target = prop or property_
        nights = (check_out - check_in).days
        values = {
            "booking_number": f"ES-TEST{n:02d}",
            "property_id": target.id,
            "check_in": check_in,
            "check_out": check_out,
            "nights": nights,
            "guests": 2,
            "adults": 2,
            "base_total": 11000 * nights,
            "total_price": 11000 * nights,
            "guest_email": f"guest{n}@example.com",
            "guest_first_name": "Giulia",
            "guest_last_name": "Rossi",
            "stripe_session_id": f"cs_test_fixture_{n}",
            "status": status,
        }
        values.update(kwargs)
        booking = Booking(**values)
        db.add(booking)
        await db.commit()
        return booking

    return create


# ==================== HTTP ====================


@pytest.fixture
async def client(session_maker, quotes, checkout, settlement, bookings, gateway):
    async def override_get_db():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_quote_service] = lambda: quotes
    app.dependency_overrides[get_checkout_service] = lambda: checkout
    app.dependency_overrides[get_settlement_service] = lambda: settlement
    app.dependency_overrides[get_booking_service] = lambda: bookings
    app.dependency_overrides[get_payment_gateway] = lambda: gateway

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
