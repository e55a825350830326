"""Shared test configuration and fixtures.

Each test gets a fresh in-memory SQLite database (aiosqlite + StaticPool) with
every table created, so tests never see each other's rows. Time is a
``FixedClock`` and the payment gateway, media store and audit sink are
in-process fakes wired in through ``app.dependency_overrides``.
"""

import uuid
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from equimarket.api.deps import (
    get_audit_sink,
    get_clock,
    get_db,
    get_media_store,
    get_payment_gate,
)
from equimarket.auth.jwt import create_access_token
from equimarket.billing.payments import PaymentGate
from equimarket.billing.plans import PlanCatalog, PlanName
from equimarket.billing.subscription import SubscriptionState, SubscriptionStateMachine
from equimarket.clock import FixedClock
from equimarket.database import Base
from equimarket.errors import MediaStoreError, PaymentGatewayError
from equimarket.main import app
from equimarket.models.horse import HorseListing
from equimarket.models.seller import Seller
from equimarket.models.user import User
from equimarket.services.audit import AuditEvent

TEST_KEY_ID = "rzp_test_key"
TEST_KEY_SECRET = "rzp_test_secret"

# Mid-month, so a test can advance into the next calendar month in a few days.
NOW = datetime(2025, 3, 10, 12, 0, 0)


# ---------------------------------------------------------------------------
# Collaborator fakes
# ---------------------------------------------------------------------------


class FakeGateway:
    """Stands in for Razorpay: remembers the orders it created."""

    def __init__(self) -> None:
        self.orders: dict[str, dict[str, Any]] = {}

    async def create_order(
        self, amount: int, currency: str, receipt: str, notes: dict[str, str]
    ) -> dict[str, Any]:
        order = {
            "id": f"order_{uuid.uuid4().hex[:14]}",
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "notes": notes,
            "status": "created",
        }
        self.orders[order["id"]] = order
        return order

    async def fetch_order(self, order_id: str) -> dict[str, Any]:
        if order_id not in self.orders:
            raise PaymentGatewayError(f"Unknown order {order_id}")
        return self.orders[order_id]


class FakeMediaStore:
    """Stands in for Cloudinary. ``fail_on`` makes the n-th upload (1-based) fail."""

    def __init__(self) -> None:
        self.uploaded: list[str] = []
        self.deleted: list[str] = []
        self.fail_on: int | None = None
        self._calls = 0

    def upload(self, content: bytes) -> dict[str, Any]:
        self._calls += 1
        if self.fail_on is not None and self._calls == self.fail_on:
            raise MediaStoreError("Image upload failed")
        public_id = f"horse-photos/{uuid.uuid4().hex[:12]}"
        self.uploaded.append(public_id)
        return {
            "url": f"https://res.cloudinary.com/demo/image/upload/{public_id}.jpg",
            "public_id": public_id,
            "thumbnail_url": f"https://res.cloudinary.com/demo/image/upload/w_200,h_200,c_fill/{public_id}.jpg",
            "width": 800,
            "height": 600,
            "format": "jpg",
        }

    def delete(self, public_id: str) -> None:
        self.deleted.append(public_id)


class RecordingAuditSink:
    def __init__(self) -> None:
        self.events: list[AuditEvent] = []

    def record(self, event: AuditEvent) -> None:
        self.events.append(event)

    def actions(self) -> list[str]:
        return [event.action for event in self.events]


# ---------------------------------------------------------------------------
# Core fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def catalog() -> PlanCatalog:
    return PlanCatalog()


@pytest.fixture
def machine(catalog: PlanCatalog, clock: FixedClock) -> SubscriptionStateMachine:
    return SubscriptionStateMachine(catalog, clock)


@pytest.fixture
def audit_sink() -> RecordingAuditSink:
    return RecordingAuditSink()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def media_store() -> FakeMediaStore:
    return FakeMediaStore()


@pytest.fixture
def payment_gate(
    gateway: FakeGateway,
    machine: SubscriptionStateMachine,
    audit_sink: RecordingAuditSink,
) -> PaymentGate:
    return PaymentGate(
        gateway,
        machine,
        audit_sink,
        key_id=TEST_KEY_ID,
        key_secret=TEST_KEY_SECRET,
    )


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield a session on a private in-memory database."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session = AsyncSession(bind=engine, expire_on_commit=False)
    try:
        yield session
    finally:
        await session.close()
        await engine.dispose()


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    clock: FixedClock,
    audit_sink: RecordingAuditSink,
    payment_gate: PaymentGate,
    media_store: FakeMediaStore,
) -> AsyncGenerator[AsyncClient, None]:
    """Provide an httpx AsyncClient wired to the test session and fakes."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_audit_sink] = lambda: audit_sink
    app.dependency_overrides[get_payment_gate] = lambda: payment_gate
    app.dependency_overrides[get_media_store] = lambda: media_store

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Factories: users, sellers, listings
# ---------------------------------------------------------------------------


def auth_headers_for(user: User) -> dict[str, str]:
    token = create_access_token(user.id, role=user.role)
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def make_user(db_session: AsyncSession):
    """Factory: insert a user and return it."""

    async def _make(role: str = "buyer", is_active: bool = True) -> User:
        unique = uuid.uuid4().hex[:8]
        user = User(
            email=f"user-{unique}@test.com",
            name="Test User",
            role=role,
            is_active=is_active,
        )
        db_session.add(user)
        await db_session.flush()
        return user

    return _make


@pytest_asyncio.fixture
async def make_seller(db_session: AsyncSession, make_user, machine: SubscriptionStateMachine):
    """Factory: insert a seller, optionally already on an active plan.

    ``days_left`` moves the plan's window so it ends that many days from now.
    Returns (user, seller, auth_headers).
    """

    async def _make(
        plan: PlanName | None = None,
        days_left: int | None = None,
    ) -> tuple[User, Seller, dict[str, str]]:
        user = await make_user(role="seller")
        state = SubscriptionState()
        if plan is not None:
            state = machine.confirm_payment(state, plan, None)
            if days_left is not None:
                now = machine.clock.now()
                state.end_date = now + timedelta(days=days_left)
                state.start_date = min(state.start_date, state.end_date)

        seller = Seller(
            user_id=user.id,
            business_name=f"Stable {user.email.split('@')[0]}",
            subscription=state.to_document(),
        )
        db_session.add(seller)
        await db_session.flush()
        return user, seller, auth_headers_for(user)

    return _make


@pytest_asyncio.fixture
async def make_listing(db_session: AsyncSession, clock: FixedClock):
    """Factory: insert a listing directly (bypasses activation gating)."""

    async def _make(
        seller: Seller,
        *,
        status: str = "draft",
        images: int = 0,
        complete: bool = True,
        activated_at: datetime | None = None,
    ) -> HorseListing:
        listing = HorseListing(
            seller_id=seller.id,
            name="Sultan",
            images=[
                {"url": f"https://img.test/{i}.jpg", "public_id": f"horse-photos/existing-{i}"}
                for i in range(images)
            ],
            listing_status=status,
            activated_at=activated_at or (clock.now() if status == "active" else None),
            created_at=clock.now(),
        )
        if complete:
            listing.breed = "Marwari"
            listing.age = {"years": 6, "months": 2}
            listing.gender = "Stallion"
            listing.color = "Bay"
            listing.price = 850000
            listing.description = "Well schooled Marwari stallion."
            listing.location = {"state": "Rajasthan", "city": "Jodhpur", "pincode": "342001"}
            listing.specifications = {"height_hands": 15.2, "discipline": "Endurance"}
        db_session.add(listing)
        await db_session.flush()
        return listing

    return _make
